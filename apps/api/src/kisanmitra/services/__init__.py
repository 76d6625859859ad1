"""Farming assistant services built on the model provider."""

from kisanmitra.services.advisor import AdvisorService
from kisanmitra.services.crop_recommendation import (
    CropRecommendationService,
    fallback_crop_recommendations,
)
from kisanmitra.services.disease_analysis import AnalysisParseError, DiseaseAnalysisService
from kisanmitra.services.disease_detection import DiseaseDetectionService
from kisanmitra.services.fertilizer import (
    FertilizerRecommendationService,
    fallback_fertilizer_recommendations,
)
from kisanmitra.services.images import ImageUpload, ImageValidationError, validate_image_upload

__all__ = [
    "AdvisorService",
    "AnalysisParseError",
    "CropRecommendationService",
    "DiseaseAnalysisService",
    "DiseaseDetectionService",
    "FertilizerRecommendationService",
    "ImageUpload",
    "ImageValidationError",
    "fallback_crop_recommendations",
    "fallback_fertilizer_recommendations",
    "validate_image_upload",
]
