"""KisanMitra Core - Model output normalization and contracts."""

from kisanmitra.core.models import (
    CropRecommendationResponse,
    DiseaseAnalysisResult,
    DiseaseDetectionResult,
    FertilizerResponse,
    NormalizationFailure,
)

__all__ = [
    "CropRecommendationResponse",
    "DiseaseAnalysisResult",
    "DiseaseDetectionResult",
    "FertilizerResponse",
    "NormalizationFailure",
]
