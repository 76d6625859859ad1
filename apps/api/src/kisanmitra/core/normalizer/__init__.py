"""JSON Normalizer - Extract, repair and default model output."""

from kisanmitra.core.normalizer.normalizer import JSONNormalizer, NormalizerResult
from kisanmitra.core.normalizer.response import (
    ANALYSIS_FAILED,
    NormalizationOutcome,
    ResponseNormalizer,
    analysis_failed_result,
    is_failed_result,
    normalize,
)

__all__ = [
    "ANALYSIS_FAILED",
    "JSONNormalizer",
    "NormalizationOutcome",
    "NormalizerResult",
    "ResponseNormalizer",
    "analysis_failed_result",
    "is_failed_result",
    "normalize",
]
