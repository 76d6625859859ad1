"""Validator - Schema defaulting for normalized model output."""

from kisanmitra.core.validator.validator import (
    DetectionLimits,
    ValidationError,
    ValidationResult,
    Validator,
)

__all__ = ["DetectionLimits", "ValidationError", "ValidationResult", "Validator"]
