"""
Response Normalizer - raw model text in, total detection record out.

Combines the JSONNormalizer (extraction + repair) with the Validator
(schema defaulting). The normalizer never raises: every failure resolves
to the "Analysis Failed" sentinel record, with the failure condition
kept on the outcome for logging.
"""

import logging
from dataclasses import dataclass, field

from kisanmitra.core.models import (
    Disease,
    DiseaseDetectionResult,
    NormalizationFailure,
    PlantDetails,
    Treatment,
)
from kisanmitra.core.normalizer.normalizer import JSONNormalizer
from kisanmitra.core.validator import DetectionLimits, Validator

logger = logging.getLogger(__name__)

ANALYSIS_FAILED = "Analysis Failed"


def analysis_failed_result(plant_name: str = "") -> DiseaseDetectionResult:
    """The sentinel record returned when no usable data could be recovered."""
    return DiseaseDetectionResult(
        plant_name=plant_name,
        scientific_name="Unknown",
        family="Unknown",
        is_healthy=False,
        confidence=0,
        diseases=[
            Disease(
                name=ANALYSIS_FAILED,
                probability=0,
                description="Unable to complete analysis",
                symptoms=["Analysis failed"],
                causes=["Processing error"],
                treatment=Treatment(
                    organic=["Try again with a clearer image"],
                    chemical=[],
                ),
                prevention=["Ensure good image quality"],
            )
        ],
        plant_details=PlantDetails(
            common_names=[plant_name] if plant_name else [],
            description="Analysis failed",
            care_instructions=["Please try again"],
        ),
    )


def is_failed_result(result: DiseaseDetectionResult) -> bool:
    """Check whether a record is the failed-analysis sentinel."""
    return (
        result.confidence == 0
        and len(result.diseases) == 1
        and result.diseases[0].name == ANALYSIS_FAILED
    )


@dataclass
class NormalizationOutcome:
    """A normalized record plus how it was obtained."""

    result: DiseaseDetectionResult
    failure: NormalizationFailure | None = None
    repairs_applied: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.failure is not None


class ResponseNormalizer:
    """Convert untrusted model text into a DiseaseDetectionResult."""

    def __init__(self, limits: DetectionLimits | None = None):
        self.json_normalizer = JSONNormalizer()
        self.validator = Validator(limits)

    def normalize(self, raw: str, plant_name: str = "") -> DiseaseDetectionResult:
        """
        Normalize raw model output. Never raises.

        Args:
            raw: Text returned by the model
            plant_name: Plant name the user supplied

        Returns:
            A fully populated DiseaseDetectionResult
        """
        return self.analyze(raw, plant_name).result

    def analyze(self, raw: str, plant_name: str = "") -> NormalizationOutcome:
        """Normalize raw model output and report the failure condition, if any."""
        try:
            parsed = self.json_normalizer.normalize(raw if isinstance(raw, str) else "")
            repairs = parsed.repairs_applied or []

            if not parsed.success or parsed.data is None:
                failure = parsed.failure or NormalizationFailure.MALFORMED_JSON
                logger.warning(
                    "Model output normalization failed (%s): %s", failure.value, parsed.error
                )
                return NormalizationOutcome(
                    result=analysis_failed_result(plant_name),
                    failure=failure,
                    repairs_applied=repairs,
                )

            validation = self.validator.validate_detection(parsed.data, plant_name)
            if repairs:
                logger.info("Model output repaired: %s", repairs)
            if validation.warnings:
                logger.debug("Defaulted fields: %s", validation.warnings)

            return NormalizationOutcome(
                result=validation.record,
                repairs_applied=repairs,
                warnings=validation.warnings,
            )

        except Exception:
            # Catch-all so callers always get a record
            logger.exception("Unexpected error while normalizing model output")
            return NormalizationOutcome(
                result=analysis_failed_result(plant_name),
                failure=NormalizationFailure.MALFORMED_JSON,
            )


_default_normalizer = ResponseNormalizer()


def normalize(raw: str, plant_name: str = "") -> DiseaseDetectionResult:
    """Normalize with the default list bounds."""
    return _default_normalizer.normalize(raw, plant_name)
