"""
Validator - Schema defaulting for normalized model output.

The validator turns a parsed-but-untrusted JSON dict into a total record:
1. Type checks - every expected field is checked for its JSON type
2. Defaulting - absent or wrongly typed values become "", 0, False or []
3. Bounding - lists and long texts are cut to fixed sizes

This is the second line of defense after the normalizer.
"""

import math
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from kisanmitra.core.models import (
    CropRecommendation,
    CropRecommendationResponse,
    Disease,
    DiseaseAnalysisResult,
    DiseaseDetectionResult,
    FertilizerRecommendation,
    FertilizerResponse,
    FertilizerSchedule,
    Identification,
    PlantDetails,
    SolutionSection,
    SolutionTab,
    SolutionTabs,
    Treatment,
)


@dataclass
class ValidationError:
    """A single validation error."""

    field: str
    message: str
    code: str  # e.g., "MISSING_FIELD", "INVALID_TYPE"


@dataclass
class ValidationResult:
    """Result of validation."""

    valid: bool
    record: BaseModel | None = None
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class DetectionLimits:
    """Rendering bounds for a disease detection record."""

    symptoms: int = 4
    causes: int = 3
    organic: int = 3
    chemical: int = 2
    prevention: int = 4
    common_names: int = 2
    care_instructions: int = 4
    description_chars: int = 200
    plant_description_chars: int = 100


class Validator:
    """
    Coerce model JSON into KisanMitra records.

    Enforces:
    - Strings are strings, lists are lists of strings
    - Percentages are numbers clamped to 0..100
    - Booleans are booleans ("true"/"false" strings accepted)
    - Detection lists are bounded by DetectionLimits
    """

    ANALYSIS_TABS = {
        "about_disease": "aboutDisease",
        "organic_solutions": "organicSolutions",
        "chemical_solutions": "chemicalSolutions",
        "preventive_measures": "preventiveMeasures",
    }

    def __init__(self, limits: DetectionLimits | None = None):
        self.limits = limits or DetectionLimits()

    # =========================================================================
    # Disease detection
    # =========================================================================

    def validate_detection(
        self, data: dict[str, Any], plant_name: str = ""
    ) -> ValidationResult:
        """
        Build a DiseaseDetectionResult from parsed model JSON.

        Always valid: anything missing is defaulted.

        Args:
            data: Normalized JSON dict from model output
            plant_name: Plant name the user supplied, used when the model
                omits plantName

        Returns:
            ValidationResult carrying the DiseaseDetectionResult
        """
        warnings: list[str] = []
        limits = self.limits

        if not isinstance(data, dict):
            warnings.append("root: expected object")
            data = {}

        diseases: list[Disease] = []
        raw_diseases = self._list(data.get("diseases"), "diseases", warnings)
        for i, item in enumerate(raw_diseases):
            path = f"diseases[{i}]"
            if not isinstance(item, dict):
                warnings.append(f"{path}: expected object, dropped")
                continue
            treatment = self._object(item.get("treatment"), f"{path}.treatment", warnings)
            diseases.append(
                Disease(
                    name=self._text(item.get("name"), f"{path}.name", warnings),
                    probability=self._percent(
                        item.get("probability"), f"{path}.probability", warnings
                    ),
                    description=self._text(
                        item.get("description"),
                        f"{path}.description",
                        warnings,
                        limit=limits.description_chars,
                    ),
                    symptoms=self._texts(
                        item.get("symptoms"), f"{path}.symptoms", warnings, limits.symptoms
                    ),
                    causes=self._texts(
                        item.get("causes"), f"{path}.causes", warnings, limits.causes
                    ),
                    treatment=Treatment(
                        organic=self._texts(
                            treatment.get("organic"),
                            f"{path}.treatment.organic",
                            warnings,
                            limits.organic,
                        ),
                        chemical=self._texts(
                            treatment.get("chemical"),
                            f"{path}.treatment.chemical",
                            warnings,
                            limits.chemical,
                        ),
                    ),
                    prevention=self._texts(
                        item.get("prevention"),
                        f"{path}.prevention",
                        warnings,
                        limits.prevention,
                    ),
                )
            )

        details = self._object(data.get("plantDetails"), "plantDetails", warnings)
        result = DiseaseDetectionResult(
            plant_name=self._text(data.get("plantName"), "plantName", warnings) or plant_name,
            scientific_name=self._text(data.get("scientificName"), "scientificName", warnings),
            family=self._text(data.get("family"), "family", warnings),
            is_healthy=self._bool(data.get("isHealthy"), "isHealthy", warnings),
            confidence=self._percent(data.get("confidence"), "confidence", warnings),
            diseases=diseases,
            plant_details=PlantDetails(
                common_names=self._texts(
                    details.get("commonNames"),
                    "plantDetails.commonNames",
                    warnings,
                    limits.common_names,
                ),
                description=self._text(
                    details.get("description"),
                    "plantDetails.description",
                    warnings,
                    limit=limits.plant_description_chars,
                ),
                care_instructions=self._texts(
                    details.get("careInstructions"),
                    "plantDetails.careInstructions",
                    warnings,
                    limits.care_instructions,
                ),
            ),
        )
        return ValidationResult(valid=True, record=result, warnings=warnings)

    # =========================================================================
    # Disease analysis (identification + solution tabs)
    # =========================================================================

    def validate_analysis(self, data: dict[str, Any]) -> ValidationResult:
        """
        Build a DiseaseAnalysisResult.

        Invalid when the identification or solutionTabs block is missing;
        fields inside those blocks are defaulted.
        """
        errors: list[ValidationError] = []
        warnings: list[str] = []

        for required in ("identification", "solutionTabs"):
            if not isinstance(data.get(required), dict):
                errors.append(
                    ValidationError(
                        field=required,
                        message=f"Missing required object: {required}",
                        code="MISSING_FIELD",
                    )
                )

        if errors:
            return ValidationResult(valid=False, errors=errors)

        ident = data["identification"]
        identification = Identification(
            is_healthy=self._bool(ident.get("isHealthy"), "identification.isHealthy", warnings),
            disease_name=self._text(
                ident.get("diseaseName"), "identification.diseaseName", warnings
            ),
            scientific_name=self._text(
                ident.get("scientificName"), "identification.scientificName", warnings
            ),
            confidence_score=self._percent(
                ident.get("confidenceScore"), "identification.confidenceScore", warnings
            ),
            short_description=self._text(
                ident.get("shortDescription"), "identification.shortDescription", warnings
            ),
        )

        tabs_data = data["solutionTabs"]
        tabs: dict[str, SolutionTab] = {}
        for attr, key in self.ANALYSIS_TABS.items():
            path = f"solutionTabs.{key}"
            tab = self._object(tabs_data.get(key), path, warnings)
            sections = []
            for i, section in enumerate(self._list(tab.get("content"), f"{path}.content", warnings)):
                if not isinstance(section, dict):
                    warnings.append(f"{path}.content[{i}]: expected object, dropped")
                    continue
                sections.append(
                    SolutionSection(
                        heading=self._text(
                            section.get("heading"), f"{path}.content[{i}].heading", warnings
                        ),
                        text=self._text(
                            section.get("text"), f"{path}.content[{i}].text", warnings
                        ),
                    )
                )
            tabs[attr] = SolutionTab(
                title=self._text(tab.get("title"), f"{path}.title", warnings),
                content=sections,
            )

        result = DiseaseAnalysisResult(
            identification=identification,
            solution_tabs=SolutionTabs(**tabs),
        )
        return ValidationResult(valid=True, record=result, warnings=warnings)

    # =========================================================================
    # Crop & fertilizer recommendations
    # =========================================================================

    def validate_crop_recommendations(self, data: dict[str, Any]) -> ValidationResult:
        """Build a CropRecommendationResponse; invalid without a recommendations list."""
        warnings: list[str] = []

        if not isinstance(data.get("recommendations"), list):
            return ValidationResult(
                valid=False,
                errors=[
                    ValidationError(
                        field="recommendations",
                        message="recommendations must be a list",
                        code="MISSING_FIELD",
                    )
                ],
            )

        recommendations = []
        for i, item in enumerate(data["recommendations"]):
            path = f"recommendations[{i}]"
            if not isinstance(item, dict):
                warnings.append(f"{path}: expected object, dropped")
                continue
            values = self._fields(item, CropRecommendation, path, warnings)
            values["suitability_score"] = self._percent(
                item.get("suitabilityScore"), f"{path}.suitabilityScore", warnings
            )
            recommendations.append(CropRecommendation(**values))

        result = CropRecommendationResponse(
            recommendations=recommendations,
            summary=self._text(data.get("summary"), "summary", warnings),
            best_season=self._text(data.get("bestSeason"), "bestSeason", warnings),
            general_advice=self._text(data.get("generalAdvice"), "generalAdvice", warnings),
        )
        return ValidationResult(valid=True, record=result, warnings=warnings)

    def validate_fertilizer_recommendations(self, data: dict[str, Any]) -> ValidationResult:
        """Build a FertilizerResponse; invalid without a recommendations list."""
        warnings: list[str] = []

        if not isinstance(data.get("recommendations"), list):
            return ValidationResult(
                valid=False,
                errors=[
                    ValidationError(
                        field="recommendations",
                        message="recommendations must be a list",
                        code="MISSING_FIELD",
                    )
                ],
            )

        recommendations = self._fertilizers(data["recommendations"], "recommendations", warnings)

        schedule = []
        for i, item in enumerate(self._list(data.get("schedule"), "schedule", warnings)):
            path = f"schedule[{i}]"
            if not isinstance(item, dict):
                warnings.append(f"{path}: expected object, dropped")
                continue
            schedule.append(
                FertilizerSchedule(
                    stage=self._text(item.get("stage"), f"{path}.stage", warnings),
                    fertilizers=self._fertilizers(
                        self._list(item.get("fertilizers"), f"{path}.fertilizers", warnings),
                        f"{path}.fertilizers",
                        warnings,
                    ),
                    total_cost=self._text(item.get("totalCost"), f"{path}.totalCost", warnings),
                    application_notes=self._text(
                        item.get("applicationNotes"), f"{path}.applicationNotes", warnings
                    ),
                )
            )

        result = FertilizerResponse(
            recommendations=recommendations,
            schedule=schedule,
            soil_analysis=self._text(data.get("soilAnalysis"), "soilAnalysis", warnings),
            general_advice=self._text(data.get("generalAdvice"), "generalAdvice", warnings),
            cost_estimate=self._text(data.get("costEstimate"), "costEstimate", warnings),
            expected_yield=self._text(data.get("expectedYield"), "expectedYield", warnings),
            warnings=self._texts(data.get("warnings"), "warnings", warnings),
        )
        return ValidationResult(valid=True, record=result, warnings=warnings)

    def _fertilizers(
        self, items: list[Any], path: str, warnings: list[str]
    ) -> list[FertilizerRecommendation]:
        fertilizers = []
        for i, item in enumerate(items):
            if not isinstance(item, dict):
                warnings.append(f"{path}[{i}]: expected object, dropped")
                continue
            fertilizers.append(
                FertilizerRecommendation(
                    **self._fields(item, FertilizerRecommendation, f"{path}[{i}]", warnings)
                )
            )
        return fertilizers

    # =========================================================================
    # Field coercion
    # =========================================================================

    def _fields(
        self,
        data: dict[str, Any],
        model: type[BaseModel],
        path: str,
        warnings: list[str],
    ) -> dict[str, Any]:
        """Coerce every str / list[str] field of a flat model from camelCase keys."""
        values: dict[str, Any] = {}
        for name, info in model.model_fields.items():
            key = info.alias or name
            if info.annotation is str:
                values[name] = self._text(data.get(key), f"{path}.{key}", warnings)
            elif info.annotation == list[str]:
                values[name] = self._texts(data.get(key), f"{path}.{key}", warnings)
        return values

    @staticmethod
    def _text(
        value: Any, path: str, warnings: list[str], limit: int | None = None
    ) -> str:
        if value is None:
            return ""
        if not isinstance(value, str):
            warnings.append(f"{path}: expected string, got {type(value).__name__}")
            return ""
        return value[:limit] if limit is not None else value

    @staticmethod
    def _texts(
        value: Any, path: str, warnings: list[str], limit: int | None = None
    ) -> list[str]:
        if value is None:
            return []
        if not isinstance(value, list):
            warnings.append(f"{path}: expected list, got {type(value).__name__}")
            return []
        items = [item for item in value if isinstance(item, str)]
        if len(items) != len(value):
            warnings.append(f"{path}: dropped {len(value) - len(items)} non-string items")
        if limit is not None and len(items) > limit:
            items = items[:limit]
        return items

    @staticmethod
    def _list(value: Any, path: str, warnings: list[str]) -> list[Any]:
        if value is None:
            return []
        if not isinstance(value, list):
            warnings.append(f"{path}: expected list, got {type(value).__name__}")
            return []
        return value

    @staticmethod
    def _object(value: Any, path: str, warnings: list[str]) -> dict[str, Any]:
        if value is None:
            return {}
        if not isinstance(value, dict):
            warnings.append(f"{path}: expected object, got {type(value).__name__}")
            return {}
        return value

    @staticmethod
    def _bool(value: Any, path: str, warnings: list[str]) -> bool:
        if value is None:
            return False
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
            return value.strip().lower() == "true"
        warnings.append(f"{path}: expected boolean, got {type(value).__name__}")
        return False

    @staticmethod
    def _percent(value: Any, path: str, warnings: list[str]) -> float:
        """Number in 0..100; numeric strings accepted."""
        if value is None:
            return 0
        number: float | None = None
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            number = float(value)
        elif isinstance(value, str):
            try:
                number = float(value.strip().rstrip("%"))
            except ValueError:
                number = None

        if number is None or not math.isfinite(number):
            warnings.append(f"{path}: expected number, got {value!r:.40}")
            return 0
        if not 0 <= number <= 100:
            warnings.append(f"{path}: {number} clamped to 0..100")
            number = min(max(number, 0.0), 100.0)
        return number
