"""Core domain models and contracts for KisanMitra.

These models define the fixed shapes the UI renders without null checks:
- Disease detection result (the normalized model output)
- Disease analysis with solution tabs
- Crop and fertilizer recommendation responses
- Location and cached forecast records

Field names are snake_case in Python and camelCase on the wire.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that serializes with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Enums
# =============================================================================


class NormalizationFailure(str, Enum):
    """Why a raw model output could not be turned into usable JSON."""

    NO_JSON_FOUND = "NO_JSON_FOUND"  # No "{" in the cleaned input
    TRUNCATED_JSON = "TRUNCATED_JSON"  # Never balanced and closure did not parse
    MALFORMED_JSON = "MALFORMED_JSON"  # Balanced but not valid JSON


class CropType(str, Enum):
    CEREALS = "cereals"
    VEGETABLES = "vegetables"
    FRUITS = "fruits"
    PULSES = "pulses"
    OILSEEDS = "oilseeds"
    SPICES = "spices"
    ALL = "all"


class FarmSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class MarketFocus(str, Enum):
    LOCAL = "local"
    EXPORT = "export"
    PROCESSING = "processing"


class Budget(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class GrowthStage(str, Enum):
    SEEDLING = "seedling"
    VEGETATIVE = "vegetative"
    FLOWERING = "flowering"
    FRUITING = "fruiting"
    MATURITY = "maturity"


class SoilType(str, Enum):
    SANDY = "sandy"
    CLAY = "clay"
    LOAM = "loam"
    SILT = "silt"


class FertilizerPreference(str, Enum):
    ORGANIC = "organic"
    CHEMICAL = "chemical"
    MIXED = "mixed"


class IrrigationType(str, Enum):
    DRIP = "drip"
    FLOOD = "flood"
    SPRINKLER = "sprinkler"
    RAINFED = "rainfed"


# =============================================================================
# Disease Detection (normalized model output)
# =============================================================================


class Treatment(CamelModel):
    organic: list[str] = Field(default_factory=list)
    chemical: list[str] = Field(default_factory=list)


class Disease(CamelModel):
    name: str = ""
    probability: float = 0
    description: str = ""
    symptoms: list[str] = Field(default_factory=list)
    causes: list[str] = Field(default_factory=list)
    treatment: Treatment = Field(default_factory=Treatment)
    prevention: list[str] = Field(default_factory=list)


class PlantDetails(CamelModel):
    common_names: list[str] = Field(default_factory=list)
    description: str = ""
    care_instructions: list[str] = Field(default_factory=list)


class DiseaseDetectionResult(CamelModel):
    """
    Total, schema-conformant result of a plant disease detection.

    Every field has a default so presentation code never dereferences
    a missing value.
    """

    plant_name: str = ""
    scientific_name: str = ""
    family: str = ""
    is_healthy: bool = False
    confidence: float = 0
    diseases: list[Disease] = Field(default_factory=list)
    plant_details: PlantDetails = Field(default_factory=PlantDetails)


# =============================================================================
# Disease Analysis (identification + solution tabs)
# =============================================================================


class Identification(CamelModel):
    is_healthy: bool = False
    disease_name: str = ""
    scientific_name: str = ""
    confidence_score: float = 0
    short_description: str = ""


class SolutionSection(CamelModel):
    heading: str = ""
    text: str = ""


class SolutionTab(CamelModel):
    title: str = ""
    content: list[SolutionSection] = Field(default_factory=list)


class SolutionTabs(CamelModel):
    about_disease: SolutionTab = Field(default_factory=SolutionTab)
    organic_solutions: SolutionTab = Field(default_factory=SolutionTab)
    chemical_solutions: SolutionTab = Field(default_factory=SolutionTab)
    preventive_measures: SolutionTab = Field(default_factory=SolutionTab)


class DiseaseAnalysisResult(CamelModel):
    identification: Identification = Field(default_factory=Identification)
    solution_tabs: SolutionTabs = Field(default_factory=SolutionTabs)


# =============================================================================
# Crop Recommendation
# =============================================================================


class Coordinates(CamelModel):
    latitude: float
    longitude: float


class WeatherData(CamelModel):
    temperature: float
    humidity: float
    rainfall: float
    season: str
    location: str
    coordinates: Coordinates | None = None


class SoilNutrients(CamelModel):
    nitrogen: float
    phosphorus: float
    potassium: float


class SoilData(CamelModel):
    ph: float
    type: str
    nutrients: SoilNutrients
    organic_matter: float


class CropPreferences(CamelModel):
    crop_type: CropType = CropType.ALL
    farm_size: FarmSize = FarmSize.MEDIUM
    market_focus: MarketFocus = MarketFocus.LOCAL
    budget: Budget = Budget.MEDIUM


class CropRecommendation(CamelModel):
    crop_name: str = ""
    scientific_name: str = ""
    family: str = ""
    suitability_score: float = 0
    reasons: list[str] = Field(default_factory=list)
    planting_time: str = ""
    harvest_time: str = ""
    water_requirements: str = ""
    soil_requirements: str = ""
    climate_requirements: str = ""
    market_value: str = ""
    yield_expectation: str = ""
    care_instructions: list[str] = Field(default_factory=list)
    pest_management: list[str] = Field(default_factory=list)
    disease_resistance: list[str] = Field(default_factory=list)
    economic_benefits: list[str] = Field(default_factory=list)
    challenges: list[str] = Field(default_factory=list)
    alternative_crops: list[str] = Field(default_factory=list)


class CropRecommendationResponse(CamelModel):
    recommendations: list[CropRecommendation] = Field(default_factory=list)
    summary: str = ""
    best_season: str = ""
    general_advice: str = ""


# =============================================================================
# Fertilizer Recommendation
# =============================================================================


class FertilizerNutrients(CamelModel):
    nitrogen: float
    phosphorus: float
    potassium: float
    organic_matter: float


class WeatherConditions(CamelModel):
    temperature: float
    humidity: float
    rainfall: float


class FertilizerData(CamelModel):
    crop_name: str
    growth_stage: GrowthStage
    soil_ph: float
    soil_type: SoilType
    nutrients: FertilizerNutrients
    weather_conditions: WeatherConditions
    farm_size: FarmSize = FarmSize.MEDIUM
    budget: Budget = Budget.MEDIUM
    preference: FertilizerPreference = FertilizerPreference.MIXED


class AdditionalFertilizerInfo(CamelModel):
    previous_crop: str | None = None
    irrigation_type: IrrigationType | None = None
    pest_issues: list[str] = Field(default_factory=list)
    disease_history: list[str] = Field(default_factory=list)


class FertilizerRecommendation(CamelModel):
    fertilizer_name: str = ""
    type: str = ""  # organic | chemical | biofertilizer
    npk_ratio: str = ""
    application_rate: str = ""
    application_method: str = ""
    timing: str = ""
    frequency: str = ""
    cost: str = ""
    benefits: list[str] = Field(default_factory=list)
    precautions: list[str] = Field(default_factory=list)
    alternatives: list[str] = Field(default_factory=list)
    expected_results: str = ""
    soil_improvement: str = ""


class FertilizerSchedule(CamelModel):
    stage: str = ""
    fertilizers: list[FertilizerRecommendation] = Field(default_factory=list)
    total_cost: str = ""
    application_notes: str = ""


class FertilizerResponse(CamelModel):
    recommendations: list[FertilizerRecommendation] = Field(default_factory=list)
    schedule: list[FertilizerSchedule] = Field(default_factory=list)
    soil_analysis: str = ""
    general_advice: str = ""
    cost_estimate: str = ""
    expected_yield: str = ""
    warnings: list[str] = Field(default_factory=list)


# =============================================================================
# Catalog, Location & Forecast Cache
# =============================================================================


class Crop(CamelModel):
    name: str
    category: str


class CropCategory(CamelModel):
    name: str
    crops: list[Crop] = Field(default_factory=list)


class Place(CamelModel):
    """A geocoded place."""

    name: str
    state: str | None = None
    country: str | None = None
    lat: float
    lon: float

    @property
    def label(self) -> str:
        """Human label, e.g. 'Ichalkaranji, Maharashtra, IN'."""
        return ", ".join(part for part in (self.name, self.state, self.country) if part)


class ResolvedLocation(CamelModel):
    label: str
    coordinates: Coordinates


class CurrentWeather(CamelModel):
    temp_celsius: float
    humidity_percent: float
    wind_speed_kmh: float
    description: str
    icon: str | None = None
    city: str
    country: str | None = None
    timestamp: int


class DailyForecast(CamelModel):
    date: str
    min: float
    max: float
    icon: str | None = None
    description: str
    rain_likely: bool = False


class CachedForecast(CamelModel):
    key: str  # "lat,lon" rounded to 3 decimals
    location_label: str | None = None
    current: CurrentWeather | None = None
    forecast: list[DailyForecast] | None = None
    saved_at: int = 0  # epoch ms
