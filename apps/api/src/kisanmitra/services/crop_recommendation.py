"""
Crop recommendations from weather, soil and farmer preferences.

Model output goes through the JSONNormalizer and the Validator. Any
failure (provider error, unusable JSON, missing recommendations list)
falls back to a fixed Rice recommendation so the UI always has data.
"""

import logging

from kisanmitra.core.models import (
    CropPreferences,
    CropRecommendation,
    CropRecommendationResponse,
    SoilData,
    WeatherData,
)
from kisanmitra.core.normalizer import JSONNormalizer
from kisanmitra.core.validator import Validator
from kisanmitra.providers.base import CompletionRequest, ProviderAdapter, ProviderError
from kisanmitra.services.language import get_language_instructions

logger = logging.getLogger(__name__)


def fallback_crop_recommendations() -> CropRecommendationResponse:
    """Recommendation returned when the model cannot be used."""
    return CropRecommendationResponse(
        recommendations=[
            CropRecommendation(
                crop_name="Rice",
                scientific_name="Oryza sativa",
                family="Poaceae",
                suitability_score=75,
                reasons=["Suitable for high humidity and rainfall conditions"],
                planting_time="June-July",
                harvest_time="October-November",
                water_requirements="High - requires standing water",
                soil_requirements="Clay loam with good water retention",
                climate_requirements="Warm and humid climate",
                market_value="₹2,000-3,000 per quintal",
                yield_expectation="4-6 tonnes per hectare",
                care_instructions=["Regular water management", "Proper spacing", "Weed control"],
                pest_management=["Use resistant varieties", "Crop rotation", "Biological control"],
                disease_resistance=["Blast resistant varieties available"],
                economic_benefits=["High market demand", "Government support"],
                challenges=["High water requirement", "Labor intensive"],
                alternative_crops=["Wheat", "Maize", "Sugarcane"],
            )
        ],
        summary="Based on your conditions, rice cultivation is recommended",
        best_season="Kharif (Monsoon)",
        general_advice=(
            "Consider soil testing and water availability before finalizing crop selection"
        ),
    )


class CropRecommendationService:
    """Top crop picks and per-crop cultivation guides."""

    RECOMMENDATION_PROMPT = """You are an expert agricultural scientist and agronomist specializing in crop recommendations for Indian farmers.

{language_instructions}

Analyze the following farming conditions and provide detailed crop recommendations:

{conditions}

Provide a comprehensive analysis with:

1. **Top 5 crop recommendations** with detailed information
2. **Suitability scores** (0-100) for each crop
3. **Specific reasons** why each crop is suitable
4. **Planting and harvest timelines**
5. **Water, soil, and climate requirements**
6. **Market value and yield expectations**
7. **Care instructions and pest management**
8. **Economic benefits and potential challenges**
9. **Alternative crop options**

Format your response as a JSON object with this exact structure:
{{
  "recommendations": [
    {{
      "cropName": "string",
      "scientificName": "string",
      "family": "string",
      "suitabilityScore": number,
      "reasons": ["string array"],
      "plantingTime": "string",
      "harvestTime": "string",
      "waterRequirements": "string",
      "soilRequirements": "string",
      "climateRequirements": "string",
      "marketValue": "string",
      "yieldExpectation": "string",
      "careInstructions": ["string array"],
      "pestManagement": ["string array"],
      "diseaseResistance": ["string array"],
      "economicBenefits": ["string array"],
      "challenges": ["string array"],
      "alternativeCrops": ["string array"]
    }}
  ],
  "summary": "string",
  "bestSeason": "string",
  "generalAdvice": "string"
}}

Focus on crops that are:
- Suitable for the given climate and soil conditions
- Economically viable for the farmer's budget and market focus
- Appropriate for the farm size
- Have good disease resistance and pest management options
- Provide good yield potential

Be specific about Indian farming conditions, local market prices, and practical implementation advice."""

    DETAILS_PROMPT = """Provide detailed information about {crop_name} cultivation including:

1. **Crop Overview**: Scientific name, family, origin
2. **Growing Conditions**: Temperature, rainfall, soil requirements
3. **Planting Guide**: Best time, spacing, seed rate
4. **Care Instructions**: Watering, fertilizing, weeding
5. **Pest & Disease Management**: Common issues and solutions
6. **Harvesting**: Timing, methods, yield expectations
7. **Post-Harvest**: Storage, processing, marketing
8. **Economic Aspects**: Cost of cultivation, expected returns
9. **Varieties**: Recommended varieties for different conditions
10. **Challenges & Solutions**: Common problems and remedies

Current conditions:
{weather}

{language_instructions}

Provide practical, actionable advice suitable for Indian farmers."""

    DETAILS_UNAVAILABLE = (
        "Detailed information about {crop_name} is currently unavailable. "
        "Please try again later."
    )

    def __init__(
        self,
        provider: ProviderAdapter,
        model: str = "gemini-1.5-pro",
        max_tokens: int = 2048,
    ):
        self.provider = provider
        self.model = model
        self.max_tokens = max_tokens
        self.normalizer = JSONNormalizer()
        self.validator = Validator()

    async def get_recommendations(
        self,
        weather: WeatherData,
        soil: SoilData | None = None,
        preferences: CropPreferences | None = None,
        language: str = "en",
    ) -> CropRecommendationResponse:
        """
        Recommend crops for the given conditions. Never raises.

        Returns:
            Normalized CropRecommendationResponse, or the fallback
        """
        prompt = self.RECOMMENDATION_PROMPT.format(
            language_instructions=get_language_instructions(language),
            conditions=self._describe_conditions(weather, soil, preferences),
        )

        try:
            response = await self.provider.complete(
                CompletionRequest(
                    prompt=prompt,
                    model=self.model,
                    temperature=0.3,
                    max_tokens=self.max_tokens,
                    json_mode=True,
                )
            )
        except ProviderError as e:
            logger.error("Crop recommendation request failed: %s", e)
            return fallback_crop_recommendations()

        parsed = self.normalizer.normalize(response.content)
        if not parsed.success or parsed.data is None:
            logger.warning("Crop recommendation output unusable: %s", parsed.error)
            return fallback_crop_recommendations()

        validation = self.validator.validate_crop_recommendations(parsed.data)
        if not validation.valid:
            logger.warning(
                "Crop recommendation output invalid: %s",
                [e.message for e in validation.errors],
            )
            return fallback_crop_recommendations()

        if validation.warnings:
            logger.debug("Crop recommendation fields defaulted: %s", validation.warnings)
        return validation.record

    async def get_crop_details(
        self, crop_name: str, weather: WeatherData, language: str = "en"
    ) -> str:
        """Cultivation guide for one crop; an 'unavailable' message on failure."""
        prompt = self.DETAILS_PROMPT.format(
            crop_name=crop_name,
            weather=self._describe_weather(weather),
            language_instructions=get_language_instructions(language),
        )
        try:
            response = await self.provider.complete(
                CompletionRequest(
                    prompt=prompt, model=self.model, temperature=0.3, max_tokens=self.max_tokens
                )
            )
        except ProviderError as e:
            logger.error("Crop details request failed for %s: %s", crop_name, e)
            return self.DETAILS_UNAVAILABLE.format(crop_name=crop_name)
        return response.content

    @staticmethod
    def _describe_weather(weather: WeatherData) -> str:
        lines = [
            f"- Location: {weather.location}",
            f"- Temperature: {weather.temperature}°C",
            f"- Humidity: {weather.humidity}%",
            f"- Rainfall: {weather.rainfall}mm",
            f"- Season: {weather.season}",
        ]
        if weather.coordinates:
            lines.append(
                f"- Coordinates: {weather.coordinates.latitude}, {weather.coordinates.longitude}"
            )
        return "\n".join(lines)

    def _describe_conditions(
        self,
        weather: WeatherData,
        soil: SoilData | None,
        preferences: CropPreferences | None,
    ) -> str:
        sections = ["**Location & Climate:**\n" + self._describe_weather(weather)]

        if soil:
            sections.append(
                "**Soil Conditions:**\n"
                f"- pH: {soil.ph}\n"
                f"- Soil Type: {soil.type}\n"
                f"- Nitrogen: {soil.nutrients.nitrogen} ppm\n"
                f"- Phosphorus: {soil.nutrients.phosphorus} ppm\n"
                f"- Potassium: {soil.nutrients.potassium} ppm\n"
                f"- Organic Matter: {soil.organic_matter}%"
            )

        if preferences:
            sections.append(
                "**Farmer Preferences:**\n"
                f"- Crop Type: {preferences.crop_type.value}\n"
                f"- Farm Size: {preferences.farm_size.value}\n"
                f"- Market Focus: {preferences.market_focus.value}\n"
                f"- Budget: {preferences.budget.value}"
            )

        return "\n\n".join(sections)
