"""Fertilizer recommendations and per-product details."""

import logging

from kisanmitra.core.models import (
    AdditionalFertilizerInfo,
    FertilizerData,
    FertilizerRecommendation,
    FertilizerResponse,
    FertilizerSchedule,
)
from kisanmitra.core.normalizer import JSONNormalizer
from kisanmitra.core.validator import Validator
from kisanmitra.providers.base import CompletionRequest, ProviderAdapter, ProviderError
from kisanmitra.services.language import get_language_instructions

logger = logging.getLogger(__name__)


def fallback_fertilizer_recommendations() -> FertilizerResponse:
    """Balanced NPK plan returned when the model cannot be used."""
    return FertilizerResponse(
        recommendations=[
            FertilizerRecommendation(
                fertilizer_name="NPK 19:19:19",
                type="chemical",
                npk_ratio="19:19:19",
                application_rate="50-75 kg per hectare",
                application_method="Broadcast or band placement",
                timing="At planting and 30 days after",
                frequency="2-3 times per season",
                cost="₹2,500-3,500 per 50kg bag",
                benefits=["Balanced nutrition", "Easy application", "Quick results"],
                precautions=["Don't over-apply", "Keep away from children", "Store in dry place"],
                alternatives=["Organic compost", "Vermicompost", "Farmyard manure"],
                expected_results="20-30% yield increase",
                soil_improvement="Maintains soil fertility",
            )
        ],
        schedule=[
            FertilizerSchedule(
                stage="Planting",
                fertilizers=[],
                total_cost="₹5,000-7,500 per hectare",
                application_notes="Apply at time of planting",
            )
        ],
        soil_analysis="Soil needs balanced nutrition for optimal growth",
        general_advice="Regular soil testing recommended",
        cost_estimate="₹5,000-10,000 per hectare",
        expected_yield="15-25% improvement",
        warnings=["Follow recommended rates", "Test soil regularly"],
    )


class FertilizerRecommendationService:
    """Soil-fertility recommendations for a crop at a growth stage."""

    RECOMMENDATION_PROMPT = """You are an expert agricultural scientist and soil fertility specialist. Provide comprehensive fertilizer recommendations for the following crop and conditions:

{language_instructions}

**Crop Information:**
- Crop: {data.crop_name}
- Growth Stage: {data.growth_stage.value}
- Farm Size: {data.farm_size.value}
- Budget: {data.budget.value}
- Preference: {data.preference.value}

**Soil Analysis:**
- pH: {data.soil_ph}
- Soil Type: {data.soil_type.value}
- Nitrogen: {data.nutrients.nitrogen} ppm
- Phosphorus: {data.nutrients.phosphorus} ppm
- Potassium: {data.nutrients.potassium} ppm
- Organic Matter: {data.nutrients.organic_matter}%

**Weather Conditions:**
- Temperature: {data.weather_conditions.temperature}°C
- Humidity: {data.weather_conditions.humidity}%
- Rainfall: {data.weather_conditions.rainfall}mm
{additional}
Provide detailed fertilizer recommendations including:

1. **Specific fertilizer recommendations** for each growth stage
2. **NPK ratios and application rates**
3. **Application methods and timing**
4. **Cost estimates** based on budget
5. **Organic and chemical options** based on preference
6. **Soil improvement strategies**
7. **Expected yield improvements**
8. **Precautions and warnings**
9. **Alternative options** for different budgets
10. **Seasonal application schedule**

Format your response as a JSON object with this exact structure:
{{
  "recommendations": [
    {{
      "fertilizerName": "string",
      "type": "organic|chemical|biofertilizer",
      "npkRatio": "string",
      "applicationRate": "string",
      "applicationMethod": "string",
      "timing": "string",
      "frequency": "string",
      "cost": "string",
      "benefits": ["string array"],
      "precautions": ["string array"],
      "alternatives": ["string array"],
      "expectedResults": "string",
      "soilImprovement": "string"
    }}
  ],
  "schedule": [
    {{
      "stage": "string",
      "fertilizers": [/* fertilizer objects */],
      "totalCost": "string",
      "applicationNotes": "string"
    }}
  ],
  "soilAnalysis": "string",
  "generalAdvice": "string",
  "costEstimate": "string",
  "expectedYield": "string",
  "warnings": ["string array"]
}}

Focus on:
- Practical, cost-effective solutions
- Indian market availability and prices
- Weather-appropriate timing
- Soil-specific requirements
- Sustainable farming practices
- Yield optimization strategies"""

    DETAILS_PROMPT = """Provide detailed information about {fertilizer_name} for {crop_name} cultivation:

1. **Fertilizer Composition**: NPK ratio, micronutrients, organic matter
2. **Application Guidelines**: Rate, method, timing, frequency
3. **Benefits**: Specific advantages for the crop
4. **Precautions**: Safety measures, storage, handling
5. **Cost Analysis**: Price per unit, cost per hectare
6. **Availability**: Where to buy, brands, alternatives
7. **Mixing Instructions**: Compatibility with other inputs
8. **Environmental Impact**: Sustainability aspects
9. **Results Timeline**: When to expect results
10. **Troubleshooting**: Common issues and solutions

{language_instructions}

Provide practical advice for Indian farmers with specific brand recommendations and local market prices."""

    DETAILS_UNAVAILABLE = (
        "Detailed information about {fertilizer_name} is currently unavailable. "
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
        data: FertilizerData,
        additional: AdditionalFertilizerInfo | None = None,
        language: str = "en",
    ) -> FertilizerResponse:
        """Recommend fertilizers; the NPK 19:19:19 fallback on any failure."""
        prompt = self.RECOMMENDATION_PROMPT.format(
            data=data,
            additional=self._describe_additional(additional),
            language_instructions=get_language_instructions(language),
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
            logger.error("Fertilizer recommendation request failed: %s", e)
            return fallback_fertilizer_recommendations()

        parsed = self.normalizer.normalize(response.content)
        if not parsed.success or parsed.data is None:
            logger.warning("Fertilizer recommendation output unusable: %s", parsed.error)
            return fallback_fertilizer_recommendations()

        validation = self.validator.validate_fertilizer_recommendations(parsed.data)
        if not validation.valid:
            logger.warning(
                "Fertilizer recommendation output invalid: %s",
                [e.message for e in validation.errors],
            )
            return fallback_fertilizer_recommendations()

        return validation.record

    async def get_fertilizer_details(
        self, fertilizer_name: str, crop_name: str, language: str = "en"
    ) -> str:
        """Product guide for a fertilizer on a crop; 'unavailable' on failure."""
        prompt = self.DETAILS_PROMPT.format(
            fertilizer_name=fertilizer_name,
            crop_name=crop_name,
            language_instructions=get_language_instructions(language),
        )
        try:
            response = await self.provider.complete(
                CompletionRequest(
                    prompt=prompt, model=self.model, temperature=0.3, max_tokens=self.max_tokens
                )
            )
        except ProviderError as e:
            logger.error("Fertilizer details request failed for %s: %s", fertilizer_name, e)
            return self.DETAILS_UNAVAILABLE.format(fertilizer_name=fertilizer_name)
        return response.content

    @staticmethod
    def _describe_additional(additional: AdditionalFertilizerInfo | None) -> str:
        if additional is None:
            return ""
        irrigation = additional.irrigation_type.value if additional.irrigation_type else None
        return (
            "\n**Additional Information:**\n"
            f"- Previous Crop: {additional.previous_crop or 'Not specified'}\n"
            f"- Irrigation: {irrigation or 'Not specified'}\n"
            f"- Pest Issues: {', '.join(additional.pest_issues) or 'None reported'}\n"
            f"- Disease History: {', '.join(additional.disease_history) or 'None reported'}\n"
        )
