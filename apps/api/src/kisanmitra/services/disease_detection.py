"""
Disease detection - plant image in, normalized detection record out.

The model is asked for a brief JSON record; whatever comes back is run
through the ResponseNormalizer, so callers always receive a complete
DiseaseDetectionResult (the "Analysis Failed" sentinel on any failure).
"""

import logging

from kisanmitra.core.models import DiseaseDetectionResult
from kisanmitra.core.normalizer import ResponseNormalizer, analysis_failed_result
from kisanmitra.providers.base import (
    CompletionRequest,
    InlineImage,
    ProviderAdapter,
    ProviderError,
)
from kisanmitra.services.language import get_language_instructions

logger = logging.getLogger(__name__)


class DiseaseDetectionService:
    """Brief disease detection from a single plant photo."""

    DETECTION_PROMPT = """Analyze this {plant_name} plant image for diseases. Provide a BRIEF analysis in this exact JSON format (keep descriptions under 50 words each):

{language_instructions}

{{
  "plantName": "{plant_name}",
  "scientificName": "scientific name",
  "family": "plant family",
  "isHealthy": boolean,
  "confidence": number between 0-100,
  "diseases": [{{
    "name": "disease name",
    "probability": number between 0-100,
    "description": "SHORT description (max 50 words)",
    "symptoms": ["3-4 key symptoms only"],
    "causes": ["2-3 main causes only"],
    "treatment": {{
      "organic": ["2-3 key organic solutions"],
      "chemical": ["1-2 key chemical solutions"]
    }},
    "prevention": ["3-4 key prevention steps"]
  }}],
  "plantDetails": {{
    "commonNames": ["1-2 common names only"],
    "description": "BRIEF description (max 25 words)",
    "careInstructions": ["3-4 essential care steps"]
  }}
}}

IMPORTANT: Keep all text fields brief and concise. Do not exceed the specified word limits."""

    def __init__(
        self,
        provider: ProviderAdapter,
        model: str = "gemini-2.5-flash",
        max_tokens: int = 2048,
        normalizer: ResponseNormalizer | None = None,
    ):
        self.provider = provider
        self.model = model
        self.max_tokens = max_tokens
        self.normalizer = normalizer or ResponseNormalizer()

    async def detect(
        self,
        image: bytes,
        plant_name: str,
        mime_type: str = "image/jpeg",
        language: str = "en",
    ) -> DiseaseDetectionResult:
        """
        Detect diseases on a plant image.

        Provider failures degrade to the failed-analysis sentinel rather
        than raising.

        Args:
            image: Raw image bytes
            plant_name: Plant name supplied by the user
            mime_type: Image MIME type
            language: Response language code

        Returns:
            Normalized DiseaseDetectionResult
        """
        prompt = self.DETECTION_PROMPT.format(
            plant_name=plant_name,
            language_instructions=get_language_instructions(language),
        )
        request = CompletionRequest(
            prompt=prompt,
            model=self.model,
            images=[InlineImage(mime_type=mime_type, data=image)],
            temperature=0.2,
            max_tokens=self.max_tokens,
        )

        try:
            response = await self.provider.complete(request)
        except ProviderError as e:
            logger.error("Disease detection failed for %s: %s", plant_name, e)
            return analysis_failed_result(plant_name)

        outcome = self.normalizer.analyze(response.content, plant_name)
        if outcome.failed:
            logger.warning(
                "Detection output for %s unusable (%s, finish_reason=%s)",
                plant_name,
                outcome.failure.value,
                response.finish_reason,
            )
        return outcome.result
