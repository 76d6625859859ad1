"""Detailed disease analysis with identification and solution tabs."""

import logging

from kisanmitra.core.models import DiseaseAnalysisResult, NormalizationFailure
from kisanmitra.core.normalizer import JSONNormalizer
from kisanmitra.core.validator import Validator
from kisanmitra.providers.base import CompletionRequest, InlineImage, ProviderAdapter
from kisanmitra.services.language import get_language_instructions

logger = logging.getLogger(__name__)

DEFAULT_LOCATION = "Ichalkaranji, Maharashtra, India"


class AnalysisParseError(Exception):
    """Model output could not be turned into an analysis."""

    def __init__(self, raw_response: str, failure: NormalizationFailure, message: str = ""):
        super().__init__(message or "Failed to parse Gemini response")
        self.raw_response = raw_response
        self.failure = failure


class DiseaseAnalysisService:
    """Expert pathologist analysis rendered as four solution tabs."""

    ANALYSIS_PROMPT = """You are an expert plant pathologist. Analyze the attached image and return a JSON object with the structure:
{{
  "identification": {{
    "isHealthy": boolean,
    "diseaseName": string,
    "scientificName": string,
    "confidenceScore": number,
    "shortDescription": string
  }},
  "solutionTabs": {{
    "aboutDisease": {{
      "title": string,
      "content": [{{"heading": string, "text": string}}]
    }},
    "organicSolutions": {{
      "title": string,
      "content": [{{"heading": string, "text": string}}]
    }},
    "chemicalSolutions": {{
      "title": string,
      "content": [{{"heading": string, "text": string}}]
    }},
    "preventiveMeasures": {{
      "title": string,
      "content": [{{"heading": string, "text": string}}]
    }}
  }}
}}
Respond ONLY with JSON (no markdown/code blocks).
{language_instructions}
Plant name: {plant_name}
Location: {location}"""

    def __init__(
        self,
        provider: ProviderAdapter,
        model: str = "gemini-2.5-pro",
        max_tokens: int = 8192,
        default_location: str = DEFAULT_LOCATION,
    ):
        self.provider = provider
        self.model = model
        self.max_tokens = max_tokens
        self.default_location = default_location
        self.normalizer = JSONNormalizer()
        self.validator = Validator()

    async def analyze(
        self,
        image: bytes,
        plant_name: str,
        mime_type: str = "image/jpeg",
        location: str | None = None,
        language: str = "en",
    ) -> DiseaseAnalysisResult:
        """
        Analyze a plant image.

        Raises:
            AnalysisParseError: output had no usable analysis JSON
            ProviderError: the model call failed
        """
        prompt = self.ANALYSIS_PROMPT.format(
            plant_name=plant_name,
            location=location or self.default_location,
            language_instructions=get_language_instructions(language),
        )
        response = await self.provider.complete(
            CompletionRequest(
                prompt=prompt,
                model=self.model,
                images=[InlineImage(mime_type=mime_type, data=image)],
                temperature=0.2,
                max_tokens=self.max_tokens,
            )
        )

        parsed = self.normalizer.normalize(response.content)
        if not parsed.success or parsed.data is None:
            logger.warning("Analysis output for %s unusable: %s", plant_name, parsed.error)
            raise AnalysisParseError(
                response.content, parsed.failure or NormalizationFailure.MALFORMED_JSON
            )

        validation = self.validator.validate_analysis(parsed.data)
        if not validation.valid:
            missing = ", ".join(e.field for e in validation.errors)
            logger.warning("Analysis output for %s missing %s", plant_name, missing)
            raise AnalysisParseError(
                response.content,
                NormalizationFailure.MALFORMED_JSON,
                f"Analysis is missing {missing}",
            )

        return validation.record
