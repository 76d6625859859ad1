"""Free-text farming advice."""

import logging

from kisanmitra.providers.base import CompletionRequest, ProviderAdapter
from kisanmitra.services.language import get_language_instructions

logger = logging.getLogger(__name__)


class AdvisorService:
    """Disease treatment and general farming advice as plain text."""

    DISEASE_ADVICE_PROMPT = """{language_instructions}

You MUST write 100% of the response in the specified language. Do NOT mix languages.

Please provide comprehensive advice for treating and managing this plant disease. Include:
1. Disease description and symptoms
2. Causes and conditions that favor the disease
3. Immediate treatment steps (both organic and chemical options)
4. Prevention measures
5. Long-term management strategies
6. When to seek professional help
7. Expected recovery timeline

Be specific and practical for farmers."""

    FARMING_ADVICE_PROMPT = """{language_instructions}

User Question: {question}

Provide practical farming advice considering Indian agricultural conditions."""

    NO_RESPONSE = "No response generated"

    def __init__(self, provider: ProviderAdapter, model: str = "gemini-2.5-flash"):
        self.provider = provider
        self.model = model

    async def get_disease_advice(
        self,
        disease_name: str,
        plant_name: str | None = None,
        additional_context: str | None = None,
        language: str = "en",
    ) -> str:
        """
        Treatment and management advice for an identified disease.

        Raises:
            ProviderError: the model call failed
        """
        context = f'A plant has been identified with the disease: "{disease_name}"'
        if plant_name:
            context += f" on {plant_name}"
        context += f". {additional_context or ''}".rstrip()

        prompt = self.DISEASE_ADVICE_PROMPT.format(
            language_instructions=get_language_instructions(language)
        )
        return await self._generate(f"{context}\n\n{prompt}")

    async def get_farming_advice(self, question: str, language: str = "en") -> str:
        """
        Answer a general farming question.

        Raises:
            ProviderError: the model call failed
        """
        prompt = self.FARMING_ADVICE_PROMPT.format(
            language_instructions=get_language_instructions(language),
            question=question,
        )
        return await self._generate(prompt)

    async def _generate(self, prompt: str) -> str:
        response = await self.provider.complete(
            CompletionRequest(prompt=prompt, model=self.model, temperature=0.2, max_tokens=2048)
        )
        text = response.content.strip()
        if not text:
            logger.warning("Empty advice response from %s", response.model)
            return self.NO_RESPONSE
        return text
