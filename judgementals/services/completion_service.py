"""
AI Completion Service

The one operation in the system that waits on an external party. Judges and
the master judge both go through ``complete(prompt, seed)``.
"""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

import structlog

from ..api.rate_limiter import UnifiedRateLimiter

logger = structlog.get_logger(__name__)

SYSTEM_INSTRUCTION = (
    "You are evaluating hackathon projects. Use consistent evaluation criteria. "
    "Random seed: {seed}"
)

# Neutral body returned by the completion endpoint when the model call fails
FALLBACK_EVALUATION: Dict[str, Any] = {
    "summary": (
        "API call failed - providing fallback evaluation. "
        "Unable to perform detailed AI analysis at this time."
    ),
    "score": 5,
    "likes": [
        "Project structure appears organized",
        "Files are properly named and categorized",
        "Code appears to follow standard conventions",
    ],
    "dislikes": [
        "Unable to perform detailed code analysis due to API error",
        "Could not evaluate technical implementation specifics",
        "Limited assessment available due to system constraints",
    ],
}


@dataclass
class CompletionResponse:
    """Text returned by a completion call plus optional token usage."""
    text: str
    usage: Dict[str, int] = field(default_factory=dict)


class CompletionService(Protocol):
    async def complete(self, prompt: str, seed: int) -> CompletionResponse:
        ...


class GeminiCompletionService:
    """
    Completion service backed by Gemini.

    Uses the google-generativeai SDK. The seed is passed in the system
    instruction together with a zero temperature so repeated runs judge
    consistently.
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-2.0-flash-exp",
        rate_limiter: Optional[UnifiedRateLimiter] = None,
        max_output_tokens: int = 2000
    ):
        """
        Args:
            api_key: Gemini API key
            model_name: Gemini model to call
            rate_limiter: Optional limiter awaited before every call
            max_output_tokens: Upper bound on response length
        """
        import google.generativeai as genai

        genai.configure(api_key=api_key)
        self._genai = genai
        self.model_name = model_name
        self.rate_limiter = rate_limiter
        self.max_output_tokens = max_output_tokens
        self._models: Dict[int, Any] = {}
        self.logger = logger.bind(service="GeminiCompletionService", model=model_name)

        self.logger.info("Gemini completion service initialized")

    def _model_for_seed(self, seed: int):
        if seed not in self._models:
            self._models[seed] = self._genai.GenerativeModel(
                self.model_name,
                system_instruction=SYSTEM_INSTRUCTION.format(seed=seed),
            )
        return self._models[seed]

    async def complete(self, prompt: str, seed: int) -> CompletionResponse:
        if self.rate_limiter:
            await self.rate_limiter.wait_if_needed()

        loop = asyncio.get_running_loop()
        start_time = loop.time()
        self.logger.debug("Calling Gemini", seed=seed, prompt_length=len(prompt))

        model = self._model_for_seed(seed)
        try:
            response = await model.generate_content_async(
                prompt,
                generation_config=self._genai.GenerationConfig(
                    temperature=0.0,
                    max_output_tokens=self.max_output_tokens,
                ),
            )
        except Exception as e:
            self.logger.error(
                "Gemini API call failed",
                error=str(e),
                duration_seconds=round(loop.time() - start_time, 3)
            )
            raise

        text = self._extract_text(response)
        usage = {}
        metadata = getattr(response, "usage_metadata", None)
        if metadata is not None:
            usage = {
                "input_tokens": getattr(metadata, "prompt_token_count", 0) or 0,
                "output_tokens": getattr(metadata, "candidates_token_count", 0) or 0,
            }

        self.logger.info(
            "Gemini API responded",
            duration_seconds=round(loop.time() - start_time, 3),
            response_length=len(text)
        )
        return CompletionResponse(text=text, usage=usage)

    def _extract_text(self, response) -> str:
        if hasattr(response, 'text'):
            return response.text
        if getattr(response, 'candidates', None):
            return response.candidates[0].content.parts[0].text
        raise ValueError("Unable to extract text from Gemini response")


class UnavailableCompletionService:
    """Stand-in used when no API key is configured; every call fails."""

    async def complete(self, prompt: str, seed: int) -> CompletionResponse:
        raise RuntimeError("Completion service not configured (missing GEMINI_API_KEY)")


def fallback_evaluation_text() -> str:
    return json.dumps(FALLBACK_EVALUATION)


def create_completion_service(
    api_key: Optional[str],
    model_name: str = "gemini-2.0-flash-exp",
    calls_per_minute: int = 15
):
    """Gemini when a key is configured, otherwise a service that always fails."""
    if not api_key:
        logger.warning("GEMINI_API_KEY not set, judges will use fallback results")
        return UnavailableCompletionService()

    return GeminiCompletionService(
        api_key=api_key,
        model_name=model_name,
        rate_limiter=UnifiedRateLimiter.for_gemini(calls_per_minute),
    )
