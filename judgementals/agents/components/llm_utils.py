"""
Shared LLM Utilities for Judgementals Judges

One place for calling the completion service under a deadline and pulling a
JSON object out of free-form model output. Used by both the judge panel and
the master ranker.
"""

import asyncio
import json
import re
from typing import Any, Optional

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_SEED = 12345


class LLMUtils:
    """
    Completion calls and JSON parsing shared by all judges.

    There is no retry loop: a failed call is reported to the caller, which
    substitutes its own fallback.
    """

    def __init__(
        self,
        completion_service,
        seed: int = DEFAULT_SEED,
        timeout_seconds: Optional[float] = 120.0
    ):
        """
        Args:
            completion_service: Object exposing ``async complete(prompt, seed)``
            seed: Fixed seed sent with every call for consistent judging
            timeout_seconds: Deadline for a single call, ``None`` for no deadline
        """
        self.completion_service = completion_service
        self.seed = seed
        self.timeout_seconds = timeout_seconds
        self.logger = logger.bind(component="LLMUtils")

    async def call_llm(self, prompt: str) -> str:
        """
        Call the completion service and return the raw text.

        Raises:
            asyncio.TimeoutError: If the deadline passes
            RuntimeError: If no completion service is configured
            Exception: Whatever the completion service raised
        """
        if self.completion_service is None:
            raise RuntimeError("Completion service not initialized")

        self.logger.debug("Making LLM call", prompt_length=len(prompt), seed=self.seed)

        call = self.completion_service.complete(prompt, self.seed)
        if self.timeout_seconds is not None:
            response = await asyncio.wait_for(call, timeout=self.timeout_seconds)
        else:
            response = await call

        text = getattr(response, "text", response)
        if not isinstance(text, str):
            raise ValueError("Completion response has no text")
        return text

    async def call_llm_with_json_response(self, prompt: str) -> Any:
        """Call the completion service and parse its output as JSON."""
        response_text = await self.call_llm(prompt)
        return self.parse_json_response(response_text)

    def parse_json_response(self, response_text: str) -> Any:
        """
        Parse JSON from model output.

        Tries the text as-is first, then strips markdown fences, isolates the
        outermost object and removes trailing commas.

        Raises:
            ValueError: If no JSON value can be recovered (json.JSONDecodeError
                is a ValueError subclass)
        """
        try:
            return json.loads(response_text)
        except json.JSONDecodeError:
            pass

        cleaned = self._clean_response_text(response_text)
        json_str = self._extract_json_boundaries(cleaned)
        json_str = self._clean_json_string(json_str)

        try:
            return json.loads(json_str)
        except json.JSONDecodeError as e:
            self.logger.warning(
                "JSON parsing failed",
                error=str(e),
                response_preview=response_text[:200]
            )
            raise

    def _clean_response_text(self, response_text: str) -> str:
        """Remove surrounding markdown code fences."""
        cleaned = response_text.strip()

        if cleaned.startswith('```'):
            lines = cleaned.split('\n')
            lines = lines[1:]
            if lines and lines[-1].strip().startswith('```'):
                lines = lines[:-1]
            cleaned = '\n'.join(lines)

        return cleaned.strip()

    def _extract_json_boundaries(self, text: str) -> str:
        """Return the first balanced ``{...}`` block, ignoring braces in strings."""
        start_idx = text.find('{')
        if start_idx == -1:
            raise ValueError("No JSON object found in response")

        depth = 0
        in_string = False
        escaped = False
        for i in range(start_idx, len(text)):
            char = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif char == '\\':
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == '{':
                depth += 1
            elif char == '}':
                depth -= 1
                if depth == 0:
                    return text[start_idx:i + 1]

        end_idx = text.rfind('}')
        if end_idx <= start_idx:
            raise ValueError("Unmatched braces in JSON response")
        return text[start_idx:end_idx + 1]

    def _clean_json_string(self, json_str: str) -> str:
        """Fix trailing commas, the most common LLM JSON defect."""
        return re.sub(r',(\s*[}\]])', r'\1', json_str)
