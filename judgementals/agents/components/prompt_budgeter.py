"""
Prompt Budgeter

Fits variable prompt content into a fixed byte budget alongside a fixed prefix
and suffix. All lengths are UTF-8 byte lengths.
"""

from dataclasses import dataclass

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_TRUNCATION_MARKER = "\n\n... [PROJECT DATA TRUNCATED DUE TO SIZE LIMITS] ..."


def byte_length(text: str) -> int:
    """UTF-8 encoded length of text."""
    return len(text.encode("utf-8"))


def slice_bytes(text: str, max_bytes: int) -> str:
    """Cut text to at most max_bytes UTF-8 bytes without splitting a code point."""
    if max_bytes <= 0:
        return ""
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


@dataclass(frozen=True)
class BudgetedPrompt:
    """Result of fitting a body into a prompt budget."""
    prefix: str
    body: str
    suffix: str
    truncated: bool
    original_bytes: int

    @property
    def text(self) -> str:
        return self.prefix + self.body + self.suffix


class PromptBudgeter:
    """
    Deterministic prompt truncation.

    ``available = budget - len(prefix) - len(suffix)``. A body longer than
    ``available`` is cut to ``available - len(marker)`` and the marker is
    appended, so the assembled prompt never exceeds the budget.
    """

    def __init__(self, truncation_marker: str = DEFAULT_TRUNCATION_MARKER):
        self.truncation_marker = truncation_marker
        self.marker_bytes = byte_length(truncation_marker)

    def available_bytes(self, prefix: str, suffix: str, budget: int) -> int:
        return budget - byte_length(prefix) - byte_length(suffix)

    def fit(self, prefix: str, suffix: str, body: str, budget: int) -> str:
        """Return body unchanged, or truncated and marked so the prompt fits."""
        available = self.available_bytes(prefix, suffix, budget)
        body_bytes = byte_length(body)

        if body_bytes <= available:
            return body

        if available < self.marker_bytes:
            # Not even room for the marker; never go below zero
            return slice_bytes(self.truncation_marker, available)

        truncated = slice_bytes(body, available - self.marker_bytes) + self.truncation_marker

        logger.info(
            "Prompt body truncated to fit budget",
            original_bytes=body_bytes,
            truncated_bytes=byte_length(truncated),
            budget=budget
        )
        return truncated

    def build(self, prefix: str, suffix: str, body: str, budget: int) -> BudgetedPrompt:
        """Fit body and return the assembled prompt parts."""
        fitted = self.fit(prefix, suffix, body, budget)
        return BudgetedPrompt(
            prefix=prefix,
            body=fitted,
            suffix=suffix,
            truncated=fitted != body,
            original_bytes=byte_length(body)
        )
