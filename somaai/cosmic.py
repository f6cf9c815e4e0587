import random
from typing import Protocol

from somaai.models import StructuredAnalysis

COSMIC_PROBABILITY = 0.35

SUFFIXES = [
    "✨ A tiny cosmic note: breathe, we'll sort this out.",
    "🌿 Remember: small steps today create big changes tomorrow.",
    "☀️ Even storms pass. Take the next small step.",
    "🪐 You're not alone, we're on this path together.",
]


class _Random(Protocol):
    def random(self) -> float: ...

    def choice(self, seq): ...


def add_cosmic_touch(result: StructuredAnalysis, rng: _Random = random) -> StructuredAnalysis:
    """Occasionally append a short cosmic line to ``summary`` and ``friendly``."""
    if rng.random() > COSMIC_PROBABILITY:
        return result
    pick = rng.choice(SUFFIXES)
    return result.model_copy(
        update={
            "summary": f"{result.summary} {pick}".strip(),
            "friendly": f"{result.friendly} {pick}" if result.friendly else pick,
        }
    )
