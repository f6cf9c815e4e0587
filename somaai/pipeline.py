"""Two-pass symptom analysis: a structured pass, then a best-effort humanize pass."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from somaai import llm
from somaai.errors import AnalysisFailed, InvalidInput
from somaai.extract import extract_json
from somaai.fallbacks import DEFAULT_FRIENDLY
from somaai.llm import CompletionClient
from somaai.models import Question, StructuredAnalysis
from somaai.normalize import normalize_analysis, normalize_questions
from somaai.prompts import (
    build_analysis_prompt,
    build_cosmic_insight_prompt,
    build_humanize_prompt,
    build_mcq_prompt,
    build_quick_query_prompt,
)

log = logging.getLogger(__name__)

MCQ_TEMPERATURE = 0.2
MCQ_MAX_TOKENS = 450
ANALYSIS_TEMPERATURE = 0.2
ANALYSIS_MAX_TOKENS = 900
HUMANIZE_TEMPERATURE = 0.75
HUMANIZE_MAX_TOKENS = 400
QUICK_QUERY_TEMPERATURE = 0.5
QUICK_QUERY_MAX_TOKENS = 250
COSMIC_TEMPERATURE = 0.8
COSMIC_MAX_TOKENS = 150


def validate_text(value: Any, field: str = "symptom") -> str:
    """Return the trimmed text or raise InvalidInput if it is missing/blank."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"{field} required and must be a non-empty string")
    return value.strip()


def validate_symptom(symptom: Any) -> str:
    return validate_text(symptom, "symptom")


async def _complete(client: CompletionClient, prompt: str, temperature: float, max_tokens: int) -> str:
    return await client.complete(
        [{"role": "system", "content": prompt}],
        temperature=temperature,
        max_tokens=max_tokens,
    )


# ── Stage 1: structured ──


async def structured_pass(
    client: CompletionClient, symptom: str, answers: Mapping[str, str] | None
) -> StructuredAnalysis:
    raw: str | None = None
    try:
        raw = await _complete(
            client,
            build_analysis_prompt(symptom, answers),
            ANALYSIS_TEMPERATURE,
            ANALYSIS_MAX_TOKENS,
        )
        parsed = extract_json(raw, "object")
    except Exception as exc:
        log.warning("Structured pass failed: %s", type(exc).__name__)
        raise AnalysisFailed(exc, raw=raw) from exc
    return normalize_analysis(parsed)


# ── Stage 2: humanize ──


@dataclass
class HumanizeResult:
    analysis: StructuredAnalysis | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.analysis is not None


def merge_humanized(structured: StructuredAnalysis, humanized: Any) -> StructuredAnalysis:
    """Take only ``summary`` and ``friendly`` from the humanized object."""
    fields = humanized if isinstance(humanized, dict) else {}
    summary = fields.get("summary")
    friendly = fields.get("friendly")
    return structured.model_copy(
        update={
            "summary": summary.strip() if isinstance(summary, str) and summary.strip() else structured.summary,
            "friendly": friendly.strip() if isinstance(friendly, str) and friendly.strip() else structured.friendly,
        }
    )


def fallback_humanized(structured: StructuredAnalysis) -> StructuredAnalysis:
    """Local substitute for a failed humanize pass."""
    summary = structured.summary
    if not summary:
        first = structured.possible_causes[0].title if structured.possible_causes else "See causes below."
        summary = f"Briefly: {first}"
    return structured.model_copy(
        update={"summary": summary, "friendly": structured.friendly or DEFAULT_FRIENDLY}
    )


async def humanize(client: CompletionClient, structured: StructuredAnalysis) -> HumanizeResult:
    try:
        raw = await _complete(
            client,
            build_humanize_prompt(structured),
            HUMANIZE_TEMPERATURE,
            HUMANIZE_MAX_TOKENS,
        )
        merged = merge_humanized(structured, extract_json(raw, "object"))
    except Exception as exc:
        log.warning("Humanize pass failed, using fallback: %s", type(exc).__name__)
        return HumanizeResult(error=exc)
    return HumanizeResult(analysis=merged)


async def analyze(
    symptom: Any,
    answers: Mapping[str, str] | None = None,
    client: CompletionClient | None = None,
) -> StructuredAnalysis:
    """Run both passes. Stage 1 failures raise AnalysisFailed; Stage 2 never raises."""
    symptom = validate_symptom(symptom)
    client = client or llm.get_client()

    structured = await structured_pass(client, symptom, answers)
    outcome = await humanize(client, structured)
    result = outcome.analysis if outcome.ok else fallback_humanized(structured)
    if not result.friendly or not result.summary:
        result = fallback_humanized(result)
    return result


# ── Single-pass operations ──


def _leading_shape(text: str) -> str:
    """Pick "array" when a bare array appears before any object."""
    first_obj = text.find("{")
    first_arr = text.find("[")
    if first_arr != -1 and (first_obj == -1 or first_arr < first_obj):
        return "array"
    return "object"


async def generate_mcqs(
    symptom: Any, kind: str | None = None, client: CompletionClient | None = None
) -> list[Question]:
    """Ask for clarifying questions. Raises NoJsonFound when nothing usable came back."""
    symptom = validate_symptom(symptom)
    client = client or llm.get_client()
    raw = await _complete(client, build_mcq_prompt(symptom, kind), MCQ_TEMPERATURE, MCQ_MAX_TOKENS)
    return normalize_questions(extract_json(raw, _leading_shape(raw)))


async def quick_answer(question: Any, client: CompletionClient | None = None) -> str:
    question = validate_text(question, "question")
    client = client or llm.get_client()
    raw = await _complete(
        client, build_quick_query_prompt(question), QUICK_QUERY_TEMPERATURE, QUICK_QUERY_MAX_TOKENS
    )
    return raw.strip()


async def cosmic_insight(symptom: Any, summary: Any, client: CompletionClient | None = None) -> str:
    symptom = validate_text(symptom, "symptom")
    summary = validate_text(summary, "summary")
    client = client or llm.get_client()
    raw = await _complete(
        client, build_cosmic_insight_prompt(symptom, summary), COSMIC_TEMPERATURE, COSMIC_MAX_TOKENS
    )
    return raw.strip()
