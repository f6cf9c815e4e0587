import logging
from typing import Any

from pydantic import BaseModel

from somaai.models import Cause, NextStep, Question, StructuredAnalysis

log = logging.getLogger(__name__)

_URGENCIES = ("LOW", "MEDIUM", "HIGH")
_TRUTHY = {"true", "yes", "1", "on"}
_MAX_OPTIONS = 4


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _urgency(value: Any) -> str:
    u = _text(value).upper()
    return u if u in _URGENCIES else "LOW"


def _cosmic(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def _causes(items: list) -> list[Cause]:
    out: list[Cause] = []
    for item in items:
        if isinstance(item, str) and item.strip():
            out.append(Cause(title=item.strip()))
        elif isinstance(item, dict) and _text(item.get("title")):
            out.append(Cause(title=_text(item["title"]), brief=_text(item.get("brief"))))
    return out


def _steps(items: list) -> list[NextStep]:
    out: list[NextStep] = []
    for item in items:
        if isinstance(item, str) and item.strip():
            out.append(NextStep(action=item.strip()))
        elif isinstance(item, dict) and _text(item.get("action")):
            out.append(NextStep(action=_text(item["action"]), why=_text(item.get("why"))))
    return out


def normalize_analysis(value: Any) -> StructuredAnalysis:
    """Coerce an untrusted parsed value into a StructuredAnalysis.

    Total and idempotent: anything that is not the expected type is replaced
    by its default, so callers only ever branch on normalized values.
    """
    if isinstance(value, BaseModel):
        value = value.model_dump()
    if not isinstance(value, dict):
        log.debug("Normalizing non-object analysis value of type %s", type(value).__name__)
        value = {}

    return StructuredAnalysis(
        summary=_text(value.get("summary")),
        possible_causes=_causes(_as_list(value.get("possible_causes"))),
        next_steps=_steps(_as_list(value.get("next_steps"))),
        urgency=_urgency(value.get("urgency")),
        grounding=[g.strip() for g in _as_list(value.get("grounding")) if isinstance(g, str) and g.strip()],
        cosmic=_cosmic(value.get("cosmic")),
        friendly=_text(value.get("friendly")) or None,
    )


def _option_label(option: Any) -> str:
    if isinstance(option, dict):
        return _text(option.get("label"))
    return _text(option)


def normalize_questions(value: Any) -> list[Question]:
    """Turn MCQ model output into wire questions, dropping unusable items."""
    if isinstance(value, dict):
        value = value.get("questions")
    questions: list[Question] = []
    seen: set[str] = set()
    for item in _as_list(value):
        if not isinstance(item, dict):
            continue
        text = _text(item.get("text")) or _text(item.get("q"))
        options = [label for label in map(_option_label, _as_list(item.get("options"))) if label]
        if not text or len(options) < 2:
            continue
        qid = _text(item.get("id"))
        if not qid or qid in seen:
            qid = f"q{len(questions) + 1}"
            # a generated id can still collide with an explicit one
            while qid in seen:
                qid += "_"
        seen.add(qid)
        questions.append(Question(id=qid, q=text, options=options[:_MAX_OPTIONS]))
    return questions
