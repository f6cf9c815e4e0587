from typing import Literal

from pydantic import BaseModel

Urgency = Literal["LOW", "MEDIUM", "HIGH"]


class Cause(BaseModel):
    title: str
    brief: str = ""


class NextStep(BaseModel):
    action: str
    why: str = ""


class StructuredAnalysis(BaseModel):
    summary: str = ""
    possible_causes: list[Cause] = []
    next_steps: list[NextStep] = []
    urgency: Urgency = "LOW"
    grounding: list[str] = []
    cosmic: bool = False
    friendly: str | None = None


class Question(BaseModel):
    id: str
    q: str
    options: list[str]


# ── Request / response models ──


class McqRequest(BaseModel):
    symptom: str | None = None
    type: Literal["physical", "mental"] | None = None


class McqResponse(BaseModel):
    questions: list[Question]
    fallback: bool = False
    sample: bool = False


class AnalyzeRequest(BaseModel):
    symptom: str | None = None
    answers: dict[str, str] | None = None


class AnalyzeResponse(BaseModel):
    result: StructuredAnalysis
    fallback: bool = False
    sample: bool = False


class QuickQueryRequest(BaseModel):
    question: str | None = None


class QuickQueryResponse(BaseModel):
    answer: str


class CosmicContext(BaseModel):
    symptom: str = ""
    summary: str = ""


class CosmicInsightRequest(BaseModel):
    context: CosmicContext | None = None


class CosmicInsightResponse(BaseModel):
    insight: str


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: str


class CsrfTokenResponse(BaseModel):
    csrfToken: str
