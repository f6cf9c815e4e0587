"""Fixed payloads substituted when the model is unconfigured or unreachable."""

from somaai.models import Cause, NextStep, Question, StructuredAnalysis

DEFAULT_FRIENDLY = "Take care, watch your symptoms and seek care if they get worse. 💙"
UNCERTAIN_FRIENDLY = "I'm not fully certain, so check with a clinician if you're concerned."

_TRUNCATE_AT = 220


def sample_questions() -> list[Question]:
    return [
        Question(id="onset", q="Did this start suddenly or gradually?", options=["Suddenly", "Gradually"]),
        Question(id="severity", q="How bad is it now?", options=["Mild", "Moderate", "Severe"]),
        Question(id="assoc", q="Any other symptoms (fever/breathing issues)?", options=["Yes", "No"]),
    ]


def fallback_questions() -> list[Question]:
    return [
        Question(id="onset", q="When did this start?", options=["Today", "This week", "Longer ago"]),
        Question(id="severity", q="How severe is it?", options=["Mild", "Moderate", "Severe"]),
        Question(id="duration", q="How long does it last?", options=["Minutes", "Hours", "All day"]),
    ]


def sample_analysis() -> StructuredAnalysis:
    return StructuredAnalysis(
        summary="You may have a mild viral illness or low-grade fever. Rest and fluids help.",
        possible_causes=[
            Cause(title="Viral infection", brief="Common and usually clears up on its own."),
            Cause(title="Mild dehydration", brief="Can cause tiredness and headaches."),
            Cause(title="Allergic reaction", brief="Seasonal triggers can mimic a cold."),
        ],
        next_steps=[
            NextStep(action="Drink fluids", why="Helps your body recover."),
            NextStep(action="Rest", why="Gives your immune system a chance."),
            NextStep(
                action="See a doctor if fever goes above 38.5°C or breathing gets hard",
                why="These are signs that need a proper check.",
            ),
        ],
        urgency="LOW",
        friendly="Hang in there, rest and water are simple wins! 💧",
    )


def fallback_analysis(symptom: str) -> StructuredAnalysis:
    return StructuredAnalysis(
        summary=f"You reported: {symptom}. We couldn't complete a full analysis right now, "
        "so please monitor your symptoms closely and be cautious.",
        possible_causes=[Cause(title="Various causes possible", brief="A clinician can narrow this down.")],
        next_steps=[
            NextStep(action="Monitor symptoms", why="Changes help decide what to do next."),
            NextStep(action="Rest and hydrate", why="Supports recovery in most cases."),
            NextStep(action="Consult a doctor if symptoms worsen", why="Worsening needs professional review."),
        ],
        urgency="MEDIUM",
        friendly="Take care of yourself! 🌟",
    )


def truncated_text_analysis(raw: str) -> StructuredAnalysis:
    """Use the start of unparseable model text as a best-effort summary."""
    return StructuredAnalysis(
        summary=raw.strip()[:_TRUNCATE_AT],
        urgency="MEDIUM",
        friendly=UNCERTAIN_FRIENDLY,
    )
