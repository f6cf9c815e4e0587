import json

from somaai.models import Cause, StructuredAnalysis
from somaai.prompts import (
    build_analysis_prompt,
    build_cosmic_insight_prompt,
    build_humanize_prompt,
    build_mcq_prompt,
    build_quick_query_prompt,
)


def test_mcq_prompt_embeds_symptom_and_schema():
    prompt = build_mcq_prompt("sore throat")
    assert '"""sore throat"""' in prompt
    assert '"questions"' in prompt
    assert "mainly physical" not in prompt


def test_mcq_prompt_kind_hint():
    assert "mainly emotional" in build_mcq_prompt("can't sleep", "mental")
    assert "mainly physical" in build_mcq_prompt("knee pain", "physical")


def test_analysis_prompt_includes_answers_as_json():
    prompt = build_analysis_prompt("headache", {"onset": "Suddenly", "severity": "Severe"})
    assert '"""headache"""' in prompt
    assert json.dumps({"onset": "Suddenly", "severity": "Severe"}) in prompt
    assert "LOW|MEDIUM|HIGH" in prompt


def test_analysis_prompt_without_answers():
    assert "answers: {}" in build_analysis_prompt("headache", None)


def test_analysis_prompt_is_deterministic():
    assert build_analysis_prompt("a", {"x": "y"}) == build_analysis_prompt("a", {"x": "y"})


def test_humanize_prompt_carries_the_structured_result():
    analysis = StructuredAnalysis(summary="Tension headache", possible_causes=[Cause(title="Stress")], urgency="MEDIUM")
    prompt = build_humanize_prompt(analysis)
    assert '"summary": "Tension headache"' in prompt
    assert '"urgency": "MEDIUM"' in prompt
    assert "Do NOT change possible_causes" in prompt


def test_quick_query_and_cosmic_prompts():
    assert 'Question: "Is coffee bad?"' in build_quick_query_prompt("Is coffee bad?")
    prompt = build_cosmic_insight_prompt("tired", "You may be low on sleep.")
    assert 'Symptom: "tired"' in prompt
    assert 'Initial Summary: "You may be low on sleep."' in prompt
