"""
Unit tests for bottleneck selection, prompt construction and the fallback script.
"""
import pytest

from survey_audio.core.services.prompt_builder import (
    Bottlenecks,
    build_audio_prompt,
    fallback_script,
    find_bottlenecks,
    noise_focus,
)
from survey_audio.core.services.text_sanitizer import sanitize_script
from tests.utils.mock_helpers import MockHelpers


@pytest.mark.unit
def test_bottleneck_ties_resolve_in_recorded_order():
    result = find_bottlenecks({"A": 8, "B": 2, "C": 2, "D": 5})
    assert result.primary == "B"
    assert result.secondary == "C"
    assert result.primary_score == 2


@pytest.mark.unit
def test_bottlenecks_with_one_or_no_scores():
    assert find_bottlenecks({}) == Bottlenecks()
    single = find_bottlenecks({"pain": 4})
    assert single.primary == "pain"
    assert single.secondary is None


@pytest.mark.unit
@pytest.mark.parametrize("answer, expected", [
    ("Fechamento", ("Command Noise", "Urgency Noise")),
    ("Atração de clientes", ("Identity Noise", "Proof Noise")),
    ("oferta", ("Sequence Noise", "Urgency Noise")),
    ("Processo comercial", ("Complexity Noise", "Command Noise")),
    ("Outro", None),
    (None, None),
])
def test_noise_focus(answer, expected):
    assert noise_focus(answer) == expected


@pytest.mark.unit
def test_prompt_carries_answers_scores_and_bottlenecks():
    survey = MockHelpers.create_survey()
    prompt = build_audio_prompt(survey, "André", "Imersão Diagnóstico de Vendas")

    assert "Imersão Diagnóstico de Vendas" in prompt
    assert "Consultoria B2B" in prompt
    assert "Propostas que não fecham" in prompt
    assert "Previous investment in training: not answered" in prompt
    assert "PRIMARY bottleneck: Commitment (2/10)" in prompt
    assert "SECONDARY bottleneck: Pain (3/10)" in prompt
    assert "Command Noise" in prompt
    assert "Write in Brazilian Portuguese" in prompt
    assert "\"Ana\"" in prompt


@pytest.mark.unit
def test_prompt_without_scores_asks_to_infer_bottleneck():
    survey = MockHelpers.create_survey(scores={})
    prompt = build_audio_prompt(survey, "André", "Imersão")

    assert "No diagnostic scores recorded" in prompt
    assert "Infer the main bottleneck" in prompt
    assert "PRIMARY bottleneck" not in prompt


@pytest.mark.unit
def test_fallback_script_uses_first_name_and_fits_synthesis_window():
    script = fallback_script("Ana", "André")
    assert "Ana" in script
    assert "André" in script
    assert 50 <= len(sanitize_script(script)) <= 5000


@pytest.mark.unit
def test_fallback_script_without_name():
    assert "participante" in fallback_script(None, "André")
    assert "participante" in fallback_script("   ", "André")
