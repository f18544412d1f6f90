"""
Prompt builder for the personalized audio script.

Pure functions only: bottleneck selection, the completion prompt and the
static fallback script.
"""
import unicodedata
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from survey_audio.core.models.survey_response import SurveyResponse


# Calibration survey question id -> label shown to the model
SURVEY_QUESTIONS: Tuple[Tuple[str, str], ...] = (
    ("modeloNegocio", "Business model"),
    ("faturamento", "Monthly revenue"),
    ("ondeTrava", "Where the sale gets stuck"),
    ("tentativasAnteriores", "What they already tried"),
    ("investimentoAnterior", "Previous investment in training"),
    ("cursosAnteriores", "Previous courses or mentoring"),
    ("problemaPrincipal", "Main problem they want solved"),
    ("interessePos", "Interest in post-event follow-up"),
)

DIMENSION_LABELS = {
    "intention": "Intention",
    "message": "Message",
    "pain": "Pain",
    "authority": "Authority",
    "commitment": "Commitment",
    "transformation": "Transformation",
}

# Sales stage where the sale gets stuck -> sales noises to point the listener at
NOISE_GUIDE = {
    "atracao": ("Identity Noise", "Proof Noise"),
    "oferta": ("Sequence Noise", "Urgency Noise"),
    "fechamento": ("Command Noise", "Urgency Noise"),
    "processo": ("Complexity Noise", "Command Noise"),
}

EMOTION_TAGS = (
    "[happy]",
    "[thoughtful]",
    "[conversational]",
    "[serious]",
    "[speaking with determination]",
    "[exhales sharply]",
)

NOT_ANSWERED = "not answered"


@dataclass(frozen=True)
class Bottlenecks:
    primary: Optional[str] = None
    primary_score: Optional[float] = None
    secondary: Optional[str] = None
    secondary_score: Optional[float] = None


def find_bottlenecks(scores: Mapping[str, float]) -> Bottlenecks:
    """
    Pick the lowest and second-lowest scoring dimensions.

    Scores are sorted ascending with a stable sort, so ties resolve to the
    dimension recorded first. {A: 8, B: 2, C: 2, D: 5} yields B then C.
    """
    ranked = sorted(scores.items(), key=lambda item: item[1])
    if not ranked:
        return Bottlenecks()

    primary, primary_score = ranked[0]
    if len(ranked) == 1:
        return Bottlenecks(primary=primary, primary_score=primary_score)

    secondary, secondary_score = ranked[1]
    return Bottlenecks(
        primary=primary,
        primary_score=primary_score,
        secondary=secondary,
        secondary_score=secondary_score
    )


def _normalize(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).lower().strip()


def noise_focus(stuck_stage: Optional[str]) -> Optional[Tuple[str, str]]:
    """Map the 'where the sale gets stuck' answer to its two sales noises."""
    if not stuck_stage:
        return None
    normalized = _normalize(stuck_stage)
    for stage, noises in NOISE_GUIDE.items():
        if normalized.startswith(stage):
            return noises
    return None


def _dimension_label(dimension: str) -> str:
    return DIMENSION_LABELS.get(dimension, dimension.replace("_", " ").title())


def _format_score(score: float) -> str:
    return f"{score:g}"


def build_audio_prompt(
    survey: SurveyResponse,
    persona_name: str,
    event_name: str,
    language: str = "Brazilian Portuguese"
) -> str:
    """Build the single completion prompt for one survey response."""
    profile = survey.profile
    first_name = profile.first_name

    participant_lines = [f"- Name: {profile.name}"]
    if profile.company:
        participant_lines.append(f"- Company: {profile.company}")
    if profile.role:
        participant_lines.append(f"- Role: {profile.role}")

    answer_lines = [
        f"{index}. {label}: {survey.answer(question_id) or NOT_ANSWERED}"
        for index, (question_id, label) in enumerate(SURVEY_QUESTIONS, start=1)
    ]

    scores = survey.diagnostic_scores
    bottlenecks = find_bottlenecks(scores)
    if scores:
        score_lines = [f"- {_dimension_label(name)}: {_format_score(value)}/10" for name, value in scores.items()]
    else:
        score_lines = ["- No diagnostic scores recorded"]

    bottleneck_lines = []
    if bottlenecks.primary:
        bottleneck_lines.append(
            f"- PRIMARY bottleneck: {_dimension_label(bottlenecks.primary)} "
            f"({_format_score(bottlenecks.primary_score)}/10)"
        )
    if bottlenecks.secondary:
        bottleneck_lines.append(
            f"- SECONDARY bottleneck: {_dimension_label(bottlenecks.secondary)} "
            f"({_format_score(bottlenecks.secondary_score)}/10), mention it only as a symptom of the primary one"
        )
    if not bottleneck_lines:
        bottleneck_lines.append("- Infer the main bottleneck from the open answers")

    noises = noise_focus(survey.answer("ondeTrava"))
    if noises:
        noise_line = f"Point the listener at the {noises[0]} and the {noises[1]} in the bonus class."
    else:
        noise_line = "Point the listener at the one or two sales noises that best match their answers."

    sections = [
        f"You are {persona_name}, a mentor in complex high-ticket sales, recording a personal "
        f"WhatsApp voice message for a participant of the {event_name}.",
        "",
        "PARTICIPANT:",
        *participant_lines,
        "",
        "CALIBRATION SURVEY ANSWERS:",
        *answer_lines,
        "",
        "DIAGNOSTIC SCORES (0 to 10):",
        *score_lines,
        *bottleneck_lines,
        "",
        "GOAL: the participant must feel \"finally someone understood me\" and know how to start "
        "preparing right away with the bonus class inside the app. You are not selling anything.",
        "",
        "TONE:",
        f"- Write in {language}, colloquial and direct, as if talking face to face.",
        "- The text will be read by a voice engine: short sentences, natural pauses with commas, no hard words.",
        f"- Use only the first name \"{first_name}\" and never surnames.",
        "- Quote something specific from the open answers so it is clear they were read.",
        f"- Use emotion tags in square brackets to steer the voice, for example {', '.join(EMOTION_TAGS)}.",
        "- No markdown, no emoji, no links, no motivational cliches, no corporate jargon.",
        "",
        "MANDATORY STRUCTURE:",
        f"1. Opening (1 line): greet {first_name} by first name and introduce yourself as {persona_name}'s assistant.",
        "2. Diagnosis (3 to 5 lines): name the main pattern or risk using revenue, where the sale gets stuck "
        "and what they already tried. Name the primary bottleneck concretely, do not solve it.",
        f"3. Direction (2 to 3 lines): {noise_line} Connect it to the problem they want solved.",
        "4. Elevation (2 to 3 lines): the bonus class is preparation, the immersion is where their case "
        "is really diagnosed. Ask them to arrive with notes.",
        "5. Close (1 line): short and firm.",
        "",
        "LENGTH: between 400 and 800 characters, at most 2 minutes of speech.",
        "Reply ONLY with the final script, without explanations or comments.",
    ]
    return "\n".join(sections)


def fallback_script(first_name: Optional[str], persona_name: str) -> str:
    """
    Static script used when the completion provider fails or returns nothing.

    Parameterized only by the contact's first name.
    """
    name = (first_name or "").strip() or "participante"
    return (
        f"[happy] Fala, {name}! Aqui é o {persona_name}. "
        "[conversational] Vi que você completou o protocolo de iniciação e estou analisando o seu diagnóstico. "
        "[thoughtful] O que percebi é que você está enfrentando desafios clássicos de vendas complexas, "
        "e isso é mais comum do que imagina. "
        "[speaking with determination] Na imersão, vamos destrinchar exatamente onde está o gargalo do seu processo. "
        "Deixe o app aberto durante o evento, ele vai ser o seu painel de diagnóstico. "
        "[happy] Prepare-se, porque vai ser intenso."
    )
