"""
Script generator: one completion call with a static fallback.
"""
from survey_audio.core.exceptions import CompletionProviderError
from survey_audio.core.models.generation import ScriptResult
from survey_audio.core.models.survey_response import SurveyResponse
from survey_audio.core.ports.completion_service import CompletionServicePort
from survey_audio.infrastructure.logging.log_config import get_logger
from .prompt_builder import build_audio_prompt, fallback_script


logger = get_logger("ScriptGenerator")


class ScriptGenerator:
    """
    Turns a survey response into a spoken-style script.

    A provider failure or an empty completion never fails the pipeline: the
    static fallback script is returned instead and flagged as such.
    """

    def __init__(
        self,
        completion_service: CompletionServicePort,
        persona_name: str,
        event_name: str,
        language: str,
        target_min_chars: int = 200,
        target_max_chars: int = 1000
    ):
        self.completion_service = completion_service
        self.persona_name = persona_name
        self.event_name = event_name
        self.language = language
        self.target_min_chars = target_min_chars
        self.target_max_chars = target_max_chars

    def build_prompt(self, survey: SurveyResponse) -> str:
        return build_audio_prompt(survey, self.persona_name, self.event_name, self.language)

    def fallback(self, survey: SurveyResponse) -> ScriptResult:
        return ScriptResult(
            text=fallback_script(survey.profile.first_name, self.persona_name),
            used_fallback=True
        )

    async def generate(self, survey: SurveyResponse, prompt: str) -> ScriptResult:
        try:
            completion = await self.completion_service.complete(prompt)
        except CompletionProviderError as e:
            logger.warning("Completion failed, using fallback script", extra={"extra_fields": {
                "stage": "generate_script",
                "survey_response_id": survey.id,
                "error_code": e.error_code,
                "error": e.message,
                "provider_status": e.details.get("status_code")
            }})
            return self.fallback(survey)

        text = (completion.text or "").strip()
        if not text:
            logger.warning("Completion returned empty text, using fallback script", extra={"extra_fields": {
                "stage": "generate_script",
                "survey_response_id": survey.id,
                "request_id": completion.request_id
            }})
            return self.fallback(survey)

        if not self.target_min_chars <= len(text) <= self.target_max_chars:
            logger.warning("Generated script outside target length", extra={"extra_fields": {
                "survey_response_id": survey.id,
                "length": len(text),
                "target_min_chars": self.target_min_chars,
                "target_max_chars": self.target_max_chars
            }})

        return ScriptResult(
            text=text,
            request_id=completion.request_id,
            model=completion.model,
            tokens_used=completion.tokens_used
        )
