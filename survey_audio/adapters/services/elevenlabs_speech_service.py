"""
ElevenLabs text-to-speech adapter.
"""
import asyncio
from typing import Optional

import requests
from pydantic import ValidationError

from survey_audio.config.settings import Settings
from survey_audio.core.exceptions import SynthesisError, SynthesisSchemaError
from survey_audio.core.models.generation import SpeechResult
from survey_audio.core.ports.speech_synthesis import SpeechSynthesisPort
from survey_audio.core.services.speech_timing import estimate_duration_seconds
from survey_audio.infrastructure.logging.log_decorators import log_operation, op_config
from survey_audio.schemas.providers import TextToSpeechRequest


PAYLOAD_EXCERPT_CHARS = 500
AUDIO_MEDIA_PREFIXES = ("audio/", "application/octet-stream")


class ElevenLabsSpeechService(SpeechSynthesisPort):
    """
    Fixed-voice synthesis with fixed voice settings.

    The duration returned is estimated from text length, see
    survey_audio.core.services.speech_timing.
    """

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()

    @property
    def voice_id(self) -> str:
        return self.settings.elevenlabs_voice_id

    @property
    def endpoint(self) -> str:
        return f"{self.settings.elevenlabs_api_base.rstrip('/')}/v1/text-to-speech/{self.voice_id}"

    def build_request(self, text: str) -> TextToSpeechRequest:
        try:
            return TextToSpeechRequest(
                text=text,
                model_id=self.settings.elevenlabs_model_id,
                voice_settings=self.settings.voice_settings
            )
        except ValidationError as e:
            raise SynthesisError(
                "Invalid synthesis request",
                error_code="TTS_INVALID_REQUEST",
                details={"errors": e.errors(include_url=False)[:5]}
            )

    @log_operation("elevenlabs_text_to_speech", **op_config(args=False))
    async def synthesize(self, text: str) -> SpeechResult:
        if not self.settings.elevenlabs_api_key:
            raise SynthesisError("ElevenLabs API key is not configured", error_code="TTS_NOT_CONFIGURED")

        body = self.build_request(text).model_dump()
        headers = {
            "xi-api-key": self.settings.elevenlabs_api_key,
            "Accept": self.settings.audio_content_type,
            "Content-Type": "application/json"
        }

        try:
            response = await asyncio.to_thread(
                self.session.post,
                self.endpoint,
                params={"output_format": self.settings.elevenlabs_output_format},
                json=body,
                headers=headers,
                timeout=self.settings.elevenlabs_timeout_seconds
            )
        except requests.Timeout:
            raise SynthesisError(
                f"ElevenLabs request timed out after {self.settings.elevenlabs_timeout_seconds}s",
                error_code="TTS_TIMEOUT",
                details={"stage": "synthesize_speech"}
            )
        except requests.RequestException as e:
            raise SynthesisError(
                f"ElevenLabs request failed: {str(e)}",
                error_code="TTS_UNREACHABLE",
                details={"stage": "synthesize_speech"}
            )

        if not response.ok:
            raise SynthesisError(
                f"ElevenLabs returned HTTP {response.status_code}",
                error_code="TTS_HTTP_ERROR",
                details={
                    "stage": "synthesize_speech",
                    "status_code": response.status_code,
                    "body": response.text[:PAYLOAD_EXCERPT_CHARS]
                }
            )

        media_type = response.headers.get("Content-Type", "").split(";")[0].strip().lower()
        if media_type and not media_type.startswith(AUDIO_MEDIA_PREFIXES):
            raise SynthesisSchemaError(
                f"ElevenLabs returned {media_type} instead of audio",
                details={
                    "stage": "synthesize_speech",
                    "status_code": response.status_code,
                    "body": response.text[:PAYLOAD_EXCERPT_CHARS]
                }
            )

        if not response.content:
            raise SynthesisError(
                "ElevenLabs returned an empty audio payload",
                error_code="TTS_EMPTY_AUDIO",
                details={"stage": "synthesize_speech", "status_code": response.status_code}
            )

        return SpeechResult(
            audio=response.content,
            voice_id=self.voice_id,
            duration_seconds=estimate_duration_seconds(text, self.settings.tts_chars_per_second),
            content_type=self.settings.audio_content_type,
            request_id=response.headers.get("request-id")
        )
