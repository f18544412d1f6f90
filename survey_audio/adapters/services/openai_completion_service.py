"""
OpenAI chat completion adapter.

Single user message, bounded output, client-level timeout. Every failure
becomes a CompletionProviderError so the script generator can fall back.
"""
import asyncio
from typing import Optional

import openai
from openai import OpenAI
from pydantic import ValidationError

from survey_audio.config.settings import Settings
from survey_audio.core.exceptions import CompletionProviderError, CompletionSchemaError
from survey_audio.core.models.generation import CompletionResult
from survey_audio.core.ports.completion_service import CompletionServicePort
from survey_audio.infrastructure.logging.log_decorators import log_operation, op_config
from survey_audio.schemas.providers import ChatCompletionPayload


PAYLOAD_EXCERPT_CHARS = 500


class OpenAICompletionService(CompletionServicePort):
    """
    Completion service backed by the OpenAI chat completions API.
    """

    def __init__(self, settings: Settings, client: Optional[OpenAI] = None):
        self.settings = settings
        self._client = client

    @property
    def client(self) -> OpenAI:
        """Get OpenAI client (lazy initialization)."""
        if self._client is None:
            if not self.settings.openai_api_key:
                raise CompletionProviderError(
                    "OpenAI API key is not configured",
                    error_code="COMPLETION_NOT_CONFIGURED"
                )
            self._client = OpenAI(
                api_key=self.settings.openai_api_key,
                timeout=self.settings.openai_timeout_seconds,
                max_retries=self.settings.openai_max_retries
            )
        return self._client

    @log_operation("openai_chat_completion", **op_config(args=False))
    async def complete(self, prompt: str) -> CompletionResult:
        client = self.client
        try:
            response = await asyncio.to_thread(
                client.chat.completions.create,
                model=self.settings.openai_model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self.settings.openai_max_tokens,
                temperature=self.settings.openai_temperature
            )
        except openai.APITimeoutError as e:
            raise CompletionProviderError(
                f"OpenAI request timed out after {self.settings.openai_timeout_seconds}s",
                error_code="COMPLETION_TIMEOUT",
                details={"stage": "generate_script", "error": str(e)}
            )
        except openai.APIStatusError as e:
            raise CompletionProviderError(
                f"OpenAI returned HTTP {e.status_code}",
                error_code="COMPLETION_HTTP_ERROR",
                details={
                    "stage": "generate_script",
                    "status_code": e.status_code,
                    "body": str(e.body)[:PAYLOAD_EXCERPT_CHARS]
                }
            )
        except openai.OpenAIError as e:
            raise CompletionProviderError(
                f"OpenAI request failed: {str(e)}",
                error_code="COMPLETION_UNREACHABLE",
                details={"stage": "generate_script"}
            )

        try:
            payload = ChatCompletionPayload.model_validate(response.model_dump())
        except ValidationError as e:
            raise CompletionSchemaError(
                "OpenAI response did not match the chat completion schema",
                details={"stage": "generate_script", "errors": e.errors(include_url=False)[:5]}
            )

        return CompletionResult(
            text=(payload.choices[0].message.content or "").strip(),
            request_id=payload.id,
            model=payload.model,
            tokens_used=payload.usage.total_tokens if payload.usage else None
        )
