"""
Unit tests for settings defaults and log sanitization.
"""
import logging
from dataclasses import dataclass

import pytest

from survey_audio.config.settings import Settings
from survey_audio.core.exceptions import SynthesisError
from survey_audio.infrastructure.logging.log_config import DevelopmentFormatter, JSONFormatter
from survey_audio.infrastructure.logging.log_decorators import log_operation, op_config, sanitize_for_log


@pytest.mark.unit
def test_settings_defaults(monkeypatch):
    for name in ("ENVIRONMENT", "AUDIO_BUCKET_NAME", "ELEVENLABS_VOICE_ID", "SCRIPT_MIN_CHARS"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.script_min_chars == 50
    assert settings.script_max_chars == 5000
    assert settings.elevenlabs_voice_id == "K0Yk2ESZ2dsYv9RrtThg"
    assert settings.elevenlabs_model_id == "eleven_v3"
    assert settings.openai_model == "gpt-4o-mini"
    assert settings.crm_field_keys == {
        "audio_url": "audio_diagnosticovendas_url",
        "script": "imdiagnosticovendas_audio_script"
    }
    assert settings.is_development
    assert not settings.use_local_dynamodb


@pytest.mark.unit
def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("AUDIO_BUCKET_NAME", "prod-audios")
    monkeypatch.setenv("SCRIPT_MIN_CHARS", "80")

    settings = Settings(_env_file=None)

    assert settings.is_production
    assert settings.audio_bucket_name == "prod-audios"
    assert settings.script_min_chars == 80


@pytest.mark.unit
def test_public_audio_url(test_settings):
    assert test_settings.get_public_audio_url("user-1/a.ogg") == "https://cdn.example.com/audios/user-1/a.ogg"
    with pytest.raises(ValueError):
        test_settings.get_public_audio_url("")


@pytest.mark.unit
def test_sensitive_values_are_redacted():
    sanitized = sanitize_for_log({
        "api_key": "sk-123",
        "headers": {"Authorization": "Bearer x", "xi-api-key": "xi"},
        "audio_url": "https://x/a.ogg",
        "tokens_used": 321,
        "audio": b"\x00" * 64,
        "script": "a" * 600,
    })

    assert sanitized["api_key"] == "[REDACTED]"
    assert sanitized["headers"] == {"Authorization": "[REDACTED]", "xi-api-key": "[REDACTED]"}
    assert sanitized["audio_url"] == "https://x/a.ogg"
    assert sanitized["tokens_used"] == 321
    assert sanitized["audio"] == "[BINARY_DATA_64_BYTES]"
    assert sanitized["script"].endswith("...[truncated]")


@pytest.mark.unit
def test_dataclasses_are_sanitized():
    @dataclass
    class Result:
        audio: bytes
        request_id: str

    assert sanitize_for_log(Result(b"abc", "r-1")) == {"audio": "[BINARY_DATA_3_BYTES]", "request_id": "r-1"}


@pytest.mark.unit
def test_formatters_render_extra_fields():
    record = logging.LogRecord("survey-audio.test", logging.INFO, __file__, 1, "Stage done", None, None)
    record.extra_fields = {"stage": "store_artifact", "path": "user-1/a.ogg"}

    json_line = JSONFormatter().format(record)
    assert '"stage": "store_artifact"' in json_line
    assert "Stage done" in json_line

    dev_line = DevelopmentFormatter().format(record)
    assert "store_artifact" in dev_line


class _Adapter:

    @log_operation("fail_call", **op_config(args=True))
    async def fail(self, api_key: str):
        raise SynthesisError("ElevenLabs returned HTTP 500", error_code="TTS_HTTP_ERROR")

    @log_operation("sync_call")
    def add(self, a: int, b: int) -> int:
        return a + b


@pytest.mark.asyncio
@pytest.mark.unit
async def test_log_operation_reraises_unchanged():
    with pytest.raises(SynthesisError) as exc_info:
        await _Adapter().fail("sk-secret")
    assert exc_info.value.error_code == "TTS_HTTP_ERROR"


@pytest.mark.unit
def test_log_operation_wraps_sync_methods():
    assert _Adapter().add(2, 3) == 5
