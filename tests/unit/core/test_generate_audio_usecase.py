"""
Unit tests for GenerateAudioUseCase.

Tests the job orchestration: validation, idempotency, job claiming,
stage failures and non-fatal CRM propagation.
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from survey_audio.core.exceptions import (
    CompletionProviderError,
    CrmPropagationError,
    StorageError,
    SynthesisError,
)
from survey_audio.core.models.audio_job import AudioJob, JobStatus, utc_now_iso
from survey_audio.core.models.crm import CustomFieldBinding
from survey_audio.core.models.generation import CompletionResult
from survey_audio.core.usecases.generate_audio import GenerateAudioCommand
from tests.utils.mock_helpers import GENERATED_SCRIPT, MockHelpers


AUDIO_URL = "https://cdn.example.com/audios/user-1/1718000000000-ana-example-com.ogg"


def _command(**overrides) -> GenerateAudioCommand:
    values = dict(email="ana@example.com", transaction_id=None, ghl_contact_id=None, force=False)
    values.update(overrides)
    return GenerateAudioCommand(**values)


class TestSuccessfulGeneration:
    """Happy path and idempotency."""

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_full_run(
        self, generate_audio_use_case, job_repository, mock_speech_synthesizer,
        mock_artifact_storage, mock_crm_service, notifier
    ):
        result = await generate_audio_use_case.execute(_command())

        assert result.success is True
        assert result.http_status == 200
        assert result.audio_url == AUDIO_URL
        assert result.script == GENERATED_SCRIPT
        assert result.duration_seconds == 27
        assert result.cached is False
        assert result.used_fallback_script is False
        assert result.crm_synced is True

        mock_speech_synthesizer.synthesize.assert_awaited_once_with(GENERATED_SCRIPT)
        mock_artifact_storage.store_audio.assert_awaited_once()
        store_args = mock_artifact_storage.store_audio.await_args.args
        assert store_args[1:] == ("user-1", "ana@example.com", "audio/ogg")

        args = mock_crm_service.update_audio_fields.await_args.args
        assert args[0] == "contact-1"
        assert args[1] == AUDIO_URL
        assert args[2] == GENERATED_SCRIPT

        job = job_repository.jobs["survey-1"]
        assert job.status == JobStatus.COMPLETED
        assert job.audio_path == "user-1/1718000000000-ana-example-com.ogg"
        assert job.openai_prompt
        assert job.openai_request_id == "chatcmpl-1"
        assert job.openai_tokens_used == 321
        assert job.elevenlabs_request_id == "tts-req-1"
        assert job.elevenlabs_voice_id == "voice-1"
        assert job.completed_at is not None
        assert job.crm_synced_at is not None
        assert job.ghl_custom_field_audio_url == AUDIO_URL

        assert notifier.names() == ["audio_completed"]
        for stage in ("load_survey", "claim_job", "build_prompt", "generate_script", "validate_script",
                      "synthesize_speech", "store_artifact", "complete_job", "crm_sync"):
            assert result.processing_stages[stage]["status"] == "success"

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_second_call_is_served_from_cache(
        self, generate_audio_use_case, mock_completion_service, mock_speech_synthesizer,
        mock_artifact_storage, mock_crm_service
    ):
        first = await generate_audio_use_case.execute(_command())
        second = await generate_audio_use_case.execute(_command())

        assert second.success is True
        assert second.cached is True
        assert second.audio_url == first.audio_url
        assert second.script == first.script
        assert second.processing_stages["idempotency_check"]["status"] == "cached"
        assert mock_completion_service.complete.await_count == 1
        assert mock_speech_synthesizer.synthesize.await_count == 1
        assert mock_artifact_storage.store_audio.await_count == 1
        # CRM write is repeated on the cached path
        assert mock_crm_service.update_audio_fields.await_count == 2

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_force_regenerates_completed_job(
        self, generate_audio_use_case, mock_completion_service, mock_speech_synthesizer
    ):
        await generate_audio_use_case.execute(_command())
        result = await generate_audio_use_case.execute(_command(force=True))

        assert result.success is True
        assert result.cached is False
        assert mock_completion_service.complete.await_count == 2
        assert mock_speech_synthesizer.synthesize.await_count == 2

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_lookup_by_transaction_id(self, generate_audio_use_case):
        result = await generate_audio_use_case.execute(_command(email=None, transaction_id="tx-1"))

        assert result.success is True
        assert result.survey_response_id == "survey-1"

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_survey_without_email_leaves_job_email_unset(
        self, generate_audio_use_case, survey_repository, job_repository, mock_artifact_storage
    ):
        survey_repository.surveys = [MockHelpers.create_survey(email=None)]

        result = await generate_audio_use_case.execute(_command(email=None, transaction_id="tx-1"))

        assert result.success is True
        assert job_repository.jobs["survey-1"].email is None
        assert mock_artifact_storage.store_audio.await_args.args[2] is None

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_supplied_contact_id_skips_lookup(self, generate_audio_use_case, mock_crm_service):
        result = await generate_audio_use_case.execute(_command(ghl_contact_id="contact-99"))

        assert result.crm_synced is True
        mock_crm_service.find_contact_by_email.assert_not_awaited()
        assert mock_crm_service.update_audio_fields.await_args.args[0] == "contact-99"

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_completion_failure_uses_fallback_script(
        self, generate_audio_use_case, mock_completion_service, job_repository
    ):
        mock_completion_service.complete.side_effect = CompletionProviderError(
            "OpenAI request timed out after 30s", error_code="COMPLETION_TIMEOUT"
        )
        result = await generate_audio_use_case.execute(_command())

        assert result.success is True
        assert result.used_fallback_script is True
        assert "Ana" in result.script
        assert job_repository.jobs["survey-1"].used_fallback_script is True

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_script_at_minimum_length_is_synthesized(
        self, generate_audio_use_case, mock_completion_service, mock_speech_synthesizer
    ):
        mock_completion_service.complete.return_value = CompletionResult(text="a" * 50)
        result = await generate_audio_use_case.execute(_command())

        assert result.success is True
        mock_speech_synthesizer.synthesize.assert_awaited_once_with("a" * 50)


class TestRequestValidation:

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_missing_identifiers(self, generate_audio_use_case, mock_artifact_storage):
        result = await generate_audio_use_case.execute(_command(email=None, transaction_id="  "))

        assert result.success is False
        assert result.http_status == 400
        assert result.error_code == "MISSING_IDENTIFIER"
        mock_artifact_storage.check_health.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_invalid_email(self, generate_audio_use_case):
        result = await generate_audio_use_case.execute(_command(email="ana.example.com"))

        assert result.http_status == 400
        assert result.error_code == "INVALID_EMAIL"

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_unknown_survey(self, generate_audio_use_case, job_repository, mock_completion_service):
        result = await generate_audio_use_case.execute(_command(email="nobody@example.com"))

        assert result.http_status == 404
        assert result.error_code == "SURVEY_NOT_FOUND"
        assert job_repository.jobs == {}
        mock_completion_service.complete.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_unavailable_bucket(self, generate_audio_use_case, mock_artifact_storage, mock_completion_service):
        mock_artifact_storage.check_health.return_value = False
        result = await generate_audio_use_case.execute(_command())

        assert result.http_status == 500
        assert result.error == "Storage bucket not configured"
        assert result.error_code == "STORAGE_BUCKET_UNAVAILABLE"
        mock_completion_service.complete.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_failure_response_body(self, generate_audio_use_case):
        body = (await generate_audio_use_case.execute(_command(email=None))).to_response()

        assert body["success"] is False
        assert body["error_code"] == "MISSING_IDENTIFIER"
        assert "error" in body
        assert "processing_stages" in body
        assert "audio_url" not in body


class TestStageFailures:
    """Fatal stage errors mark the claimed job failed."""

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_too_short_script_is_rejected_before_synthesis(
        self, generate_audio_use_case, mock_completion_service, mock_speech_synthesizer,
        job_repository, notifier
    ):
        mock_completion_service.complete.return_value = CompletionResult(text="Oi Ana, ok")
        result = await generate_audio_use_case.execute(_command())

        assert result.http_status == 400
        assert result.error_code == "SCRIPT_TOO_SHORT"
        mock_speech_synthesizer.synthesize.assert_not_awaited()
        job = job_repository.jobs["survey-1"]
        assert job.status == JobStatus.FAILED
        assert "too short" in job.error_message
        assert result.processing_stages["validate_script"]["status"] == "failed"
        assert notifier.names() == ["audio_failed"]

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_synthesis_failure(self, generate_audio_use_case, mock_speech_synthesizer, job_repository):
        mock_speech_synthesizer.synthesize.side_effect = SynthesisError(
            "ElevenLabs returned HTTP 401", error_code="TTS_HTTP_ERROR", details={"status_code": 401}
        )
        result = await generate_audio_use_case.execute(_command())

        assert result.http_status == 500
        assert result.error_code == "TTS_HTTP_ERROR"
        assert job_repository.jobs["survey-1"].status == JobStatus.FAILED

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_storage_failure_marks_job_failed(
        self, generate_audio_use_case, mock_artifact_storage, mock_crm_service, job_repository
    ):
        mock_artifact_storage.store_audio.side_effect = StorageError(
            "Failed to upload audio: Access Denied", error_code="STORAGE_UPLOAD_FAILED"
        )
        result = await generate_audio_use_case.execute(_command())

        assert result.success is False
        assert result.http_status == 500
        job = job_repository.jobs["survey-1"]
        assert job.status == JobStatus.FAILED
        assert job.error_message == "Failed to upload audio: Access Denied"
        assert job.audio_url is None
        mock_crm_service.update_audio_fields.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_unexpected_error_is_contained(self, generate_audio_use_case, mock_speech_synthesizer, job_repository):
        mock_speech_synthesizer.synthesize.side_effect = RuntimeError("boom")
        result = await generate_audio_use_case.execute(_command())

        assert result.http_status == 500
        assert result.error_code == "UNEXPECTED_ERROR"
        assert job_repository.jobs["survey-1"].status == JobStatus.FAILED

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_cancellation_marks_job_failed_and_propagates(
        self, generate_audio_use_case, mock_speech_synthesizer, job_repository
    ):
        mock_speech_synthesizer.synthesize.side_effect = asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await generate_audio_use_case.execute(_command())

        assert job_repository.jobs["survey-1"].status == JobStatus.FAILED

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_failed_job_can_be_retried(self, generate_audio_use_case, mock_artifact_storage, job_repository):
        mock_artifact_storage.store_audio.side_effect = StorageError("Failed to upload audio: timeout")
        await generate_audio_use_case.execute(_command())
        assert job_repository.jobs["survey-1"].status == JobStatus.FAILED

        mock_artifact_storage.store_audio.side_effect = None
        result = await generate_audio_use_case.execute(_command())

        assert result.success is True
        job = job_repository.jobs["survey-1"]
        assert job.status == JobStatus.COMPLETED
        assert job.error_message is None


class TestConcurrentInvocations:

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_live_processing_job_is_not_reclaimed(
        self, generate_audio_use_case, job_repository, mock_completion_service, notifier
    ):
        job_repository.jobs["survey-1"] = AudioJob(
            "survey-1", "ana@example.com", status=JobStatus.PROCESSING, updated_at=utc_now_iso()
        )
        result = await generate_audio_use_case.execute(_command())

        assert result.http_status == 409
        assert result.error_code == "JOB_IN_PROGRESS"
        assert job_repository.jobs["survey-1"].status == JobStatus.PROCESSING
        mock_completion_service.complete.assert_not_awaited()
        assert notifier.events == []

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_stale_processing_job_is_reclaimed(self, generate_audio_use_case, job_repository):
        stale = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
        job_repository.jobs["survey-1"] = AudioJob(
            "survey-1", "ana@example.com", status=JobStatus.PROCESSING, updated_at=stale
        )
        result = await generate_audio_use_case.execute(_command())

        assert result.success is True
        assert job_repository.jobs["survey-1"].status == JobStatus.COMPLETED

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_parallel_invocations_produce_one_artifact(
        self, generate_audio_use_case, mock_artifact_storage, mock_speech_synthesizer
    ):
        results = await asyncio.gather(
            generate_audio_use_case.execute(_command()),
            generate_audio_use_case.execute(_command())
        )

        assert mock_artifact_storage.store_audio.await_count == 1
        assert mock_speech_synthesizer.synthesize.await_count == 1
        statuses = sorted(result.http_status for result in results)
        assert statuses in ([200, 200], [200, 409])


class TestCrmPropagation:
    """CRM problems never fail the job."""

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_unresolved_fields_report_error_and_keep_job_completed(
        self, generate_audio_use_case, mock_crm_service, job_repository, notifier
    ):
        mock_crm_service.resolve_custom_fields.return_value = mock_crm_service.fallback_bindings()
        mock_crm_service.update_audio_fields.side_effect = CrmPropagationError(
            "Contact updated by field key; custom fields could not be resolved",
            error_code="CRM_FIELDS_UNRESOLVED"
        )
        result = await generate_audio_use_case.execute(_command())

        assert result.success is True
        assert result.http_status == 200
        assert result.crm_synced is False
        assert "could not be resolved" in result.crm_error
        mock_crm_service.update_audio_fields.assert_awaited_once()
        job = job_repository.jobs["survey-1"]
        assert job.status == JobStatus.COMPLETED
        assert job.crm_synced_at is None
        assert result.processing_stages["crm_sync"]["status"] == "failed"
        assert notifier.names() == ["crm_sync_failed", "audio_completed"]

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_field_listing_failure_writes_by_key(self, generate_audio_use_case, mock_crm_service):
        mock_crm_service.resolve_custom_fields.side_effect = CrmPropagationError(
            "GoHighLevel custom field listing returned HTTP 500", error_code="CRM_HTTP_ERROR"
        )
        result = await generate_audio_use_case.execute(_command())

        assert result.success is True
        bindings = mock_crm_service.update_audio_fields.await_args.args[3]
        assert bindings["audio_url"] == CustomFieldBinding("audio_url", "audio_diagnosticovendas_url")
        assert result.processing_stages["crm_resolve_fields"]["status"] == "failed"

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_missing_contact(self, generate_audio_use_case, mock_crm_service):
        mock_crm_service.find_contact_by_email.return_value = None
        result = await generate_audio_use_case.execute(_command())

        assert result.success is True
        assert result.crm_synced is False
        assert result.crm_error
        assert result.processing_stages["crm_sync"]["error_code"] == "CRM_CONTACT_NOT_FOUND"
        mock_crm_service.update_audio_fields.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_contact_lookup_failure_does_not_stop_generation(self, generate_audio_use_case, mock_crm_service):
        mock_crm_service.find_contact_by_email.side_effect = CrmPropagationError(
            "GoHighLevel contact search request failed", error_code="CRM_UNREACHABLE"
        )
        result = await generate_audio_use_case.execute(_command())

        assert result.success is True
        assert result.audio_url == AUDIO_URL
        assert result.crm_synced is False

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_unexpected_crm_error_keeps_job_completed(
        self, generate_audio_use_case, mock_crm_service, job_repository, notifier
    ):
        mock_crm_service.update_audio_fields.side_effect = KeyError("customFields")

        result = await generate_audio_use_case.execute(_command())

        assert result.success is True
        assert result.http_status == 200
        assert result.crm_synced is False
        assert result.processing_stages["crm_sync"]["error_code"] == "CRM_UNEXPECTED_ERROR"
        job = job_repository.jobs["survey-1"]
        assert job.status == JobStatus.COMPLETED
        assert job.audio_url == AUDIO_URL
        assert job.error_message is None
        assert notifier.names() == ["crm_sync_failed", "audio_completed"]
