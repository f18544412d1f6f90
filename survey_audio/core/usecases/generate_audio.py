"""
Generate audio use case.

Orchestrates one pipeline run for a survey response: load the survey,
serve the cached result when the job already completed, otherwise claim the
job record and run script generation, sanitization, validation, synthesis,
storage and CRM propagation, recording every stage on the job record.

The use case never raises for pipeline errors. Callers get an
AudioGenerationResult with a success flag, an HTTP status and the per-stage
record, so webhook retriers can decide whether to retry the whole job.
"""
import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from survey_audio.core.exceptions import (
    PipelineError,
    InvalidRequest,
    NotFound,
    StorageError,
    CrmPropagationError,
    RepositoryError,
    JobInProgress
)
from survey_audio.core.models.audio_job import AudioJob, JobStatus, utc_now_iso
from survey_audio.core.models.survey_response import SurveyResponse
from survey_audio.core.ports.artifact_storage import ArtifactStoragePort
from survey_audio.core.ports.crm_service import CrmServicePort
from survey_audio.core.ports.job_repository import JobRepositoryPort
from survey_audio.core.ports.notifier import NotifierPort, PipelineEvent
from survey_audio.core.ports.speech_synthesis import SpeechSynthesisPort
from survey_audio.core.ports.survey_repository import SurveyRepositoryPort
from survey_audio.core.services.script_generator import ScriptGenerator
from survey_audio.core.services.text_sanitizer import sanitize_script, validate_script_length
from survey_audio.infrastructure.logging.log_config import get_logger


logger = get_logger("GenerateAudioUseCase")


@dataclass(frozen=True)
class GenerateAudioCommand:
    email: Optional[str] = None
    transaction_id: Optional[str] = None
    ghl_contact_id: Optional[str] = None
    force: bool = False


@dataclass
class AudioGenerationResult:
    """Outcome of one invocation, serialisable for HTTP and Lambda callers."""

    success: bool
    http_status: int
    survey_response_id: Optional[str] = None
    audio_url: Optional[str] = None
    script: Optional[str] = None
    duration_seconds: Optional[int] = None
    cached: bool = False
    used_fallback_script: bool = False
    crm_synced: bool = False
    crm_error: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    processing_time_ms: int = 0
    processing_stages: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": self.success}
        if self.success:
            body.update({
                "audio_url": self.audio_url,
                "script": self.script,
                "duration_seconds": self.duration_seconds,
                "processing_time_ms": self.processing_time_ms,
                "cached": self.cached,
                "survey_response_id": self.survey_response_id,
                "used_fallback_script": self.used_fallback_script,
                "crm_synced": self.crm_synced
            })
            if self.crm_error:
                body["crm_error"] = self.crm_error
        else:
            body.update({
                "error": self.error,
                "error_code": self.error_code,
                "processing_time_ms": self.processing_time_ms
            })
            if self.survey_response_id:
                body["survey_response_id"] = self.survey_response_id
        body["processing_stages"] = self.processing_stages
        return body


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _stage_ok(stages: Dict[str, Dict[str, Any]], name: str, **info: Any) -> None:
    stages[name] = {"status": "success", **info, "completed_at": _now()}


def _stage_failed(stages: Dict[str, Dict[str, Any]], name: str, error: Exception) -> None:
    stages[name] = {
        "status": "failed",
        "error_type": type(error).__name__,
        "error_code": getattr(error, "error_code", None),
        "error": str(error),
        "failed_at": _now()
    }


class GenerateAudioUseCase:
    """
    Job orchestrator for the personalized audio pipeline.

    Stage failures are classified as follows:
    - InvalidRequest, NotFound, InvalidScriptLength: terminal, 4xx
    - SynthesisError, StorageError: terminal, 500, job marked failed
    - CompletionProviderError: recovered by the fallback script
    - CrmPropagationError: non-fatal, job stays completed
    """

    def __init__(
        self,
        survey_repository: SurveyRepositoryPort,
        job_repository: JobRepositoryPort,
        script_generator: ScriptGenerator,
        speech_synthesizer: SpeechSynthesisPort,
        artifact_storage: ArtifactStoragePort,
        crm_service: CrmServicePort,
        notifier: NotifierPort,
        script_min_chars: int,
        script_max_chars: int,
        job_lease_seconds: int
    ):
        self.survey_repository = survey_repository
        self.job_repository = job_repository
        self.script_generator = script_generator
        self.speech_synthesizer = speech_synthesizer
        self.artifact_storage = artifact_storage
        self.crm_service = crm_service
        self.notifier = notifier
        self.script_min_chars = script_min_chars
        self.script_max_chars = script_max_chars
        self.job_lease_seconds = job_lease_seconds

    async def execute(self, command: GenerateAudioCommand) -> AudioGenerationResult:
        start_time = time.time()
        stages: Dict[str, Dict[str, Any]] = {}
        survey: Optional[SurveyResponse] = None
        job_claimed = False

        logger.info("Starting audio generation", extra={"extra_fields": {
            "email": command.email,
            "transaction_id": command.transaction_id,
            "has_contact_id": bool(command.ghl_contact_id),
            "force": command.force
        }})

        try:
            self._validate(command)

            if not await self.artifact_storage.check_health():
                raise StorageError("Storage bucket not configured", error_code="STORAGE_BUCKET_UNAVAILABLE")
            _stage_ok(stages, "storage_health")

            survey = await self._load_survey(command, stages)
            contact_id = await self._resolve_contact(command, survey, stages)

            existing = await self.job_repository.get(survey.id)
            if existing and existing.is_completed and not command.force:
                return await self._serve_cached(existing, contact_id, stages, start_time)

            job = AudioJob.start_run(
                survey_response_id=survey.id,
                email=survey.email or (command.email or "").strip() or None,
                user_id=survey.user_id,
                transaction_id=survey.transaction_id,
                ghl_contact_id=contact_id
            )
            if not await self.job_repository.claim(job, command.force, self.job_lease_seconds):
                current = await self.job_repository.get(survey.id)
                if current and current.is_completed and not command.force:
                    return await self._serve_cached(current, contact_id, stages, start_time)
                raise JobInProgress(
                    "Audio generation already in progress for this survey response",
                    details={"survey_response_id": survey.id}
                )
            job_claimed = True
            _stage_ok(stages, "claim_job", previous_status=existing.status.value if existing else None)

            return await self._run_pipeline(job, survey, contact_id, stages, start_time)

        except PipelineError as e:
            return await self._fail(e, survey, job_claimed, stages, start_time)
        except asyncio.CancelledError:
            if job_claimed and survey is not None:
                await self._mark_failed(survey.id, "Invocation cancelled before completion")
            raise
        except Exception as e:
            logger.exception("Unexpected error in audio generation", extra={"extra_fields": {
                "survey_response_id": survey.id if survey else None,
                "error_type": type(e).__name__
            }})
            unexpected = PipelineError(f"Unexpected error: {e}", error_code="UNEXPECTED_ERROR")
            return await self._fail(unexpected, survey, job_claimed, stages, start_time)

    def _validate(self, command: GenerateAudioCommand) -> None:
        email = (command.email or "").strip()
        transaction_id = (command.transaction_id or "").strip()
        if not email and not transaction_id:
            raise InvalidRequest("Either email or transaction_id is required", error_code="MISSING_IDENTIFIER")
        if email and "@" not in email:
            raise InvalidRequest(f"Invalid email: {email}", error_code="INVALID_EMAIL")

    async def _load_survey(self, command: GenerateAudioCommand, stages: Dict[str, Dict[str, Any]]) -> SurveyResponse:
        survey = await self.survey_repository.find_latest(
            email=(command.email or "").strip() or None,
            transaction_id=(command.transaction_id or "").strip() or None
        )
        if survey is None:
            raise NotFound(
                "Survey response not found",
                error_code="SURVEY_NOT_FOUND",
                details={"email": command.email, "transaction_id": command.transaction_id}
            )
        _stage_ok(stages, "load_survey", survey_response_id=survey.id)
        return survey

    async def _resolve_contact(
        self,
        command: GenerateAudioCommand,
        survey: SurveyResponse,
        stages: Dict[str, Dict[str, Any]]
    ) -> Optional[str]:
        """Look the CRM contact up by email. Never fails the run."""
        if command.ghl_contact_id:
            _stage_ok(stages, "resolve_contact", source="request")
            return command.ghl_contact_id

        email = (command.email or "").strip() or survey.email
        if not email:
            stages["resolve_contact"] = {"status": "skipped", "reason": "no_email"}
            return None

        try:
            contact_id = await self.crm_service.find_contact_by_email(email)
        except CrmPropagationError as e:
            logger.warning("CRM contact lookup failed, continuing without CRM propagation", extra={"extra_fields": {
                "stage": "resolve_contact",
                "survey_response_id": survey.id,
                "error_code": e.error_code,
                "provider_status": e.details.get("status_code"),
                "error": e.message
            }})
            _stage_failed(stages, "resolve_contact", e)
            return None

        if contact_id is None:
            logger.warning("No CRM contact found for email", extra={"extra_fields": {
                "stage": "resolve_contact",
                "survey_response_id": survey.id
            }})
            stages["resolve_contact"] = {"status": "not_found", "completed_at": _now()}
            return None

        _stage_ok(stages, "resolve_contact", source="lookup")
        return contact_id

    async def _run_pipeline(
        self,
        job: AudioJob,
        survey: SurveyResponse,
        contact_id: Optional[str],
        stages: Dict[str, Dict[str, Any]],
        start_time: float
    ) -> AudioGenerationResult:
        job_id = job.survey_response_id
        stage = "build_prompt"
        try:
            prompt = self.script_generator.build_prompt(survey)
            await self.job_repository.update(job_id, {"openai_prompt": prompt})
            _stage_ok(stages, stage, prompt_chars=len(prompt))

            stage = "generate_script"
            script_result = await self.script_generator.generate(survey, prompt)
            _stage_ok(
                stages, stage,
                used_fallback=script_result.used_fallback,
                request_id=script_result.request_id,
                tokens_used=script_result.tokens_used
            )

            stage = "validate_script"
            script = validate_script_length(
                sanitize_script(script_result.text),
                self.script_min_chars,
                self.script_max_chars
            )
            await self.job_repository.update(job_id, {
                "script_generated": script,
                "openai_model": script_result.model,
                "openai_request_id": script_result.request_id,
                "openai_tokens_used": script_result.tokens_used,
                "used_fallback_script": script_result.used_fallback
            })
            _stage_ok(stages, stage, script_chars=len(script))

            stage = "synthesize_speech"
            speech = await self.speech_synthesizer.synthesize(script)
            _stage_ok(
                stages, stage,
                audio_bytes=len(speech.audio),
                request_id=speech.request_id,
                estimated_duration_seconds=speech.duration_seconds
            )

            stage = "store_artifact"
            artifact = await self.artifact_storage.store_audio(
                speech.audio, survey.user_id, survey.email or job.email, speech.content_type
            )
            _stage_ok(stages, stage, path=artifact.path, size_bytes=artifact.size_bytes)

            stage = "complete_job"
            await self.job_repository.update(job_id, {
                "status": JobStatus.COMPLETED,
                "audio_url": artifact.public_url,
                "audio_path": artifact.path,
                "audio_duration_seconds": speech.duration_seconds,
                "elevenlabs_voice_id": speech.voice_id,
                "elevenlabs_request_id": speech.request_id,
                "error_message": None,
                "completed_at": utc_now_iso()
            })
            _stage_ok(stages, stage)

        except Exception as e:
            _stage_failed(stages, stage, e)
            raise

        crm_error = await self._propagate_to_crm(job_id, contact_id, artifact.public_url, script, stages)

        processing_time_ms = int((time.time() - start_time) * 1000)
        logger.info("Audio generation completed", extra={"extra_fields": {
            "survey_response_id": job_id,
            "audio_path": artifact.path,
            "used_fallback_script": script_result.used_fallback,
            "crm_synced": crm_error is None,
            "processing_time_ms": processing_time_ms
        }})
        self.notifier.notify(PipelineEvent.AUDIO_COMPLETED, {
            "survey_response_id": job_id,
            "email": job.email,
            "audio_url": artifact.public_url,
            "duration_seconds": speech.duration_seconds,
            "crm_synced": crm_error is None
        })

        return AudioGenerationResult(
            success=True,
            http_status=200,
            survey_response_id=job_id,
            audio_url=artifact.public_url,
            script=script,
            duration_seconds=speech.duration_seconds,
            used_fallback_script=script_result.used_fallback,
            crm_synced=crm_error is None,
            crm_error=crm_error.message if crm_error else None,
            processing_time_ms=processing_time_ms,
            processing_stages=stages
        )

    async def _serve_cached(
        self,
        job: AudioJob,
        contact_id: Optional[str],
        stages: Dict[str, Dict[str, Any]],
        start_time: float
    ) -> AudioGenerationResult:
        """Idempotency fast path: no completion or synthesis calls."""
        stages["idempotency_check"] = {"status": "cached", "completed_at": _now()}
        logger.info("Serving completed audio from cache", extra={"extra_fields": {
            "survey_response_id": job.survey_response_id,
            "completed_at": job.completed_at
        }})

        # Re-push in case a previous CRM write failed
        crm_error = await self._propagate_to_crm(
            job.survey_response_id,
            contact_id or job.ghl_contact_id,
            job.audio_url,
            job.script_generated or "",
            stages
        )

        return AudioGenerationResult(
            success=True,
            http_status=200,
            survey_response_id=job.survey_response_id,
            audio_url=job.audio_url,
            script=job.script_generated,
            duration_seconds=job.audio_duration_seconds,
            cached=True,
            used_fallback_script=job.used_fallback_script,
            crm_synced=crm_error is None,
            crm_error=crm_error.message if crm_error else None,
            processing_time_ms=int((time.time() - start_time) * 1000),
            processing_stages=stages
        )

    async def _propagate_to_crm(
        self,
        job_id: str,
        contact_id: Optional[str],
        audio_url: str,
        script: str,
        stages: Dict[str, Dict[str, Any]]
    ) -> Optional[CrmPropagationError]:
        """
        Write audio URL and script into the contact's custom fields.

        Returns the CRM error instead of raising: the artifact already exists
        and the job stays completed.
        """
        stage = "crm_sync"
        if not contact_id:
            error = CrmPropagationError("No CRM contact available for this survey response", error_code="CRM_CONTACT_NOT_FOUND")
            stages[stage] = {"status": "skipped", "error_code": error.error_code, "error": error.message}
            self.notifier.notify(PipelineEvent.CRM_SYNC_FAILED, {
                "survey_response_id": job_id,
                "audio_url": audio_url,
                "error": error.message
            })
            return error

        try:
            try:
                bindings = await self.crm_service.resolve_custom_fields()
                _stage_ok(
                    stages, "crm_resolve_fields",
                    resolved=[name for name, binding in bindings.items() if binding.resolved]
                )
            except CrmPropagationError as e:
                logger.warning("CRM field resolution failed, writing by field key", extra={"extra_fields": {
                    "stage": "crm_resolve_fields",
                    "survey_response_id": job_id,
                    "error_code": e.error_code,
                    "provider_status": e.details.get("status_code")
                }})
                _stage_failed(stages, "crm_resolve_fields", e)
                bindings = self.crm_service.fallback_bindings()

            result = await self.crm_service.update_audio_fields(contact_id, audio_url, script, bindings)
        except Exception as e:
            error = e
            if not isinstance(e, CrmPropagationError):
                logger.exception("Unexpected error during CRM propagation", extra={"extra_fields": {
                    "stage": stage,
                    "survey_response_id": job_id,
                    "error_type": type(e).__name__
                }})
                error = CrmPropagationError(f"Unexpected CRM error: {e}", error_code="CRM_UNEXPECTED_ERROR")
            logger.warning("CRM propagation failed, manual reconciliation needed", extra={"extra_fields": {
                "stage": stage,
                "survey_response_id": job_id,
                "contact_id": contact_id,
                "error_code": error.error_code,
                "provider_status": error.details.get("status_code"),
                "details": error.details
            }})
            _stage_failed(stages, stage, error)
            self.notifier.notify(PipelineEvent.CRM_SYNC_FAILED, {
                "survey_response_id": job_id,
                "contact_id": contact_id,
                "audio_url": audio_url,
                "error": error.message,
                "error_code": error.error_code
            })
            return error

        try:
            await self.job_repository.update(job_id, {
                "ghl_contact_id": contact_id,
                "ghl_custom_field_audio_url": audio_url,
                "ghl_custom_field_script": script,
                "crm_synced_at": utc_now_iso()
            })
        except RepositoryError as e:
            logger.warning("Could not record CRM sync on job", extra={"extra_fields": {
                "survey_response_id": job_id,
                "error": e.message
            }})

        _stage_ok(stages, stage, contact_id=contact_id, fields_written=result.fields_written)
        return None

    async def _mark_failed(self, job_id: str, message: str) -> None:
        try:
            await self.job_repository.update(job_id, {
                "status": JobStatus.FAILED,
                "error_message": message
            })
        except RepositoryError as e:
            logger.error("Could not mark job as failed", extra={"extra_fields": {
                "survey_response_id": job_id,
                "error_message": message,
                "error": e.message
            }})

    async def _fail(
        self,
        error: PipelineError,
        survey: Optional[SurveyResponse],
        job_claimed: bool,
        stages: Dict[str, Dict[str, Any]],
        start_time: float
    ) -> AudioGenerationResult:
        processing_time_ms = int((time.time() - start_time) * 1000)
        survey_id = survey.id if survey else None

        if job_claimed and survey_id:
            await self._mark_failed(survey_id, error.message)
            self.notifier.notify(PipelineEvent.AUDIO_FAILED, {
                "survey_response_id": survey_id,
                "email": survey.email,
                "error": error.message,
                "error_code": error.error_code
            })

        log = logger.warning if error.http_status < 500 else logger.error
        log("Audio generation failed", extra={"extra_fields": {
            "survey_response_id": survey_id,
            "error_type": type(error).__name__,
            "error_code": error.error_code,
            "error": error.message,
            "details": error.details,
            "http_status": error.http_status,
            "processing_time_ms": processing_time_ms
        }})

        return AudioGenerationResult(
            success=False,
            http_status=error.http_status,
            survey_response_id=survey_id,
            error=error.message,
            error_code=error.error_code,
            processing_time_ms=processing_time_ms,
            processing_stages=stages
        )
