"""
Audio job domain model.

One job record exists per survey response. It is the idempotency anchor of
the pipeline and the durable trace of every stage of a run.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class AudioJob:
    """Job record tracking one survey response through the pipeline."""

    survey_response_id: str
    email: Optional[str]
    status: JobStatus = JobStatus.PENDING
    user_id: Optional[str] = None
    transaction_id: Optional[str] = None
    ghl_contact_id: Optional[str] = None

    openai_prompt: Optional[str] = None
    script_generated: Optional[str] = None
    openai_model: Optional[str] = None
    openai_request_id: Optional[str] = None
    openai_tokens_used: Optional[int] = None
    used_fallback_script: bool = False

    elevenlabs_voice_id: Optional[str] = None
    elevenlabs_request_id: Optional[str] = None
    audio_url: Optional[str] = None
    audio_path: Optional[str] = None
    audio_duration_seconds: Optional[int] = None

    ghl_custom_field_audio_url: Optional[str] = None
    ghl_custom_field_script: Optional[str] = None
    crm_synced_at: Optional[str] = None

    error_message: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    completed_at: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        """A completed job with a published audio URL."""
        return self.status == JobStatus.COMPLETED and bool(self.audio_url)

    @classmethod
    def start_run(
        cls,
        survey_response_id: str,
        email: Optional[str],
        user_id: Optional[str] = None,
        transaction_id: Optional[str] = None,
        ghl_contact_id: Optional[str] = None
    ) -> "AudioJob":
        """Fresh record for a run that is about to claim the survey response."""
        now = utc_now_iso()
        return cls(
            survey_response_id=survey_response_id,
            email=email,
            status=JobStatus.PROCESSING,
            user_id=user_id,
            transaction_id=transaction_id,
            ghl_contact_id=ghl_contact_id,
            created_at=now,
            updated_at=now
        )
