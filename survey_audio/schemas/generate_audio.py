"""
Request and response schemas for the audio endpoints.
"""
from typing import Optional, Dict, Any

from pydantic import BaseModel, Field, field_validator

from survey_audio.core.usecases.generate_audio import GenerateAudioCommand


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class GenerateAudioRequest(BaseModel):
    """
    Inbound trigger. Either email or transaction_id identifies the survey
    response; the check happens in the use case so a missing key maps to 400.
    """
    email: Optional[str] = Field(None, description="Contact email")
    transaction_id: Optional[str] = Field(None, description="Upstream purchase transaction id")
    ghl_contact_id: Optional[str] = Field(None, description="CRM contact id, looked up by email when absent")
    force: bool = Field(False, description="Regenerate even if a completed audio exists")

    @field_validator("email", "transaction_id", "ghl_contact_id")
    @classmethod
    def strip_blank(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)

    def to_command(self) -> GenerateAudioCommand:
        return GenerateAudioCommand(
            email=self.email,
            transaction_id=self.transaction_id,
            ghl_contact_id=self.ghl_contact_id,
            force=self.force
        )


class GenerateAudioResponse(BaseModel):
    success: bool
    audio_url: Optional[str] = None
    script: Optional[str] = None
    duration_seconds: Optional[int] = None
    processing_time_ms: Optional[int] = None
    cached: Optional[bool] = None
    survey_response_id: Optional[str] = None
    used_fallback_script: Optional[bool] = None
    crm_synced: Optional[bool] = None
    crm_error: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    processing_stages: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class SendAudioMessageRequest(BaseModel):
    contact_id: str = Field(..., min_length=1, description="CRM contact id")
    email: str = Field(..., min_length=3, description="Email the audio was generated for")


class SendAudioMessageResponse(BaseModel):
    success: bool
    message_id: Optional[str] = None
    method: Optional[str] = None
    attachment_url: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    attempts: list = Field(default_factory=list)
