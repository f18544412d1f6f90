"""
Core domain models for the survey audio pipeline.
"""
from .survey_response import SurveyResponse, ContactProfile, DIAGNOSTIC_DIMENSIONS
from .audio_job import AudioJob, JobStatus
from .crm import CustomFieldBinding, CrmUpdateResult, MessageDeliveryResult, AUDIO_URL_FIELD, SCRIPT_FIELD
from .generation import CompletionResult, ScriptResult, SpeechResult, StoredArtifact

__all__ = [
    "SurveyResponse",
    "ContactProfile",
    "DIAGNOSTIC_DIMENSIONS",
    "AudioJob",
    "JobStatus",
    "CustomFieldBinding",
    "CrmUpdateResult",
    "MessageDeliveryResult",
    "AUDIO_URL_FIELD",
    "SCRIPT_FIELD",
    "CompletionResult",
    "ScriptResult",
    "SpeechResult",
    "StoredArtifact",
]
