"""
Error taxonomy of the audio pipeline.

Every error carries a message, a machine-readable error code and a details
dict, plus the HTTP status a caller should see when it ends a request.
"""
from typing import Dict, Any, Optional


class PipelineError(Exception):
    """Base exception for all pipeline failures."""

    http_status: int = 500
    default_error_code: str = "PIPELINE_ERROR"

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """
        Initialize pipeline error.

        Args:
            message: Human-readable error message
            error_code: Specific error code (e.g. 'TTS_HTTP_ERROR')
            details: Additional error details (stage, provider status, payload excerpt)
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "error_code": self.error_code
        }


class InvalidRequest(PipelineError):
    """Neither identifying key was supplied, or a field is malformed."""
    http_status = 400
    default_error_code = "INVALID_REQUEST"


class NotFound(PipelineError):
    """No matching survey response or completed job."""
    http_status = 404
    default_error_code = "NOT_FOUND"


class InvalidScriptLength(PipelineError):
    """Sanitized script is outside the synthesis length window."""
    http_status = 400
    default_error_code = "INVALID_SCRIPT_LENGTH"


class CompletionProviderError(PipelineError):
    """LLM completion failed. Recovered by the fallback script."""
    http_status = 502
    default_error_code = "COMPLETION_FAILED"


class SynthesisError(PipelineError):
    """Text-to-speech failed. Fatal to the job."""
    http_status = 500
    default_error_code = "SYNTHESIS_FAILED"


class StorageError(PipelineError):
    """Object storage failed. Fatal to the job."""
    http_status = 500
    default_error_code = "STORAGE_FAILED"


class CrmPropagationError(PipelineError):
    """CRM search, field resolution, update or messaging failed."""
    http_status = 502
    default_error_code = "CRM_PROPAGATION_FAILED"


class RepositoryError(PipelineError):
    """Job or survey persistence failed."""
    http_status = 500
    default_error_code = "REPOSITORY_ERROR"


class JobInProgress(PipelineError):
    """Another invocation holds the job for this survey response."""
    http_status = 409
    default_error_code = "JOB_IN_PROGRESS"


class ProviderSchemaError(PipelineError):
    """A provider response did not match its declared schema."""
    http_status = 502
    default_error_code = "PROVIDER_SCHEMA_MISMATCH"


class CompletionSchemaError(CompletionProviderError, ProviderSchemaError):
    default_error_code = "COMPLETION_SCHEMA_MISMATCH"


class SynthesisSchemaError(SynthesisError, ProviderSchemaError):
    default_error_code = "TTS_SCHEMA_MISMATCH"


class CrmSchemaError(CrmPropagationError, ProviderSchemaError):
    default_error_code = "CRM_SCHEMA_MISMATCH"
