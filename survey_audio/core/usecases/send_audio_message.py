"""
Send audio message use case.

Pushes an already generated audio to the contact as a WhatsApp message.
Never invoked by the generation pipeline. The messaging channel only
accepts free-form messages inside its 24 hour session window; that is
respected operationally by the caller, not checked here.
"""
import posixpath
from typing import List, Optional, Tuple

from survey_audio.core.exceptions import InvalidRequest, NotFound, CrmPropagationError
from survey_audio.core.models.crm import MessageDeliveryResult
from survey_audio.core.ports.artifact_storage import ArtifactStoragePort
from survey_audio.core.ports.crm_service import CrmServicePort
from survey_audio.core.ports.job_repository import JobRepositoryPort
from survey_audio.infrastructure.logging.log_config import get_logger


logger = get_logger("SendAudioMessageUseCase")


AUDIO_CONTENT_TYPES = {
    ".ogg": "audio/ogg",
    ".opus": "audio/ogg",
    ".mp3": "audio/mpeg",
}


def detect_content_type(path: str) -> str:
    extension = posixpath.splitext(path)[1].lower()
    return AUDIO_CONTENT_TYPES.get(extension, "audio/mpeg")


class SendAudioMessageUseCase:
    """
    Deliver the newest completed audio of a contact.

    Delivery attempts, in order:
    1. CRM-hosted attachment sent as an audio message
    2. Public storage URL sent as an audio message
    3. CRM-hosted attachment sent as a plain attachment
    """

    def __init__(
        self,
        job_repository: JobRepositoryPort,
        artifact_storage: ArtifactStoragePort,
        crm_service: CrmServicePort
    ):
        self.job_repository = job_repository
        self.artifact_storage = artifact_storage
        self.crm_service = crm_service

    async def execute(self, contact_id: str, email: str) -> MessageDeliveryResult:
        """
        Raises:
            InvalidRequest: Missing contact id or email
            NotFound: No completed audio for the email
            StorageError: Stored audio cannot be read
            CrmPropagationError: Every delivery attempt failed
        """
        contact_id = (contact_id or "").strip()
        email = (email or "").strip()
        if not contact_id or not email:
            raise InvalidRequest("contact_id and email are required", error_code="MISSING_IDENTIFIER")

        job = await self.job_repository.find_latest_completed_by_email(email)
        if job is None or not job.audio_url or not job.audio_path:
            raise NotFound("No completed audio found for this email", error_code="AUDIO_NOT_FOUND")

        audio = await self.artifact_storage.read_audio(job.audio_path)
        content_type = detect_content_type(job.audio_path)
        filename = posixpath.basename(job.audio_path)

        attempts: List[dict] = []
        hosted_url: Optional[str] = None
        try:
            hosted_url = await self.crm_service.upload_attachment(contact_id, audio, filename, content_type)
        except CrmPropagationError as e:
            attempts.append(self._attempt("upload_attachment", e))
            logger.warning("Attachment upload failed, falling back to storage URL", extra={"extra_fields": {
                "contact_id": contact_id,
                "error_code": e.error_code,
                "provider_status": e.details.get("status_code")
            }})

        plan: List[Tuple[str, str, Optional[str]]] = []
        if hosted_url:
            plan.append(("uploaded_audio", hosted_url, "Audio"))
        plan.append(("storage_url_audio", job.audio_url, "Audio"))
        if hosted_url:
            plan.append(("uploaded_attachment", hosted_url, None))

        for method, url, message_type in plan:
            try:
                message_id = await self.crm_service.send_audio_message(contact_id, url, message_type)
            except CrmPropagationError as e:
                attempts.append(self._attempt(method, e))
                logger.warning("Audio message attempt failed", extra={"extra_fields": {
                    "contact_id": contact_id,
                    "method": method,
                    "error_code": e.error_code,
                    "provider_status": e.details.get("status_code")
                }})
                continue

            logger.info("Audio message sent", extra={"extra_fields": {
                "contact_id": contact_id,
                "survey_response_id": job.survey_response_id,
                "method": method,
                "message_id": message_id
            }})
            return MessageDeliveryResult(
                contact_id=contact_id,
                message_id=message_id,
                method=method,
                attachment_url=url,
                attempts=attempts
            )

        raise CrmPropagationError(
            "All audio message delivery attempts failed",
            error_code="MESSAGE_DELIVERY_FAILED",
            details={"attempts": attempts}
        )

    @staticmethod
    def _attempt(method: str, error: CrmPropagationError) -> dict:
        return {
            "method": method,
            "error_code": error.error_code,
            "error": error.message,
            "status_code": error.details.get("status_code")
        }
