"""
CRM service port.

The CRM's contact update silently accepts unknown custom field keys, so
field ids are resolved by listing definitions before every write.
"""
from abc import ABC, abstractmethod
from typing import Dict, Optional

from survey_audio.core.models.crm import CustomFieldBinding, CrmUpdateResult


class CrmServicePort(ABC):

    @abstractmethod
    async def find_contact_by_email(self, email: str) -> Optional[str]:
        """
        Returns:
            The contact id, or None when no contact has that email

        Raises:
            CrmPropagationError: If the search call fails
        """
        pass

    @abstractmethod
    async def resolve_custom_fields(self) -> Dict[str, CustomFieldBinding]:
        """
        Resolve the logical audio fields against the account's field definitions.

        Returns:
            Binding per logical field; unmatched fields carry no field id

        Raises:
            CrmPropagationError: If the definitions cannot be listed
        """
        pass

    @abstractmethod
    def fallback_bindings(self) -> Dict[str, CustomFieldBinding]:
        """Unresolved bindings that write by logical key."""
        pass

    @abstractmethod
    async def update_audio_fields(
        self,
        contact_id: str,
        audio_url: str,
        script: str,
        bindings: Dict[str, CustomFieldBinding]
    ) -> CrmUpdateResult:
        """
        Write the audio URL and script into the contact's custom fields.

        The write is always attempted. Fields written by key or not echoed
        back with the written value are reported as degraded.

        Raises:
            CrmPropagationError: If the write fails or is degraded
        """
        pass

    @abstractmethod
    async def upload_attachment(self, contact_id: str, audio: bytes, filename: str, content_type: str) -> str:
        """Upload a conversation attachment and return its CRM-hosted URL."""
        pass

    @abstractmethod
    async def send_audio_message(self, contact_id: str, attachment_url: str, message_type: Optional[str] = "Audio") -> str:
        """Send an audio message to the contact and return the message id."""
        pass
