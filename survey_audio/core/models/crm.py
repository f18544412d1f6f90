"""
CRM value objects.
"""
from dataclasses import dataclass, field
from typing import List, Optional


AUDIO_URL_FIELD = "audio_url"
SCRIPT_FIELD = "script"


@dataclass(frozen=True)
class CustomFieldBinding:
    """
    Logical field name -> provider-internal field id.

    Lives for one invocation only. field_id is None when the definition
    listing had no matching field, in which case writes fall back to the key.
    """

    logical_name: str
    field_key: str
    field_id: Optional[str] = None
    field_name: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return bool(self.field_id)


@dataclass
class CrmUpdateResult:
    contact_id: str
    fields_written: List[str] = field(default_factory=list)
    unresolved_fields: List[str] = field(default_factory=list)
    unverified_fields: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.unresolved_fields and not self.unverified_fields


@dataclass
class MessageDeliveryResult:
    contact_id: str
    message_id: str
    method: str
    attachment_url: str
    attempts: List[dict] = field(default_factory=list)
