"""
GoHighLevel CRM adapter.

Contact search, custom field resolution, contact update and the
conversation messaging calls used by the audio pipeline.
"""
import asyncio
from typing import Any, Dict, List, Optional, Type

import requests
from pydantic import BaseModel, ValidationError

from survey_audio.config.settings import Settings
from survey_audio.core.exceptions import CrmPropagationError, CrmSchemaError
from survey_audio.core.models.crm import CustomFieldBinding, CrmUpdateResult
from survey_audio.core.ports.crm_service import CrmServicePort
from survey_audio.infrastructure.logging.log_config import get_logger
from survey_audio.infrastructure.logging.log_decorators import log_operation, op_config
from survey_audio.schemas.providers import (
    AttachmentUploadResponse,
    ContactUpdateResponse,
    CustomFieldDefinition,
    CustomFieldListResponse,
    DuplicateContactResponse,
    MessageSendResponse,
)


logger = get_logger("GhlCrmService")

PAYLOAD_EXCERPT_CHARS = 500


def match_custom_field(definitions: List[CustomFieldDefinition], target_key: str) -> Optional[CustomFieldDefinition]:
    """
    Find the definition for a logical field key.

    An exact key match wins; otherwise the first definition whose key or
    name contains the target.
    """
    target = target_key.lower()
    for definition in definitions:
        if definition.normalized_key == target:
            return definition
    for definition in definitions:
        if target in definition.normalized_key or target in definition.normalized_name:
            return definition
    return None


class GhlCrmService(CrmServicePort):
    """
    CRM adapter for the GoHighLevel v2 API.
    """

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()
        self.base_url = settings.ghl_api_base.rstrip('/')

    def _headers(self, version: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.settings.ghl_api_key}",
            "Version": version,
            "Accept": "application/json"
        }

    async def _request(self, method: str, path: str, operation: str, version: Optional[str] = None, **kwargs) -> Any:
        if not self.settings.ghl_api_key:
            raise CrmPropagationError("GoHighLevel API key is not configured", error_code="CRM_NOT_CONFIGURED")

        url = f"{self.base_url}{path}"
        headers = self._headers(version or self.settings.ghl_contacts_api_version)
        try:
            response = await asyncio.to_thread(
                self.session.request,
                method,
                url,
                headers=headers,
                timeout=self.settings.ghl_timeout_seconds,
                **kwargs
            )
        except requests.RequestException as e:
            raise CrmPropagationError(
                f"GoHighLevel {operation} request failed: {str(e)}",
                error_code="CRM_UNREACHABLE",
                details={"operation": operation}
            )

        if not response.ok:
            raise CrmPropagationError(
                f"GoHighLevel {operation} returned HTTP {response.status_code}",
                error_code="CRM_HTTP_ERROR",
                details={
                    "operation": operation,
                    "status_code": response.status_code,
                    "body": response.text[:PAYLOAD_EXCERPT_CHARS]
                }
            )

        try:
            return response.json()
        except ValueError:
            raise CrmSchemaError(
                f"GoHighLevel {operation} returned a non-JSON body",
                details={
                    "operation": operation,
                    "status_code": response.status_code,
                    "body": response.text[:PAYLOAD_EXCERPT_CHARS]
                }
            )

    @staticmethod
    def _decode(model: Type[BaseModel], payload: Any, operation: str):
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise CrmSchemaError(
                f"GoHighLevel {operation} response did not match the expected schema",
                details={
                    "operation": operation,
                    "errors": e.errors(include_url=False)[:5],
                    "body": str(payload)[:PAYLOAD_EXCERPT_CHARS]
                }
            )

    @log_operation("ghl_find_contact", **op_config(args=False))
    async def find_contact_by_email(self, email: str) -> Optional[str]:
        payload = await self._request(
            "GET", "/contacts/search/duplicate", "contact search",
            params={"locationId": self.settings.ghl_location_id, "email": email}
        )
        result = self._decode(DuplicateContactResponse, payload, "contact search")
        return result.contact.id if result.contact else None

    @log_operation("ghl_resolve_custom_fields")
    async def resolve_custom_fields(self) -> Dict[str, CustomFieldBinding]:
        payload = await self._request(
            "GET", f"/locations/{self.settings.ghl_location_id}/customFields", "custom field listing",
            params={"model": "contact"}
        )
        definitions = self._decode(CustomFieldListResponse, payload, "custom field listing").custom_fields

        bindings: Dict[str, CustomFieldBinding] = {}
        for logical_name, field_key in self.settings.crm_field_keys.items():
            definition = match_custom_field(definitions, field_key)
            if definition is None:
                logger.warning("CRM custom field not found, will write by key", extra={"extra_fields": {
                    "logical_name": logical_name,
                    "field_key": field_key,
                    "definitions_listed": len(definitions)
                }})
                bindings[logical_name] = CustomFieldBinding(logical_name, field_key)
            else:
                bindings[logical_name] = CustomFieldBinding(
                    logical_name, field_key, field_id=definition.id, field_name=definition.name
                )
        return bindings

    def fallback_bindings(self) -> Dict[str, CustomFieldBinding]:
        return {
            logical_name: CustomFieldBinding(logical_name, field_key)
            for logical_name, field_key in self.settings.crm_field_keys.items()
        }

    @log_operation("ghl_update_audio_fields", **op_config(args=False))
    async def update_audio_fields(
        self,
        contact_id: str,
        audio_url: str,
        script: str,
        bindings: Dict[str, CustomFieldBinding]
    ) -> CrmUpdateResult:
        values = {"audio_url": audio_url, "script": script}
        bindings = {**self.fallback_bindings(), **bindings}

        custom_fields = []
        for logical_name, value in values.items():
            binding = bindings[logical_name]
            if binding.resolved:
                custom_fields.append({"id": binding.field_id, "field_value": value})
            else:
                custom_fields.append({"key": binding.field_key, "field_value": value})

        payload = await self._request(
            "PUT", f"/contacts/{contact_id}", "contact update",
            json={"customFields": custom_fields}
        )
        response = self._decode(ContactUpdateResponse, payload, "contact update")

        # Only verify when the response echoes the contact's custom fields
        echoed: Optional[Dict[str, Any]] = None
        if response.contact and response.contact.custom_fields is not None:
            echoed = {field.id: field.value for field in response.contact.custom_fields}

        result = CrmUpdateResult(contact_id=contact_id)
        for logical_name, value in values.items():
            binding = bindings[logical_name]
            result.fields_written.append(logical_name)
            if not binding.resolved:
                result.unresolved_fields.append(logical_name)
            elif echoed is not None and echoed.get(binding.field_id) != value:
                result.unverified_fields.append(logical_name)

        if result.unresolved_fields:
            raise CrmPropagationError(
                "Contact updated by field key; custom fields could not be resolved",
                error_code="CRM_FIELDS_UNRESOLVED",
                details={
                    "contact_id": contact_id,
                    "unresolved_fields": result.unresolved_fields,
                    "field_keys": [bindings[name].field_key for name in result.unresolved_fields]
                }
            )
        if result.unverified_fields:
            raise CrmPropagationError(
                "Contact update was accepted but the written values were not applied",
                error_code="CRM_WRITE_NOT_APPLIED",
                details={"contact_id": contact_id, "unverified_fields": result.unverified_fields}
            )
        return result

    @log_operation("ghl_upload_attachment", **op_config(args=False))
    async def upload_attachment(self, contact_id: str, audio: bytes, filename: str, content_type: str) -> str:
        payload = await self._request(
            "POST", "/conversations/messages/upload", "attachment upload",
            version=self.settings.ghl_conversations_api_version,
            data={"contactId": contact_id},
            files={"fileAttachment": (filename, audio, content_type)}
        )
        uploaded = self._decode(AttachmentUploadResponse, payload, "attachment upload").uploaded_files
        if not uploaded:
            raise CrmSchemaError(
                "GoHighLevel attachment upload returned no file URL",
                details={"operation": "attachment upload", "body": str(payload)[:PAYLOAD_EXCERPT_CHARS]}
            )
        return next(iter(uploaded.values()))

    @log_operation("ghl_send_audio_message", **op_config(args=True))
    async def send_audio_message(self, contact_id: str, attachment_url: str, message_type: Optional[str] = "Audio") -> str:
        body: Dict[str, Any] = {
            "type": self.settings.ghl_message_channel,
            "contactId": contact_id,
            "attachments": [attachment_url]
        }
        if message_type:
            body["messageType"] = message_type

        payload = await self._request(
            "POST", "/conversations/messages", "message send",
            version=self.settings.ghl_conversations_api_version,
            json=body
        )
        return self._decode(MessageSendResponse, payload, "message send").message_id
