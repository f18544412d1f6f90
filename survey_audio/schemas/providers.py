"""
Response schemas of the external providers.

Decoding is strict on the fields the pipeline reads (presence and type)
and ignores anything else the provider adds. Adapters translate a
ValidationError into their ProviderSchemaError subclass.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProviderModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# OpenAI chat completion

class ChatMessage(ProviderModel):
    role: str
    content: Optional[str] = None


class ChatChoice(ProviderModel):
    index: int = 0
    message: ChatMessage
    finish_reason: Optional[str] = None


class ChatUsage(ProviderModel):
    total_tokens: Optional[int] = None


class ChatCompletionPayload(ProviderModel):
    id: str
    model: str
    choices: List[ChatChoice] = Field(..., min_length=1)
    usage: Optional[ChatUsage] = None


# ElevenLabs text to speech

class VoiceSettings(ProviderModel):
    stability: float = Field(..., ge=0.0, le=1.0)
    similarity_boost: float = Field(..., ge=0.0, le=1.0)
    style: float = Field(0.0, ge=0.0, le=1.0)
    use_speaker_boost: bool = True


class TextToSpeechRequest(ProviderModel):
    text: str = Field(..., min_length=1)
    model_id: str
    voice_settings: VoiceSettings


# GoHighLevel CRM

class ContactRef(ProviderModel):
    id: str


class DuplicateContactResponse(ProviderModel):
    contact: Optional[ContactRef] = None


class CustomFieldDefinition(ProviderModel):
    id: str
    name: str = ""
    field_key: Optional[str] = Field(None, alias="fieldKey")
    key: Optional[str] = None

    @property
    def normalized_key(self) -> str:
        key = (self.field_key or self.key or "").lower()
        if key.startswith("contact."):
            key = key[len("contact."):]
        return key

    @property
    def normalized_name(self) -> str:
        return "_".join(self.name.lower().split())


class CustomFieldListResponse(ProviderModel):
    custom_fields: List[CustomFieldDefinition] = Field(..., alias="customFields")


class ContactCustomFieldValue(ProviderModel):
    id: str
    value: Any = None


class UpdatedContact(ProviderModel):
    id: str
    custom_fields: Optional[List[ContactCustomFieldValue]] = Field(None, alias="customFields")


class ContactUpdateResponse(ProviderModel):
    succeded: Optional[bool] = None
    contact: Optional[UpdatedContact] = None


class AttachmentUploadResponse(ProviderModel):
    uploaded_files: Dict[str, str] = Field(..., alias="uploadedFiles")


class MessageSendResponse(ProviderModel):
    message_id: str = Field(..., alias="messageId")
    conversation_id: Optional[str] = Field(None, alias="conversationId")
