"""
Mapper between AudioJob entities and DynamoDB items.
"""
from dataclasses import fields
from decimal import Decimal
from enum import Enum
from typing import Dict, Any

from survey_audio.core.models.audio_job import AudioJob, JobStatus


_INT_FIELDS = {"audio_duration_seconds", "openai_tokens_used"}


def to_dynamodb_value(value: Any) -> Any:
    """Convert Python values into types boto3 can serialize."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamodb_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_dynamodb_value(v) for v in value]
    return value


def from_dynamodb_value(value: Any) -> Any:
    """Convert DynamoDB Decimals back to int or float."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_dynamodb_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamodb_value(v) for v in value]
    return value


class AudioJobMapper:

    @staticmethod
    def to_item(job: AudioJob) -> Dict[str, Any]:
        """None values are left out so sparse indexes stay sparse."""
        item = {}
        for field in fields(AudioJob):
            value = getattr(job, field.name)
            if value is None:
                continue
            item[field.name] = to_dynamodb_value(value)
        return item

    @staticmethod
    def from_item(item: Dict[str, Any]) -> AudioJob:
        known = {field.name for field in fields(AudioJob)}
        data = {key: from_dynamodb_value(value) for key, value in item.items() if key in known}
        data["status"] = JobStatus(data.get("status", JobStatus.PENDING.value))
        for name in _INT_FIELDS:
            if data.get(name) is not None:
                data[name] = int(data[name])
        data["used_fallback_script"] = bool(data.get("used_fallback_script", False))
        return AudioJob(**data)
