"""
Outputs of the generation stages.
"""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class CompletionResult:
    text: str
    request_id: Optional[str] = None
    model: Optional[str] = None
    # Absent when the backend does not report usage
    tokens_used: Optional[int] = None


@dataclass(frozen=True)
class ScriptResult:
    text: str
    request_id: Optional[str] = None
    model: Optional[str] = None
    tokens_used: Optional[int] = None
    used_fallback: bool = False


@dataclass(frozen=True)
class SpeechResult:
    audio: bytes
    voice_id: str
    duration_seconds: int
    content_type: str
    request_id: Optional[str] = None


@dataclass(frozen=True)
class StoredArtifact:
    path: str
    public_url: str
    size_bytes: int
    content_type: str
