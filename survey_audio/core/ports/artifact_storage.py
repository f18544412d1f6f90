"""
Artifact storage port for published audio files.
"""
from abc import ABC, abstractmethod
from typing import Optional

from survey_audio.core.models.generation import StoredArtifact


class ArtifactStoragePort(ABC):

    @abstractmethod
    async def check_health(self) -> bool:
        """Return True when the audio bucket is reachable and writable."""
        pass

    @abstractmethod
    async def store_audio(
        self,
        audio: bytes,
        user_id: Optional[str],
        email: str,
        content_type: str
    ) -> StoredArtifact:
        """
        Write a new audio object under a per-user, timestamped path.

        Never overwrites an existing object.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def read_audio(self, path: str) -> bytes:
        """
        Raises:
            StorageError: If the object is missing or unreadable
        """
        pass
