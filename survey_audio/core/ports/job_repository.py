"""
Job repository port.

The store enforces at most one job record per survey response; claim() is
the only way a run acquires it.
"""
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional

from survey_audio.core.models.audio_job import AudioJob


class JobRepositoryPort(ABC):

    @abstractmethod
    async def get(self, survey_response_id: str) -> Optional[AudioJob]:
        """Get the job record of a survey response (strongly consistent)."""
        pass

    @abstractmethod
    async def claim(self, job: AudioJob, force: bool, lease_seconds: int) -> bool:
        """
        Atomically upsert the job record with status=processing.

        Succeeds when no record exists, when the existing record is pending
        or failed, when it is completed and force is set, or when it is
        processing but its lease expired.

        Returns:
            True when this run now owns the record, False when the
            conditional write lost against the current record

        Raises:
            RepositoryError: On any other persistence failure
        """
        pass

    @abstractmethod
    async def update(self, survey_response_id: str, fields: Dict[str, Any]) -> None:
        """Set the given attributes on an existing record and refresh updated_at."""
        pass

    @abstractmethod
    async def find_latest_completed_by_email(self, email: str) -> Optional[AudioJob]:
        pass
