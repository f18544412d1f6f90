"""
Non-blocking notification port.

Kept outside the pipeline error taxonomy: delivery problems are logged by
the implementation and never reach the caller.
"""
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Any


class PipelineEvent(str, Enum):
    AUDIO_COMPLETED = "audio_completed"
    AUDIO_FAILED = "audio_failed"
    CRM_SYNC_FAILED = "crm_sync_failed"


class NotifierPort(ABC):

    @abstractmethod
    def notify(self, event: PipelineEvent, payload: Dict[str, Any]) -> None:
        """Schedule delivery and return immediately."""
        pass

    @abstractmethod
    async def drain(self, timeout: float) -> None:
        """Wait up to timeout seconds for scheduled deliveries to finish."""
        pass
