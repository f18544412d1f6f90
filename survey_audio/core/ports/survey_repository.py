"""
Survey repository port.
"""
from abc import ABC, abstractmethod
from typing import Optional

from survey_audio.core.models.survey_response import SurveyResponse


class SurveyRepositoryPort(ABC):
    """Read-only access to survey responses written by the intake process."""

    @abstractmethod
    async def find_latest(
        self,
        email: Optional[str] = None,
        transaction_id: Optional[str] = None
    ) -> Optional[SurveyResponse]:
        """
        Find the most recent survey response.

        The transaction id is preferred when both keys are given.

        Returns:
            The newest matching survey response, or None

        Raises:
            RepositoryError: If the store cannot be queried
        """
        pass
