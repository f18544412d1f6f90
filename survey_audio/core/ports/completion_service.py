"""
LLM completion service port.
"""
from abc import ABC, abstractmethod

from survey_audio.core.models.generation import CompletionResult


class CompletionServicePort(ABC):

    @abstractmethod
    async def complete(self, prompt: str) -> CompletionResult:
        """
        Run one completion for a single user prompt.

        Returns:
            CompletionResult, possibly with empty text

        Raises:
            CompletionProviderError: On provider, timeout or schema failure
        """
        pass
