"""
Speech synthesis port.
"""
from abc import ABC, abstractmethod

from survey_audio.core.models.generation import SpeechResult


class SpeechSynthesisPort(ABC):
    """
    Port (interface) for text-to-speech.

    Implementations use a fixed voice and fixed voice shaping parameters.
    """

    @property
    @abstractmethod
    def voice_id(self) -> str:
        pass

    @abstractmethod
    async def synthesize(self, text: str) -> SpeechResult:
        """
        Synthesize validated, sanitized text.

        Returns:
            SpeechResult with the raw audio payload and an estimated duration

        Raises:
            SynthesisError: On non-success status, timeout or empty payload
        """
        pass
