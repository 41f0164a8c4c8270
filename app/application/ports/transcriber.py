from abc import ABC, abstractmethod


class TranscriberPort(ABC):
    @abstractmethod
    def transcribe(self, audio: bytes, filename: str = "voice.ogg") -> str | None:
        """Return the transcribed text, or None if nothing could be recognised."""
        raise NotImplementedError
