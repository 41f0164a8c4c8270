from __future__ import annotations

import logging

from app.application.ports.transcriber import TranscriberPort


class NullTranscriber(TranscriberPort):
    """Used when no speech-to-text provider is configured; nothing is ever recognised."""

    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def transcribe(self, audio: bytes, filename: str = "voice.ogg") -> str | None:
        self._logger.info("Transcription unavailable", extra={"reason": f"bytes={len(audio)}"})
        return None
