from __future__ import annotations

import logging

from openai import OpenAI

from app.application.exceptions import LLMUpstreamError
from app.application.ports.transcriber import TranscriberPort


class OpenAITranscriber(TranscriberPort):
    def __init__(self, api_key: str, model: str = "whisper-1", client: OpenAI | None = None) -> None:
        self.client = client or OpenAI(api_key=api_key, timeout=30.0, max_retries=3)
        self._model = model
        self._logger = logging.getLogger(__name__)

    def transcribe(self, audio: bytes, filename: str = "voice.ogg") -> str | None:
        if not audio:
            return None
        try:
            result = self.client.audio.transcriptions.create(
                model=self._model,
                file=(filename, audio),
            )
        except Exception as e:
            raise LLMUpstreamError(f"OpenAI transcription error: {e}") from e

        text = (getattr(result, "text", "") or "").strip()
        return text or None
