from __future__ import annotations

import logging

from app.application.ports.message_platform import MessagePlatformPort


class MockWhatsAppPlatform(MessagePlatformPort):
    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self._logger = logging.getLogger(__name__)

    def send_text(self, recipient_id: str, text: str) -> None:
        self.sent.append((recipient_id, text))
        self._logger.info(
            "Mock send to WhatsApp", extra={"user_number": recipient_id, "reply_text": text}
        )

    def download_media(self, media_id: str) -> bytes:
        self._logger.info("Mock media download", extra={"reason": media_id})
        return b""
