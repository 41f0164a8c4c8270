from __future__ import annotations

import logging

import httpx


class WhatsAppClient:
    """Thin client for the WhatsApp Cloud API (send text, download media)."""

    def __init__(
        self,
        access_token: str,
        phone_number_id: str,
        api_version: str = "v17.0",
        base_url: str = "https://graph.facebook.com",
        http_client: httpx.Client | None = None,
    ) -> None:
        self._access_token = access_token
        self._base_url = f"{base_url.rstrip('/')}/{api_version}"
        self._send_endpoint = f"{self._base_url}/{phone_number_id}/messages"
        self._client = http_client or httpx.Client(timeout=10.0)
        self._logger = logging.getLogger(__name__)

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._access_token}"}

    def send_text(self, to: str, text: str) -> dict:
        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": to,
            "type": "text",
            "text": {"body": text},
        }
        resp = self._client.post(self._send_endpoint, json=payload, headers=self._headers())
        if resp.status_code >= 400:
            try:
                error = resp.json().get("error", {})
                error_code = error.get("code")
                error_message = error.get("message")
            except ValueError:
                error_code = None
                error_message = resp.text

            self._logger.error(
                "WhatsApp send failed",
                extra={
                    "status": resp.status_code,
                    "error_code": error_code,
                    "error": error_message,
                    "user_number": to,
                    "text_length": len(text),
                },
            )
            resp.raise_for_status()
        return resp.json()

    def download_media(self, media_id: str) -> bytes:
        # Media is fetched in two steps: id -> short-lived URL -> bytes.
        info = self._client.get(f"{self._base_url}/{media_id}", headers=self._headers())
        info.raise_for_status()
        media_url = info.json().get("url")
        if not media_url:
            raise ValueError(f"No download URL returned for media {media_id}")

        media = self._client.get(media_url, headers=self._headers())
        media.raise_for_status()
        return media.content
