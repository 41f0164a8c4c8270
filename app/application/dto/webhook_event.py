from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from app.domain.entities.message import Message


class WhatsAppWebhookDTO(BaseModel):
    object: str | None = None
    entry: list[dict[str, Any]] = Field(default_factory=list)

    def extract_messages(self) -> list[Message]:
        messages: list[Message] = []
        for entry in self.entry or []:
            for change in entry.get("changes", []) or []:
                value = change.get("value") or {}
                contacts = value.get("contacts") or []
                names = {
                    str(c.get("wa_id")): (c.get("profile") or {}).get("name")
                    for c in contacts
                    if c.get("wa_id")
                }
                default_name = ((contacts[0].get("profile") or {}).get("name") if contacts else None) or "Customer"

                for msg in value.get("messages", []) or []:
                    mid = msg.get("id")
                    sender = msg.get("from")
                    msg_type = msg.get("type")
                    if not (mid and sender and msg_type):
                        continue

                    media = msg.get("audio") or msg.get("voice") or {}
                    text = (msg.get("text") or {}).get("body")
                    messages.append(
                        Message(
                            id=str(mid),
                            sender_id=str(sender),
                            type=str(msg_type),
                            timestamp=int(msg.get("timestamp") or 0),
                            platform="whatsapp",
                            text=str(text) if text is not None else None,
                            media_id=str(media["id"]) if media.get("id") else None,
                            profile_name=names.get(str(sender)) or default_name,
                        )
                    )

        return messages
