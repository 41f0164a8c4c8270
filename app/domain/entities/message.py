from dataclasses import dataclass


@dataclass(frozen=True)
class Message:
    id: str
    sender_id: str  # WhatsApp number of the sender
    type: str  # "text" | "audio" | "voice"
    timestamp: int
    platform: str
    text: str | None = None
    media_id: str | None = None
    profile_name: str = "Customer"

    @property
    def is_voice(self) -> bool:
        return self.type in ("audio", "voice")
