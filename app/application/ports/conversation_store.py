from abc import ABC, abstractmethod
from typing import Any


class ConversationStorePort(ABC):
    """Chat history per WhatsApp user; thread_id is the sender's number."""

    @abstractmethod
    def get_history(self, thread_id: str) -> list[dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def append_message(self, thread_id: str, role: str, text: str, meta: dict[str, Any] | None = None) -> None:
        raise NotImplementedError

    @abstractmethod
    def has_processed(self, message_id: str) -> bool:
        """True if this WhatsApp message id was already handled (webhooks are redelivered)."""
        raise NotImplementedError

    @abstractmethod
    def mark_processed(self, message_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def get_recent_messages(self, thread_id: str, limit: int = 10) -> list[dict[str, Any]]:
        """Last `limit` entries of the history, oldest first, as {"role", "content", "meta"} dicts."""
        raise NotImplementedError
