from __future__ import annotations

from abc import ABC, abstractmethod

from app.domain.entities.conversation_fields import BookingField, FieldSnapshot


class FieldStorePort(ABC):
    @abstractmethod
    def save_field(self, user_number: str, field: BookingField, value: str) -> FieldSnapshot:
        raise NotImplementedError

    @abstractmethod
    def get_fields(self, user_number: str) -> FieldSnapshot:
        """Unknown users yield an all-missing snapshot."""
        raise NotImplementedError

    @abstractmethod
    def clear(self, user_number: str) -> None:
        raise NotImplementedError
