from __future__ import annotations

from abc import ABC, abstractmethod

from app.domain.entities.slot import AvailableDate, Slot


class SlotStorePort(ABC):
    @abstractmethod
    def all(self) -> list[Slot]:
        """Snapshot of every slot in store order."""
        raise NotImplementedError

    @abstractmethod
    def list_available(self) -> list[Slot]:
        raise NotImplementedError

    @abstractmethod
    def list_available_grouped_by_date(self) -> list[AvailableDate]:
        """
        Available slots grouped by date.
        Dates keep the order of their first occurrence, times keep store order.
        """
        raise NotImplementedError

    @abstractmethod
    def get(self, slot_id: str) -> Slot | None:
        raise NotImplementedError

    @abstractmethod
    def find(self, date: str, time: str) -> Slot | None:
        """Find the slot at an exact normalized (date, time), regardless of availability."""
        raise NotImplementedError

    @abstractmethod
    def set_availability(self, slot_id: str, available: bool) -> None:
        """
        Idempotent. Unknown slot ids are ignored.
        Durably written before returning; raises StorageError if the write fails.
        """
        raise NotImplementedError
