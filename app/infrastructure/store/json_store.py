from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from app.application.exceptions import StorageError
from app.application.utils.date_parser import normalize_time
from app.domain.entities.booking import Booking, BookingStatus, PaymentDetails, UserDetails
from app.domain.entities.slot import Slot
from app.infrastructure.store.memory_store import MemoryBookingStore, MemorySlotStore

logger = logging.getLogger(__name__)


def _read_json(file_path: Path) -> Any | None:
    """Load a JSON document; None if the file does not exist yet."""
    if not file_path.exists():
        return None
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        raise StorageError(f"Cannot read {file_path.name}: {e}") from e


def _write_json(file_path: Path, data: Any) -> None:
    """Save a JSON document atomically (temp file + rename)."""
    temp_path = file_path.with_suffix(".json.tmp")

    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        temp_path.replace(file_path)
    except (OSError, TypeError, ValueError) as e:
        if temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                logger.warning("Could not remove temp file", extra={"reason": str(temp_path)})
        raise StorageError(f"Cannot write {file_path.name}: {e}") from e


def serialize_slot(slot: Slot) -> dict[str, Any]:
    return {
        "id": slot.id,
        "date": slot.date,
        "time": slot.time,
        "available": slot.available,
    }


def deserialize_slot(data: dict[str, Any]) -> Slot:
    # Older files stored un-padded times such as "9:00"
    raw_time = str(data.get("time", ""))
    return Slot(
        id=str(data["id"]),
        date=str(data["date"]),
        time=normalize_time(raw_time) or raw_time,
        available=bool(data.get("available", True)),
    )


def serialize_booking(booking: Booking) -> dict[str, Any]:
    result: dict[str, Any] = {
        "id": booking.id,
        "slotId": booking.slot_id,
        "date": booking.date,
        "time": booking.time,
        "userDetails": {
            "userName": booking.user_details.user_name,
            "userEmail": booking.user_details.user_email,
            "userNumber": booking.user_details.user_number,
        },
        "status": booking.status.value,
        "createdAt": booking.created_at,
    }

    if booking.payment_details is not None:
        payment = booking.payment_details
        result["paymentDetails"] = {
            "amount": payment.amount,
            "currency": payment.currency,
            "paymentId": payment.payment_id,
            "paymentStatus": payment.payment_status,
            "paidAt": payment.paid_at,
            "sessionId": payment.session_id,
        }
    if booking.confirmed_at is not None:
        result["confirmedAt"] = booking.confirmed_at
    if booking.cancelled_at is not None:
        result["cancelledAt"] = booking.cancelled_at

    return result


def deserialize_booking(data: dict[str, Any]) -> Booking:
    user = data.get("userDetails") or {}
    payment = data.get("paymentDetails")

    payment_details = None
    if payment:
        payment_details = PaymentDetails(
            amount=payment.get("amount", 0),
            currency=payment.get("currency", ""),
            payment_id=payment.get("paymentId"),
            payment_status=payment.get("paymentStatus", ""),
            paid_at=payment.get("paidAt", ""),
            session_id=payment.get("sessionId"),
        )

    raw_time = str(data.get("time", ""))
    return Booking(
        id=str(data["id"]),
        slot_id=str(data["slotId"]),
        date=str(data.get("date", "")),
        time=normalize_time(raw_time) or raw_time,
        user_details=UserDetails(
            user_name=user.get("userName", ""),
            user_email=user.get("userEmail", ""),
            user_number=user.get("userNumber", ""),
        ),
        status=BookingStatus(data.get("status", BookingStatus.PENDING_PAYMENT.value)),
        payment_details=payment_details,
        created_at=data.get("createdAt"),
        confirmed_at=data.get("confirmedAt"),
        cancelled_at=data.get("cancelledAt"),
    )


class JsonSlotStore(MemorySlotStore):
    """Slots persisted as a JSON array in <data_dir>/slots.json, rewritten on every change."""

    def __init__(self, data_dir: str, slot_factory: Callable[[], list[Slot]]) -> None:
        super().__init__(slot_factory=slot_factory)
        self._file_path = Path(data_dir) / "slots.json"

    def _load(self) -> list[Slot]:
        data = _read_json(self._file_path)
        if data is None:
            slots = self._slot_factory()
            _write_json(self._file_path, [serialize_slot(s) for s in slots])
            self._logger.info("Generated default slots", extra={"reason": f"count={len(slots)}"})
            return slots

        if not isinstance(data, list):
            raise StorageError(f"{self._file_path.name} must contain a JSON array")
        try:
            return [deserialize_slot(item) for item in data]
        except (KeyError, TypeError) as e:
            raise StorageError(f"Malformed slot record in {self._file_path.name}: {e}") from e

    def _persist(self, slots: list[Slot]) -> None:
        _write_json(self._file_path, [serialize_slot(s) for s in slots])


class JsonBookingStore(MemoryBookingStore):
    """Bookings persisted as a JSON object (id -> record) in <data_dir>/bookings.json."""

    def __init__(self, data_dir: str, clock: Callable[[], datetime] | None = None) -> None:
        super().__init__(clock=clock)
        self._file_path = Path(data_dir) / "bookings.json"

    def _load(self) -> dict[str, Booking]:
        data = _read_json(self._file_path)
        if data is None:
            _write_json(self._file_path, {})
            return {}

        if not isinstance(data, dict):
            raise StorageError(f"{self._file_path.name} must contain a JSON object")
        try:
            return {booking_id: deserialize_booking(item) for booking_id, item in data.items()}
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError(f"Malformed booking record in {self._file_path.name}: {e}") from e

    def _persist(self, bookings: dict[str, Booking]) -> None:
        _write_json(self._file_path, {booking_id: serialize_booking(b) for booking_id, b in bookings.items()})
