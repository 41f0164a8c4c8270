from __future__ import annotations

from datetime import datetime

import pytest

from app.application.use_cases.booking_lifecycle import BookingLifecycleManager
from app.application.utils.slot_generator import generate_default_slots
from app.core.config import settings
from app.infrastructure.payments.mock_payments import MockPayments
from app.infrastructure.store.memory_store import MemoryBookingStore, MemoryFieldStore, MemorySlotStore

# Evening of 2024-01-09: today is already closed, so slots start on 2024-01-10.
NOW = datetime(2024, 1, 9, 18, 0)


def fixed_slots():
    return generate_default_slots(now=NOW, days_ahead=3)


@pytest.fixture(autouse=True)
def _dev_settings(monkeypatch):
    monkeypatch.setattr(settings, "ENV", "dev")
    monkeypatch.setattr(settings, "AUTO_REPLY_ENABLED", True)


@pytest.fixture
def slots():
    return MemorySlotStore(slot_factory=fixed_slots)


@pytest.fixture
def bookings():
    return MemoryBookingStore()


@pytest.fixture
def payments():
    return MockPayments(base_url="http://test")


@pytest.fixture
def fields():
    return MemoryFieldStore()


@pytest.fixture
def lifecycle(slots, bookings, payments, fields):
    return BookingLifecycleManager(
        slots=slots,
        bookings=bookings,
        payments=payments,
        fields=fields,
        price=50,
        currency="usd",
    )
