from __future__ import annotations

import pytest

from app.application.use_cases.booking_tools import SINGLE_SHOT, STEPWISE, BookingTools
from app.domain.entities.booking import BookingStatus
from app.infrastructure.llm.mock_agent import MockBookingAgent

USER = "15551234567"


@pytest.fixture
def agent(lifecycle, fields):
    return MockBookingAgent(BookingTools(lifecycle, fields, mode=STEPWISE))


def _say(agent, text):
    return agent.reply(user_number=USER, user_name="Jane", text=text, history=[])


def test_requires_stepwise_tools(lifecycle, fields):
    with pytest.raises(ValueError):
        MockBookingAgent(BookingTools(lifecycle, fields, mode=SINGLE_SHOT))


def test_full_conversation_books_a_slot(agent, lifecycle):
    greeting = _say(agent, "Hi there")
    summary = _say(agent, "2024-01-10 at 9am, my name is Jane Doe, jane@example.com")
    reserved = _say(agent, "yes")

    assert "2024-01-10: 09:00" in greeting
    assert summary == "Please confirm: 2024-01-10 at 09:00 for Jane Doe (jane@example.com). Reply 'yes' to book."
    assert "Please complete payment here: http://test/mock-checkout/" in reserved
    [booking] = lifecycle.list_bookings_by_user(USER)
    assert booking.status == BookingStatus.PENDING_PAYMENT
    assert booking.user_details.user_name == "Jane Doe"


def test_asks_for_missing_fields(agent):
    reply = _say(agent, "I want 2024-01-10 at 10:00")

    assert reply == "Thanks! Please tell me your full name and your email address."


def test_lists_and_cancels_bookings(agent):
    _say(agent, "2024-01-10 at 9am, my name is Jane Doe, jane@example.com")
    _say(agent, "confirm")
    listing = _say(agent, "show my bookings")
    booking_id = listing.split("- ", 1)[1].split(":", 1)[0]

    cancelled = _say(agent, f"please cancel {booking_id}")

    assert "(pending_payment)" in listing
    assert cancelled == f"Booking {booking_id} has been cancelled."
