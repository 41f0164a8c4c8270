from __future__ import annotations

import re
from typing import Any

from app.application.ports.dialogue_agent import DialogueAgentPort
from app.application.use_cases.booking_tools import STEPWISE, BookingTools

_DATE = re.compile(r"\b\d{4}-\d{1,2}-\d{1,2}\b")
_TIME = re.compile(r"\b\d{1,2}(?::\d{2})?\s*(?:am|pm)\b|\b\d{1,2}:\d{2}\b", re.IGNORECASE)
_EMAIL = re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+")
_NAME = re.compile(r"\b(?:my name is|i am|i'm|name:)\s+([a-z][a-z'-]+(?: [a-z][a-z'-]+)?)", re.IGNORECASE)
_BOOKING_ID = re.compile(r"\bbooking_\w+\b")

_FIELD_PROMPTS = {
    "date": "which date you'd like (YYYY-MM-DD)",
    "time": "what time works for you (HH:MM)",
    "userName": "your full name",
    "userEmail": "your email address",
}
_CONFIRM = re.compile(r"\b(?:yes|yeah|confirm|book it|sure|ok|okay)\b")
_RESET_WORDS = ("start over", "reset", "clear")


class MockBookingAgent(DialogueAgentPort):
    """Keyword-driven stand-in for the LLM agent, for local development without an API key."""

    def __init__(self, tools: BookingTools) -> None:
        if tools.mode != STEPWISE:
            raise ValueError("MockBookingAgent needs the stepwise tool set")
        self._tools = tools

    def reply(
        self,
        user_number: str,
        user_name: str,
        text: str,
        history: list[dict[str, Any]],
    ) -> str:
        normalized = text.lower().strip()

        def call(name: str, **args: str) -> dict[str, Any]:
            return self._tools.execute(name, args, user_number=user_number)

        booking_id = _BOOKING_ID.search(text)
        if "cancel" in normalized and booking_id:
            result = call("cancelBooking", bookingId=booking_id.group(0))
            return result["message"]

        if "my bookings" in normalized:
            bookings = call("listMyBookings")["bookings"]
            if not bookings:
                return "You don't have any bookings yet."
            lines = [f"- {b['id']}: {b['date']} {b['time']} ({b['status']})" for b in bookings]
            return "Your bookings:\n" + "\n".join(lines)

        if any(word in normalized for word in _RESET_WORDS):
            return call("clearUserInfo")["message"]

        for field, pattern in (("date", _DATE), ("time", _TIME), ("userEmail", _EMAIL)):
            match = pattern.search(text)
            if match:
                saved = call("saveUserInfo", field=field, value=match.group(0))
                if not saved["success"]:
                    return saved["message"]
        name = _NAME.search(text)
        if name:
            call("saveUserInfo", field="userName", value=name.group(1).strip().title())

        info = call("getUserInfo")
        if info["readyToBook"]:
            if _CONFIRM.search(normalized):
                result = call("createBooking")
                if result["success"]:
                    booking = result["booking"]
                    return (
                        f"Your slot on {booking['date']} at {booking['time']} is reserved "
                        f"(booking {booking['id']}). Please complete payment here: {result['paymentUrl']}"
                    )
                return result["message"]
            fields = info["userInfo"]
            return (
                f"Please confirm: {fields['date']} at {fields['time']} for "
                f"{fields['userName']} ({fields['userEmail']}). Reply 'yes' to book."
            )

        if not info["userInfo"] or any(word in normalized for word in ("available", "dates", "slots")):
            dates = call("getAvailableDates").get("availableDates", [])
            if not dates:
                return "Sorry, there are no available slots right now."
            lines = [f"{d['date']}: {', '.join(d['times'])}" for d in dates[:3]]
            return f"Hi {user_name}! Here are the next available times:\n" + "\n".join(lines)

        missing = [_FIELD_PROMPTS[f] for f in info["missingFields"]]
        return "Thanks! Please tell me " + " and ".join(missing) + "."
