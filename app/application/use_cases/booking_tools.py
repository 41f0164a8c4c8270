from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from app.application.exceptions import BookingError
from app.application.ports.field_store import FieldStorePort
from app.application.use_cases.booking_lifecycle import BookingLifecycleManager, ReservationResult
from app.application.utils.field_values import parse_field_name
from app.domain.entities.booking import Booking

STEPWISE = "stepwise"
SINGLE_SHOT = "single_shot"


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    parameters: dict[str, Any]


def _object(properties: dict[str, str] | None = None) -> dict[str, Any]:
    props = properties or {}
    return {
        "type": "object",
        "properties": {name: {"type": "string", "description": desc} for name, desc in props.items()},
        "required": list(props),
        "additionalProperties": False,
    }


GET_AVAILABLE_DATES = ToolSpec(
    name="getAvailableDates",
    description="Get a list of available dates and times for booking",
    parameters=_object(),
)
SAVE_USER_INFO = ToolSpec(
    name="saveUserInfo",
    description="Save information provided by the user for their booking",
    parameters=_object(
        {
            "field": "Field name to update (date, time, userName, userEmail)",
            "value": "Value to save for the field. Dates as YYYY-MM-DD, times as HH:MM",
        }
    ),
)
GET_USER_INFO = ToolSpec(
    name="getUserInfo",
    description="Get current saved information for user's booking",
    parameters=_object(),
)
CREATE_BOOKING = ToolSpec(
    name="createBooking",
    description="Create a booking from the saved information and generate a payment link",
    parameters=_object(),
)
CLEAR_USER_INFO = ToolSpec(
    name="clearUserInfo",
    description="Clear stored information for a user if they want to start over",
    parameters=_object(),
)
BOOK_APPOINTMENT = ToolSpec(
    name="bookAppointment",
    description="Book an appointment with all details at once and generate a payment link",
    parameters=_object(
        {
            "date": "Appointment date (YYYY-MM-DD)",
            "time": "Appointment time (HH:MM)",
            "userName": "Customer's full name",
            "userEmail": "Customer's email address",
        }
    ),
)
LIST_MY_BOOKINGS = ToolSpec(
    name="listMyBookings",
    description="List the user's bookings with their status",
    parameters=_object(),
)
CANCEL_BOOKING = ToolSpec(
    name="cancelBooking",
    description="Cancel one of the user's bookings and release its time slot",
    parameters=_object({"bookingId": "Id of the booking to cancel"}),
)

TOOL_SETS: dict[str, tuple[ToolSpec, ...]] = {
    STEPWISE: (
        GET_AVAILABLE_DATES,
        SAVE_USER_INFO,
        GET_USER_INFO,
        CREATE_BOOKING,
        CLEAR_USER_INFO,
        LIST_MY_BOOKINGS,
        CANCEL_BOOKING,
    ),
    SINGLE_SHOT: (
        GET_AVAILABLE_DATES,
        BOOK_APPOINTMENT,
        LIST_MY_BOOKINGS,
        CANCEL_BOOKING,
    ),
}


def booking_summary(booking: Booking) -> dict[str, str]:
    return {
        "id": booking.id,
        "date": booking.date,
        "time": booking.time,
        "status": booking.status.value,
    }


class BookingTools:
    """
    Booking operations exposed to the dialogue agent as callable tools.

    Every call returns a JSON-serializable dict with a "success" flag; core failures come
    back as {"success": False, "error": <code>, "message": ...} and are never raised.
    The user number always comes from the transport, not from tool arguments.
    """

    def __init__(self, lifecycle: BookingLifecycleManager, fields: FieldStorePort, mode: str = STEPWISE) -> None:
        if mode not in TOOL_SETS:
            raise ValueError(f"Unknown agent mode: {mode}")
        self._lifecycle = lifecycle
        self._fields = fields
        self._mode = mode
        self._logger = logging.getLogger(__name__)
        self._handlers: dict[str, Callable[[dict[str, Any], str], dict[str, Any]]] = {
            GET_AVAILABLE_DATES.name: self._get_available_dates,
            SAVE_USER_INFO.name: self._save_user_info,
            GET_USER_INFO.name: self._get_user_info,
            CREATE_BOOKING.name: self._create_booking,
            CLEAR_USER_INFO.name: self._clear_user_info,
            BOOK_APPOINTMENT.name: self._book_appointment,
            LIST_MY_BOOKINGS.name: self._list_my_bookings,
            CANCEL_BOOKING.name: self._cancel_booking,
        }

    @property
    def mode(self) -> str:
        return self._mode

    def specs(self) -> tuple[ToolSpec, ...]:
        return TOOL_SETS[self._mode]

    def openai_tools(self) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": spec.name,
                    "description": spec.description,
                    "parameters": spec.parameters,
                },
            }
            for spec in self.specs()
        ]

    def execute(self, name: str, arguments: dict[str, Any] | None, user_number: str) -> dict[str, Any]:
        if name not in {spec.name for spec in self.specs()}:
            return {"success": False, "error": "unknown_tool", "message": f"Unknown tool: {name}"}

        args = {k: "" if v is None else str(v) for k, v in (arguments or {}).items()}
        self._logger.info("Tool call", extra={"tool": name, "user_number": user_number})
        try:
            return self._handlers[name](args, user_number)
        except BookingError as e:
            self._logger.info("Tool call failed", extra={"tool": name, "user_number": user_number, "reason": e.code})
            result: dict[str, Any] = {"success": False, "error": e.code, "message": str(e)}
            missing = getattr(e, "missing_fields", None)
            if missing:
                result["missingFields"] = missing
            return result

    def _get_available_dates(self, args: dict[str, str], user_number: str) -> dict[str, Any]:
        dates = self._lifecycle.get_available_dates()
        return {
            "success": True,
            "availableDates": [{"date": d.date, "times": list(d.times)} for d in dates],
        }

    def _save_user_info(self, args: dict[str, str], user_number: str) -> dict[str, Any]:
        field = parse_field_name(args.get("field", ""))
        snapshot = self._fields.save_field(user_number, field, args.get("value", ""))
        saved = snapshot.fields.get(field.value, "")
        return {
            "success": True,
            "message": f'Successfully saved {field.value}: "{saved}"',
            "currentInfo": snapshot.fields,
            "missingFields": snapshot.missing_fields,
            "readyToBook": snapshot.ready_to_book,
        }

    def _get_user_info(self, args: dict[str, str], user_number: str) -> dict[str, Any]:
        snapshot = self._fields.get_fields(user_number)
        return {
            "success": True,
            "userInfo": snapshot.fields,
            "missingFields": snapshot.missing_fields,
            "readyToBook": snapshot.ready_to_book,
        }

    def _create_booking(self, args: dict[str, str], user_number: str) -> dict[str, Any]:
        return _reservation_payload(self._lifecycle.create_booking_from_fields(user_number))

    def _clear_user_info(self, args: dict[str, str], user_number: str) -> dict[str, Any]:
        self._fields.clear(user_number)
        return {"success": True, "message": "User information has been cleared. You can start over."}

    def _book_appointment(self, args: dict[str, str], user_number: str) -> dict[str, Any]:
        result = self._lifecycle.reserve_and_book(
            date=args.get("date", ""),
            time=args.get("time", ""),
            user_name=args.get("userName", ""),
            user_email=args.get("userEmail", ""),
            user_number=user_number,
        )
        return _reservation_payload(result)

    def _list_my_bookings(self, args: dict[str, str], user_number: str) -> dict[str, Any]:
        bookings = self._lifecycle.list_bookings_by_user(user_number)
        return {"success": True, "bookings": [booking_summary(b) for b in bookings]}

    def _cancel_booking(self, args: dict[str, str], user_number: str) -> dict[str, Any]:
        booking = self._lifecycle.cancel_booking(args.get("bookingId", ""), user_number=user_number)
        return {
            "success": True,
            "message": f"Booking {booking.id} has been cancelled.",
            "booking": booking_summary(booking),
        }


def _reservation_payload(result: ReservationResult) -> dict[str, Any]:
    if not result.success or result.booking is None:
        payload: dict[str, Any] = {"success": False, "error": result.error, "message": result.message}
        if result.missing_fields:
            payload["missingFields"] = result.missing_fields
        return payload

    return {
        "success": True,
        "booking": booking_summary(result.booking),
        "paymentUrl": result.payment_url,
    }
