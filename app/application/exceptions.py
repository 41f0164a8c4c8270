from __future__ import annotations


class BookingErrorCode:
    SLOT_UNAVAILABLE = "slot_unavailable"
    BOOKING_NOT_FOUND = "booking_not_found"
    PAYMENT_LINK_ERROR = "payment_link_error"
    STORAGE_ERROR = "storage_error"
    VALIDATION_ERROR = "validation_error"
    INVALID_TRANSITION = "invalid_transition"


class BookingError(RuntimeError):
    """Base class for failures raised by the booking core."""
    code = "booking_error"


class SlotUnavailableError(BookingError):
    """Raised when the requested date/time is no longer free."""
    code = BookingErrorCode.SLOT_UNAVAILABLE


class BookingNotFoundError(BookingError):
    code = BookingErrorCode.BOOKING_NOT_FOUND

    def __init__(self, booking_id: str) -> None:
        super().__init__(f"Booking not found: {booking_id}")
        self.booking_id = booking_id


class PaymentLinkError(BookingError):
    """Raised when the payment provider fails to create a checkout link."""
    code = BookingErrorCode.PAYMENT_LINK_ERROR


class StorageError(BookingError):
    """Raised when durable storage cannot be read or written."""
    code = BookingErrorCode.STORAGE_ERROR


class BookingValidationError(BookingError):
    """Raised when booking input is missing or malformed."""
    code = BookingErrorCode.VALIDATION_ERROR

    def __init__(self, message: str, missing_fields: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing_fields = list(missing_fields or [])


class InvalidBookingTransitionError(BookingError):
    code = BookingErrorCode.INVALID_TRANSITION

    def __init__(self, booking_id: str, current: str, target: str) -> None:
        super().__init__(f"Booking {booking_id} cannot move from {current} to {target}")
        self.booking_id = booking_id
        self.current = current
        self.target = target


class WebhookVerificationError(RuntimeError):
    """Raised when a provider webhook payload fails signature verification."""
    pass


class LLMUpstreamError(RuntimeError):
    """Raised when LLM provider fails (timeouts, network errors, service unavailable)."""
    pass


class LLMContractError(RuntimeError):
    """Raised when LLM adapter violates contract (bad format or missing data)."""
    pass
