from typing import Optional


class TicketingError(Exception):
    """Base class for reservation engine errors."""

    code = "ticketing_error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


class ReservationValidationError(TicketingError):
    """Invalid reservation data."""

    code = "validation_error"

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class SoldOut(TicketingError):
    """Not enough seats left for this event."""

    code = "sold_out"

    def __init__(self, requested: int, available: int) -> None:
        super().__init__(
            f"Requested {requested} seat(s) but only {available} available"
        )
        self.requested = requested
        self.available = available


class RegistrationClosed(TicketingError):
    """Registration for this event is closed."""

    code = "registration_closed"


class EventNotFound(TicketingError):
    """Event not found."""

    code = "event_not_found"


class TicketNotFound(TicketingError):
    """Ticket not found."""

    code = "ticket_not_found"


class InvalidStatusTransition(TicketingError):
    """Ticket status transition is not allowed."""

    code = "invalid_status_transition"


class PaymentCallbackConflict(TicketingError):
    """Payment callback for a ticket that is no longer pending."""

    code = "payment_callback_conflict"


class ConcurrencyConflict(TicketingError):
    """Too many concurrent reservations, please try again."""

    code = "concurrency_conflict"


class PaymentProviderError(TicketingError):
    """Could not create a checkout session with the payment provider."""

    code = "payment_provider_error"
