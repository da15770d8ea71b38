from models.Ticket import ACTIVE_STATUSES, TicketStatus


def occupies_seats(status: str) -> bool:
    return TicketStatus(status) in ACTIVE_STATUSES


def requires_admission(current: str, new: str) -> bool:
    """Moving a ticket from CANCELLED back into a seat holding status takes seats again."""
    return not occupies_seats(current) and occupies_seats(new)


def can_check_in(status: str) -> bool:
    return TicketStatus(status) != TicketStatus.CANCELLED
