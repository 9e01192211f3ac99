"""Booking state machine.

A booking carries two tags: ``status`` (the commercial lifecycle) and
``stay_status`` (physical presence). The stay tag only moves while the
booking is ACTIVE, and only forward.
"""

from enum import Enum

from shortlet.core.exceptions import InvalidTransitionError


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class StayStatus(str, Enum):
    NONE = "NONE"
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"


class ActorRole(str, Enum):
    GUEST = "guest"
    HOST = "host"
    ADMIN = "admin"


BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.ACTIVE, BookingStatus.CANCELLED},
    BookingStatus.ACTIVE: {BookingStatus.COMPLETED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}

STAY_TRANSITIONS: dict[StayStatus, set[StayStatus]] = {
    StayStatus.NONE: {StayStatus.CHECKED_IN},
    StayStatus.CHECKED_IN: {StayStatus.CHECKED_OUT},
    StayStatus.CHECKED_OUT: set(),
}

# Every (status, stay_status) pair a booking may rest in.
VALID_STATE_COMBINATIONS: frozenset[tuple[BookingStatus, StayStatus]] = frozenset(
    {
        (BookingStatus.PENDING, StayStatus.NONE),
        (BookingStatus.CONFIRMED, StayStatus.NONE),
        (BookingStatus.CANCELLED, StayStatus.NONE),
        (BookingStatus.ACTIVE, StayStatus.NONE),
        (BookingStatus.ACTIVE, StayStatus.CHECKED_IN),
        (BookingStatus.ACTIVE, StayStatus.CHECKED_OUT),
        (BookingStatus.COMPLETED, StayStatus.CHECKED_OUT),
    }
)

CANCELLABLE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


def assert_valid_combination(status: BookingStatus, stay_status: StayStatus) -> None:
    if (BookingStatus(status), StayStatus(stay_status)) not in VALID_STATE_COMBINATIONS:
        raise InvalidTransitionError(
            f"Invalid booking state: status={status.value} stay_status={stay_status.value}"
        )


def assert_booking_transition(
    current: BookingStatus,
    target: BookingStatus,
    stay_status: StayStatus = StayStatus.NONE,
) -> None:
    """Validate a booking status transition.

    Args:
        current: Current booking status
        target: Target booking status
        stay_status: Stay status the booking will carry after the move

    Raises:
        InvalidTransitionError: If the move is not allowed or would leave
            the booking in an invalid (status, stay_status) combination
    """
    allowed = BOOKING_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise InvalidTransitionError(
            f"Invalid booking transition: {current.value} → {target.value}"
        )
    assert_valid_combination(target, stay_status)


def assert_stay_transition(
    status: BookingStatus,
    current: StayStatus,
    target: StayStatus,
) -> None:
    """Validate a stay status transition for a booking in ``status``."""
    if status != BookingStatus.ACTIVE:
        raise InvalidTransitionError(
            f"Stay status can only change while the booking is ACTIVE (status={status.value})"
        )
    allowed = STAY_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise InvalidTransitionError(
            f"Invalid stay transition: {current.value} → {target.value}"
        )
    assert_valid_combination(status, target)


def can_cancel(status: BookingStatus) -> tuple[bool, str | None]:
    """Check if a booking can be cancelled."""
    if status in CANCELLABLE_STATUSES:
        return True, None
    return False, f"Bookings in status {status.value} cannot be cancelled"
