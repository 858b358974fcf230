# bookings/status.py

"""
Booking status state machine.

    pending   -> confirmed   (host)
    pending   -> cancelled   (guest or host, before check-in)
    confirmed -> cancelled   (guest or host, before check-in)
    confirmed -> completed   (host, once check-out has passed)

``cancelled`` and ``completed`` are terminal. Asking for the status a booking
already has is a no-op.
"""
import logging
from datetime import date, datetime
from typing import Optional

from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from bookings.admission import from_storage, release_nights
from bookings.errors import (
    BookingNotFound,
    CancellationClosed,
    InvalidStatus,
    InvalidTransition,
    NotAuthorized,
)

logger = logging.getLogger(__name__)

STATUSES = ("pending", "confirmed", "cancelled", "completed")
TERMINAL_STATUSES = ("cancelled", "completed")

TRANSITIONS = {
    "pending": ("confirmed", "cancelled"),
    "confirmed": ("cancelled", "completed"),
    "cancelled": (),
    "completed": (),
}

# Which party may request each target status.
ALLOWED_ROLES = {
    "confirmed": ("host",),
    "cancelled": ("guest", "host"),
    "completed": ("host",),
}


def booking_roles(booking: dict, listing: Optional[dict], user_id: str) -> set:
    """The roles ``user_id`` holds on ``booking``: guest, host, both or none."""
    roles = set()
    if booking.get("user_id") == user_id:
        roles.add("guest")
    if listing is not None and listing.get("host_id") == user_id:
        roles.add("host")
    return roles


def check_transition(booking: dict, target: str, roles: set, today: date):
    """Raise if ``roles`` may not move ``booking`` to ``target`` on ``today``.

    Returns False when the booking is already in ``target`` (nothing to do),
    True when the transition should be applied. The role check runs first, so
    a party who may never request ``target`` is refused even on a no-op.
    """
    if target not in STATUSES:
        raise InvalidStatus(f"Invalid status '{target}'")

    if target in ALLOWED_ROLES and not roles.intersection(ALLOWED_ROLES[target]):
        raise NotAuthorized(f"Only the host can mark a booking as {target}")

    current = booking["status"]
    if current == target:
        return False

    if target not in TRANSITIONS.get(current, ()):
        raise InvalidTransition(f"Cannot change a {current} booking to {target}")

    if target == "cancelled" and from_storage(booking["check_in"]) <= today:
        raise CancellationClosed()

    if target == "completed" and from_storage(booking["check_out"]) > today:
        raise InvalidTransition("A booking can only be completed after check-out")

    return True


async def release_cancelled_nights(db, booking_id) -> int:
    """Free the nights held by a cancelled booking.

    The status write has already committed when this runs, so a storage
    failure is logged and left for the next cancel request to retry.
    """
    try:
        return await release_nights(db, booking_id)
    except PyMongoError:
        logger.exception("Could not release nights of cancelled booking %s", booking_id)
        return 0


async def apply_transition(db, booking: dict, target: str, roles: set, today: date) -> dict:
    """Move a booking to ``target`` and return the stored record.

    The update only matches while the booking still has the status it was read
    with, so two concurrent transitions cannot both apply. Cancelling an
    already cancelled booking releases any nights it still holds.
    """
    if not check_transition(booking, target, roles, today):
        if target == "cancelled":
            await release_cancelled_nights(db, booking["_id"])
        return booking

    updated = await db["bookings"].find_one_and_update(
        {"_id": booking["_id"], "status": booking["status"]},
        {"$set": {"status": target, "updated_at": datetime.utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        current = await db["bookings"].find_one({"_id": booking["_id"]})
        if current is None:
            raise BookingNotFound()
        if current["status"] == target:
            if target == "cancelled":
                await release_cancelled_nights(db, booking["_id"])
            return current
        raise InvalidTransition(f"Booking changed to {current['status']} while updating")

    if target == "cancelled":
        released = await release_cancelled_nights(db, booking["_id"])
        logger.info("Booking %s cancelled, released %d nights", booking["_id"], released)
    else:
        logger.info("Booking %s moved from %s to %s", booking["_id"], booking["status"], target)
    return updated
