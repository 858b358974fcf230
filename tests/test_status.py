from datetime import date, datetime

import pytest

from bookings.errors import CancellationClosed, InvalidStatus, InvalidTransition, NotAuthorized
from bookings.status import booking_roles, check_transition

TODAY = date(2025, 5, 20)


def booking(status="pending", check_in=date(2025, 6, 1), check_out=date(2025, 6, 5)):
    return {
        "_id": "b1",
        "user_id": "guest",
        "listing_id": "l1",
        "status": status,
        "check_in": datetime(check_in.year, check_in.month, check_in.day),
        "check_out": datetime(check_out.year, check_out.month, check_out.day),
    }


def test_roles_of_guest_host_and_outsider():
    listing = {"host_id": "host"}
    assert booking_roles(booking(), listing, "guest") == {"guest"}
    assert booking_roles(booking(), listing, "host") == {"host"}
    assert booking_roles(booking(), listing, "someone") == set()
    assert booking_roles(booking(), None, "host") == set()


def test_host_confirms_pending_booking():
    assert check_transition(booking(), "confirmed", {"host"}, TODAY) is True


def test_guest_cannot_confirm():
    with pytest.raises(NotAuthorized):
        check_transition(booking(), "confirmed", {"guest"}, TODAY)


@pytest.mark.parametrize("status", ["pending", "confirmed"])
@pytest.mark.parametrize("role", ["guest", "host"])
def test_cancel_before_check_in(status, role):
    assert check_transition(booking(status), "cancelled", {role}, TODAY) is True


@pytest.mark.parametrize("check_in", [date(2025, 5, 20), date(2025, 5, 1)])
def test_cancel_rejected_once_check_in_is_reached(check_in):
    b = booking(check_in=check_in, check_out=date(2025, 5, 25))
    with pytest.raises(CancellationClosed):
        check_transition(b, "cancelled", {"guest"}, TODAY)


@pytest.mark.parametrize("current", ["cancelled", "completed"])
@pytest.mark.parametrize("target", ["pending", "confirmed"])
def test_terminal_states_cannot_be_reactivated(current, target):
    with pytest.raises(InvalidTransition):
        check_transition(booking(current), target, {"host"}, TODAY)


def test_same_status_is_a_no_op_even_when_terminal_and_past():
    b = booking("cancelled", check_in=date(2025, 5, 1), check_out=date(2025, 5, 3))
    assert check_transition(b, "cancelled", {"guest"}, TODAY) is False


def test_pending_cannot_jump_to_completed():
    with pytest.raises(InvalidTransition):
        check_transition(booking("pending"), "completed", {"host"}, date(2025, 7, 1))


def test_completion_waits_for_check_out():
    with pytest.raises(InvalidTransition):
        check_transition(booking("confirmed"), "completed", {"host"}, date(2025, 6, 4))
    assert check_transition(booking("confirmed"), "completed", {"host"}, date(2025, 6, 5)) is True


def test_unknown_status():
    with pytest.raises(InvalidStatus):
        check_transition(booking(), "archived", {"host"}, TODAY)


def test_role_is_checked_before_the_no_op():
    with pytest.raises(NotAuthorized):
        check_transition(booking("confirmed"), "confirmed", {"guest"}, TODAY)
    with pytest.raises(NotAuthorized):
        check_transition(booking("completed"), "completed", set(), TODAY)
