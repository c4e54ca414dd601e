import pytest

from apps.bookings.domain.conflicts import ConflictDetector
from apps.bookings.domain.entities import BookingStatus


@pytest.fixture
def detector():
    return ConflictDetector()


def test_overlap_is_reported(detector, make_booking):
    existing = make_booking("09:00", "10:30")
    assert detector.find_conflict([existing], "10:00", "11:00") == existing


def test_back_to_back_bookings_do_not_conflict(detector, make_booking):
    existing = [make_booking("09:00", "10:00"), make_booking("11:00", "12:00")]
    assert not detector.has_conflict(existing, "10:00", "11:00")


def test_containment_both_ways(detector, make_booking):
    assert detector.has_conflict([make_booking("08:00", "12:00")], "09:00", "10:00")
    assert detector.has_conflict([make_booking("09:00", "10:00")], "08:00", "12:00")


def test_symmetry(detector, make_booking):
    windows = [("09:00", "10:00"), ("09:30", "10:30"), ("10:00", "11:00"), ("08:00", "12:00")]
    for a in windows:
        for b in windows:
            assert detector.has_conflict([make_booking(*a)], *b) == \
                detector.has_conflict([make_booking(*b)], *a)


@pytest.mark.parametrize("status", [
    BookingStatus.CANCELLED_BY_USER,
    BookingStatus.CANCELLED_BY_VENUE,
    BookingStatus.CANCELLED_BY_ADMIN,
    BookingStatus.REJECTED,
    BookingStatus.FAILED,
])
def test_released_bookings_are_ignored(detector, make_booking, status):
    assert not detector.has_conflict([make_booking("09:00", "11:00", status=status)], "10:00", "11:00")


@pytest.mark.parametrize("status", [
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
    BookingStatus.CHECKED_IN,
    BookingStatus.COMPLETED,
])
def test_occupying_statuses_block(detector, make_booking, status):
    assert detector.has_conflict([make_booking("09:00", "11:00", status=status)], "10:00", "11:00")


def test_court_number_is_not_considered(detector, make_booking):
    existing = make_booking("09:00", "11:00", court_number="1")
    assert detector.has_conflict([existing], "10:00", "11:00")
