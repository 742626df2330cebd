from datetime import datetime

import pytest

from horrorhub.models.api_usage import ApiUsage
from horrorhub.services.usage_ledger import QuotaExceededError, UsageLedger


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def test_first_access_creates_zero_row(ledger, db):
    assert ledger.used() == 0
    assert db.query(ApiUsage).count() == 1


def test_increment_and_floor(ledger):
    ledger.increment_watchmode_requests(5)
    assert ledger.used() == 5
    ledger.increment_watchmode_requests(-20)
    assert ledger.used() == 0


def test_reserve_counts_immediately(ledger):
    ledger.check_and_reserve(3)
    assert ledger.used() == 3
    assert ledger.remaining() == 997


def test_reserve_over_limit_raises_without_changing_counter(db):
    ledger = UsageLedger(db, monthly_limit=10)
    ledger.set_usage(9)
    ledger.check_and_reserve(1)
    with pytest.raises(QuotaExceededError) as exc:
        ledger.check_and_reserve(1)
    assert exc.value.used == 10
    assert ledger.used() == 10


def test_release_gives_units_back_once(ledger):
    reservation = ledger.check_and_reserve(2)
    ledger.release(reservation)
    ledger.release(reservation)
    assert ledger.used() == 0


def test_committed_reservation_is_not_released(ledger):
    reservation = ledger.check_and_reserve(1)
    ledger.commit(reservation)
    ledger.release(reservation)
    assert ledger.used() == 1


def test_months_are_tracked_separately(db):
    clock = Clock(datetime(2024, 1, 31, 23, 0))
    ledger = UsageLedger(db, monthly_limit=1000, clock=clock)
    ledger.increment_watchmode_requests(7)

    clock.now = datetime(2024, 2, 1, 0, 5)
    assert ledger.month_key() == "2024-02"
    assert ledger.used() == 0
    assert db.query(ApiUsage).filter_by(month="2024-01").one().watchmode_requests == 7


def test_status(ledger):
    ledger.set_usage(250)
    status = ledger.status()
    assert status["requests_used"] == 250
    assert status["requests_remaining"] == 750
    assert status["monthly_limit"] == 1000
