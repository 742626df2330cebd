"""
Monthly Watchmode request ledger

One api_usage row per calendar month ("YYYY-MM"). Callers reserve request
units before talking to Watchmode and either commit them (request sent) or
release them (request never reached the server). The reservation is a single
conditional UPDATE, so two sync runs cannot both spend the last units.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from horrorhub.models.api_usage import ApiUsage


logger = logging.getLogger(__name__)

DEFAULT_MONTHLY_LIMIT = 1000


class QuotaExceededError(Exception):
    def __init__(self, used: int, limit: int, requested: int = 1):
        self.used = used
        self.limit = limit
        self.requested = requested
        super().__init__(
            f"Watchmode monthly limit reached ({used}/{limit} used, {requested} requested)"
        )


@dataclass
class Reservation:
    month: str
    cost: int
    committed: bool = False
    released: bool = False


class UsageLedger:
    def __init__(self, db: Session, monthly_limit: int = DEFAULT_MONTHLY_LIMIT,
                 clock: Callable[[], datetime] = datetime.utcnow):
        self.db = db
        self.monthly_limit = monthly_limit
        self.clock = clock

    def month_key(self) -> str:
        return self.clock().strftime("%Y-%m")

    def get_current_month_usage(self) -> ApiUsage:
        """Current month's row, created with a zero count on first access"""
        month = self.month_key()
        usage = self.db.query(ApiUsage).filter_by(month=month).first()
        if usage:
            return usage

        now = self.clock()
        usage = ApiUsage(month=month, watchmode_requests=0, created_at=now, updated_at=now)
        self.db.add(usage)
        try:
            self.db.commit()
        except IntegrityError:
            # Another request created it first
            self.db.rollback()
            return self.db.query(ApiUsage).filter_by(month=month).one()
        self.db.refresh(usage)
        logger.info(f"✓ Started Watchmode usage ledger for {month}")
        return usage

    def used(self) -> int:
        return self.get_current_month_usage().watchmode_requests or 0

    def remaining(self) -> int:
        return max(0, self.monthly_limit - self.used())

    def _apply_delta(self, month: str, delta: int) -> None:
        new_value = ApiUsage.watchmode_requests + delta
        self.db.query(ApiUsage).filter(ApiUsage.month == month).update(
            {
                ApiUsage.watchmode_requests: case((new_value < 0, 0), else_=new_value),
                ApiUsage.updated_at: self.clock(),
            },
            synchronize_session=False,
        )
        self.db.commit()

    def increment_watchmode_requests(self, count: int = 1) -> None:
        """Add count to this month's counter, creating the row if needed. Never drops below 0."""
        usage = self.get_current_month_usage()
        self._apply_delta(usage.month, count)

    def set_usage(self, value: int) -> ApiUsage:
        """Manual admin override of this month's counter"""
        usage = self.get_current_month_usage()
        usage.watchmode_requests = max(0, int(value))
        usage.updated_at = self.clock()
        self.db.commit()
        self.db.refresh(usage)
        logger.info(f"Watchmode usage for {usage.month} set to {usage.watchmode_requests}")
        return usage

    def check_and_reserve(self, cost: int = 1) -> Reservation:
        """
        Atomically take cost units if they fit under the monthly limit.

        Raises QuotaExceededError without changing the counter otherwise.
        """
        usage = self.get_current_month_usage()
        month = usage.month
        updated = self.db.query(ApiUsage).filter(
            ApiUsage.month == month,
            ApiUsage.watchmode_requests + cost <= self.monthly_limit,
        ).update(
            {
                ApiUsage.watchmode_requests: ApiUsage.watchmode_requests + cost,
                ApiUsage.updated_at: self.clock(),
            },
            synchronize_session=False,
        )
        self.db.commit()

        if not updated:
            used = self.used()
            logger.warning(f"✗ Watchmode quota exhausted: {used}/{self.monthly_limit}")
            raise QuotaExceededError(used, self.monthly_limit, cost)
        return Reservation(month=month, cost=cost)

    def commit(self, reservation: Reservation) -> None:
        """The units were spent; the counter already reflects them"""
        reservation.committed = True

    def release(self, reservation: Optional[Reservation]) -> None:
        """Give back units of a request that never reached the server"""
        if reservation is None or reservation.committed or reservation.released:
            return
        self._apply_delta(reservation.month, -reservation.cost)
        reservation.released = True

    def status(self) -> dict:
        usage = self.get_current_month_usage()
        used = usage.watchmode_requests or 0
        return {
            "month": usage.month,
            "requests_used": used,
            "monthly_limit": self.monthly_limit,
            "requests_remaining": max(0, self.monthly_limit - used),
            "updated_at": usage.updated_at,
        }
