"""Daily instance quotas backed by SQLite."""
from __future__ import annotations

import datetime as dt
import logging
import sqlite3
from typing import Callable, Dict, Optional

from config.settings import settings
from storage.sqlite import immediate_transaction
from workflow.errors import PersistenceFailure
from workflow.ports import QuotaDecision

logger = logging.getLogger(__name__)

TIER_LIMITS: Dict[str, int] = {"basic": 20, "pro": 50, "enterprise": 200}

Clock = Callable[[], dt.datetime]


def _utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _day_start(moment: dt.datetime) -> dt.datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def quota_message(decision: QuotaDecision, requested: int) -> str:
    """Human-readable refusal text for a denied request."""

    reset = decision.reset_at.isoformat() if decision.reset_at else "the next reset"
    return (
        f"Insufficient quota. You have {decision.remaining} instances remaining "
        f"but {requested} were requested. Resets at {reset}."
    )


class SqliteQuotaService:
    """Check-then-deduct quota accounting with a daily reset window.

    Each call runs inside a single ``BEGIN IMMEDIATE`` transaction so two
    concurrent requests for the same user cannot both spend the last units.
    """

    def __init__(self, *, default_tier: Optional[str] = None, clock: Optional[Clock] = None) -> None:
        tier = default_tier or settings.DEFAULT_QUOTA_TIER
        if tier not in TIER_LIMITS:
            raise ValueError(f"Unknown quota tier: {tier}")
        self._default_tier = tier
        self._clock = clock or _utc_now

    def set_tier(self, user_id: str, tier: str, *, daily_limit: Optional[int] = None) -> None:
        if tier not in TIER_LIMITS:
            raise ValueError(f"Unknown quota tier: {tier}")
        limit = daily_limit if daily_limit is not None else TIER_LIMITS[tier]
        now = self._clock()
        try:
            with immediate_transaction() as conn:
                conn.execute(
                    """INSERT INTO user_quotas (user_id, tier, daily_limit, used, window_start)
                       VALUES (?, ?, ?, 0, ?)
                       ON CONFLICT(user_id) DO UPDATE SET tier = excluded.tier, daily_limit = excluded.daily_limit""",
                    (user_id, tier, limit, _day_start(now).isoformat()),
                )
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Failed to update quota tier: {exc}") from exc
        logger.info("Quota tier set user=%s tier=%s limit=%d", user_id, tier, limit)

    def check_and_consume(self, user_id: str, amount: int) -> QuotaDecision:
        if amount < 0:
            raise ValueError("amount must be non-negative")
        try:
            with immediate_transaction() as conn:
                limit, used, window_start = self._current(conn, user_id)
                remaining = max(0, limit - used)
                reset_at = window_start + dt.timedelta(days=1)
                if amount > remaining:
                    logger.info(
                        "Quota denied user=%s requested=%d remaining=%d", user_id, amount, remaining
                    )
                    return QuotaDecision(allowed=False, remaining=remaining, limit=limit, reset_at=reset_at)
                conn.execute(
                    "UPDATE user_quotas SET used = ? WHERE user_id = ?",
                    (used + amount, user_id),
                )
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Failed to consume quota: {exc}") from exc
        return QuotaDecision(allowed=True, remaining=remaining - amount, limit=limit, reset_at=reset_at)

    def status(self, user_id: str) -> QuotaDecision:
        """Report the remaining allowance without consuming any of it."""

        return self.check_and_consume(user_id, 0)

    def _current(self, conn: sqlite3.Connection, user_id: str) -> tuple[int, int, dt.datetime]:
        now = self._clock()
        today = _day_start(now)
        row = conn.execute(
            "SELECT daily_limit, used, window_start FROM user_quotas WHERE user_id = ?",
            (user_id,),
        ).fetchone()
        if row is None:
            limit = TIER_LIMITS[self._default_tier]
            conn.execute(
                "INSERT INTO user_quotas (user_id, tier, daily_limit, used, window_start) VALUES (?, ?, ?, 0, ?)",
                (user_id, self._default_tier, limit, today.isoformat()),
            )
            return limit, 0, today
        window_start = dt.datetime.fromisoformat(row["window_start"])
        if now >= window_start + dt.timedelta(days=1):
            conn.execute(
                "UPDATE user_quotas SET used = 0, window_start = ? WHERE user_id = ?",
                (today.isoformat(), user_id),
            )
            return int(row["daily_limit"]), 0, today
        return int(row["daily_limit"]), int(row["used"]), window_start


__all__ = ["SqliteQuotaService", "TIER_LIMITS", "quota_message"]
