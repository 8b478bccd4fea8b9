"""
Arithmetic rules shared by every screen.

These helpers are pure: they never touch the database and take an
optional ``now``/``today`` so callers (and tests) can evaluate them at a
fixed instant.  Anything that needs the current time defaults to
:func:`django.utils.timezone.now` / :func:`~django.utils.timezone.localdate`.
"""
from __future__ import annotations

import math
import secrets
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from django.utils import timezone

ONE_DAY = timedelta(days=1)

STOCK_HEALTHY = 'healthy'
STOCK_LOW = 'low'
STOCK_CRITICAL = 'critical'
STOCK_STATUSES = (STOCK_HEALTHY, STOCK_LOW, STOCK_CRITICAL)


def next_token(existing_tokens: Iterable[int]) -> int:
    """Return the next OPD token for a (department, day) scope.

    ``1`` when nothing has been issued yet, otherwise ``max + 1``.  Gaps
    left by cancelled visits are never refilled.
    """
    tokens = list(existing_tokens)
    if not tokens:
        return 1
    return max(tokens) + 1


def wait_time_minutes(check_in_time: datetime, now: Optional[datetime] = None) -> int:
    now = now or timezone.now()
    seconds = (now - check_in_time).total_seconds()
    return max(0, math.floor(seconds / 60))


def stay_duration_days(admission_date: datetime, discharge_date: Optional[datetime] = None,
                       now: Optional[datetime] = None) -> int:
    """Length of stay in whole days, rounded up; a same-day stay counts as 1."""
    end = discharge_date or now or timezone.now()
    days = math.ceil(abs((end - admission_date).total_seconds()) / ONE_DAY.total_seconds())
    return max(1, days)


def age_years(date_of_birth: date, today: Optional[date] = None) -> int:
    today = today or timezone.localdate()
    years = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        years -= 1
    return years


def stock_status(current: int, minimum: int) -> str:
    """Classify stock as ``critical`` (< min), ``low`` (< 2*min) or ``healthy``."""
    if current < 0 or minimum < 0:
        raise ValueError('stock levels cannot be negative')
    if current >= minimum * 2:
        return STOCK_HEALTHY
    if current >= minimum:
        return STOCK_LOW
    return STOCK_CRITICAL


def days_until_expiry(expiry: date, now: Optional[datetime] = None) -> int:
    """Whole days left before ``expiry``.

    A ``datetime`` is compared against ``now`` and floored; a plain
    ``date`` is compared against today's calendar date.
    """
    now = now or timezone.now()
    if isinstance(expiry, datetime):
        return math.floor((expiry - now) / ONE_DAY)
    today = timezone.localtime(now).date() if timezone.is_aware(now) else now.date()
    return (expiry - today).days


def is_expiring_soon(expiry: date, alert_days: int = 30, now: Optional[datetime] = None) -> bool:
    """True when the lot expires within ``alert_days``; expired lots are excluded."""
    days = days_until_expiry(expiry, now)
    return 0 <= days <= alert_days


def is_expired(expiry: date, now: Optional[datetime] = None) -> bool:
    return days_until_expiry(expiry, now) < 0


def occupancy_rate(occupied: int, total: int) -> int:
    """Percentage of occupied beds, rounded half-up and clamped to [0, 100]."""
    if total <= 0:
        return 0
    rate = (Decimal(occupied) * 100 / Decimal(total)).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
    return min(100, max(0, int(rate)))


def generate_patient_number(now: Optional[datetime] = None) -> str:
    """``PAT`` + last 8 digits of the epoch milliseconds + 3 random digits."""
    now = now or timezone.now()
    millis = str(int(now.timestamp() * 1000))[-8:]
    return f"PAT{millis}{secrets.randbelow(1000):03d}"
