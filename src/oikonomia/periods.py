# Oikonomia - Bookkeeping ledger & reconciliation engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers and period lock guard for Oikonomia.

This module defines:

- month keys ("YYYY-MM") and their validation,
- the closed-until cutoff rules (monthly closing),
- the migration from the legacy "set of closed months" representation,
- a Period value object and helpers to derive reporting periods from
  CLI arguments.

Closing rules
-------------
A calendar month is *closed* when ``month <= closed_until``. The comparison
is lexical on "YYYY-MM" strings, which matches calendar order because both
sides are zero-padded and fixed width. An empty cutoff means nothing is
closed.

- Closing through a month M sets ``closed_until = max(closed_until, M)``;
  the cutoff never moves backward through this path.
- Reopening clears the cutoff entirely; there is no per-month reopening.
"""

import logging
import re
from calendar import monthrange
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from .errors import LockViolation, ValidationError
from .models import Transaction

logger = logging.getLogger(__name__)

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


@dataclass
class Period:
    """Represents a reporting period with a human-readable label."""

    start: date
    end: date
    label: str


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


# ---------------------------------------------------------------------------
# Month keys
# ---------------------------------------------------------------------------


def month_key(value: date) -> str:
    """Return the 'YYYY-MM' key of a date."""
    return f"{value.year:04d}-{value.month:02d}"


def parse_month(value: str) -> str:
    """
    Validate a 'YYYY-MM' string and return it stripped.

    Raises
    ------
    ValidationError
        If the value is not a valid zero-padded year-month.
    """
    raw = str(value).strip()
    match = _MONTH_RE.match(raw)
    if match is None or not 1 <= int(match.group(2)) <= 12:
        raise ValidationError(f"Invalid month: {value!r}. Expected YYYY-MM.")
    return raw


def shift_month(month: str, offset: int) -> str:
    """Return the month ``offset`` months after (or before) ``month``."""
    year, mon = (int(part) for part in parse_month(month).split("-"))
    index = year * 12 + (mon - 1) + offset
    return f"{index // 12:04d}-{index % 12 + 1:02d}"


# ---------------------------------------------------------------------------
# Lock guard
# ---------------------------------------------------------------------------


def is_month_closed(month: str, closed_until: str) -> bool:
    """Return True if ``month`` is at or before the closed-until cutoff."""
    if not closed_until:
        return False
    return month <= closed_until


def is_date_locked(value: date, closed_until: str) -> bool:
    """Return True if the month of ``value`` is closed."""
    return is_month_closed(month_key(value), closed_until)


def ensure_unlocked(value: date, closed_until: str, action: str) -> None:
    """
    Raise LockViolation if ``value`` falls in a closed month.

    Parameters
    ----------
    value:
        Date of the transaction being touched.
    closed_until:
        Current cutoff ("YYYY-MM" or empty).
    action:
        Short verb used in the error message ("create", "delete", ...).
    """
    if is_date_locked(value, closed_until):
        raise LockViolation(
            f"Cannot {action} a transaction dated {value.isoformat()}: "
            f"months up to {closed_until} are closed. Reopen the period first.",
            closed_until=closed_until,
        )


def ensure_batch_unlocked(
    transactions: Iterable[Transaction], closed_until: str
) -> None:
    """
    Reject a whole batch if any of its transactions falls in a closed month.

    Nothing is inserted when this raises: callers check the batch before
    building the new collection.
    """
    if not closed_until:
        return
    locked = sorted({t.month for t in transactions if t.month <= closed_until})
    if locked:
        raise LockViolation(
            "Import rejected: some records belong to closed months "
            f"({', '.join(locked)}; closed until {closed_until}). "
            "Reopen the period to import them.",
            closed_until=closed_until,
        )


def close_through(closed_until: str, month: str) -> str:
    """Return the new cutoff after closing every month up to ``month``."""
    month = parse_month(month)
    if closed_until and closed_until >= month:
        logger.debug("Cutoff %s already covers %s, unchanged", closed_until, month)
        return closed_until
    return month


def reopen_all() -> str:
    """Return the cutoff after reopening every month (no cutoff)."""
    return ""


def migrate_closed_months(closed_months: Iterable[str]) -> str:
    """
    Convert the legacy "set of closed months" into a single cutoff.

    The cutoff is the lexically greatest month of the set, or an empty string
    when the set is empty. Invalid entries are ignored.
    """
    valid = []
    for raw in closed_months:
        try:
            valid.append(parse_month(raw))
        except ValidationError:
            logger.warning("Ignoring invalid legacy closed month %r", raw)
    return max(valid) if valid else ""


# ---------------------------------------------------------------------------
# Reporting periods
# ---------------------------------------------------------------------------


def period_for_month(month: str) -> Period:
    """Full calendar month as a Period."""
    year, mon = (int(part) for part in parse_month(month).split("-"))
    last_day = monthrange(year, mon)[1]
    return Period(
        start=date(year, mon, 1),
        end=date(year, mon, last_day),
        label=f"Month {mon:02d}/{year}",
    )


def current_month() -> str:
    """Month of today's date."""
    return month_key(_today())


def determine_period_from_args(args) -> Period:
    """
    Determine the reporting period to use based on CLI args.

    Priority (highest to lowest):

        1. args.from_date / args.to_date (custom period)
        2. args.month (a single calendar month)
        3. the current calendar month by default
    """
    from_raw: Optional[str] = getattr(args, "from_date", None)
    to_raw: Optional[str] = getattr(args, "to_date", None)

    if from_raw or to_raw:
        month = period_for_month(current_month())
        start = date.fromisoformat(from_raw) if from_raw else month.start
        end = date.fromisoformat(to_raw) if to_raw else month.end

        if end < start:
            raise ValueError("Custom period end date cannot be before start date.")

        label = f"Custom period ({start} → {end})"
        return Period(start=start, end=end, label=label)

    if getattr(args, "month", None):
        return period_for_month(args.month)

    return period_for_month(current_month())


def filter_transactions_by_period(
    transactions: Iterable[Transaction], period: Period
) -> list[Transaction]:
    """Keep only transactions dated within [period.start, period.end]."""
    return [t for t in transactions if period.start <= t.date <= period.end]
