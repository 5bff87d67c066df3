# Oikonomia - Bookkeeping ledger & reconciliation engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Exceptions raised by the ledger engine.

All errors derive from ``LedgerError`` (itself a ``ValueError``) so callers
that only care about "the input was refused" can catch a single type. None of
them is fatal: a rejected operation never modifies the ledger store.
"""

from decimal import Decimal


class LedgerError(ValueError):
    """Base class for every error raised by the ledger engine."""


class ValidationError(LedgerError):
    """Input is incomplete or breaks a data model invariant."""


class SplitMismatch(ValidationError):
    """Split rows do not add up to the target amount (beyond 0.01)."""

    def __init__(self, total: Decimal, target: Decimal) -> None:
        self.total = total
        self.target = target
        self.delta = total - target
        super().__init__(
            f"Split rows sum to {total} but the target amount is {target} "
            f"(difference: {self.delta})."
        )


class LockViolation(LedgerError):
    """A mutation touches a month that is closed."""

    def __init__(self, message: str, closed_until: str = "") -> None:
        self.closed_until = closed_until
        super().__init__(message)


class ImportFormatError(LedgerError):
    """A single imported record has an unparseable date or amount."""


class ReferenceGapError(LedgerError):
    """Staged candidates still miss an account or category reference.

    ``gaps`` maps the candidate index to the list of missing fields.
    """

    def __init__(self, gaps: dict[int, list[str]]) -> None:
        self.gaps = gaps
        details = "; ".join(
            f"row {index + 1}: {', '.join(fields)}"
            for index, fields in sorted(gaps.items())
        )
        super().__init__(
            f"{len(gaps)} staged row(s) need manual resolution before commit "
            f"({details})."
        )
