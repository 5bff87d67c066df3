# Oikonomia - Bookkeeping ledger & reconciliation engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Data model for Oikonomia.

This module defines the typed records manipulated by the engine:

- ``BankAccount``      a bank (or cash) account with an initial balance,
- ``Category``         an income or expense budget category,
- ``Transaction``      one stored money movement,
- ``StagedCandidate``  an imported record pending user review,
- ``SplitRow``         one (category, amount) allocation of a split.

Money is always represented as ``decimal.Decimal`` quantized to cents. The
persistence layer stores integer cents, like the original accounting-entries
schema.

Direction of a transaction is carried by ``type`` and never by the sign of
``amount``, which is always non-negative.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal, Optional

TransactionType = Literal["income", "expense", "transfer"]
CategoryType = Literal["income", "expense"]
SourceType = Literal["statement", "sheet", "manual"]

TRANSACTION_TYPES: tuple[str, ...] = ("income", "expense", "transfer")
CATEGORY_TYPES: tuple[str, ...] = ("income", "expense")

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Convert a number (int, float, str, Decimal) to a Decimal rounded to cents."""
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, float):
        # str() gives the shortest repr, avoiding binary noise (0.1 -> 0.1000...)
        amount = Decimal(str(value))
    else:
        amount = Decimal(value)
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(amount: Decimal) -> int:
    """Return the amount as an integer number of cents."""
    return int(to_money(amount) * 100)


def from_cents(cents: int) -> Decimal:
    """Inverse of ``to_cents``."""
    return (Decimal(int(cents)) / 100).quantize(CENT)


def new_id() -> str:
    """Generate a short random identifier for a new record."""
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class BankAccount:
    """A bank account. Its balance is never stored, only derived."""

    id: str
    name: str
    initial_balance: Decimal = Decimal("0.00")
    start_date: Optional[date] = None


@dataclass(frozen=True)
class Category:
    """
    Budget category.

    ``budget`` is a monthly planning figure; nothing prevents exceeding it.
    """

    id: str
    name: str
    type: CategoryType
    budget: Optional[Decimal] = None


@dataclass(frozen=True)
class Transaction:
    """
    One stored money movement.

    Attributes
    ----------
    amount:
        Non-negative magnitude. Direction comes from ``type``.
    category_id:
        Empty for transfers, required otherwise.
    account_id:
        Source account (where the money comes from for expenses and
        transfers, where it lands for income).
    destination_account_id:
        Target account, set only for transfers.
    document_ref:
        Invoice / fiscal document number ("nota fiscal").
    """

    id: str
    date: date
    description: str
    amount: Decimal
    type: TransactionType
    account_id: str
    category_id: str = ""
    destination_account_id: Optional[str] = None
    supplier: str = ""
    document_ref: str = ""
    notes: str = ""

    @property
    def month(self) -> str:
        """Calendar month of the transaction as 'YYYY-MM'."""
        return f"{self.date.year:04d}-{self.date.month:02d}"

    @property
    def is_transfer(self) -> bool:
        return self.type == "transfer"


@dataclass(frozen=True)
class SplitRow:
    """One allocation of a split: a category and a strictly positive amount."""

    category_id: str
    amount: Decimal
    description: str = ""


@dataclass(frozen=True)
class StagedCandidate:
    """
    Normalized, not-yet-committed record produced by an import adapter.

    ``signed_amount`` keeps the literal sign found in the source (negative for
    money leaving the statement account); ``magnitude`` is its absolute value.

    References that could not be resolved are left empty. A candidate whose
    destination/category cell named another account carries that account in
    ``transfer_account_id`` and becomes a transfer at commit time.

    ``auto_matched`` flags rows whose category/supplier was pre-filled from
    history by the smart matcher, so that the review step can show them
    distinctly from rows the user has to classify.
    """

    date: date
    magnitude: Decimal
    signed_amount: Decimal
    description: str
    account_id: str = ""
    category_id: str = ""
    supplier: str = ""
    document_ref: str = ""
    transfer_account_id: str = ""
    auto_matched: bool = False
    source_type: SourceType = "statement"
    raw_type: str = field(default="", compare=False)

    @property
    def is_transfer(self) -> bool:
        return bool(self.transfer_account_id)

    @property
    def flow_type(self) -> TransactionType:
        """Type the candidate will get once committed."""
        if self.is_transfer:
            return "transfer"
        return "income" if self.signed_amount > 0 else "expense"

    @property
    def missing_references(self) -> list[str]:
        """Names of the references that still block the commit of this row."""
        missing = []
        if not self.account_id:
            missing.append("account")
        if not self.is_transfer and not self.category_id:
            missing.append("category")
        return missing
