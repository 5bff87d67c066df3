# Oikonomia - Bookkeeping ledger & reconciliation engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Split ("rateio") allocator.

A split divides one amount across several categories. Each allocation row
becomes its own ledger record (or its own staged candidate during an import).

Validation is performed in this order, before anything is produced:

1) every row has a non-empty category and a strictly positive amount;
2) the rows add up to the target amount within a tolerance of 0.01.

Any penny left by the tolerance check is absorbed into the largest row, so
the generated magnitudes always sum exactly to the target. The expansion is
atomic: it either returns every generated record or raises.
"""

from collections.abc import Sequence
from dataclasses import replace
from decimal import Decimal, InvalidOperation

from .errors import SplitMismatch, ValidationError
from .models import SplitRow, StagedCandidate, Transaction, new_id, to_money

SPLIT_TOLERANCE = Decimal("0.01")
SPLIT_NOTE_PREFIX = "Rateio de: "
SPLIT_DESCRIPTION_SUFFIX = " (Rateio)"


def _row_amount(row: SplitRow, index: int) -> Decimal:
    try:
        amount = to_money(row.amount)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError(
            f"Split row {index + 1} has an invalid amount: {row.amount!r}."
        ) from exc
    if not amount.is_finite():
        raise ValidationError(
            f"Split row {index + 1} has an invalid amount: {row.amount!r}."
        )
    return amount


def allocate_split(target, rows: Sequence[SplitRow]) -> list[Decimal]:
    """
    Validate split rows against a target amount.

    Parameters
    ----------
    target:
        Magnitude to partition (non-negative).
    rows:
        Allocation rows.

    Returns
    -------
    list[Decimal]
        One amount per row, in row order, summing exactly to ``target``.

    Raises
    ------
    ValidationError
        If there are no rows, or a row lacks a category or has an amount <= 0.
    SplitMismatch
        If the rows do not add up to the target within 0.01. The exception
        carries the computed ``delta`` (total - target).
    """
    try:
        target = to_money(target)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid split target: {target!r}.") from exc
    if not target.is_finite() or target < 0:
        raise ValidationError(f"Invalid split target: {target!r}.")
    if not rows:
        raise ValidationError("A split requires at least one row.")

    amounts = []
    for index, row in enumerate(rows):
        amount = _row_amount(row, index)
        if not row.category_id:
            raise ValidationError(f"Split row {index + 1} has no category.")
        if amount <= 0:
            raise ValidationError(
                f"Split row {index + 1} must have an amount greater than zero."
            )
        amounts.append(amount)

    total = sum(amounts, Decimal("0"))
    if abs(total - target) > SPLIT_TOLERANCE:
        raise SplitMismatch(total=total, target=target)

    residual = target - total
    if residual:
        largest = max(range(len(amounts)), key=lambda i: amounts[i])
        adjusted = amounts[largest] + residual
        if adjusted <= 0:
            raise SplitMismatch(total=total, target=target)
        amounts[largest] = adjusted

    return amounts


def expand_split(base: Transaction, rows: Sequence[SplitRow]) -> list[Transaction]:
    """
    Expand a transaction into one transaction per split row.

    Each generated transaction inherits date, account, type, supplier and
    document reference from ``base``, carries its row's category and amount,
    and is annotated with a note pointing back to the original description.
    A row description, when given, replaces the base description.

    Raises
    ------
    ValidationError
        If ``base`` is a transfer (transfers are never split) or the rows are
        invalid (see ``allocate_split``).
    """
    if base.type == "transfer":
        raise ValidationError("Transfers cannot be split across categories.")

    amounts = allocate_split(base.amount, rows)
    return [
        replace(
            base,
            id=new_id(),
            amount=amount,
            category_id=row.category_id,
            description=row.description or base.description,
            destination_account_id=None,
            notes=f"{SPLIT_NOTE_PREFIX}{base.description}",
        )
        for row, amount in zip(rows, amounts)
    ]


def split_candidate(
    candidate: StagedCandidate, rows: Sequence[SplitRow]
) -> list[StagedCandidate]:
    """
    Split a staged import candidate during review.

    The generated candidates keep the sign of the original amount and get a
    " (Rateio)" suffix on their description. They are no longer flagged as
    auto-matched since the user classified them explicitly.
    """
    if candidate.is_transfer:
        raise ValidationError("Transfers cannot be split across categories.")

    amounts = allocate_split(candidate.magnitude, rows)
    negative = candidate.signed_amount < 0
    return [
        replace(
            candidate,
            magnitude=amount,
            signed_amount=-amount if negative else amount,
            category_id=row.category_id,
            description=f"{row.description or candidate.description}"
            f"{SPLIT_DESCRIPTION_SUFFIX}",
            auto_matched=False,
        )
        for row, amount in zip(rows, amounts)
    ]
