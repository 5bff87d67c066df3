# Oikonomia - Bookkeeping ledger & reconciliation engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Transfer resolver.

A transfer between two accounts is stored as a single transaction carrying
both legs: ``account_id`` is the source (money leaves it) and
``destination_account_id`` the destination (money arrives there). The
magnitude is always positive.

When a transfer comes from a bank statement, the sign of the raw amount tells
the direction relative to the statement's own account:

- negative amount: money left the statement account
  -> source = statement account, destination = counter-account;
- positive amount: money arrived on the statement account
  -> source = counter-account, destination = statement account.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional

from .errors import ValidationError
from .models import Transaction, new_id, to_money


def check_transfer_accounts(source_id: str, destination_id: Optional[str]) -> None:
    """Validate the pair of account references of a transfer."""
    if not source_id:
        raise ValidationError("A transfer requires a source account.")
    if not destination_id:
        raise ValidationError("A transfer requires a destination account.")
    if source_id == destination_id:
        raise ValidationError(
            "The destination account cannot be the same as the source account."
        )


def resolve_transfer(
    source_id: str,
    destination_id: str,
    amount,
    *,
    on: date,
    description: str,
    notes: str = "",
    transaction_id: Optional[str] = None,
) -> Transaction:
    """
    Build the stored record of a transfer intent.

    Parameters
    ----------
    source_id, destination_id:
        Accounts the money leaves / arrives on. Must be distinct and non-empty.
    amount:
        Strictly positive magnitude.
    on:
        Date of the transfer.
    description:
        Free text label.
    transaction_id:
        Reuse an existing id (edits); a new id is generated otherwise.

    Raises
    ------
    ValidationError
        If an account is missing, both accounts are equal or amount <= 0.
    """
    check_transfer_accounts(source_id, destination_id)
    try:
        magnitude = to_money(amount)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid transfer amount: {amount!r}.") from exc
    if not magnitude.is_finite() or magnitude <= 0:
        raise ValidationError("A transfer amount must be greater than zero.")

    return Transaction(
        id=transaction_id or new_id(),
        date=on,
        description=description,
        amount=magnitude,
        type="transfer",
        account_id=source_id,
        category_id="",
        destination_account_id=destination_id,
        supplier="",
        document_ref="",
        notes=notes,
    )


def statement_transfer_roles(
    statement_account_id: str,
    counter_account_id: str,
    signed_amount: Decimal,
) -> tuple[str, str]:
    """
    Return ``(source_id, destination_id)`` for a transfer read from a statement.

    The statement account is always the side consistent with the literal sign
    of the raw amount: it is the source when money left it (negative amount)
    and the destination when money arrived (positive amount).
    """
    check_transfer_accounts(statement_account_id, counter_account_id)
    if signed_amount < 0:
        return statement_account_id, counter_account_id
    return counter_account_id, statement_account_id
