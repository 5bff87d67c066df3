# Oikonomia - Bookkeeping ledger & reconciliation engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Ledger store and mutation services.

The ``LedgerStore`` holds the three record collections (transactions,
categories, accounts) and the closed-until cutoff. It is an immutable value:
every mutating service below takes the current store and returns a new one,
replacing whole collections. A rejected operation raises and leaves the
caller's store untouched, so no partial update can ever be observed.

Responsibilities
----------------
1) Read queries
   - look up transactions, accounts and categories by id,
   - list the transactions of a month,
   - display names, with explicit fallbacks for orphaned references.

2) Transaction services (all guarded by the period lock)
   - ``create_transaction``, ``update_transaction``, ``delete_transaction``,
   - ``import_batch``: all-or-nothing insertion of a validated batch,
   - ``commit_split``: expansion of one amount into several categories.

3) Period closing
   - ``close_through`` / ``reopen_all``.

4) Accounts and categories
   - add / update / remove. Removal neither cascades nor is blocked by
     transactions still referencing the record: those references become
     orphans and display as "Conta Removida" / "Sem Categoria".

Validation rules (data model invariants)
----------------------------------------
- ``amount >= 0`` (strictly positive for manual entries);
- transfer: no category, a destination account different from the source;
- income / expense: no destination, an existing category of the same type;
- the account (and the destination of a transfer) must exist when the
  transaction is written.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Optional

from . import periods
from .errors import LockViolation, ValidationError
from .models import (
    CATEGORY_TYPES,
    TRANSACTION_TYPES,
    BankAccount,
    Category,
    SplitRow,
    Transaction,
    to_money,
)
from .splits import expand_split
from .transfers import check_transfer_accounts

logger = logging.getLogger(__name__)

REMOVED_ACCOUNT_LABEL = "Conta Removida"
UNCATEGORIZED_LABEL = "Sem Categoria"
TRANSFER_LABEL = "Transferência"


@dataclass(frozen=True)
class LedgerStore:
    """
    Complete in-memory state of the ledger.

    Attributes
    ----------
    transactions, categories, accounts:
        Record collections, stored as tuples.
    closed_until:
        "YYYY-MM" cutoff; every month up to and including it is closed.
        Empty string when no month is closed.
    """

    transactions: tuple[Transaction, ...] = ()
    categories: tuple[Category, ...] = ()
    accounts: tuple[BankAccount, ...] = ()
    closed_until: str = ""


# ---------------------------------------------------------------------------
# Read queries
# ---------------------------------------------------------------------------


def get_transaction(ledger: LedgerStore, transaction_id: str) -> Optional[Transaction]:
    return next((t for t in ledger.transactions if t.id == transaction_id), None)


def get_account(ledger: LedgerStore, account_id: str) -> Optional[BankAccount]:
    return next((a for a in ledger.accounts if a.id == account_id), None)


def get_category(ledger: LedgerStore, category_id: str) -> Optional[Category]:
    return next((c for c in ledger.categories if c.id == category_id), None)


def find_account_by_name(ledger: LedgerStore, name: str) -> Optional[BankAccount]:
    """Case-insensitive lookup of an account by its display name."""
    wanted = name.strip().casefold()
    if not wanted:
        return None
    return next(
        (a for a in ledger.accounts if a.name.strip().casefold() == wanted), None
    )


def find_category_by_name(ledger: LedgerStore, name: str) -> Optional[Category]:
    """Case-insensitive lookup of a category by its display name."""
    wanted = name.strip().casefold()
    if not wanted:
        return None
    return next(
        (c for c in ledger.categories if c.name.strip().casefold() == wanted), None
    )


def account_name(ledger: LedgerStore, account_id: Optional[str]) -> str:
    """Display name of an account, or "Conta Removida" for orphans."""
    account = get_account(ledger, account_id or "")
    return account.name if account else REMOVED_ACCOUNT_LABEL


def category_name(ledger: LedgerStore, transaction: Transaction) -> str:
    """Display name of a transaction's category ("Transferência" for transfers)."""
    if transaction.is_transfer:
        return TRANSFER_LABEL
    category = get_category(ledger, transaction.category_id)
    return category.name if category else UNCATEGORIZED_LABEL


def transactions_for_month(ledger: LedgerStore, month: str) -> list[Transaction]:
    """Transactions of a calendar month, sorted by date (oldest first)."""
    month = periods.parse_month(month)
    return sorted(
        (t for t in ledger.transactions if t.month == month), key=lambda t: t.date
    )


def orphaned_transactions(ledger: LedgerStore) -> list[Transaction]:
    """Transactions referencing an account or category that no longer exists."""
    account_ids = {a.id for a in ledger.accounts}
    category_ids = {c.id for c in ledger.categories}
    orphans = []
    for t in ledger.transactions:
        refs_ok = t.account_id in account_ids
        if t.is_transfer:
            refs_ok = refs_ok and t.destination_account_id in account_ids
        else:
            refs_ok = refs_ok and t.category_id in category_ids
        if not refs_ok:
            orphans.append(t)
    return orphans


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_transaction(
    ledger: LedgerStore, transaction: Transaction, *, allow_zero: bool = False
) -> None:
    """
    Check a transaction against the data model invariants.

    Parameters
    ----------
    ledger:
        Store used to resolve account and category references.
    transaction:
        Record to validate.
    allow_zero:
        Accept a zero amount (imported records); manual entries require a
        strictly positive amount.

    Raises
    ------
    ValidationError
        On the first broken rule, with a message suitable for the user.
    """
    t = transaction
    if not str(t.description or "").strip():
        raise ValidationError("A description is required.")

    if t.type not in TRANSACTION_TYPES:
        raise ValidationError(f"Unknown transaction type: {t.type!r}.")

    if not isinstance(t.amount, Decimal):
        raise ValidationError(f"Amount must be a Decimal, got {t.amount!r}.")
    if not t.amount.is_finite():
        raise ValidationError(f"Amount must be a finite number, got {t.amount!r}.")
    if t.amount < 0:
        raise ValidationError("Amount cannot be negative; use the type for direction.")
    if t.amount == 0 and not allow_zero:
        raise ValidationError("Amount must be greater than zero.")

    if not t.account_id:
        raise ValidationError("An account is required.")
    if get_account(ledger, t.account_id) is None:
        raise ValidationError(f"Unknown account: {t.account_id!r}.")

    if t.type == "transfer":
        if t.category_id:
            raise ValidationError("A transfer cannot have a category.")
        check_transfer_accounts(t.account_id, t.destination_account_id)
        if get_account(ledger, t.destination_account_id) is None:
            raise ValidationError(
                f"Unknown destination account: {t.destination_account_id!r}."
            )
        return

    if t.destination_account_id:
        raise ValidationError("Only transfers can have a destination account.")
    if not t.category_id:
        raise ValidationError("Select a category.")
    category = get_category(ledger, t.category_id)
    if category is None:
        raise ValidationError(f"Unknown category: {t.category_id!r}.")
    if category.type != t.type:
        raise ValidationError(
            f"Category {category.name!r} is an {category.type} category and "
            f"cannot classify an {t.type} transaction."
        )


def _ensure_new_ids(ledger: LedgerStore, transactions: Sequence[Transaction]) -> None:
    existing = {t.id for t in ledger.transactions}
    seen: set[str] = set()
    for t in transactions:
        if t.id in existing or t.id in seen:
            raise ValidationError(f"Duplicate transaction id: {t.id!r}.")
        seen.add(t.id)


# ---------------------------------------------------------------------------
# Transaction services
# ---------------------------------------------------------------------------


def create_transaction(ledger: LedgerStore, transaction: Transaction) -> LedgerStore:
    """
    Add one manually entered transaction.

    Raises
    ------
    LockViolation
        If the transaction's month is closed.
    ValidationError
        If the transaction breaks an invariant.
    """
    periods.ensure_unlocked(transaction.date, ledger.closed_until, "create")
    validate_transaction(ledger, transaction)
    _ensure_new_ids(ledger, [transaction])

    logger.debug("Creating transaction %s (%s)", transaction.id, transaction.type)
    return replace(ledger, transactions=ledger.transactions + (transaction,))


def update_transaction(ledger: LedgerStore, transaction: Transaction) -> LedgerStore:
    """
    Replace an existing transaction (matched by id) with a new version.

    Both the current date and the new date must be in open months: a record
    can neither be edited in a closed month nor moved into one.
    """
    current = get_transaction(ledger, transaction.id)
    if current is None:
        raise ValidationError(f"Unknown transaction: {transaction.id!r}.")

    periods.ensure_unlocked(current.date, ledger.closed_until, "edit")
    periods.ensure_unlocked(transaction.date, ledger.closed_until, "move")
    # Imported zero-amount records stay editable.
    validate_transaction(ledger, transaction, allow_zero=current.amount == 0)

    logger.debug("Updating transaction %s", transaction.id)
    return replace(
        ledger,
        transactions=tuple(
            transaction if t.id == transaction.id else t for t in ledger.transactions
        ),
    )


def delete_transaction(ledger: LedgerStore, transaction_id: str) -> LedgerStore:
    """Remove a transaction, unless its month is closed."""
    current = get_transaction(ledger, transaction_id)
    if current is None:
        raise ValidationError(f"Unknown transaction: {transaction_id!r}.")

    periods.ensure_unlocked(current.date, ledger.closed_until, "delete")

    logger.debug("Deleting transaction %s", transaction_id)
    return replace(
        ledger,
        transactions=tuple(t for t in ledger.transactions if t.id != transaction_id),
    )


def import_batch(
    ledger: LedgerStore, transactions: Iterable[Transaction]
) -> LedgerStore:
    """
    Insert a batch of transactions, all or nothing.

    The whole batch is rejected with LockViolation if any record falls in a
    closed month, and with ValidationError if any record is invalid (the
    message names the offending row). Zero amounts are accepted.
    """
    batch = list(transactions)
    if not batch:
        return ledger

    periods.ensure_batch_unlocked(batch, ledger.closed_until)
    for index, t in enumerate(batch):
        try:
            validate_transaction(ledger, t, allow_zero=True)
        except ValidationError as exc:
            raise ValidationError(f"Row {index + 1}: {exc}") from exc
    _ensure_new_ids(ledger, batch)

    logger.info("Imported %d transaction(s)", len(batch))
    return replace(ledger, transactions=ledger.transactions + tuple(batch))


def commit_split(
    ledger: LedgerStore, base: Transaction, rows: Sequence[SplitRow]
) -> LedgerStore:
    """
    Record ``base`` as one transaction per split row.

    ``base`` carries the date, account, type, supplier, document reference and
    total amount; its own category is ignored. Either every generated
    transaction is inserted or none is.

    Raises
    ------
    LockViolation
        If the base date is in a closed month.
    SplitMismatch
        If the rows do not add up to the amount (the error carries the delta).
    ValidationError
        For any other invalid row or base field.
    """
    periods.ensure_unlocked(base.date, ledger.closed_until, "create")
    if not base.amount.is_finite() or base.amount <= 0:
        raise ValidationError("Amount must be greater than zero.")

    generated = expand_split(base, rows)
    for index, t in enumerate(generated):
        try:
            validate_transaction(ledger, t)
        except ValidationError as exc:
            raise ValidationError(f"Split row {index + 1}: {exc}") from exc
    _ensure_new_ids(ledger, generated)

    logger.debug("Split %s into %d transaction(s)", base.description, len(generated))
    return replace(ledger, transactions=ledger.transactions + tuple(generated))


def reset_transactions(ledger: LedgerStore) -> LedgerStore:
    """
    Delete every transaction.

    Refused with LockViolation while closed months still hold transactions:
    reopen the period first.
    """
    locked = [
        t for t in ledger.transactions
        if periods.is_date_locked(t.date, ledger.closed_until)
    ]
    if locked:
        raise LockViolation(
            f"Cannot delete all transactions: {len(locked)} belong to closed "
            f"months (closed until {ledger.closed_until}).",
            closed_until=ledger.closed_until,
        )
    logger.warning("Deleting all %d transaction(s)", len(ledger.transactions))
    return replace(ledger, transactions=())


# ---------------------------------------------------------------------------
# Period closing
# ---------------------------------------------------------------------------


def close_through(ledger: LedgerStore, month: str) -> LedgerStore:
    """Close every month up to and including ``month`` (never moves back)."""
    cutoff = periods.close_through(ledger.closed_until, month)
    logger.info("Closed months through %s", cutoff)
    return replace(ledger, closed_until=cutoff)


def reopen_all(ledger: LedgerStore) -> LedgerStore:
    """Clear the cutoff: every month becomes editable again."""
    logger.info("Reopened all months (previous cutoff: %s)", ledger.closed_until or "-")
    return replace(ledger, closed_until=periods.reopen_all())


# ---------------------------------------------------------------------------
# Accounts and categories
# ---------------------------------------------------------------------------


def _money_or_error(value, label: str) -> Decimal:
    try:
        amount = to_money(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid {label}: {value!r}.") from exc
    if not amount.is_finite():
        raise ValidationError(f"Invalid {label}: {value!r}.")
    return amount


def add_account(ledger: LedgerStore, account: BankAccount) -> LedgerStore:
    if not account.name.strip():
        raise ValidationError("The account name is required.")
    if get_account(ledger, account.id) is not None:
        raise ValidationError(f"Duplicate account id: {account.id!r}.")
    account = replace(
        account, initial_balance=_money_or_error(account.initial_balance, "balance")
    )
    return replace(ledger, accounts=ledger.accounts + (account,))


def update_account(ledger: LedgerStore, account: BankAccount) -> LedgerStore:
    """Replace an account's name, initial balance and start date."""
    if get_account(ledger, account.id) is None:
        raise ValidationError(f"Unknown account: {account.id!r}.")
    if not account.name.strip():
        raise ValidationError("The account name is required.")
    account = replace(
        account, initial_balance=_money_or_error(account.initial_balance, "balance")
    )
    return replace(
        ledger,
        accounts=tuple(account if a.id == account.id else a for a in ledger.accounts),
    )


def remove_account(ledger: LedgerStore, account_id: str) -> LedgerStore:
    """
    Remove an account.

    Transactions referencing it are kept as they are (orphans); their account
    displays as "Conta Removida" and their amounts no longer count in any
    balance.
    """
    if get_account(ledger, account_id) is None:
        raise ValidationError(f"Unknown account: {account_id!r}.")
    referencing = sum(
        1
        for t in ledger.transactions
        if account_id in (t.account_id, t.destination_account_id)
    )
    if referencing:
        logger.warning(
            "Removing account %s leaves %d orphaned transaction(s)",
            account_id,
            referencing,
        )
    return replace(
        ledger, accounts=tuple(a for a in ledger.accounts if a.id != account_id)
    )


def add_category(ledger: LedgerStore, category: Category) -> LedgerStore:
    if not category.name.strip():
        raise ValidationError("The category name is required.")
    if category.type not in CATEGORY_TYPES:
        raise ValidationError(f"Invalid category type: {category.type!r}.")
    if get_category(ledger, category.id) is not None:
        raise ValidationError(f"Duplicate category id: {category.id!r}.")
    if category.budget is not None:
        category = replace(category, budget=_money_or_error(category.budget, "budget"))
    return replace(ledger, categories=ledger.categories + (category,))


def update_category_budget(
    ledger: LedgerStore, category_id: str, budget
) -> LedgerStore:
    """Set the monthly budget of a category (None clears it)."""
    category = get_category(ledger, category_id)
    if category is None:
        raise ValidationError(f"Unknown category: {category_id!r}.")
    value = None if budget is None else _money_or_error(budget, "budget")
    if value is not None and value < 0:
        raise ValidationError("A budget cannot be negative.")
    updated = replace(category, budget=value)
    return replace(
        ledger,
        categories=tuple(
            updated if c.id == category_id else c for c in ledger.categories
        ),
    )


def remove_category(ledger: LedgerStore, category_id: str) -> LedgerStore:
    """
    Remove a category.

    Transactions keep their (now orphaned) category id and display as
    "Sem Categoria".
    """
    if get_category(ledger, category_id) is None:
        raise ValidationError(f"Unknown category: {category_id!r}.")
    referencing = sum(1 for t in ledger.transactions if t.category_id == category_id)
    if referencing:
        logger.warning(
            "Removing category %s leaves %d orphaned transaction(s)",
            category_id,
            referencing,
        )
    return replace(
        ledger, categories=tuple(c for c in ledger.categories if c.id != category_id)
    )
