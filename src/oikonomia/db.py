# Oikonomia - Bookkeeping ledger & reconciliation engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Database layer for Oikonomia.

The ledger is persisted as a small key-value store kept in SQLite. The engine
loads the whole state at start and saves it after every change; it does not
rely on the database for any business rule.

------------------------------------------------------------------------------
Schema Overview
------------------------------------------------------------------------------

One table:

    ledger_state
    - key         TEXT PRIMARY KEY
    - value       TEXT NOT NULL     -- JSON document
    - updated_at  TEXT NOT NULL     -- ISO datetime, UTC

Keys:

- ``transactions``  list of transaction objects,
- ``categories``    list of category objects,
- ``accounts``      list of bank account objects,
- ``closed_until``  "YYYY-MM" cutoff string ("" when nothing is closed).

Amounts are stored as integer cents (``amount_cents``,
``initial_balance_cents``, ``budget_cents``) and dates as ISO strings.

Legacy migration
----------------
Older versions stored an explicit list of closed months under the
``closed_months`` key. When that key is found, the cutoff is computed as the
greatest month of the list (only if no ``closed_until`` is stored yet) and
the legacy key is deleted.

Fresh databases
---------------
When no category or no account has ever been saved, the default chart of
categories and a default account are used (see ``defaults.py``).
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from .defaults import default_accounts, default_categories
from .ledger import LedgerStore
from .models import BankAccount, Category, Transaction, from_cents, to_cents
from .periods import migrate_closed_months

logger = logging.getLogger(__name__)

KEY_TRANSACTIONS = "transactions"
KEY_CATEGORIES = "categories"
KEY_ACCOUNTS = "accounts"
KEY_CLOSED_UNTIL = "closed_until"
LEGACY_KEY_CLOSED_MONTHS = "closed_months"


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Database configuration for Oikonomia.

    Attributes
    ----------
    engine:
        Database engine identifier. Only "sqlite" is supported.
    path:
        Path to the SQLite database file.
    """

    engine: str
    path: Path


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _ensure_sqlite(cfg: DatabaseConfig) -> None:
    """Raise if the configuration does not refer to a supported engine."""
    if cfg.engine.lower() != "sqlite":
        msg = (
            f"Unsupported database engine: {cfg.engine!r}. "
            "Only 'sqlite' is supported for now."
        )
        raise ValueError(msg)


def _connect(cfg: DatabaseConfig) -> sqlite3.Connection:
    """
    Open a SQLite connection.

    The caller is responsible for closing the connection.
    """
    _ensure_sqlite(cfg)
    return sqlite3.connect(cfg.path)


def _create_schema_if_needed(conn: sqlite3.Connection) -> None:
    """Create the key-value table if it does not exist yet (idempotent)."""
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS ledger_state (
            key         TEXT PRIMARY KEY,
            value       TEXT NOT NULL,
            updated_at  TEXT NOT NULL
        );
        """
    )
    conn.commit()


def _now_utc_iso() -> str:
    """Return the current UTC datetime as ISO string."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _optional_date(raw: Any) -> date | None:
    return date.fromisoformat(raw) if raw else None


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def transaction_to_dict(t: Transaction) -> dict[str, Any]:
    return {
        "id": t.id,
        "date": t.date.isoformat(),
        "description": t.description,
        "amount_cents": to_cents(t.amount),
        "type": t.type,
        "category_id": t.category_id,
        "account_id": t.account_id,
        "destination_account_id": t.destination_account_id,
        "supplier": t.supplier,
        "document_ref": t.document_ref,
        "notes": t.notes,
    }


def transaction_from_dict(data: Mapping[str, Any]) -> Transaction:
    return Transaction(
        id=str(data["id"]),
        date=date.fromisoformat(data["date"]),
        description=data.get("description") or "",
        amount=from_cents(data["amount_cents"]),
        type=data["type"],
        category_id=data.get("category_id") or "",
        account_id=data.get("account_id") or "",
        destination_account_id=data.get("destination_account_id") or None,
        supplier=data.get("supplier") or "",
        document_ref=data.get("document_ref") or "",
        notes=data.get("notes") or "",
    )


def category_to_dict(c: Category) -> dict[str, Any]:
    return {
        "id": c.id,
        "name": c.name,
        "type": c.type,
        "budget_cents": None if c.budget is None else to_cents(c.budget),
    }


def category_from_dict(data: Mapping[str, Any]) -> Category:
    budget = data.get("budget_cents")
    return Category(
        id=str(data["id"]),
        name=data["name"],
        type=data["type"],
        budget=None if budget is None else from_cents(budget),
    )


def account_to_dict(a: BankAccount) -> dict[str, Any]:
    return {
        "id": a.id,
        "name": a.name,
        "initial_balance_cents": to_cents(a.initial_balance),
        "start_date": a.start_date.isoformat() if a.start_date else None,
    }


def account_from_dict(data: Mapping[str, Any]) -> BankAccount:
    return BankAccount(
        id=str(data["id"]),
        name=data["name"],
        initial_balance=from_cents(data.get("initial_balance_cents") or 0),
        start_date=_optional_date(data.get("start_date")),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def init_database(cfg: DatabaseConfig) -> None:
    """
    Initialize the database schema if needed.

    - Creates the SQLite file (and its parent directory) if it does not exist.
    - Creates the ``ledger_state`` table if it is missing.
    - This function is idempotent: calling it multiple times is safe.

    Raises
    ------
    ValueError
        If cfg.engine is not supported.
    sqlite3.Error
        If schema creation fails.
    """
    cfg.path.parent.mkdir(parents=True, exist_ok=True)

    conn = _connect(cfg)
    try:
        _create_schema_if_needed(conn)
    finally:
        conn.close()


def read_raw_state(cfg: DatabaseConfig) -> dict[str, Any]:
    """Return every stored key with its decoded JSON value."""
    init_database(cfg)
    conn = _connect(cfg)
    try:
        rows = conn.execute("SELECT key, value FROM ledger_state;").fetchall()
    finally:
        conn.close()
    return {key: json.loads(value) for key, value in rows}


def write_raw_values(cfg: DatabaseConfig, values: Mapping[str, Any]) -> None:
    """Upsert several keys in a single SQLite transaction."""
    init_database(cfg)
    now = _now_utc_iso()
    conn = _connect(cfg)
    try:
        with conn:
            conn.executemany(
                """
                INSERT INTO ledger_state (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE
                   SET value = excluded.value,
                       updated_at = excluded.updated_at;
                """,
                [
                    (key, json.dumps(value, ensure_ascii=False), now)
                    for key, value in values.items()
                ],
            )
    finally:
        conn.close()


def delete_raw_key(cfg: DatabaseConfig, key: str) -> None:
    init_database(cfg)
    conn = _connect(cfg)
    try:
        with conn:
            conn.execute("DELETE FROM ledger_state WHERE key = ?;", (key,))
    finally:
        conn.close()


def _migrate_legacy_closed_months(cfg: DatabaseConfig, raw: dict[str, Any]) -> str:
    """
    Compute the cutoff, converting the legacy closed-months list if present.

    The legacy key is removed from the database once handled.
    """
    cutoff = raw.get(KEY_CLOSED_UNTIL)
    legacy = raw.get(LEGACY_KEY_CLOSED_MONTHS)

    if legacy is not None:
        if cutoff is None:
            months = legacy if isinstance(legacy, list) else []
            cutoff = migrate_closed_months(str(m) for m in months)
            write_raw_values(cfg, {KEY_CLOSED_UNTIL: cutoff})
            logger.info("Migrated legacy closed months %s to cutoff %r", months, cutoff)
        delete_raw_key(cfg, LEGACY_KEY_CLOSED_MONTHS)

    return str(cutoff or "")


def load_ledger(cfg: DatabaseConfig) -> LedgerStore:
    """
    Load the ledger from the database.

    Missing keys fall back to defaults: no transactions, the default chart of
    categories, a default account and no closed month. Seeded categories and
    accounts are written back at once so that their ids do not change.
    """
    raw = read_raw_state(cfg)
    closed_until = _migrate_legacy_closed_months(cfg, raw)
    seeded: dict[str, Any] = {}

    if KEY_CATEGORIES in raw:
        categories = tuple(category_from_dict(c) for c in raw[KEY_CATEGORIES])
    else:
        categories = default_categories()
        seeded[KEY_CATEGORIES] = [category_to_dict(c) for c in categories]

    if KEY_ACCOUNTS in raw:
        accounts = tuple(account_from_dict(a) for a in raw[KEY_ACCOUNTS])
    else:
        accounts = default_accounts()
        seeded[KEY_ACCOUNTS] = [account_to_dict(a) for a in accounts]

    # Seeded ids must stay stable across loads.
    if seeded:
        write_raw_values(cfg, seeded)
        logger.info("Seeded default %s", ", ".join(sorted(seeded)))

    transactions = tuple(
        transaction_from_dict(t) for t in raw.get(KEY_TRANSACTIONS) or []
    )

    logger.debug(
        "Loaded ledger: %d transaction(s), %d categorie(s), %d account(s)",
        len(transactions),
        len(categories),
        len(accounts),
    )
    return LedgerStore(
        transactions=transactions,
        categories=categories,
        accounts=accounts,
        closed_until=closed_until,
    )


def save_ledger(cfg: DatabaseConfig, ledger: LedgerStore) -> None:
    """Persist the four ledger values in a single SQLite transaction."""
    write_raw_values(
        cfg,
        {
            KEY_TRANSACTIONS: [transaction_to_dict(t) for t in ledger.transactions],
            KEY_CATEGORIES: [category_to_dict(c) for c in ledger.categories],
            KEY_ACCOUNTS: [account_to_dict(a) for a in ledger.accounts],
            KEY_CLOSED_UNTIL: ledger.closed_until,
        },
    )


def has_saved_state(cfg: DatabaseConfig) -> bool:
    """Return True if the ledger has been saved at least once."""
    return KEY_TRANSACTIONS in read_raw_state(cfg)
