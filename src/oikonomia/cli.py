# Oikonomia - Bookkeeping ledger & reconciliation engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for Oikonomia.

This module wires together the main building blocks of Oikonomia:

- configuration (database, import and display options),
- ledger persistence (SQLite key-value store),
- ledger services (transactions, transfers, splits, period closing),
- import pipeline (bank statements and spreadsheets),
- reports (balances, monthly summaries, budget vs actual, exports).

The CLI is intentionally thin: it does not implement bookkeeping logic
itself. Every command loads the ledger, calls one service function, saves
the resulting ledger when it changed, and prints the outcome. A rejected
operation (locked month, invalid record, unresolved import row) leaves the
stored ledger untouched and exits with a non-zero status.


Configuration
-------------

By default, the CLI reads ``oikonomia_config.toml`` in the current working
directory. When that file does not exist, built-in defaults are used (the
database lives in ``data/db/oikonomia.sqlite``). Use ``--config PATH`` to
point to another file; an explicit path must exist.

``--verbose`` enables debug logging of the engine modules on stderr.


Commands
--------

accounts
    ``list``, ``add NAME [--initial-balance X] [--start-date D]``,
    ``edit ID [--name N] [--initial-balance X] [--start-date D]``,
    ``remove ID``. Removing an account does not delete its transactions;
    they are displayed with the account "Conta Removida".

categories
    ``list [--type income|expense]``, ``add ID NAME --type T [--budget X]``,
    ``budget ID AMOUNT``, ``remove ID``.

tx
    ``list [--month YYYY-MM | --from-date D --to-date D] [--account ID]``,
    ``add``, ``edit ID``, ``delete ID``, ``transfer``, ``split`` and
    ``reset --yes``. A split takes repeated ``--part CATEGORY_ID=AMOUNT``
    arguments whose amounts must add up to ``--amount``.

import
    ``statement PATH [--account NAME]`` and ``sheet PATH``. Without
    ``--commit`` the staged rows are only previewed. Rows that could not be
    resolved can be completed with repeated ``--assign ROW:FIELD=VALUE``
    arguments, where FIELD is ``category`` (category id), ``account``
    (account name) or ``transfer`` (counter account name), and split with
    ``--split ROW:CATEGORY_ID=AMOUNT``. Rows are numbered from 1 as in
    the preview.

period
    ``status``, ``close YYYY-MM`` (closes every month up to and including
    it) and ``reopen`` (reopens everything).

balances
    Current balance of every account and the consolidated total.

summary
    ``--month`` statement (opening balance, income, expense, closing
    balance), the income/expense of the last ``--months`` months, and with
    ``--budget`` the budget vs actual table of the month.

export
    Flat list of one month's transactions written as
    ``lancamentos_YYYY-MM.csv`` (or ``.xlsx`` with ``--format xlsx``).

report
    ``categories [--month M] [--type income|expense]`` (totals per category,
    largest first), ``annual [--year Y]`` (income and expense per category
    and month, with monthly and yearly totals) and ``cash-flow [--month M]``
    (income, expense and result of every day of the month).


Display modes and output
------------------------

Tables are rendered with ``pandas.DataFrame.to_string``. The configuration
``display.mode`` ("table", "csv" or "both"), overridable with
``--display-mode``, controls whether list/report tables are also written as
CSV files into ``display.output_dir`` (or ``--output DIR``), using
timestamped file names such as ``balances_YYYY-MM-DD-HH-MM-SS.csv``.


Examples
--------

    oikonomia accounts add "Caixa" --initial-balance 150,00
    oikonomia tx add --date 2024-03-10 --type expense --amount 89.90 \\
        --description "Supermercado ABC" --account ACCOUNT_ID --category 2.1.02
    oikonomia import statement extrato.ofx --account "Conta Principal"
    oikonomia import statement extrato.ofx --assign 3:category=2.5.04 --commit
    oikonomia period close 2024-02
    oikonomia summary --month 2024-03 --budget
    oikonomia export --month 2024-03 --format xlsx
    oikonomia report annual --year 2024
"""

import argparse
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

import pandas as pd

from . import __version__
from .balances import all_balances, balances_to_dataframe, total_balance
from .config import AppConfig, default_app_config, load_app_config
from .db import init_database, load_ledger, save_ledger
from .errors import ReferenceGapError
from .importer import (
    commit_candidates,
    match_summary,
    split_staged,
    stage_statement_file,
    stage_tabular_file,
    unresolved_candidates,
    update_candidate,
)
from .ledger import (
    LedgerStore,
    add_account,
    add_category,
    close_through,
    commit_split,
    create_transaction,
    delete_transaction,
    find_account_by_name,
    get_account,
    get_transaction,
    remove_account,
    remove_category,
    reopen_all,
    reset_transactions,
    update_account,
    update_category_budget,
    update_transaction,
)
from .models import BankAccount, Category, SplitRow, Transaction, new_id, to_money
from .periods import (
    current_month,
    determine_period_from_args,
    filter_transactions_by_period,
    parse_month,
)
from .reports import (
    annual_category_matrix,
    annual_to_dataframe,
    budget_to_dataframe,
    budget_totals,
    budget_vs_actual,
    category_totals,
    category_totals_to_dataframe,
    daily_flow,
    daily_flow_to_dataframe,
    export_filename,
    export_records,
    month_statement,
    monthly_summary,
    recent_months,
    records_to_dataframe,
    summaries_to_dataframe,
    transactions_to_dataframe,
)
from .transfers import resolve_transfer

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def _add_period_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--month",
        help="Calendar month (YYYY-MM). Defaults to the current month.",
    )
    parser.add_argument(
        "--from-date",
        dest="from_date",
        help="Custom start date (YYYY-MM-DD). Overrides --month when set.",
    )
    parser.add_argument(
        "--to-date",
        dest="to_date",
        help="Custom end date (YYYY-MM-DD). Overrides --month when set.",
    )


def _add_transaction_fields(parser: argparse.ArgumentParser, required: bool) -> None:
    parser.add_argument("--date", required=required, help="Date (YYYY-MM-DD).")
    parser.add_argument("--description", required=required, help="Free text label.")
    parser.add_argument("--amount", required=required, help="Positive amount.")
    parser.add_argument("--account", help="Account id.")
    parser.add_argument("--supplier", help="Supplier / payer name.")
    parser.add_argument("--document", help="Invoice or receipt number.")
    parser.add_argument("--notes", help="Free text notes.")


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="oikonomia",
        description=(
            "Oikonomia - Bookkeeping ledger & reconciliation engine. "
            "Records income, expenses and transfers across bank accounts, "
            "imports bank statements and spreadsheets, closes periods and "
            "reports balances and budgets."
        ),
    )

    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of oikonomia and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the TOML configuration file. If omitted, "
            "'oikonomia_config.toml' in the current directory is used when present."
        ),
    )
    ap.add_argument(
        "--verbose",
        action="store_true",
        help="Log engine activity (debug level) to stderr.",
    )
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=["table", "csv", "both"],
        help="Override the display.mode setting from the configuration file.",
    )
    ap.add_argument(
        "--output",
        dest="output_dir",
        help="Directory for CSV/XLSX files. Overrides display.output_dir.",
    )

    subparsers = ap.add_subparsers(dest="command", metavar="command")

    # ------------------------------------------------------------------
    # accounts
    # ------------------------------------------------------------------
    accounts = subparsers.add_parser("accounts", help="Manage bank accounts.")
    accounts_sub = accounts.add_subparsers(
        dest="accounts_command", metavar="accounts-command"
    )

    accounts_sub.add_parser("list", help="List accounts with their balances.")

    acc_add = accounts_sub.add_parser("add", help="Create an account.")
    acc_add.add_argument("name")
    acc_add.add_argument("--initial-balance", dest="initial_balance", default="0")
    acc_add.add_argument("--start-date", dest="start_date")

    acc_edit = accounts_sub.add_parser("edit", help="Edit an account.")
    acc_edit.add_argument("account_id")
    acc_edit.add_argument("--name")
    acc_edit.add_argument("--initial-balance", dest="initial_balance")
    acc_edit.add_argument("--start-date", dest="start_date")

    acc_remove = accounts_sub.add_parser("remove", help="Remove an account.")
    acc_remove.add_argument("account_id")

    # ------------------------------------------------------------------
    # categories
    # ------------------------------------------------------------------
    categories = subparsers.add_parser(
        "categories", help="Manage categories and budgets."
    )
    categories_sub = categories.add_subparsers(
        dest="categories_command", metavar="categories-command"
    )

    cat_list = categories_sub.add_parser("list", help="List categories.")
    cat_list.add_argument("--type", choices=["income", "expense"])

    cat_add = categories_sub.add_parser("add", help="Create a category.")
    cat_add.add_argument("category_id")
    cat_add.add_argument("name")
    cat_add.add_argument("--type", required=True, choices=["income", "expense"])
    cat_add.add_argument("--budget")

    cat_budget = categories_sub.add_parser("budget", help="Set a monthly budget.")
    cat_budget.add_argument("category_id")
    cat_budget.add_argument("amount", help="Budget amount, or 'none' to clear it.")

    cat_remove = categories_sub.add_parser("remove", help="Remove a category.")
    cat_remove.add_argument("category_id")

    # ------------------------------------------------------------------
    # tx
    # ------------------------------------------------------------------
    tx = subparsers.add_parser("tx", help="Record and inspect transactions.")
    tx_sub = tx.add_subparsers(dest="tx_command", metavar="tx-command")

    tx_list = tx_sub.add_parser("list", help="List transactions for a period.")
    _add_period_arguments(tx_list)
    tx_list.add_argument(
        "--account", help="Only transactions touching this account id."
    )

    tx_add = tx_sub.add_parser("add", help="Record an income or expense.")
    _add_transaction_fields(tx_add, required=True)
    tx_add.add_argument("--type", required=True, choices=["income", "expense"])
    tx_add.add_argument("--category", required=True, help="Category id.")

    tx_edit = tx_sub.add_parser("edit", help="Edit a transaction.")
    tx_edit.add_argument("transaction_id")
    _add_transaction_fields(tx_edit, required=False)
    tx_edit.add_argument("--type", choices=["income", "expense", "transfer"])
    tx_edit.add_argument("--category", help="Category id.")
    tx_edit.add_argument("--destination", help="Destination account id (transfers).")

    tx_delete = tx_sub.add_parser("delete", help="Delete a transaction.")
    tx_delete.add_argument("transaction_id")

    tx_transfer = tx_sub.add_parser("transfer", help="Move money between accounts.")
    tx_transfer.add_argument(
        "--from", dest="source", required=True, help="Source account id."
    )
    tx_transfer.add_argument(
        "--to", dest="destination", required=True, help="Destination account id."
    )
    tx_transfer.add_argument("--amount", required=True)
    tx_transfer.add_argument("--date", required=True)
    tx_transfer.add_argument("--description", default="Transferência")
    tx_transfer.add_argument("--notes", default="")

    tx_split = tx_sub.add_parser("split", help="Record one payment across categories.")
    _add_transaction_fields(tx_split, required=True)
    tx_split.add_argument("--type", required=True, choices=["income", "expense"])
    tx_split.add_argument(
        "--part",
        action="append",
        required=True,
        metavar="CATEGORY_ID=AMOUNT",
        help="One allocation (repeatable).",
    )

    tx_reset = tx_sub.add_parser("reset", help="Delete every transaction.")
    tx_reset.add_argument("--yes", action="store_true", help="Confirm the deletion.")

    # ------------------------------------------------------------------
    # import
    # ------------------------------------------------------------------
    imp = subparsers.add_parser(
        "import", help="Import bank statements or spreadsheets."
    )
    imp_sub = imp.add_subparsers(dest="import_command", metavar="import-command")

    for name, help_text in (
        ("statement", "Import an OFX-like bank statement."),
        ("sheet", "Import a CSV or Excel spreadsheet."),
    ):
        p = imp_sub.add_parser(name, help=help_text)
        p.add_argument("path")
        if name == "statement":
            p.add_argument("--account", help="Name of the statement's bank account.")
        p.add_argument(
            "--assign",
            action="append",
            default=[],
            metavar="ROW:FIELD=VALUE",
            help="Fill a reference of a staged row (repeatable).",
        )
        p.add_argument(
            "--split",
            action="append",
            default=[],
            metavar="ROW:CATEGORY_ID=AMOUNT",
            help="Split a staged row (repeat with the same index for each part).",
        )
        p.add_argument(
            "--commit",
            action="store_true",
            help="Insert the staged rows into the ledger (preview only otherwise).",
        )

    # ------------------------------------------------------------------
    # period
    # ------------------------------------------------------------------
    period = subparsers.add_parser("period", help="Close or reopen months.")
    period_sub = period.add_subparsers(dest="period_command", metavar="period-command")
    period_sub.add_parser("status", help="Show the closed-until month.")
    close = period_sub.add_parser("close", help="Close every month up to MONTH.")
    close.add_argument("month")
    period_sub.add_parser("reopen", help="Reopen every month.")

    # ------------------------------------------------------------------
    # balances / summary / export
    # ------------------------------------------------------------------
    subparsers.add_parser("balances", help="Show account balances.")

    summary = subparsers.add_parser("summary", help="Monthly summary and budgets.")
    summary.add_argument("--month", help="Month (YYYY-MM), default: current month.")
    summary.add_argument(
        "--months", type=int, default=6, help="Number of months in the history table."
    )
    summary.add_argument("--budget", action="store_true", help="Show budget vs actual.")

    export = subparsers.add_parser("export", help="Export one month of transactions.")
    export.add_argument("--month", help="Month (YYYY-MM), default: current month.")
    export.add_argument("--format", choices=["csv", "xlsx"], default="csv")

    report = subparsers.add_parser("report", help="Category and cash flow reports.")
    report_sub = report.add_subparsers(
        dest="report_command", metavar="report-command"
    )
    rep_cat = report_sub.add_parser("categories", help="Totals per category.")
    rep_cat.add_argument("--month", help="Month (YYYY-MM), default: current month.")
    rep_cat.add_argument("--type", choices=["income", "expense"], default="expense")
    rep_annual = report_sub.add_parser(
        "annual", help="Category x month matrix of a year."
    )
    rep_annual.add_argument("--year", type=int, help="Year, default: current year.")
    rep_flow = report_sub.add_parser("cash-flow", help="Daily income and expense.")
    rep_flow.add_argument("--month", help="Month (YYYY-MM), default: current month.")

    return ap


# ---------------------------------------------------------------------------
# Value parsing helpers
# ---------------------------------------------------------------------------


def _parse_optional_date(value: Optional[str]) -> Optional[date]:
    """
    Parse an optional CLI date argument (YYYY-MM-DD).

    Raises
    ------
    SystemExit
        If the date format is invalid.
    """
    if value is None:
        return None

    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        msg = f"Invalid date format: {value!r}. Expected YYYY-MM-DD."
        raise SystemExit(msg) from exc


def _parse_amount(value: str) -> Decimal:
    """Parse an amount typed on the command line ("1234.56" or "1234,56")."""
    try:
        amount = to_money(value.strip().replace(",", "."))
    except (InvalidOperation, ValueError) as exc:
        raise SystemExit(f"Invalid amount: {value!r}.") from exc
    if not amount.is_finite():
        raise SystemExit(f"Invalid amount: {value!r}.")
    return amount


def _parse_part(value: str) -> SplitRow:
    category_id, sep, amount = value.partition("=")
    if not sep or not category_id.strip():
        raise SystemExit(f"Invalid split part: {value!r}. Expected CATEGORY_ID=AMOUNT.")
    return SplitRow(category_id=category_id.strip(), amount=_parse_amount(amount))


def _parse_indexed(value: str) -> tuple[int, str]:
    """Split 'ROW:REST' into (zero-based index, rest); rows are numbered from 1."""
    index_raw, sep, rest = value.partition(":")
    try:
        index = int(index_raw)
    except ValueError as exc:
        raise SystemExit(f"Invalid row index in {value!r}.") from exc
    if not sep:
        raise SystemExit(f"Invalid argument {value!r}. Expected ROW:...")
    return index - 1, rest


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _output_dir(args: argparse.Namespace, config: AppConfig) -> Path:
    output_dir = Path(args.output_dir) if args.output_dir else config.display.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def _render(
    df: pd.DataFrame, name: str, args: argparse.Namespace, config: AppConfig
) -> None:
    """Print a table and/or write it as CSV, depending on the display mode."""
    display_mode = args.display_mode or config.display.mode

    if display_mode in {"table", "both"}:
        if df.empty:
            print("(no rows)")
        else:
            print(df.to_string(index=False))

    if display_mode in {"csv", "both"}:
        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
        path = _output_dir(args, config) / f"{name}_{timestamp}.csv"
        df.to_csv(path, index=False)
        print(f"Wrote {path} ({len(df)} rows)")


def _money(value: Decimal, config: AppConfig) -> str:
    return f"{value:,.2f} {config.currency}"


# ---------------------------------------------------------------------------
# accounts
# ---------------------------------------------------------------------------


def _handle_accounts(args, config, ledger: LedgerStore) -> Optional[LedgerStore]:
    subcmd = args.accounts_command

    if subcmd == "list" or subcmd is None:
        df = balances_to_dataframe(ledger.transactions, ledger.accounts)
        _render(df, "accounts", args, config)
        return None

    if subcmd == "add":
        account = BankAccount(
            id=new_id(),
            name=args.name,
            initial_balance=_parse_amount(args.initial_balance),
            start_date=_parse_optional_date(args.start_date) or date.today(),
        )
        new_ledger = add_account(ledger, account)
        print(f"Account created: {account.id} ({account.name})")
        return new_ledger

    if subcmd == "edit":
        current = get_account(ledger, args.account_id)
        if current is None:
            raise SystemExit(f"Unknown account: {args.account_id!r}.")
        updated = BankAccount(
            id=current.id,
            name=args.name if args.name is not None else current.name,
            initial_balance=(
                _parse_amount(args.initial_balance)
                if args.initial_balance is not None
                else current.initial_balance
            ),
            start_date=_parse_optional_date(args.start_date) or current.start_date,
        )
        new_ledger = update_account(ledger, updated)
        print(f"Account updated: {updated.id} ({updated.name})")
        return new_ledger

    if subcmd == "remove":
        new_ledger = remove_account(ledger, args.account_id)
        print(f"Account removed: {args.account_id}")
        return new_ledger

    return None


# ---------------------------------------------------------------------------
# categories
# ---------------------------------------------------------------------------


def _handle_categories(args, config, ledger: LedgerStore) -> Optional[LedgerStore]:
    subcmd = args.categories_command

    if subcmd == "list" or subcmd is None:
        kind = getattr(args, "type", None)
        rows = [
            {
                "id": c.id,
                "name": c.name,
                "type": c.type,
                "budget": float(c.budget) if c.budget is not None else None,
            }
            for c in ledger.categories
            if kind is None or c.type == kind
        ]
        df = pd.DataFrame(rows, columns=["id", "name", "type", "budget"])
        _render(df, "categories", args, config)
        return None

    if subcmd == "add":
        category = Category(
            id=args.category_id,
            name=args.name,
            type=args.type,
            budget=_parse_amount(args.budget) if args.budget else None,
        )
        new_ledger = add_category(ledger, category)
        print(f"Category created: {category.id} ({category.name})")
        return new_ledger

    if subcmd == "budget":
        budget = None if args.amount.lower() == "none" else _parse_amount(args.amount)
        new_ledger = update_category_budget(ledger, args.category_id, budget)
        shown = budget if budget is not None else "-"
        print(f"Budget of {args.category_id} set to {shown}")
        return new_ledger

    if subcmd == "remove":
        new_ledger = remove_category(ledger, args.category_id)
        print(f"Category removed: {args.category_id}")
        return new_ledger

    return None


# ---------------------------------------------------------------------------
# tx
# ---------------------------------------------------------------------------


def _handle_tx_list(args, config, ledger: LedgerStore) -> None:
    try:
        period = determine_period_from_args(args)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc

    txs = filter_transactions_by_period(ledger.transactions, period)
    if args.account:
        txs = [
            t for t in txs
            if args.account in (t.account_id, t.destination_account_id)
        ]

    print(
        f"Applied period: {period.label} "
        f"({period.start.isoformat()} → {period.end.isoformat()})"
    )
    df = transactions_to_dataframe(ledger, txs)
    _render(df, "transactions", args, config)
    if not df.empty:
        print()
        print(f"Total transactions: {len(df)}")


def _handle_tx(args, config, ledger: LedgerStore) -> Optional[LedgerStore]:
    subcmd = args.tx_command

    if subcmd == "list" or subcmd is None:
        _handle_tx_list(args, config, ledger)
        return None

    if subcmd == "add":
        t = Transaction(
            id=new_id(),
            date=_parse_optional_date(args.date),
            description=args.description,
            amount=_parse_amount(args.amount),
            type=args.type,
            account_id=args.account or "",
            category_id=args.category,
            supplier=args.supplier or "",
            document_ref=args.document or "",
            notes=args.notes or "",
        )
        new_ledger = create_transaction(ledger, t)
        print(f"Transaction created: {t.id}")
        return new_ledger

    if subcmd == "edit":
        current = get_transaction(ledger, args.transaction_id)
        if current is None:
            raise SystemExit(f"Unknown transaction: {args.transaction_id!r}.")
        new_type = args.type or current.type
        updated = Transaction(
            id=current.id,
            date=_parse_optional_date(args.date) or current.date,
            description=(
                args.description
                if args.description is not None
                else current.description
            ),
            amount=_parse_amount(args.amount) if args.amount else current.amount,
            type=new_type,
            account_id=args.account or current.account_id,
            category_id=(
                "" if new_type == "transfer" else (args.category or current.category_id)
            ),
            destination_account_id=(
                (args.destination or current.destination_account_id)
                if new_type == "transfer"
                else None
            ),
            supplier=args.supplier if args.supplier is not None else current.supplier,
            document_ref=(
                args.document if args.document is not None else current.document_ref
            ),
            notes=args.notes if args.notes is not None else current.notes,
        )
        new_ledger = update_transaction(ledger, updated)
        print(f"Transaction updated: {updated.id}")
        return new_ledger

    if subcmd == "delete":
        new_ledger = delete_transaction(ledger, args.transaction_id)
        print(f"Transaction deleted: {args.transaction_id}")
        return new_ledger

    if subcmd == "transfer":
        t = resolve_transfer(
            args.source,
            args.destination,
            _parse_amount(args.amount),
            on=_parse_optional_date(args.date),
            description=args.description,
            notes=args.notes,
        )
        new_ledger = create_transaction(ledger, t)
        print(f"Transfer created: {t.id}")
        return new_ledger

    if subcmd == "split":
        base = Transaction(
            id=new_id(),
            date=_parse_optional_date(args.date),
            description=args.description,
            amount=_parse_amount(args.amount),
            type=args.type,
            account_id=args.account or "",
            supplier=args.supplier or "",
            document_ref=args.document or "",
            notes=args.notes or "",
        )
        rows = [_parse_part(p) for p in args.part]
        new_ledger = commit_split(ledger, base, rows)
        print(f"Split recorded: {len(rows)} transaction(s)")
        return new_ledger

    if subcmd == "reset":
        if not args.yes:
            raise SystemExit("Refusing to delete every transaction without --yes.")
        new_ledger = reset_transactions(ledger)
        print(f"Deleted {len(ledger.transactions)} transaction(s).")
        return new_ledger

    return None


# ---------------------------------------------------------------------------
# import
# ---------------------------------------------------------------------------


def _apply_assignments(candidates, ledger: LedgerStore, assignments):
    for raw in assignments:
        index, rest = _parse_indexed(raw)
        field, sep, value = rest.partition("=")
        if not sep or index < 0 or index >= len(candidates):
            raise SystemExit(f"Invalid assignment: {raw!r}.")

        if field == "category":
            candidates = update_candidate(candidates, index, category_id=value)
        elif field in {"account", "transfer"}:
            account = find_account_by_name(ledger, value)
            if account is None:
                raise SystemExit(f"Unknown account name: {value!r}.")
            key = "account_id" if field == "account" else "transfer_account_id"
            changes = {key: account.id}
            if field == "transfer":
                changes["category_id"] = ""
            candidates = update_candidate(candidates, index, **changes)
        else:
            raise SystemExit(
                f"Invalid field {field!r} in {raw!r}. "
                "Expected category, account or transfer."
            )
    return candidates


def _apply_splits(candidates, split_args):
    parts_by_index: dict[int, list[SplitRow]] = {}
    for raw in split_args:
        index, rest = _parse_indexed(raw)
        if index < 0 or index >= len(candidates):
            raise SystemExit(f"Invalid split: {raw!r}.")
        parts_by_index.setdefault(index, []).append(_parse_part(rest))

    # Highest index first so earlier indexes stay valid.
    for index in sorted(parts_by_index, reverse=True):
        candidates = split_staged(candidates, index, parts_by_index[index])
    return candidates


def _preview_candidates(candidates, limit: int) -> None:
    rows = []
    for index, c in enumerate(candidates[:limit] if limit else candidates):
        rows.append(
            {
                "#": index + 1,
                "date": c.date.isoformat(),
                "amount": float(c.signed_amount),
                "description": c.description,
                "type": c.flow_type,
                "category": c.category_id,
                "account": c.account_id,
                "transfer": c.transfer_account_id,
                "auto": "*" if c.auto_matched else "",
                "missing": ",".join(c.missing_references),
            }
        )
    if rows:
        print(pd.DataFrame(rows).to_string(index=False))
    if limit and len(candidates) > limit:
        print(f"... {len(candidates) - limit} more row(s)")

    stats = match_summary(candidates)
    print()
    print(
        f"Staged {stats['total']} row(s): {stats['auto_matched']} auto-matched, "
        f"{stats['transfers']} transfer(s), {stats['unresolved']} unresolved."
    )


def _handle_import(args, config, ledger: LedgerStore) -> Optional[LedgerStore]:
    subcmd = args.import_command
    if subcmd is None:
        print(
            "No import subcommand specified. "
            "Available subcommands are: 'statement', 'sheet'."
        )
        return None

    path = Path(args.path)
    if not path.is_file():
        raise SystemExit(f"File not found: {path}")

    if subcmd == "statement":
        account_name = args.account or config.imports.default_account
        account_id = ""
        if account_name:
            account = find_account_by_name(ledger, account_name)
            if account is None:
                raise SystemExit(f"Unknown account name: {account_name!r}.")
            account_id = account.id
        candidates = stage_statement_file(path, account_id, ledger)
    else:
        candidates = stage_tabular_file(path, ledger)

    candidates = _apply_assignments(candidates, ledger, args.assign)
    candidates = _apply_splits(candidates, args.split)

    _preview_candidates(candidates, config.imports.preview_rows)

    if not args.commit:
        gaps = unresolved_candidates(candidates)
        if gaps:
            print("Resolve the missing references with --assign before committing.")
        return None

    new_ledger = commit_candidates(ledger, candidates)
    print(f"Imported {len(candidates)} transaction(s) from {path}.")
    return new_ledger


# ---------------------------------------------------------------------------
# period / balances / summary / export
# ---------------------------------------------------------------------------


def _handle_period(args, config, ledger: LedgerStore) -> Optional[LedgerStore]:
    subcmd = args.period_command

    if subcmd == "close":
        new_ledger = close_through(ledger, args.month)
        print(f"Months closed through {new_ledger.closed_until}.")
        return new_ledger

    if subcmd == "reopen":
        print("All months reopened.")
        return reopen_all(ledger)

    if ledger.closed_until:
        print(f"Closed through: {ledger.closed_until}")
    else:
        print("No closed month.")
    return None


def _handle_balances(args, config, ledger: LedgerStore) -> None:
    df = balances_to_dataframe(ledger.transactions, ledger.accounts)
    _render(df, "balances", args, config)
    total = total_balance(all_balances(ledger.transactions, ledger.accounts))
    print()
    print(f"Total balance: {_money(total, config)}")


def _handle_summary(args, config, ledger: LedgerStore) -> None:
    month = parse_month(args.month) if args.month else current_month()

    statement = month_statement(ledger, month)
    print(f"=== Month {month} ===")
    print(f"Opening balance: {_money(statement.opening_balance, config)}")
    print(f"Income:          {_money(statement.income, config)}")
    print(f"Expense:         {_money(statement.expense, config)}")
    print(f"Result:          {_money(statement.result, config)}")
    print(f"Closing balance: {_money(statement.closing_balance, config)}")

    print()
    print(f"=== Last {args.months} month(s) ===")
    summaries = monthly_summary(ledger.transactions, recent_months(month, args.months))
    _render(summaries_to_dataframe(summaries), "summary", args, config)

    if args.budget:
        print()
        print("=== Budget vs actual ===")
        lines = [
            line for line in budget_vs_actual(ledger, month)
            if line.budget or line.actual
        ]
        _render(budget_to_dataframe(lines), "budget", args, config)
        for kind, totals in budget_totals(ledger, month).items():
            print(
                f"{kind}: budget {_money(totals['budget'], config)} | "
                f"actual {_money(totals['actual'], config)}"
            )


def _handle_export(args, config, ledger: LedgerStore) -> None:
    month = parse_month(args.month) if args.month else current_month()
    df = records_to_dataframe(export_records(ledger, month))
    if df.empty:
        print(f"No transactions in {month}; nothing to export.")
        return

    path = _output_dir(args, config) / export_filename(month, args.format)
    if args.format == "xlsx":
        df.to_excel(path, index=False, sheet_name="Lançamentos")
    else:
        df.to_csv(path, index=False)
    print(f"Wrote {path} ({len(df)} rows)")


def _handle_report(args, config, ledger: LedgerStore) -> None:
    subcmd = args.report_command

    if subcmd == "categories" or subcmd is None:
        raw_month = getattr(args, "month", None)
        month = parse_month(raw_month) if raw_month else current_month()
        kind = getattr(args, "type", "expense")
        totals = category_totals(ledger, month, kind)
        print(f"=== {kind.capitalize()} by category, {month} ===")
        _render(category_totals_to_dataframe(totals), "category_totals", args, config)
        return

    if subcmd == "annual":
        year = args.year if args.year is not None else int(current_month()[:4])
        for kind, section in annual_category_matrix(ledger, year).items():
            print(f"=== {kind.capitalize()} {year} ===")
            _render(annual_to_dataframe(section), f"annual_{kind}", args, config)
            print(f"Year total: {_money(section.total, config)}")
            print()
        return

    if subcmd == "cash-flow":
        month = parse_month(args.month) if args.month else current_month()
        days = daily_flow(ledger, month)
        print(f"=== Daily cash flow, {month} ===")
        _render(daily_flow_to_dataframe(days), "cash_flow", args, config)


_HANDLERS = {
    "accounts": _handle_accounts,
    "categories": _handle_categories,
    "tx": _handle_tx,
    "import": _handle_import,
    "period": _handle_period,
    "balances": _handle_balances,
    "summary": _handle_summary,
    "export": _handle_export,
    "report": _handle_report,
}


def _load_config(args: argparse.Namespace) -> AppConfig:
    if args.config_path:
        return load_app_config(args.config_path)
    try:
        return load_app_config()
    except FileNotFoundError:
        return default_app_config()


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the Oikonomia CLI.

    This function parses command-line arguments, loads the configuration,
    initializes the database, loads the ledger, dispatches to the selected
    command and saves the ledger when the command changed it. Domain errors
    are reported on stderr with a non-zero exit status.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"oikonomia version {__version__}")
        return

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return

    try:
        config = _load_config(args)
    except (FileNotFoundError, ValueError) as exc:
        raise SystemExit(f"Error: {exc}") from exc

    init_database(config.database)
    ledger = load_ledger(config.database)

    try:
        new_ledger = _HANDLERS[args.command](args, config, ledger)
    except ReferenceGapError as exc:
        raise SystemExit(f"Error: unresolved rows: {exc}") from exc
    except ValueError as exc:
        raise SystemExit(f"Error: {exc}") from exc

    if new_ledger is not None:
        save_ledger(config.database, new_ledger)
        logger.debug("Ledger saved to %s", config.database.path)


if __name__ == "__main__":
    main()
