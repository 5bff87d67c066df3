# Oikonomia - Bookkeeping ledger & reconciliation engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Read-only reports built on top of the ledger.

This module provides:
- monthly income/expense summaries (transfers excluded, since they only move
  money between the organisation's own accounts),
- the month statement (opening balance, result, closing balance),
- per-category totals and budget vs actual comparison,
- the annual category x month matrix and the daily cash flow of a month,
- flat export records for spreadsheet/CSV producers,
- helpers converting those results into pandas DataFrames for display.

Nothing here mutates the ledger.
"""

from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Optional

import pandas as pd

from .ledger import (
    LedgerStore,
    account_name,
    category_name,
    transactions_for_month,
)
from .models import Transaction, to_money
from .periods import parse_month, period_for_month, shift_month

TYPE_LABELS = {
    "income": "Receita",
    "expense": "Despesa",
    "transfer": "Transferência",
}

EXPORT_COLUMNS = [
    "Data",
    "Descrição",
    "Tipo",
    "Categoria",
    "Valor",
    "Conta",
    "Fornecedor",
    "Nota Fiscal",
    "Observações",
]

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class MonthSummary:
    """Income and expense totals of one calendar month."""

    month: str
    income: Decimal
    expense: Decimal

    @property
    def balance(self) -> Decimal:
        return to_money(self.income - self.expense)


@dataclass(frozen=True)
class MonthStatement:
    """
    Cash statement of one month across all accounts.

    opening_balance
        Sum of the accounts' initial balances plus every income and minus
        every expense dated before the month.
    closing_balance
        opening_balance plus the month's result.
    """

    month: str
    opening_balance: Decimal
    income: Decimal
    expense: Decimal

    @property
    def result(self) -> Decimal:
        return to_money(self.income - self.expense)

    @property
    def closing_balance(self) -> Decimal:
        return to_money(self.opening_balance + self.result)


@dataclass(frozen=True)
class BudgetLine:
    """Budget vs actual for one category in one month."""

    category_id: str
    name: str
    type: str
    budget: Decimal
    actual: Decimal

    @property
    def remaining(self) -> Decimal:
        return to_money(self.budget - self.actual)


@dataclass(frozen=True)
class AnnualRow:
    """One category across the twelve months of a year."""

    category_id: str
    name: str
    months: tuple[Decimal, ...]

    @property
    def total(self) -> Decimal:
        return to_money(sum(self.months, ZERO))


@dataclass(frozen=True)
class AnnualSection:
    """
    Income or expense part of the annual report.

    month_totals holds the column totals (January first); rows only lists
    categories with a non-zero year total.
    """

    type: str
    rows: tuple[AnnualRow, ...]
    month_totals: tuple[Decimal, ...]

    @property
    def total(self) -> Decimal:
        return to_money(sum(self.month_totals, ZERO))


@dataclass(frozen=True)
class DailyFlow:
    """Income and expense of one day."""

    day: date
    income: Decimal
    expense: Decimal

    @property
    def balance(self) -> Decimal:
        return to_money(self.income - self.expense)


def _sum(transactions: Iterable[Transaction], kind: str) -> Decimal:
    return to_money(sum((t.amount for t in transactions if t.type == kind), ZERO))


def recent_months(end_month: str, count: int = 6) -> list[str]:
    """Return ``count`` consecutive months ending at ``end_month`` (oldest first)."""
    end_month = parse_month(end_month)
    return [shift_month(end_month, -offset) for offset in range(count - 1, -1, -1)]


def monthly_summary(
    transactions: Iterable[Transaction], months: Sequence[str]
) -> list[MonthSummary]:
    """
    Income and expense per requested month.

    Months without transactions are reported with zero totals, so the result
    always has one entry per requested month, in the requested order.
    """
    wanted = [parse_month(m) for m in months]
    by_month: dict[str, list[Transaction]] = {m: [] for m in wanted}
    for t in transactions:
        if t.month in by_month:
            by_month[t.month].append(t)

    return [
        MonthSummary(
            month=m,
            income=_sum(by_month[m], "income"),
            expense=_sum(by_month[m], "expense"),
        )
        for m in wanted
    ]


def month_statement(ledger: LedgerStore, month: str) -> MonthStatement:
    """Opening balance, income, expense and closing balance for a month."""
    month = parse_month(month)
    before = [t for t in ledger.transactions if t.month < month]
    current = [t for t in ledger.transactions if t.month == month]

    initial = sum((a.initial_balance for a in ledger.accounts), ZERO)
    opening = initial + _sum(before, "income") - _sum(before, "expense")

    return MonthStatement(
        month=month,
        opening_balance=to_money(opening),
        income=_sum(current, "income"),
        expense=_sum(current, "expense"),
    )


def category_totals(ledger: LedgerStore, month: str, kind: str) -> dict[str, Decimal]:
    """
    Amount per category display name for one month and one flow type.

    Orphaned categories are grouped under "Sem Categoria". Sorted by amount,
    largest first.
    """
    totals: dict[str, Decimal] = {}
    for t in transactions_for_month(ledger, month):
        if t.type != kind:
            continue
        name = category_name(ledger, t)
        totals[name] = totals.get(name, ZERO) + t.amount
    return dict(sorted(totals.items(), key=lambda item: item[1], reverse=True))


def budget_vs_actual(
    ledger: LedgerStore, month: str, kind: Optional[str] = None
) -> list[BudgetLine]:
    """
    Compare each category's monthly budget with the month's actual amount.

    Parameters
    ----------
    ledger:
        Current store.
    month:
        "YYYY-MM".
    kind:
        Restrict to "income" or "expense" categories. All categories when None.

    Notes
    -----
    A category without a budget is reported with a zero budget.
    """
    actual: dict[str, Decimal] = {}
    for t in transactions_for_month(ledger, month):
        if t.is_transfer:
            continue
        actual[t.category_id] = actual.get(t.category_id, ZERO) + t.amount

    lines = []
    for c in ledger.categories:
        if kind is not None and c.type != kind:
            continue
        lines.append(
            BudgetLine(
                category_id=c.id,
                name=c.name,
                type=c.type,
                budget=to_money(c.budget if c.budget is not None else ZERO),
                actual=to_money(actual.get(c.id, ZERO)),
            )
        )
    return lines


def budget_totals(ledger: LedgerStore, month: str) -> dict[str, dict[str, Decimal]]:
    """Budgeted vs realized totals per flow type: ``{type: {budget, actual}}``."""
    current = transactions_for_month(ledger, month)
    result = {}
    for kind in ("income", "expense"):
        lines = budget_vs_actual(ledger, month, kind)
        result[kind] = {
            "budget": to_money(sum((line.budget for line in lines), ZERO)),
            "actual": _sum(current, kind),
        }
    return result


def annual_category_matrix(ledger: LedgerStore, year: int) -> dict[str, AnnualSection]:
    """
    Amount per category and month of ``year``, for income and expense.

    Only existing categories of the matching type are listed: transfers and
    orphaned records do not appear. Rows are sorted by category name and
    categories without any movement in the year are left out.

    Returns
    -------
    dict
        ``{"income": AnnualSection, "expense": AnnualSection}``.
    """
    amounts: dict[str, list[Decimal]] = {}
    for t in ledger.transactions:
        if t.date.year != year or t.is_transfer:
            continue
        months = amounts.setdefault(t.category_id, [ZERO] * 12)
        months[t.date.month - 1] += t.amount

    sections = {}
    for kind in ("income", "expense"):
        rows = []
        for c in sorted(ledger.categories, key=lambda c: c.name):
            if c.type != kind or c.id not in amounts:
                continue
            row = AnnualRow(
                category_id=c.id,
                name=c.name,
                months=tuple(to_money(v) for v in amounts[c.id]),
            )
            if row.total > 0:
                rows.append(row)
        month_totals = tuple(
            to_money(sum((row.months[i] for row in rows), ZERO)) for i in range(12)
        )
        sections[kind] = AnnualSection(
            type=kind, rows=tuple(rows), month_totals=month_totals
        )
    return sections


def daily_flow(ledger: LedgerStore, month: str) -> list[DailyFlow]:
    """
    Income and expense of every day of ``month``, transfers excluded.

    Days without movement are reported with zero totals.
    """
    period = period_for_month(month)
    by_day: dict[date, list[Transaction]] = {}
    for t in transactions_for_month(ledger, month):
        by_day.setdefault(t.date, []).append(t)

    result = []
    day = period.start
    while day <= period.end:
        current = by_day.get(day, [])
        result.append(
            DailyFlow(
                day=day,
                income=_sum(current, "income"),
                expense=_sum(current, "expense"),
            )
        )
        day += timedelta(days=1)
    return result


def export_records(ledger: LedgerStore, month: str) -> list[dict[str, Any]]:
    """
    Flat records of one month's transactions, sorted by date.

    Transfers are labelled "Transferência" and their destination account is
    written in the notes column as "Para: <account> <notes>".
    """
    records = []
    for t in transactions_for_month(ledger, month):
        notes = t.notes
        if t.is_transfer:
            notes = f"Para: {account_name(ledger, t.destination_account_id)} {notes}"
            notes = notes.rstrip()

        records.append(
            {
                "Data": t.date.strftime("%d/%m/%Y"),
                "Descrição": t.description,
                "Tipo": TYPE_LABELS[t.type],
                "Categoria": category_name(ledger, t),
                "Valor": t.amount,
                "Conta": account_name(ledger, t.account_id),
                "Fornecedor": t.supplier,
                "Nota Fiscal": t.document_ref,
                "Observações": notes,
            }
        )
    return records


def export_filename(month: str, extension: str = "csv") -> str:
    return f"lancamentos_{parse_month(month)}.{extension}"


# ---------------------------------------------------------------------------
# DataFrame helpers
# ---------------------------------------------------------------------------


def records_to_dataframe(records: Sequence[dict[str, Any]]) -> pd.DataFrame:
    """Export records as a DataFrame with the export column order."""
    df = pd.DataFrame(list(records), columns=EXPORT_COLUMNS)
    df["Valor"] = df["Valor"].astype(float)
    return df


def summaries_to_dataframe(summaries: Sequence[MonthSummary]) -> pd.DataFrame:
    """Columns: month, income, expense, balance."""
    rows = [
        {
            "month": s.month,
            "income": float(s.income),
            "expense": float(s.expense),
            "balance": float(s.balance),
        }
        for s in summaries
    ]
    return pd.DataFrame(rows, columns=["month", "income", "expense", "balance"])


def budget_to_dataframe(lines: Sequence[BudgetLine]) -> pd.DataFrame:
    """Columns: category_id, name, type, budget, actual, remaining."""
    rows = []
    for line in lines:
        row = asdict(line)
        row["budget"] = float(line.budget)
        row["actual"] = float(line.actual)
        row["remaining"] = float(line.remaining)
        rows.append(row)
    return pd.DataFrame(
        rows, columns=["category_id", "name", "type", "budget", "actual", "remaining"]
    )


def annual_to_dataframe(section: AnnualSection) -> pd.DataFrame:
    """
    One annual section as a table: one row per category plus a "Total" row.

    Columns: category_id, name, 01 .. 12, total.
    """
    month_columns = [f"{m:02d}" for m in range(1, 13)]
    columns = ["category_id", "name", *month_columns, "total"]
    rows = []
    for row in section.rows:
        values = dict(zip(month_columns, (float(v) for v in row.months)))
        rows.append(
            {
                "category_id": row.category_id,
                "name": row.name,
                **values,
                "total": float(row.total),
            }
        )
    totals = dict(zip(month_columns, (float(v) for v in section.month_totals)))
    rows.append(
        {"category_id": "", "name": "Total", **totals, "total": float(section.total)}
    )
    return pd.DataFrame(rows, columns=columns)


def daily_flow_to_dataframe(days: Sequence[DailyFlow]) -> pd.DataFrame:
    """Columns: date, income, expense, balance."""
    rows = [
        {
            "date": d.day.isoformat(),
            "income": float(d.income),
            "expense": float(d.expense),
            "balance": float(d.balance),
        }
        for d in days
    ]
    return pd.DataFrame(rows, columns=["date", "income", "expense", "balance"])


def category_totals_to_dataframe(totals: dict[str, Decimal]) -> pd.DataFrame:
    """Columns: category, amount."""
    rows = [{"category": name, "amount": float(v)} for name, v in totals.items()]
    return pd.DataFrame(rows, columns=["category", "amount"])


def transactions_to_dataframe(
    ledger: LedgerStore, transactions: Iterable[Transaction]
) -> pd.DataFrame:
    """
    Display table of transactions with resolved names.

    Columns: id, date, type, description, category, account, destination,
    amount, supplier, document_ref.
    """
    columns = [
        "id",
        "date",
        "type",
        "description",
        "category",
        "account",
        "destination",
        "amount",
        "supplier",
        "document_ref",
    ]
    rows = [
        {
            "id": t.id,
            "date": t.date.isoformat(),
            "type": t.type,
            "description": t.description,
            "category": category_name(ledger, t),
            "account": account_name(ledger, t.account_id),
            "destination": (
                account_name(ledger, t.destination_account_id) if t.is_transfer else ""
            ),
            "amount": float(t.amount),
            "supplier": t.supplier,
            "document_ref": t.document_ref,
        }
        for t in sorted(transactions, key=lambda t: t.date)
    ]
    return pd.DataFrame(rows, columns=columns)
