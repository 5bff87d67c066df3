# Oikonomia - Bookkeeping ledger & reconciliation engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for Oikonomia.

This module turns external bank data into typed records, before any matching
against the ledger is done. Two input formats are supported.

1) Statement text (OFX / OFC bank exports)
   ----------------------------------------
   Sequential transaction blocks, each starting with a ``<STMTTRN>`` tag and
   containing one tag per line:

       <STMTTRN>
       <TRNTYPE>DEBIT
       <DTPOSTED>20240115120000[-3:BRT]
       <TRNAMT>-45.90
       <MEMO>Posto Shell
       </STMTTRN>

   - ``DTPOSTED`` (required): only the first 8 digits (YYYYMMDD) are used.
   - ``TRNAMT``   (required): signed decimal, point or comma separator.
   - ``MEMO`` / ``NAME`` (optional): the description is the memo, then the
     name, then "Sem descrição".
   - ``TRNTYPE``  (optional): kept for information only.

   A block with a missing or malformed date/amount is skipped; the rest of
   the statement is still imported.

2) Tabular data (spreadsheet or CSV)
   ---------------------------------
   First sheet of a workbook (or a CSV file) with a header row. Column names
   are matched case-insensitively and accent-tolerantly against fixed
   synonym lists (see ``COLUMN_SYNONYMS``). Only the date and amount columns
   are required.

   Date cells may be native dates, ``DD/MM/YYYY`` strings, ISO strings or
   spreadsheet serial numbers; amount cells may be numbers or currency
   strings such as ``"R$ -1.234,56"``. Rows whose date or amount cannot be
   parsed are skipped.

Output records
--------------
- ``StatementRecord``: posted date, signed amount, description, raw type.
- ``SheetRow``: date, signed amount and the raw text of the account,
  category/destination, description, supplier and document cells. Names are
  resolved against the ledger later, by the import pipeline.
"""

from __future__ import annotations

import logging
import math
import numbers
import os
import re
import unicodedata
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd

from .errors import ImportFormatError
from .models import to_money

logger = logging.getLogger(__name__)

NO_DESCRIPTION = "Sem descrição"

# 1900 date system. Serial 1 is 1900-01-01 and serial 60 is the nonexistent
# 1900-02-29, so the epoch below only holds from serial 61 on.
SPREADSHEET_EPOCH = date(1899, 12, 30)
SPREADSHEET_LEAP_BUG_SERIAL = 60

COLUMN_SYNONYMS: dict[str, tuple[str, ...]] = {
    "date": ("Data", "Date"),
    "amount": ("Valor", "Value", "Amount"),
    "account": ("Conta", "Account"),
    "destination": ("Categoria/Destino", "Categoria", "Category", "Destino"),
    "description": ("Descrição", "Descricao", "Description", "Memo"),
    "supplier": ("Fornecedor", "Supplier"),
    "document": ("Nota Fiscal", "Nota", "Invoice"),
}
REQUIRED_COLUMNS = ("date", "amount")

_BLOCK_START_RE = re.compile(r"<STMTTRN>", re.IGNORECASE)
_DMY_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")


@dataclass(frozen=True)
class StatementRecord:
    """One transaction block parsed from statement text."""

    posted: date
    amount: Decimal
    description: str
    trntype: str = ""


@dataclass(frozen=True)
class SheetRow:
    """One normalized row of tabular input, with unresolved names."""

    date: date
    amount: Decimal
    account: str = ""
    destination: str = ""
    description: str = NO_DESCRIPTION
    supplier: str = ""
    document: str = ""


# ---------------------------------------------------------------------------
# Value normalizers
# ---------------------------------------------------------------------------


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def normalize_date(value: Any) -> date:
    """
    Normalize a date cell to a ``datetime.date``.

    Accepted inputs: date / datetime / pandas Timestamp, ``DD/MM/YYYY``
    strings, ISO strings (``YYYY-MM-DD``, optionally followed by a time) and
    spreadsheet serial numbers.

    Raises
    ------
    ImportFormatError
        If the value is missing or cannot be interpreted as a date.
    """
    if _is_missing(value):
        raise ImportFormatError("Missing date.")

    # datetime (and pandas Timestamp) must be checked before date.
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        serial = float(value)
        if not math.isfinite(serial) or serial < 1:
            raise ImportFormatError(f"Invalid spreadsheet date serial: {value!r}.")
        days = int(serial)
        if days == SPREADSHEET_LEAP_BUG_SERIAL:
            raise ImportFormatError("Spreadsheet serial 60 is not a real date.")
        if days < SPREADSHEET_LEAP_BUG_SERIAL:
            days += 1
        return SPREADSHEET_EPOCH + timedelta(days=days)

    if isinstance(value, str):
        raw = value.strip()
        try:
            match = _DMY_RE.match(raw)
            if match:
                day, month, year = (int(g) for g in match.groups())
                return date(year, month, day)
            match = _ISO_RE.match(raw)
            if match:
                year, month, day = (int(g) for g in match.groups())
                return date(year, month, day)
        except ValueError as exc:
            raise ImportFormatError(f"Invalid date: {value!r}.") from exc

    raise ImportFormatError(f"Unrecognized date: {value!r}.")


def normalize_amount(value: Any) -> Decimal:
    """
    Normalize an amount cell to a signed Decimal rounded to cents.

    Numbers are taken as-is. Strings may carry a currency symbol (``R$``),
    thousands separators and a decimal comma: ``"R$ -1.234,56"`` gives
    ``Decimal("-1234.56")``. Without a comma, a single dot followed by exactly
    three digits is read as a thousands separator (``"1.234"`` -> 1234).

    Raises
    ------
    ImportFormatError
        If the value is missing or is not a number.
    """
    if isinstance(value, bool) or _is_missing(value):
        raise ImportFormatError(f"Missing amount: {value!r}.")

    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ImportFormatError(f"Invalid amount: {value!r}.")
        return to_money(value)
    if isinstance(value, numbers.Integral):
        return to_money(int(value))
    if isinstance(value, numbers.Real):
        if not math.isfinite(float(value)):
            raise ImportFormatError(f"Invalid amount: {value!r}.")
        return to_money(float(value))

    if not isinstance(value, str):
        raise ImportFormatError(f"Unrecognized amount: {value!r}.")

    raw = re.sub(r"\s", "", value.replace("R$", ""))
    negative = raw.startswith("(") and raw.endswith(")")
    if negative:
        raw = raw[1:-1]

    if "," in raw:
        raw = raw.replace(".", "").replace(",", ".")
    elif raw.count(".") > 1:
        raw = raw.replace(".", "")
    elif "." in raw and len(raw.rsplit(".", 1)[1]) == 3:
        raw = raw.replace(".", "")

    try:
        amount = Decimal(raw)
    except InvalidOperation as exc:
        raise ImportFormatError(f"Invalid amount: {value!r}.") from exc
    if not amount.is_finite():
        raise ImportFormatError(f"Invalid amount: {value!r}.")

    return to_money(-amount if negative else amount)


def _cell_text(value: Any) -> str:
    """Return a trimmed string for a text cell ("" for empty cells)."""
    if _is_missing(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        # Numeric document numbers come back from spreadsheets as floats.
        return str(int(value))
    return str(value).strip()


# ---------------------------------------------------------------------------
# Statement text
# ---------------------------------------------------------------------------


def _tag_value(block: str, tag: str) -> Optional[str]:
    """Return the value of ``<TAG>value`` (up to a newline or '<')."""
    match = re.search(rf"<{tag}>([^<\r\n]*)", block, re.IGNORECASE)
    if match is None:
        return None
    return match.group(1).strip()


def parse_statement_date(raw: Optional[str]) -> date:
    """Parse a statement date: only the first 8 digits (YYYYMMDD) are used."""
    digits = (raw or "").strip()[:8]
    if len(digits) != 8 or not digits.isdigit():
        raise ImportFormatError(f"Invalid statement date: {raw!r}.")
    try:
        return date(int(digits[:4]), int(digits[4:6]), int(digits[6:8]))
    except ValueError as exc:
        raise ImportFormatError(f"Invalid statement date: {raw!r}.") from exc


def parse_statement_amount(raw: Optional[str]) -> Decimal:
    """Parse a statement amount such as ``-45.90`` or ``-45,90``."""
    text = re.sub(r"\s", "", raw or "")
    if "," in text and "." not in text:
        text = text.replace(",", ".")
    try:
        amount = Decimal(text)
    except InvalidOperation as exc:
        raise ImportFormatError(f"Invalid statement amount: {raw!r}.") from exc
    if not amount.is_finite():
        raise ImportFormatError(f"Invalid statement amount: {raw!r}.")
    return to_money(amount)


def parse_statement_text(content: str) -> list[StatementRecord]:
    """
    Parse statement text into records.

    Parameters
    ----------
    content:
        Full text of the statement file.

    Returns
    -------
    list[StatementRecord]
        One record per valid ``<STMTTRN>`` block, in file order. Blocks with a
        missing or malformed date/amount are skipped.
    """
    records: list[StatementRecord] = []

    # The first chunk is the file header, before any transaction block.
    blocks = _BLOCK_START_RE.split(content)[1:]
    for position, block in enumerate(blocks, start=1):
        try:
            posted = parse_statement_date(_tag_value(block, "DTPOSTED"))
            amount = parse_statement_amount(_tag_value(block, "TRNAMT"))
        except ImportFormatError as exc:
            logger.debug("Skipping statement block %d: %s", position, exc)
            continue

        description = (
            _tag_value(block, "MEMO") or _tag_value(block, "NAME") or NO_DESCRIPTION
        )
        records.append(
            StatementRecord(
                posted=posted,
                amount=amount,
                description=description,
                trntype=_tag_value(block, "TRNTYPE") or "",
            )
        )

    logger.info(
        "Parsed %d statement record(s) out of %d block(s)", len(records), len(blocks)
    )
    return records


def read_statement_file(path: Union[str, "os.PathLike[str]"]) -> list[StatementRecord]:
    """
    Read and parse a statement file (.ofx / .ofc).

    Files are decoded as UTF-8, falling back to latin-1 which many banks
    still use for their exports.
    """
    data = Path(path).read_bytes()
    try:
        content = data.decode("utf-8")
    except UnicodeDecodeError:
        content = data.decode("latin-1")
    return parse_statement_text(content)


# ---------------------------------------------------------------------------
# Tabular input
# ---------------------------------------------------------------------------


def normalize_header(name: Any) -> str:
    """Lowercase, strip accents and collapse whitespace of a column name."""
    decomposed = unicodedata.normalize("NFKD", str(name))
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return " ".join(stripped.split()).casefold()


def resolve_columns(columns) -> dict[str, str]:
    """
    Map logical fields to actual column names.

    For each logical field, synonyms are tried in order and the first column
    whose normalized name matches wins.

    Returns
    -------
    dict[str, str]
        ``{field: column_name}`` for every field found in the header.

    Raises
    ------
    ValueError
        If the date or amount column is missing.
    """
    by_normalized: dict[str, str] = {}
    for column in columns:
        by_normalized.setdefault(normalize_header(column), column)

    resolved: dict[str, str] = {}
    for field_name, synonyms in COLUMN_SYNONYMS.items():
        for synonym in synonyms:
            column = by_normalized.get(normalize_header(synonym))
            if column is not None:
                resolved[field_name] = column
                break

    missing = [f for f in REQUIRED_COLUMNS if f not in resolved]
    if missing:
        expected = "; ".join(
            f"{f}: {', '.join(COLUMN_SYNONYMS[f])}" for f in missing
        )
        raise ValueError(
            "Invalid spreadsheet structure. Missing required column(s) "
            f"({expected})."
        )
    return resolved


def read_tabular_file(path: Union[str, "os.PathLike[str]"]) -> pd.DataFrame:
    """
    Load tabular input as a raw DataFrame.

    ``.csv`` files are read with ``pandas.read_csv``; any other extension is
    treated as a workbook and only its first sheet is read.
    """
    path = Path(path)
    if path.suffix.lower() == ".csv":
        return pd.read_csv(path)
    return pd.read_excel(path, sheet_name=0)


def parse_tabular_rows(df: pd.DataFrame) -> list[SheetRow]:
    """
    Normalize every row of a raw tabular DataFrame.

    Rows whose date or amount cannot be parsed are skipped; the others are
    returned in input order.
    """
    columns = resolve_columns(df.columns)

    def cell(record: dict, field_name: str) -> Any:
        column = columns.get(field_name)
        return None if column is None else record.get(column)

    rows: list[SheetRow] = []
    for position, record in enumerate(df.to_dict("records"), start=1):
        try:
            row_date = normalize_date(cell(record, "date"))
            amount = normalize_amount(cell(record, "amount"))
        except ImportFormatError as exc:
            logger.debug("Skipping spreadsheet row %d: %s", position, exc)
            continue

        rows.append(
            SheetRow(
                date=row_date,
                amount=amount,
                account=_cell_text(cell(record, "account")),
                destination=_cell_text(cell(record, "destination")),
                description=_cell_text(cell(record, "description")) or NO_DESCRIPTION,
                supplier=_cell_text(cell(record, "supplier")),
                document=_cell_text(cell(record, "document")),
            )
        )

    logger.info("Parsed %d spreadsheet row(s) out of %d", len(rows), len(df))
    return rows
