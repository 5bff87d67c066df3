# Oikonomia - Bookkeeping ledger & reconciliation engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Import pipeline: from bank files to committed ledger transactions.

Stages
------
1) Parse   (``io``): statement text or tabular input -> typed records.
2) Stage   (this module): resolve names against the ledger and pre-fill
   categories/suppliers with the smart matcher -> ``StagedCandidate`` list.
3) Review  (caller): the user edits candidates (``update_candidate``),
   splits some of them (``split_staged``) and resolves missing references.
4) Commit  (this module + ``ledger.import_batch``): candidates become
   transactions and are inserted as one batch, guarded by the period lock.

Nothing is invented along the way: an account, category or destination name
that does not match the ledger stays empty and blocks the commit with a
``ReferenceGapError`` until the caller fills it in.

Staging is a pure function of the input records and the current ledger, so
running it twice on the same input yields the same candidates.
"""

import logging
import os
from collections.abc import Sequence
from dataclasses import replace
from typing import Union

from .errors import ReferenceGapError, ValidationError
from .io import (
    SheetRow,
    StatementRecord,
    parse_tabular_rows,
    read_statement_file,
    read_tabular_file,
)
from .ledger import (
    LedgerStore,
    find_account_by_name,
    find_category_by_name,
    get_account,
    get_category,
    import_batch,
)
from .matching import find_smart_match
from .models import SplitRow, StagedCandidate, Transaction, new_id
from .splits import split_candidate
from .transfers import statement_transfer_roles

logger = logging.getLogger(__name__)

IMPORTED_SUPPLIER = "Importado"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _flow_of(amount) -> str:
    return "income" if amount > 0 else "expense"


def _suggest(ledger: LedgerStore, description: str, flow: str) -> tuple[str, str]:
    """
    Return ``(category_id, supplier)`` suggested from history, or empty strings.

    A suggested category that no longer exists, or whose type does not match
    the direction of the money, is dropped (the supplier is still suggested).
    """
    match = find_smart_match(description, ledger.transactions)
    if match is None:
        return "", ""
    category = get_category(ledger, match.category_id)
    if category is None or category.type != flow:
        return "", match.supplier
    return category.id, match.supplier


def _category_named_in(ledger: LedgerStore, description: str, flow: str) -> str:
    """Id of the first category whose name appears in the description."""
    text = description.casefold()
    for category in ledger.categories:
        name = category.name.strip().casefold()
        if name and name in text and category.type == flow:
            return category.id
    return ""


# ---------------------------------------------------------------------------
# Staging
# ---------------------------------------------------------------------------


def stage_statement(
    records: Sequence[StatementRecord],
    account_id: str,
    ledger: LedgerStore,
) -> list[StagedCandidate]:
    """
    Stage statement records for review.

    Parameters
    ----------
    records:
        Output of ``io.parse_statement_text``.
    account_id:
        The bank account the statement belongs to. Every candidate is
        attached to it.
    ledger:
        Current store, used for category names and history matching.

    Raises
    ------
    ValidationError
        If ``account_id`` is given but does not exist in the ledger.
    """
    if account_id and get_account(ledger, account_id) is None:
        raise ValidationError(f"Unknown statement account: {account_id!r}.")

    candidates = []
    for record in records:
        flow = _flow_of(record.amount)
        category_id = _category_named_in(ledger, record.description, flow)
        supplier = ""
        if not category_id:
            category_id, supplier = _suggest(ledger, record.description, flow)

        candidates.append(
            StagedCandidate(
                date=record.posted,
                magnitude=abs(record.amount),
                signed_amount=record.amount,
                description=record.description,
                account_id=account_id,
                category_id=category_id,
                supplier=supplier,
                auto_matched=bool(category_id or supplier),
                source_type="statement",
                raw_type=record.trntype,
            )
        )

    logger.info(
        "Staged %d statement candidate(s), %d pre-classified",
        len(candidates),
        sum(c.auto_matched for c in candidates),
    )
    return candidates


def stage_tabular(
    rows: Sequence[SheetRow], ledger: LedgerStore
) -> list[StagedCandidate]:
    """
    Stage spreadsheet rows for review.

    - The account cell is matched against account names (case-insensitive).
    - The category/destination cell is first matched against account names:
      a match makes the row a transfer to/from that account. Otherwise it is
      matched against category names.
    - Rows left without a category go through the smart matcher; the
      supplier from history is used only when the row has none.
    """
    candidates = []
    for row in rows:
        account = find_account_by_name(ledger, row.account)
        counter_account = find_account_by_name(ledger, row.destination)

        category_id = ""
        transfer_account_id = ""
        if counter_account is not None:
            transfer_account_id = counter_account.id
        else:
            category = find_category_by_name(ledger, row.destination)
            category_id = category.id if category else ""

        supplier = row.supplier
        auto_matched = False
        if not category_id and not transfer_account_id:
            category_id, suggested_supplier = _suggest(
                ledger, row.description, _flow_of(row.amount)
            )
            supplier = supplier or suggested_supplier
            auto_matched = bool(category_id) or supplier != row.supplier

        candidates.append(
            StagedCandidate(
                date=row.date,
                magnitude=abs(row.amount),
                signed_amount=row.amount,
                description=row.description,
                account_id=account.id if account else "",
                category_id=category_id,
                supplier=supplier,
                document_ref=row.document,
                transfer_account_id=transfer_account_id,
                auto_matched=auto_matched,
                source_type="sheet",
            )
        )

    logger.info(
        "Staged %d spreadsheet candidate(s), %d need manual resolution",
        len(candidates),
        len(unresolved_candidates(candidates)),
    )
    return candidates


def stage_statement_file(
    path: Union[str, "os.PathLike[str]"], account_id: str, ledger: LedgerStore
) -> list[StagedCandidate]:
    """Read a statement file and stage its records."""
    return stage_statement(read_statement_file(path), account_id, ledger)


def stage_tabular_file(
    path: Union[str, "os.PathLike[str]"], ledger: LedgerStore
) -> list[StagedCandidate]:
    """Read a spreadsheet/CSV file and stage its rows."""
    return stage_tabular(parse_tabular_rows(read_tabular_file(path)), ledger)


# ---------------------------------------------------------------------------
# Review helpers
# ---------------------------------------------------------------------------


def unresolved_candidates(
    candidates: Sequence[StagedCandidate],
) -> dict[int, list[str]]:
    """Map candidate index -> missing references, for rows blocking the commit."""
    return {
        index: c.missing_references
        for index, c in enumerate(candidates)
        if c.missing_references
    }


def update_candidate(
    candidates: Sequence[StagedCandidate], index: int, **changes
) -> list[StagedCandidate]:
    """
    Return a new candidate list with one candidate edited.

    Editing the category or the transfer target is a manual classification:
    the row is no longer flagged as auto-matched.
    """
    items = list(candidates)
    if "category_id" in changes or "transfer_account_id" in changes:
        changes.setdefault("auto_matched", False)
    items[index] = replace(items[index], **changes)
    return items


def split_staged(
    candidates: Sequence[StagedCandidate], index: int, rows: Sequence[SplitRow]
) -> list[StagedCandidate]:
    """Replace the candidate at ``index`` by its split rows (in place order)."""
    items = list(candidates)
    parts = split_candidate(items[index], rows)
    return items[:index] + parts + items[index + 1:]


# ---------------------------------------------------------------------------
# Commit
# ---------------------------------------------------------------------------


def finalize_candidates(candidates: Sequence[StagedCandidate]) -> list[Transaction]:
    """
    Turn reviewed candidates into transactions.

    - Transfers: the statement account is the source when the raw amount is
      negative and the destination when it is positive.
    - Other rows: income when the raw amount is positive, expense otherwise;
      an empty supplier becomes "Importado".

    Raises
    ------
    ReferenceGapError
        If any candidate still misses its account or category.
    ValidationError
        If a transfer targets the statement account itself.
    """
    gaps = unresolved_candidates(candidates)
    if gaps:
        raise ReferenceGapError(gaps)

    transactions = []
    for c in candidates:
        if c.is_transfer:
            source_id, destination_id = statement_transfer_roles(
                c.account_id, c.transfer_account_id, c.signed_amount
            )
            transactions.append(
                Transaction(
                    id=new_id(),
                    date=c.date,
                    description=c.description,
                    amount=c.magnitude,
                    type="transfer",
                    account_id=source_id,
                    category_id="",
                    destination_account_id=destination_id,
                    supplier=c.supplier,
                    document_ref=c.document_ref,
                )
            )
            continue

        transactions.append(
            Transaction(
                id=new_id(),
                date=c.date,
                description=c.description,
                amount=c.magnitude,
                type=c.flow_type,
                account_id=c.account_id,
                category_id=c.category_id,
                supplier=c.supplier or IMPORTED_SUPPLIER,
                document_ref=c.document_ref,
            )
        )
    return transactions


def commit_candidates(
    ledger: LedgerStore, candidates: Sequence[StagedCandidate]
) -> LedgerStore:
    """Finalize candidates and insert them as one all-or-nothing batch."""
    return import_batch(ledger, finalize_candidates(candidates))


def match_summary(candidates: Sequence[StagedCandidate]) -> dict[str, int]:
    """Counts for the review screen: total, auto-matched, transfers, unresolved."""
    return {
        "total": len(candidates),
        "auto_matched": sum(c.auto_matched for c in candidates),
        "transfers": sum(c.is_transfer for c in candidates),
        "unresolved": len(unresolved_candidates(candidates)),
    }
