# Oikonomia - Bookkeeping ledger & reconciliation engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Smart matcher: suggest a category and a supplier for an imported record by
analogy with the transaction history.

Algorithm
---------
1) sort the history by date, most recent first (ties keep their order);
2) take the first transaction whose description contains the candidate's
   description, or is contained in it (case-insensitive);
3) suggest that transaction's category and supplier.

The result is only a pre-fill: callers must let the user override it before
committing and must flag matched rows distinctly from unmatched ones.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

from .models import Transaction


@dataclass(frozen=True)
class SmartMatch:
    """Suggestion produced by the smart matcher."""

    category_id: str
    supplier: str
    transaction_id: str


def _normalize(text: str) -> str:
    return str(text or "").strip().casefold()


def find_smart_match(
    description: str, history: Iterable[Transaction]
) -> Optional[SmartMatch]:
    """
    Return a suggestion for ``description`` or None when nothing overlaps.

    Blank descriptions (on either side) never match, since an empty string is
    trivially contained in every description.
    """
    needle = _normalize(description)
    if not needle:
        return None

    by_recency = sorted(history, key=lambda t: t.date, reverse=True)
    for t in by_recency:
        candidate = _normalize(t.description)
        if not candidate:
            continue
        if candidate in needle or needle in candidate:
            return SmartMatch(
                category_id=t.category_id,
                supplier=t.supplier,
                transaction_id=t.id,
            )
    return None
