# Oikonomia - Bookkeeping ledger & reconciliation engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Oikonomia
---------

A Python bookkeeping ledger for small organizations (churches, associations,
households). It records money movements across bank accounts, classifies them
into budget categories and derives balances and period summaries.

Main capabilities:
- transaction / account / category data model with enforced invariants,
- per-account balance derivation,
- transfers between accounts stored as a single two-legged record,
- split ("rateio") allocation of one amount across several categories,
- bank statement import (OFX-like statement text and spreadsheets),
- smart pre-fill of category and supplier from transaction history,
- monthly closing (closed-until cutoff) guarding every mutation,
- monthly summaries, budget vs actual and flat export records,
- a SQLite-backed key-value persistence layer,
- a command-line interface.

The engine (ledger, balances, transfers, splits, matching, importer) is pure:
every mutating operation takes a ``LedgerStore`` and returns a new one.

Version: 0.2.0

Usage:
    python -m oikonomia.cli --help
"""

__all__ = ["ledger", "balances", "importer", "io", "reports"]

__version__ = "0.2.0"
