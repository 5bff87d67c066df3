# Oikonomia - Bookkeeping ledger & reconciliation engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Balance calculator for Oikonomia.

Balances are never stored: they are derived from the transaction collection.
For an account A:

    balance(A) = initial_balance(A)
               + sum(income into A)
               + sum(transfers into A, as destination)
               - sum(expenses from A)
               - sum(transfers out of A, as source)

Each account is computed independently (there is no shared running total), so
the result does not depend on the order of the transactions and adding or
removing a transaction only affects the accounts it references.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal

import pandas as pd

from .models import BankAccount, Transaction, to_money


def account_balance(
    transactions: Iterable[Transaction], account: BankAccount
) -> Decimal:
    """
    Return the current balance of one account.

    Parameters
    ----------
    transactions:
        Full transaction collection (any order).
    account:
        The account to compute. An account without transactions keeps its
        initial balance.
    """
    income_in = Decimal("0")
    transfers_in = Decimal("0")
    expense_out = Decimal("0")
    transfers_out = Decimal("0")

    for t in transactions:
        if t.type == "income" and t.account_id == account.id:
            income_in += t.amount
        elif t.type == "expense" and t.account_id == account.id:
            expense_out += t.amount
        elif t.type == "transfer":
            if t.account_id == account.id:
                transfers_out += t.amount
            if t.destination_account_id == account.id:
                transfers_in += t.amount

    return to_money(
        account.initial_balance + income_in + transfers_in - expense_out - transfers_out
    )


def all_balances(
    transactions: Iterable[Transaction], accounts: Iterable[BankAccount]
) -> dict[str, Decimal]:
    """Return ``{account_id: balance}`` for every account."""
    txs = list(transactions)
    return {acc.id: account_balance(txs, acc) for acc in accounts}


def total_balance(balances: Mapping[str, Decimal]) -> Decimal:
    """Sum of all account balances (consolidated position)."""
    return to_money(sum(balances.values(), Decimal("0")))


def balances_to_dataframe(
    transactions: Iterable[Transaction], accounts: Iterable[BankAccount]
) -> pd.DataFrame:
    """
    Build a display table with one row per account.

    Columns: account_id, name, initial_balance, balance.
    """
    accounts = list(accounts)
    balances = all_balances(transactions, accounts)
    rows = [
        {
            "account_id": acc.id,
            "name": acc.name,
            "initial_balance": float(acc.initial_balance),
            "balance": float(balances[acc.id]),
        }
        for acc in accounts
    ]
    return pd.DataFrame(
        rows, columns=["account_id", "name", "initial_balance", "balance"]
    )
