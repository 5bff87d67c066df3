from datetime import date
from decimal import Decimal

from oikonomia.balances import (
    account_balance,
    all_balances,
    balances_to_dataframe,
    total_balance,
)
from oikonomia.models import BankAccount, Transaction
from oikonomia.transfers import resolve_transfer


def _accounts() -> list[BankAccount]:
    return [
        BankAccount(
            id="main", name="Conta Principal", initial_balance=Decimal("100.00")
        ),
        BankAccount(id="cash", name="Caixa", initial_balance=Decimal("20.00")),
        BankAccount(id="savings", name="Poupança", initial_balance=Decimal("0.00")),
    ]


def _transactions() -> list[Transaction]:
    return [
        Transaction(
            id="t1",
            date=date(2024, 1, 5),
            description="Dízimos",
            amount=Decimal("500.00"),
            type="income",
            account_id="main",
            category_id="1.1.01",
        ),
        Transaction(
            id="t2",
            date=date(2024, 1, 8),
            description="Energia",
            amount=Decimal("120.35"),
            type="expense",
            account_id="main",
            category_id="2.1.07",
        ),
        resolve_transfer(
            "main",
            "cash",
            Decimal("50.00"),
            on=date(2024, 1, 9),
            description="Saque",
            transaction_id="t3",
        ),
    ]


def test_account_balance_formula() -> None:
    """initial + income + transfers in - expenses - transfers out."""
    accounts = {a.id: a for a in _accounts()}
    txs = _transactions()

    assert account_balance(txs, accounts["main"]) == Decimal("429.65")
    assert account_balance(txs, accounts["cash"]) == Decimal("70.00")
    assert account_balance(txs, accounts["savings"]) == Decimal("0.00")


def test_balances_do_not_depend_on_order() -> None:
    accounts = _accounts()
    txs = _transactions()

    assert all_balances(txs, accounts) == all_balances(list(reversed(txs)), accounts)


def test_transfer_moves_money_between_two_accounts_only() -> None:
    """A transfer debits its source, credits its destination and nothing else."""
    accounts = _accounts()
    before = all_balances(_transactions(), accounts)

    transfer = resolve_transfer(
        "cash",
        "savings",
        Decimal("15.50"),
        on=date(2024, 2, 1),
        description="Depósito",
    )
    after = all_balances(_transactions() + [transfer], accounts)

    assert after["cash"] == before["cash"] - Decimal("15.50")
    assert after["savings"] == before["savings"] + Decimal("15.50")
    assert after["main"] == before["main"]
    assert total_balance(after) == total_balance(before)


def test_transactions_of_removed_accounts_are_ignored() -> None:
    """Orphaned transactions do not leak into the remaining accounts."""
    accounts = [a for a in _accounts() if a.id != "cash"]

    balances = all_balances(_transactions(), accounts)

    assert set(balances) == {"main", "savings"}
    assert balances["main"] == Decimal("429.65")


def test_balances_to_dataframe_columns() -> None:
    df = balances_to_dataframe(_transactions(), _accounts())

    assert list(df.columns) == ["account_id", "name", "initial_balance", "balance"]
    assert len(df) == 3
    main = df.loc[df["account_id"] == "main"].iloc[0]
    assert main["balance"] == 429.65
