from datetime import date
from decimal import Decimal

from oikonomia.defaults import (
    DEFAULT_ACCOUNT_NAME,
    default_accounts,
    default_categories,
)


def test_default_chart_layout():
    categories = default_categories()
    ids = [c.id for c in categories]

    assert len(ids) == len(set(ids)) == 61
    assert {c.type for c in categories if c.id.startswith("1.")} == {"income"}
    assert {c.type for c in categories if c.id.startswith("2.")} == {"expense"}
    assert all(c.name.startswith(c.id + " ") for c in categories)
    assert all(c.budget == Decimal("0.00") for c in categories)


def test_default_account():
    [account] = default_accounts(today=date(2024, 1, 2))

    assert account.name == DEFAULT_ACCOUNT_NAME
    assert account.initial_balance == Decimal("0.00")
    assert account.start_date == date(2024, 1, 2)
    assert account.id
