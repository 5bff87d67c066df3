from datetime import date
from decimal import Decimal

import pytest

from oikonomia.errors import ValidationError
from oikonomia.transfers import (
    check_transfer_accounts,
    resolve_transfer,
    statement_transfer_roles,
)


def test_resolve_transfer_builds_single_record() -> None:
    t = resolve_transfer(
        "main", "cash", "75.5", on=date(2024, 5, 2), description="Troco", notes="culto"
    )

    assert t.type == "transfer"
    assert t.account_id == "main"
    assert t.destination_account_id == "cash"
    assert t.amount == Decimal("75.50")
    assert t.category_id == ""
    assert t.notes == "culto"
    assert t.id


def test_resolve_transfer_keeps_given_id() -> None:
    t = resolve_transfer(
        "main", "cash", 10, on=date(2024, 5, 2), description="x", transaction_id="abc"
    )
    assert t.id == "abc"


@pytest.mark.parametrize(
    "source, destination",
    [("main", "main"), ("", "cash"), ("main", ""), ("main", None)],
)
def test_invalid_account_pairs_are_rejected(source, destination) -> None:
    with pytest.raises(ValidationError):
        check_transfer_accounts(source, destination)


@pytest.mark.parametrize(
    "amount", [0, "-5", Decimal("0.00"), Decimal("NaN"), "Infinity", "abc"]
)
def test_non_positive_or_invalid_amount_is_rejected(amount) -> None:
    with pytest.raises(ValidationError):
        resolve_transfer("main", "cash", amount, on=date(2024, 5, 2), description="x")


def test_statement_roles_negative_amount_leaves_statement_account() -> None:
    """Money leaving the statement account: it is the source."""
    source, destination = statement_transfer_roles("bank", "cash", Decimal("-200.00"))

    assert source == "bank"
    assert destination == "cash"


def test_statement_roles_positive_amount_arrives_on_statement_account() -> None:
    """Money arriving on the statement account: it is the destination."""
    source, destination = statement_transfer_roles("bank", "cash", Decimal("200.00"))

    assert source == "cash"
    assert destination == "bank"


def test_statement_roles_reject_same_account() -> None:
    with pytest.raises(ValidationError):
        statement_transfer_roles("bank", "bank", Decimal("-1.00"))
