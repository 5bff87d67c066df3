from datetime import date
from decimal import Decimal

from oikonomia.matching import find_smart_match
from oikonomia.models import Transaction


def _tx(tx_id, on, description, category_id, supplier="") -> Transaction:
    return Transaction(
        id=tx_id,
        date=on,
        description=description,
        amount=Decimal("10.00"),
        type="expense",
        account_id="main",
        category_id=category_id,
        supplier=supplier,
    )


def test_history_description_contained_in_candidate() -> None:
    history = [
        _tx("t1", date(2024, 1, 10), "Supermercado ABC", "Alimentação", "ABC Ltda")
    ]

    match = find_smart_match("Compra Supermercado ABC Loja 2", history)

    assert match is not None
    assert match.category_id == "Alimentação"
    assert match.supplier == "ABC Ltda"
    assert match.transaction_id == "t1"


def test_candidate_contained_in_history_description() -> None:
    """Containment works in both directions and ignores case."""
    history = [_tx("t1", date(2024, 1, 10), "CEMIG ENERGIA CONTA 01/2024", "2.1.07")]

    match = find_smart_match("cemig energia", history)

    assert match is not None
    assert match.category_id == "2.1.07"


def test_most_recent_match_wins() -> None:
    history = [
        _tx("old", date(2023, 5, 1), "Posto Shell", "2.1.03", "Shell"),
        _tx("new", date(2024, 2, 1), "Posto Shell BR", "2.1.23", "Shell BR"),
        _tx("mid", date(2023, 9, 1), "Posto Shell", "2.1.22", "Shell"),
    ]

    match = find_smart_match("PIX Posto Shell BR 116", history)

    assert match.transaction_id == "new"
    assert match.category_id == "2.1.23"


def test_same_day_ties_keep_history_order() -> None:
    history = [
        _tx("first", date(2024, 2, 1), "Padaria", "2.1.02"),
        _tx("second", date(2024, 2, 1), "Padaria", "2.1.22"),
    ]

    assert find_smart_match("Padaria Central", history).transaction_id == "first"


def test_no_overlap_returns_none() -> None:
    history = [_tx("t1", date(2024, 1, 10), "Supermercado ABC", "Alimentação")]

    assert find_smart_match("Farmácia Popular", history) is None
    assert find_smart_match("anything", []) is None


def test_blank_descriptions_never_match() -> None:
    history = [
        _tx("blank", date(2024, 3, 1), "   ", "2.1.22"),
        _tx("t1", date(2024, 1, 10), "Supermercado ABC", "Alimentação"),
    ]

    assert find_smart_match("", history) is None
    assert find_smart_match("Supermercado ABC", history).transaction_id == "t1"
