from datetime import date
from decimal import Decimal

import pytest

from oikonomia.db import (
    KEY_CLOSED_UNTIL,
    LEGACY_KEY_CLOSED_MONTHS,
    DatabaseConfig,
    has_saved_state,
    init_database,
    load_ledger,
    read_raw_state,
    save_ledger,
    write_raw_values,
)
from oikonomia.defaults import DEFAULT_ACCOUNT_NAME
from oikonomia.ledger import LedgerStore
from oikonomia.models import BankAccount, Category, Transaction


def make_tmp_db_cfg(tmp_path) -> DatabaseConfig:
    """Helper to build a DatabaseConfig pointing to a temporary SQLite file."""
    db_path = tmp_path / "db" / "test_db.sqlite"
    return DatabaseConfig(engine="sqlite", path=db_path)


def test_init_database_creates_file_and_schema(tmp_path):
    """init_database should create the SQLite file (and its folder)."""
    cfg = make_tmp_db_cfg(tmp_path)

    assert not cfg.path.exists()
    init_database(cfg)
    init_database(cfg)
    assert cfg.path.exists()

    assert read_raw_state(cfg) == {}
    assert has_saved_state(cfg) is False


def test_fresh_database_loads_default_chart_and_account(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)

    ledger = load_ledger(cfg)

    assert ledger.transactions == ()
    assert ledger.closed_until == ""
    assert len(ledger.categories) == 61
    assert ledger.categories[0].id == "1.1.01"
    assert [a.name for a in ledger.accounts] == [DEFAULT_ACCOUNT_NAME]


def test_seeded_defaults_are_stored_once(tmp_path):
    """The default account keeps its id from one load to the next."""
    cfg = make_tmp_db_cfg(tmp_path)

    first = load_ledger(cfg)
    second = load_ledger(cfg)

    assert first.accounts == second.accounts
    assert first.categories == second.categories
    assert has_saved_state(cfg) is False


def test_save_and_load_round_trip(tmp_path):
    """Amounts survive the cents encoding without float drift."""
    cfg = make_tmp_db_cfg(tmp_path)
    ledger = LedgerStore(
        transactions=(
            Transaction(
                id="t1",
                date=date(2024, 3, 5),
                description="Energia",
                amount=Decimal("0.10"),
                type="expense",
                account_id="main",
                category_id="2.1.07",
                supplier="CEMIG",
                document_ref="NF 9",
                notes="Conta de março",
            ),
            Transaction(
                id="t2",
                date=date(2024, 3, 6),
                description="Depósito",
                amount=Decimal("1234.56"),
                type="transfer",
                account_id="cash",
                destination_account_id="main",
            ),
        ),
        categories=(
            Category(
                id="2.1.07", name="Energia", type="expense", budget=Decimal("250")
            ),
            Category(id="1.1.01", name="Dízimos", type="income"),
        ),
        accounts=(
            BankAccount(
                id="main",
                name="Conta Principal",
                initial_balance=Decimal("-12.30"),
                start_date=date(2024, 1, 1),
            ),
            BankAccount(id="cash", name="Caixa"),
        ),
        closed_until="2024-02",
    )

    save_ledger(cfg, ledger)
    loaded = load_ledger(cfg)

    assert has_saved_state(cfg) is True
    assert loaded == ledger
    assert loaded.categories[0].budget == Decimal("250.00")
    assert loaded.categories[1].budget is None


def test_saved_empty_lists_do_not_fall_back_to_defaults(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)

    save_ledger(cfg, LedgerStore())

    loaded = load_ledger(cfg)
    assert loaded.categories == ()
    assert loaded.accounts == ()


def test_legacy_closed_months_are_migrated(tmp_path):
    """The greatest legacy month becomes the cutoff and the old key goes away."""
    cfg = make_tmp_db_cfg(tmp_path)
    write_raw_values(
        cfg, {LEGACY_KEY_CLOSED_MONTHS: ["2023-11", "2024-01", "2023-12"]}
    )

    ledger = load_ledger(cfg)

    assert ledger.closed_until == "2024-01"
    raw = read_raw_state(cfg)
    assert raw[KEY_CLOSED_UNTIL] == "2024-01"
    assert LEGACY_KEY_CLOSED_MONTHS not in raw


def test_legacy_key_does_not_override_existing_cutoff(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    write_raw_values(
        cfg,
        {KEY_CLOSED_UNTIL: "2024-05", LEGACY_KEY_CLOSED_MONTHS: ["2024-09"]},
    )

    assert load_ledger(cfg).closed_until == "2024-05"
    assert LEGACY_KEY_CLOSED_MONTHS not in read_raw_state(cfg)


def test_unsupported_engine_raises(tmp_path):
    cfg = DatabaseConfig(engine="postgres", path=tmp_path / "x.sqlite")

    with pytest.raises(ValueError, match="Unsupported database engine"):
        init_database(cfg)
