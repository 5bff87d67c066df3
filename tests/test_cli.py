from decimal import Decimal

import pandas as pd
import pytest

from oikonomia import __version__
from oikonomia.cli import main
from oikonomia.config import load_app_config
from oikonomia.db import load_ledger


@pytest.fixture
def config_path(tmp_path):
    """A configuration file with its database and output folder under tmp_path."""
    path = tmp_path / "oikonomia_config.toml"
    path.write_text(
        """
[database]
path = "ledger.sqlite"

[import]
default_account = "Conta Principal"
preview_rows = 0

[display]
mode = "table"
output_dir = "out"
""",
        encoding="utf-8",
    )
    return str(path)


def run(config_path, *argv):
    main(["--config", config_path, *argv])


def stored_ledger(config_path):
    return load_ledger(load_app_config(config_path).database)


def main_account_id(config_path):
    return stored_ledger(config_path).accounts[0].id


def test_version(capsys):
    main(["--version"])

    assert __version__ in capsys.readouterr().out


def test_accounts_and_balances(config_path, capsys):
    run(config_path, "accounts", "add", "Caixa", "--initial-balance", "150,00")
    run(config_path, "balances")

    out = capsys.readouterr().out
    assert "Account created" in out
    assert "Caixa" in out
    assert "Total balance: 150.00 BRL" in out
    assert [a.name for a in stored_ledger(config_path).accounts] == [
        "Conta Principal",
        "Caixa",
    ]


def test_tx_add_then_closed_month_is_rejected(config_path, capsys):
    account_id = main_account_id(config_path)
    common = ["--account", account_id, "--type", "expense", "--category", "2.1.02"]

    run(
        config_path, "tx", "add", "--date", "2024-03-10", "--amount", "89.90",
        "--description", "Supermercado ABC", *common,
    )
    run(config_path, "period", "close", "2024-03")

    with pytest.raises(SystemExit, match="Error:"):
        run(
            config_path, "tx", "add", "--date", "2024-03-20", "--amount", "10",
            "--description", "Padaria", *common,
        )

    ledger = stored_ledger(config_path)
    assert ledger.closed_until == "2024-03"
    assert [t.amount for t in ledger.transactions] == [Decimal("89.90")]


def test_invalid_transaction_leaves_ledger_untouched(config_path):
    account_id = main_account_id(config_path)

    with pytest.raises(SystemExit, match="Error:"):
        run(
            config_path, "tx", "add", "--date", "2024-03-10", "--amount", "5",
            "--description", "Dízimo", "--account", account_id,
            "--type", "expense", "--category", "1.1.01",
        )

    assert stored_ledger(config_path).transactions == ()


def test_import_sheet_requires_resolution_before_commit(config_path, tmp_path, capsys):
    sheet = tmp_path / "planilha.csv"
    sheet.write_text(
        "Data,Valor,Conta,Categoria,Descrição\n"
        "05/03/2024,\"-89,90\",Conta Principal,2.1.02 Alimentação,Supermercado\n"
        "06/03/2024,\"-12,00\",Conta Principal,,Tarifa\n",
        encoding="utf-8",
    )

    run(config_path, "import", "sheet", str(sheet))
    out = capsys.readouterr().out
    assert "1 unresolved" in out
    assert stored_ledger(config_path).transactions == ()

    with pytest.raises(SystemExit, match="unresolved rows"):
        run(config_path, "import", "sheet", str(sheet), "--commit")

    run(
        config_path, "import", "sheet", str(sheet),
        "--assign", "2:category=2.5.04", "--commit",
    )
    ledger = stored_ledger(config_path)
    assert sorted(t.category_id for t in ledger.transactions) == ["2.1.02", "2.5.04"]
    assert all(t.supplier == "Importado" for t in ledger.transactions)


def test_import_statement_uses_default_account(config_path, tmp_path):
    statement = tmp_path / "extrato.ofx"
    statement.write_text(
        "<STMTTRN>\n<DTPOSTED>20240115\n<TRNAMT>-45.90\n<MEMO>Posto Shell\n"
        "</STMTTRN>\n",
        encoding="latin-1",
    )

    run(
        config_path, "import", "statement", str(statement),
        "--assign", "1:category=2.1.03", "--commit",
    )

    [t] = stored_ledger(config_path).transactions
    assert t.account_id == main_account_id(config_path)
    assert t.amount == Decimal("45.90")
    assert t.type == "expense"


def test_export_writes_monthly_file(config_path, tmp_path):
    account_id = main_account_id(config_path)
    run(
        config_path, "tx", "add", "--date", "2024-03-10", "--amount", "1000",
        "--description", "Dízimos", "--account", account_id,
        "--type", "income", "--category", "1.1.01",
    )

    run(config_path, "export", "--month", "2024-03")

    exported = tmp_path / "out" / "lancamentos_2024-03.csv"
    assert exported.exists()
    assert "Receita" in exported.read_text(encoding="utf-8")


def test_export_xlsx_workbook(config_path, tmp_path):
    account_id = main_account_id(config_path)
    run(
        config_path, "tx", "add", "--date", "2024-03-10", "--amount", "1234,56",
        "--description", "Dízimos", "--account", account_id,
        "--type", "income", "--category", "1.1.01",
    )

    run(config_path, "export", "--month", "2024-03", "--format", "xlsx")

    exported = tmp_path / "out" / "lancamentos_2024-03.xlsx"
    df = pd.read_excel(exported, sheet_name="Lançamentos")
    assert df.columns.tolist()[:3] == ["Data", "Descrição", "Tipo"]
    assert df["Valor"].tolist() == [1234.56]
    assert df["Tipo"].tolist() == ["Receita"]


@pytest.mark.parametrize("amount", ["NaN", "Infinity", "abc"])
def test_tx_add_rejects_non_numeric_amount(config_path, amount):
    account_id = main_account_id(config_path)

    with pytest.raises(SystemExit, match="Invalid amount"):
        run(
            config_path, "tx", "add", "--date", "2024-03-10", "--amount", amount,
            "--description", "Padaria", "--account", account_id,
            "--type", "expense", "--category", "2.1.02",
        )

    assert stored_ledger(config_path).transactions == ()


def test_rejected_category_change_prints_no_confirmation(config_path, capsys):
    with pytest.raises(SystemExit, match="Duplicate category"):
        run(config_path, "categories", "add", "2.1.02", "Outra", "--type", "expense")
    with pytest.raises(SystemExit, match="negative"):
        run(config_path, "categories", "budget", "2.1.02", "-5")

    out = capsys.readouterr().out
    assert "Category created" not in out
    assert "Budget of" not in out
    categories = {c.id: c for c in stored_ledger(config_path).categories}
    assert categories["2.1.02"].name == "2.1.02 Alimentação"
    assert categories["2.1.02"].budget == Decimal("0.00")


def test_report_commands(config_path, capsys):
    account_id = main_account_id(config_path)
    for on, amount, kind, category in [
        ("2024-03-05", "1000", "income", "1.1.01"),
        ("2024-03-10", "89.90", "expense", "2.1.02"),
        ("2024-04-02", "50", "expense", "2.1.02"),
    ]:
        run(
            config_path, "tx", "add", "--date", on, "--amount", amount,
            "--description", "Lançamento", "--account", account_id,
            "--type", kind, "--category", category,
        )
    capsys.readouterr()

    run(config_path, "report", "categories", "--month", "2024-03")
    out = capsys.readouterr().out
    assert "Expense by category, 2024-03" in out
    assert "89.9" in out

    run(config_path, "report", "annual", "--year", "2024")
    out = capsys.readouterr().out
    assert "=== Income 2024 ===" in out
    assert "Year total: 1,000.00 BRL" in out
    assert "Year total: 139.90 BRL" in out

    run(config_path, "report", "cash-flow", "--month", "2024-04")
    out = capsys.readouterr().out
    assert "2024-04-30" in out
    assert "-50.0" in out
