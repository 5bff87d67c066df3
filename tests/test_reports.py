from datetime import date
from decimal import Decimal

from oikonomia import reports
from oikonomia.ledger import LedgerStore
from oikonomia.models import BankAccount, Category, Transaction


def _tx(tx_id, on, amount, tx_type, account_id="main", category_id="", **kwargs):
    return Transaction(
        id=tx_id,
        date=on,
        description=kwargs.pop("description", tx_id),
        amount=Decimal(amount),
        type=tx_type,
        account_id=account_id,
        category_id=category_id,
        **kwargs,
    )


def make_ledger() -> LedgerStore:
    return LedgerStore(
        transactions=(
            _tx("jan-in", date(2024, 1, 5), "1000.00", "income", category_id="1.1.01"),
            _tx("jan-out", date(2024, 1, 9), "250.00", "expense", category_id="2.1.02"),
            _tx(
                "feb-energy",
                date(2024, 2, 10),
                "120.35",
                "expense",
                category_id="2.1.07",
                supplier="CEMIG",
                document_ref="NF 77",
            ),
            _tx("feb-in", date(2024, 2, 3), "800.00", "income", category_id="1.1.01"),
            _tx(
                "feb-move",
                date(2024, 2, 15),
                "300.00",
                "transfer",
                destination_account_id="cash",
                notes="troco",
            ),
            _tx("feb-orphan", date(2024, 2, 20), "10.00", "expense", "gone", "9.9.99"),
        ),
        categories=(
            Category(
                id="1.1.01", name="Dízimos", type="income", budget=Decimal("900")
            ),
            Category(id="2.1.02", name="Alimentação", type="expense"),
            Category(
                id="2.1.07", name="Energia", type="expense", budget=Decimal("100")
            ),
        ),
        accounts=(
            BankAccount(
                id="main", name="Conta Principal", initial_balance=Decimal("50")
            ),
            BankAccount(id="cash", name="Caixa", initial_balance=Decimal("25.00")),
        ),
    )


def test_recent_months_oldest_first() -> None:
    months = reports.recent_months("2024-02", count=3)

    assert months == ["2023-12", "2024-01", "2024-02"]


def test_monthly_summary_excludes_transfers_and_fills_gaps() -> None:
    summaries = reports.monthly_summary(
        make_ledger().transactions, ["2023-12", "2024-01", "2024-02"]
    )

    assert [s.month for s in summaries] == ["2023-12", "2024-01", "2024-02"]
    assert summaries[0].income == summaries[0].expense == Decimal("0.00")
    assert summaries[1].balance == Decimal("750.00")
    assert summaries[2].income == Decimal("800.00")
    assert summaries[2].expense == Decimal("130.35")


def test_month_statement_carries_previous_months() -> None:
    statement = reports.month_statement(make_ledger(), "2024-02")

    assert statement.opening_balance == Decimal("825.00")
    assert statement.result == Decimal("669.65")
    assert statement.closing_balance == Decimal("1494.65")


def test_category_totals_largest_first_with_orphans_grouped() -> None:
    totals = reports.category_totals(make_ledger(), "2024-02", "expense")

    assert list(totals) == ["Energia", "Sem Categoria"]
    assert totals["Energia"] == Decimal("120.35")


def test_budget_vs_actual() -> None:
    """Categories without a budget report zero; transfers never count."""
    lines = {
        line.category_id: line
        for line in reports.budget_vs_actual(make_ledger(), "2024-02")
    }

    assert lines["2.1.07"].budget == Decimal("100.00")
    assert lines["2.1.07"].remaining == Decimal("-20.35")
    assert lines["2.1.02"].budget == Decimal("0.00")
    assert lines["2.1.02"].actual == Decimal("0.00")
    assert lines["1.1.01"].actual == Decimal("800.00")

    expense_only = reports.budget_vs_actual(make_ledger(), "2024-02", "expense")
    assert {line.type for line in expense_only} == {"expense"}


def test_budget_totals() -> None:
    totals = reports.budget_totals(make_ledger(), "2024-02")

    assert totals["income"] == {
        "budget": Decimal("900.00"),
        "actual": Decimal("800.00"),
    }
    assert totals["expense"]["budget"] == Decimal("100.00")
    assert totals["expense"]["actual"] == Decimal("130.35")


def test_annual_category_matrix() -> None:
    """Existing categories only, sorted by name, with monthly and yearly totals."""
    sections = reports.annual_category_matrix(make_ledger(), 2024)

    expense = sections["expense"]
    assert [row.name for row in expense.rows] == ["Alimentação", "Energia"]
    assert expense.rows[0].months[0] == Decimal("250.00")
    assert expense.rows[1].months[1] == Decimal("120.35")
    assert expense.rows[1].total == Decimal("120.35")
    assert expense.month_totals[:3] == (
        Decimal("250.00"),
        Decimal("120.35"),
        Decimal("0.00"),
    )
    assert expense.total == Decimal("370.35")

    income = sections["income"]
    assert [row.category_id for row in income.rows] == ["1.1.01"]
    assert income.total == Decimal("1800.00")

    empty = reports.annual_category_matrix(make_ledger(), 2023)
    assert empty["expense"].rows == ()
    assert empty["income"].total == Decimal("0.00")


def test_annual_dataframe_has_total_row() -> None:
    section = reports.annual_category_matrix(make_ledger(), 2024)["expense"]

    df = reports.annual_to_dataframe(section)

    assert df["name"].tolist() == ["Alimentação", "Energia", "Total"]
    assert df["02"].tolist() == [0.0, 120.35, 120.35]
    assert df["total"].iloc[-1] == 370.35


def test_daily_flow_covers_every_day_without_transfers() -> None:
    days = reports.daily_flow(make_ledger(), "2024-02")

    assert len(days) == 29
    assert days[0].day == date(2024, 2, 1)
    assert days[-1].day == date(2024, 2, 29)

    by_day = {d.day.day: d for d in days}
    assert by_day[3].income == Decimal("800.00")
    assert by_day[10].balance == Decimal("-120.35")
    assert by_day[15].income == by_day[15].expense == Decimal("0.00")
    assert by_day[20].expense == Decimal("10.00")

    df = reports.daily_flow_to_dataframe(days)
    assert list(df.columns) == ["date", "income", "expense", "balance"]
    assert df["date"].iloc[2] == "2024-02-03"


def test_export_records_columns_and_labels() -> None:
    records = reports.export_records(make_ledger(), "2024-02")

    assert [r["Descrição"] for r in records] == [
        "feb-in",
        "feb-energy",
        "feb-move",
        "feb-orphan",
    ]
    assert list(records[0]) == reports.EXPORT_COLUMNS

    energy = records[1]
    assert energy["Data"] == "10/02/2024"
    assert energy["Tipo"] == "Despesa"
    assert energy["Categoria"] == "Energia"
    assert energy["Valor"] == Decimal("120.35")
    assert energy["Fornecedor"] == "CEMIG"
    assert energy["Nota Fiscal"] == "NF 77"

    move = records[2]
    assert move["Tipo"] == "Transferência"
    assert move["Categoria"] == "Transferência"
    assert move["Observações"] == "Para: Caixa troco"

    orphan = records[3]
    assert orphan["Conta"] == "Conta Removida"
    assert orphan["Categoria"] == "Sem Categoria"


def test_export_dataframe_and_filename() -> None:
    df = reports.records_to_dataframe(reports.export_records(make_ledger(), "2024-01"))

    assert list(df.columns) == reports.EXPORT_COLUMNS
    assert df["Valor"].tolist() == [1000.0, 250.0]
    assert reports.export_filename("2024-01", "xlsx") == "lancamentos_2024-01.xlsx"


def test_transactions_to_dataframe_resolves_names() -> None:
    ledger = make_ledger()

    df = reports.transactions_to_dataframe(ledger, ledger.transactions)

    assert df["id"].tolist()[:2] == ["jan-in", "jan-out"]
    move = df[df["id"] == "feb-move"].iloc[0]
    assert move["account"] == "Conta Principal"
    assert move["destination"] == "Caixa"
    assert move["category"] == "Transferência"
