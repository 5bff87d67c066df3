# Oikonomia - Bookkeeping ledger & reconciliation engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Seed data used when the database holds no categories or accounts yet.

The chart of categories follows the numbered layout used by the treasurers:
``1.x.xx`` income, ``2.x.xx`` expense. Ids are the numbers themselves and the
names repeat them, so the list sorts naturally in every report.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from .models import BankAccount, Category, new_id

DEFAULT_ACCOUNT_NAME = "Conta Principal"

# (id, label, type)
_CHART: tuple[tuple[str, str, str], ...] = (
    # 1.1 Contribuições
    ("1.1.01", "Dízimos", "income"),
    ("1.1.02", "Ofertas Avulsas", "income"),
    ("1.1.03", "Ofertas Missionárias", "income"),
    ("1.1.04", "Ofertas Construção", "income"),
    ("1.1.05", "Ofertas Específicas", "income"),
    ("1.1.06", "Almoço Missionário", "income"),
    ("1.1.07", "Oferta IPH", "income"),
    # 1.2 Outras receitas
    ("1.2.01", "Rendimentos", "income"),
    ("1.2.02", "Venda de Bens", "income"),
    ("1.2.03", "Outras Receitas", "income"),
    ("1.2.04", "Juros Recebidos", "income"),
    ("1.2.05", "Aluguel Chácara BE", "income"),
    # 2.1 Manutenção de culto
    ("2.1.01", "Água e Esgoto", "expense"),
    ("2.1.02", "Alimentação", "expense"),
    ("2.1.03", "Combustível", "expense"),
    ("2.1.04", "Congregação BE", "expense"),
    ("2.1.05", "Congregação IPH", "expense"),
    ("2.1.06", "Construção e Reforma", "expense"),
    ("2.1.07", "Energia", "expense"),
    ("2.1.08", "Escola Bíblica Dominical", "expense"),
    ("2.1.09", "Junta Diaconal", "expense"),
    ("2.1.10", "Limpeza e Higiene", "expense"),
    ("2.1.11", "Mão de Obra", "expense"),
    ("2.1.12", "Máquinas e Equipamentos", "expense"),
    ("2.1.13", "Material Didático", "expense"),
    ("2.1.14", "Material de Limpeza", "expense"),
    ("2.1.15", "Móveis e Utensílios", "expense"),
    ("2.1.16", "Música", "expense"),
    ("2.1.17", "SAF", "expense"),
    ("2.1.18", "UCP", "expense"),
    ("2.1.19", "UMP", "expense"),
    ("2.1.20", "UPA", "expense"),
    ("2.1.21", "UPH", "expense"),
    ("2.1.22", "Outras Despesas", "expense"),
    ("2.1.23", "Viagem", "expense"),
    ("2.1.24", "Doação", "expense"),
    # 2.2 Côngruas e encargos
    ("2.2.01", "Acessórios Pastorais", "expense"),
    ("2.2.02", "Adiantamento", "expense"),
    ("2.2.03", "Ajuda de Custo Pastoral", "expense"),
    ("2.2.04", "Côngruas Pastorais", "expense"),
    ("2.2.05", "Gratificação Natalina", "expense"),
    ("2.2.06", "FAP", "expense"),
    ("2.2.07", "Férias Pastorais", "expense"),
    ("2.2.08", "INSS", "expense"),
    ("2.2.09", "IRRF", "expense"),
    ("2.2.10", "Plano de Saúde", "expense"),
    # 2.3 Repasses
    ("2.3.01", "Presbitério - PBRF", "expense"),
    ("2.3.02", "Tesouraria - SC/IPB", "expense"),
    # 2.4 Missões
    ("2.4.01", "Ajuda de Custo", "expense"),
    # 2.5 Administrativas e financeiras
    ("2.5.01", "Contabilidade", "expense"),
    ("2.5.02", "Papelaria", "expense"),
    ("2.5.03", "Seminário, Cursos, Aulas", "expense"),
    ("2.5.04", "Tarifa Bancária", "expense"),
    ("2.5.05", "Outras Despesas", "expense"),
    ("2.5.06", "Juros Pagos", "expense"),
    ("2.5.07", "Desconto Concedido", "expense"),
    ("2.5.08", "Despesas Legais e Acordos", "expense"),
    ("2.5.09", "Tesouraria", "expense"),
    ("2.5.10", "Software, Sistemas e Sites", "expense"),
    ("2.5.11", "Aluguel", "expense"),
    ("2.5.12", "Seguro", "expense"),
)


def default_categories() -> tuple[Category, ...]:
    """Return the default chart of categories, all with a zero budget."""
    return tuple(
        Category(id=code, name=f"{code} {label}", type=kind, budget=Decimal("0.00"))
        for code, label, kind in _CHART
    )


def default_accounts(today: Optional[date] = None) -> tuple[BankAccount, ...]:
    """Return a single empty account opened today."""
    return (
        BankAccount(
            id=new_id(),
            name=DEFAULT_ACCOUNT_NAME,
            initial_balance=Decimal("0.00"),
            start_date=today or date.today(),
        ),
    )
