"""
Report filtering and aggregation for the reports page and PDF exports.
"""
from collections import OrderedDict
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from utils.errors import ValidationError
from utils.formatting import normalize_text, parse_date

PERIOD_LABELS = {
    'mes-atual': 'Mês atual',
    'trimestre': 'Último trimestre',
    'semestre': 'Último semestre',
    'ano-atual': 'Ano atual',
    'todos': 'Todos os registros',
    'personalizado': 'Período personalizado',
}

REPORT_TYPE_LABELS = {
    'geral': 'Relatório geral',
    'receitas': 'Receitas',
    'despesas': 'Despesas',
    'dizimos': 'Dízimos',
    'dizimos-ofertas': 'Dízimos e ofertas',
    'ofertas': 'Ofertas',
}

# Income categories kept by the tithe/offering report types
INCOME_CATEGORY_FILTERS = {
    'dizimos': ('dizimo',),
    'ofertas': ('oferta',),
    'dizimos-ofertas': ('dizimo', 'oferta'),
}


def _first_of_month(today: date, months_back: int) -> date:
    index = today.year * 12 + (today.month - 1) - months_back
    return date(index // 12, index % 12 + 1, 1)


def period_start(period: str, today: Optional[date] = None) -> Optional[date]:
    """Earliest date included by a relative period, None for 'todos'"""
    today = today or date.today()
    if period == 'mes-atual':
        return _first_of_month(today, 0)
    if period == 'trimestre':
        return _first_of_month(today, 3)
    if period == 'semestre':
        return _first_of_month(today, 6)
    if period == 'ano-atual':
        return date(today.year, 1, 1)
    return None


def period_label(period: str, start: Optional[date] = None, end: Optional[date] = None) -> str:
    if period == 'personalizado' and start and end:
        return f"{start.strftime('%d/%m/%Y')} a {end.strftime('%d/%m/%Y')}"
    return PERIOD_LABELS.get(period, PERIOD_LABELS['todos'])


def _in_range(record: Dict[str, Any], start: Optional[date], end: Optional[date]) -> bool:
    day = parse_date(record.get('data'))
    if day is None:
        return False
    if start and day < start:
        return False
    if end and day > end:
        return False
    return True


def filter_by_period(records: List[Dict[str, Any]], period: str = 'todos',
                     start: Optional[date] = None, end: Optional[date] = None,
                     today: Optional[date] = None) -> List[Dict[str, Any]]:
    """
    Keep records whose 'data' falls in the period. A custom period is
    inclusive on both ends and is ignored until both ends are given.
    """
    if period not in PERIOD_LABELS:
        raise ValidationError({'periodo': [f"Período inválido: {period}"]})

    if period == 'todos':
        return list(records)
    if period == 'personalizado':
        if not (start and end):
            return list(records)
        return [r for r in records if _in_range(r, start, end)]
    return [r for r in records if _in_range(r, period_start(period, today), None)]


def filter_by_type(income: List[Dict[str, Any]], expenses: List[Dict[str, Any]],
                   report_type: str = 'geral') -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    if report_type not in REPORT_TYPE_LABELS:
        raise ValidationError({'tipo': [f"Tipo de relatório inválido: {report_type}"]})

    if report_type == 'geral':
        return list(income), list(expenses)
    if report_type == 'receitas':
        return list(income), []
    if report_type == 'despesas':
        return [], list(expenses)

    accepted = INCOME_CATEGORY_FILTERS[report_type]
    return [r for r in income if normalize_text(r.get('categoria') or '') in accepted], []


def apply_filters(income, expenses, report_type='geral', period='todos',
                  start=None, end=None, today=None):
    income = filter_by_period(income, period, start, end, today)
    expenses = filter_by_period(expenses, period, start, end, today)
    return filter_by_type(income, expenses, report_type)


def _sum_by(records, field):
    totals = {}
    for record in records:
        key = record.get(field) or ''
        totals[key] = totals.get(key, 0) + float(record.get('valor') or 0)
    return totals


def summarize(income: List[Dict[str, Any]], expenses: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Totals, balance, per-category and per-status sums, and monthly evolution"""
    total_income = sum(float(r.get('valor') or 0) for r in income)
    total_expenses = sum(float(d.get('valor') or 0) for d in expenses)

    monthly = {}
    for records, field in ((income, 'receitas'), (expenses, 'despesas')):
        for record in records:
            day = parse_date(record.get('data'))
            if day is None:
                continue
            month = monthly.setdefault(f"{day.year}-{day.month:02d}", {'receitas': 0, 'despesas': 0})
            month[field] += float(record.get('valor') or 0)

    evolution = OrderedDict()
    for key in sorted(monthly):
        values = monthly[key]
        evolution[key] = {
            'receitas': values['receitas'],
            'despesas': values['despesas'],
            'saldo': values['receitas'] - values['despesas']
        }

    return {
        'totalReceitas': total_income,
        'totalDespesas': total_expenses,
        'saldoLiquido': total_income - total_expenses,
        'receitasPorCategoria': _sum_by(income, 'categoria'),
        'despesasPorCategoria': _sum_by(expenses, 'categoria'),
        'despesasPorStatus': _sum_by(expenses, 'status'),
        'quantidadeReceitas': len(income),
        'quantidadeDespesas': len(expenses),
        'evolucaoMensal': evolution,
    }


def category_breakdown(totals: Dict[str, float]) -> List[Dict[str, Any]]:
    """Category rows with their share of the total, largest first"""
    grand_total = sum(totals.values())
    rows = [
        {
            'categoria': category,
            'valor': value,
            'percentual': (value / grand_total) if grand_total else 0
        }
        for category, value in totals.items()
    ]
    return sorted(rows, key=lambda row: row['valor'], reverse=True)
