"""
pt-BR formatting and parsing helpers shared by notifications, reports and
the birthday view.
"""
import unicodedata
from datetime import date, datetime
from typing import Any, Optional

from babel.dates import format_date as _babel_format_date
from babel.numbers import format_currency as _babel_format_currency

LOCALE = 'pt_BR'


def format_currency(value: Any) -> str:
    """R$ 1.234,56 em pt-BR."""
    try:
        v = float(value)
    except (TypeError, ValueError):
        return str(value)
    return _babel_format_currency(v, 'BRL', locale=LOCALE)


def format_date(value: Any) -> str:
    """dd/mm/aaaa em pt-BR."""
    d = parse_date(value)
    if d is None:
        return str(value or '')
    return _babel_format_date(d, format='short', locale=LOCALE)


def parse_date(value: Any) -> Optional[date]:
    """
    Calendar date from a date, datetime or ISO string ('2024-03-15',
    '2024-03-15T10:00:00Z'). Returns None when the value is empty or
    unparsable.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None


def normalize_text(value: str) -> str:
    """Lowercase and strip accents: 'Dízimo' -> 'dizimo'"""
    decomposed = unicodedata.normalize('NFD', value or '')
    return ''.join(c for c in decomposed if unicodedata.category(c) != 'Mn').strip().lower()
