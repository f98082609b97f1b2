"""
Income (receitas) and expense (despesas) collections.

Both are ordered newest first and notify the console on every new entry.
"""
import logging
from typing import Any, Dict

from models import DEFAULT_PAYMENT_METHOD, EXPENSES, INCOME
from utils.remote_collection import RemoteCollection

logger = logging.getLogger(__name__)

INCOME_DEFAULTS = {
    'formaPagamento': DEFAULT_PAYMENT_METHOD,
    'observacoes': '',
    'membro': '',
}


class _NotifyingCollection(RemoteCollection):

    def __init__(self, store, session, notifier=None, **kwargs):
        self.notifier = notifier
        super().__init__(store, session, **kwargs)

    def _notify(self, method: str, *args):
        if self.notifier is None:
            return
        try:
            getattr(self.notifier, method)(*args)
        except Exception as e:
            logger.warning(f"Error sending notification for '{self.collection_name}': {e}")


class ExpenseCollection(_NotifyingCollection):
    collection_name = EXPENSES

    def after_create(self, record: Dict[str, Any]):
        self._notify('notify_new_expense', record.get('valor', 0), record.get('categoria', ''))
        if record.get('status') == 'Vencido':
            self._notify('notify_overdue_expense',
                         record.get('descricao', ''), record.get('valor', 0))


class IncomeCollection(_NotifyingCollection):
    collection_name = INCOME

    def normalize(self, record: Dict[str, Any]) -> Dict[str, Any]:
        for field, default in INCOME_DEFAULTS.items():
            if not record.get(field):
                record[field] = default
        return record

    def prepare_create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self.normalize(dict(fields))

    def after_create(self, record: Dict[str, Any]):
        self._notify('notify_new_income', record.get('valor', 0), record.get('categoria', ''))
