"""
Unit Tests for the remote collection sync layer
Covers the fallback query, cache replacement and create/update/delete on the cache
"""

import unittest
from datetime import datetime

from fakes import FakeDocumentStore, FakeNotifier, FakeTimer
from services.identity_provider import AuthSession
from utils.categories import CategoryCollection
from utils.errors import AuthRequiredError, NotFoundError, PersistenceError, QueryError
from utils.financial_records import ExpenseCollection, IncomeCollection
from utils.members import MemberCollection
from utils.reconciliation import ReconciliationTrigger
from utils.remote_collection import sort_records

OWNER = {'uid': 'owner-1', 'email': 'tesouraria@videira.org', 'displayName': 'Tesouraria'}
OTHER = {'uid': 'owner-2', 'email': 'outra@igreja.org', 'displayName': 'Outra'}


def seed_expenses(store):
    store.seed('despesas', 'e1', {'descricao': 'Luz', 'valor': 120.0, 'categoria': 'Contas', 'status': 'Pago',
                                  'data': '2024-01-10', 'userId': 'owner-1', 'createdAt': datetime(2024, 1, 10)})
    store.seed('despesas', 'e2', {'descricao': 'Água', 'valor': 80.0, 'categoria': 'Contas', 'status': 'Pendente',
                                  'data': '2024-03-02', 'userId': 'owner-1', 'createdAt': datetime(2024, 3, 2)})
    store.seed('despesas', 'e3', {'descricao': 'Aluguel', 'valor': 900.0, 'categoria': 'Imóvel', 'status': 'Pago',
                                  'data': '2024-02-01', 'userId': 'owner-1', 'createdAt': datetime(2024, 2, 1)})
    store.seed('despesas', 'x1', {'descricao': 'Outra igreja', 'valor': 10.0, 'categoria': 'Contas',
                                  'status': 'Pago', 'data': '2024-02-01', 'userId': 'owner-2',
                                  'createdAt': datetime(2024, 2, 5)})


class TestFallbackQuery(unittest.TestCase):
    """Ordered query, unordered retry and local sort"""

    def setUp(self):
        self.store = FakeDocumentStore()
        seed_expenses(self.store)
        self.session = AuthSession(user=OWNER)

    def tearDown(self):
        for collection in getattr(self, 'collections', []):
            collection.close()

    def open(self, cls, **kwargs):
        collection = cls(self.store, self.session, reconcile_delay=60, **kwargs)
        self.collections = getattr(self, 'collections', []) + [collection]
        return collection

    def test_initial_load_is_ordered_newest_first(self):
        """
        Scenario: Signed-in session opens the expenses collection
        Expected: Only the owner's records, newest createdAt first
        """
        expenses = self.open(ExpenseCollection)

        self.assertEqual([r['id'] for r in expenses.records], ['e2', 'e3', 'e1'])
        self.assertFalse(expenses.loading)
        self.assertEqual(self.store.calls[0], ('query', 'despesas', ('createdAt', 'desc')))

    def test_fallback_matches_server_order(self):
        """
        Scenario: The ordered query fails (missing index)
        Expected: Unordered retry sorted locally gives the same order as the server would
        """
        ordered = [r['id'] for r in self.open(ExpenseCollection).records]

        self.store.fail_ordered = True
        fallback = self.open(ExpenseCollection)

        self.assertEqual([r['id'] for r in fallback.records], ordered)
        self.assertIn(('query', 'despesas', None), self.store.calls)

    def test_members_fallback_sorts_by_registration_date(self):
        """
        Scenario: Member query falls back to the unordered path
        Expected: Sorted by dataCadastro descending, not by createdAt
        """
        self.store.seed('membros', 'm1', {'nome': 'Ana', 'dataCadastro': '2024-01-05', 'userId': 'owner-1',
                                          'createdAt': datetime(2024, 5, 1)})
        self.store.seed('membros', 'm2', {'nome': 'Bruno', 'dataCadastro': '2024-03-01', 'userId': 'owner-1',
                                          'createdAt': datetime(2024, 1, 1)})
        self.store.seed('membros', 'm3', {'nome': 'Carla', 'dataCadastro': '2023-12-31', 'userId': 'owner-1',
                                          'createdAt': datetime(2024, 2, 1)})

        ordered = [r['id'] for r in self.open(MemberCollection).records]
        self.store.fail_ordered = True
        fallback = [r['id'] for r in self.open(MemberCollection).records]

        self.assertEqual(ordered, ['m2', 'm1', 'm3'])
        self.assertEqual(fallback, ordered)

    def test_both_queries_fail_keeps_cache(self):
        """
        Scenario: Cache loaded, then the store becomes unreachable
        Expected: refetch raises QueryError, cache unchanged, loading cleared
        """
        expenses = self.open(ExpenseCollection)
        before = expenses.records

        self.store.fail_queries = True
        with self.assertRaises(QueryError):
            expenses.refetch()

        self.assertEqual(expenses.records, before)
        self.assertFalse(expenses.loading)
        self.assertIsNotNone(expenses.last_error)

    def test_refetch_replaces_cache(self):
        """
        Scenario: A record is deleted and another added directly in the store
        Expected: The next refetch mirrors the store exactly
        """
        expenses = self.open(ExpenseCollection)
        del self.store.collections['despesas']['e1']
        self.store.seed('despesas', 'e9', {'descricao': 'Som', 'valor': 50.0, 'categoria': 'Equipamento',
                                           'status': 'Pago', 'data': '2024-04-01', 'userId': 'owner-1',
                                           'createdAt': datetime(2024, 4, 1)})

        expenses.refetch()

        self.assertEqual([r['id'] for r in expenses.records], ['e9', 'e2', 'e3'])

    def test_signed_out_session_skips_query(self):
        session = AuthSession()
        expenses = ExpenseCollection(self.store, session, reconcile_delay=60)
        self.addCleanup(expenses.close)

        self.assertEqual(expenses.records, [])
        self.assertFalse(expenses.loading)
        self.assertEqual(self.store.count('query'), 0)

    def test_sort_records_keeps_store_order_on_ties(self):
        records = [
            {'id': 'a', 'createdAt': datetime(2024, 1, 1)},
            {'id': 'b', 'createdAt': datetime(2024, 1, 1)},
            {'id': 'c', 'createdAt': '2024-02-01T00:00:00Z'},
            {'id': 'd'},
        ]
        self.assertEqual([r['id'] for r in sort_records(records, 'createdAt', True)], ['c', 'a', 'b', 'd'])
        self.assertEqual([r['id'] for r in sort_records(records, 'createdAt', False)], ['d', 'a', 'b', 'c'])


class TestMutations(unittest.TestCase):
    """Create, update and delete reflected into the cache"""

    def setUp(self):
        self.store = FakeDocumentStore()
        seed_expenses(self.store)
        self.session = AuthSession(user=OWNER)
        self.notifier = FakeNotifier()
        self.expenses = ExpenseCollection(self.store, self.session, notifier=self.notifier, reconcile_delay=60)
        self.expenses.reconciler = ReconciliationTrigger(self.expenses._reconcile, 60, timer_factory=FakeTimer)

    def tearDown(self):
        self.expenses.close()

    def test_create_prepends_and_stamps_owner(self):
        """
        Scenario: New expense submitted with a forged userId
        Expected: Stored with the session owner, prepended to the cache
        """
        record = self.expenses.create({'descricao': 'Lanche', 'valor': 35.5, 'categoria': 'Eventos',
                                       'status': 'Pago', 'data': '2024-04-10', 'userId': 'intruder'})

        self.assertEqual(record['userId'], 'owner-1')
        self.assertIsInstance(record['createdAt'], datetime)
        self.assertEqual(self.expenses.records[0]['id'], record['id'])
        self.assertEqual(len(self.expenses.records), 4)
        self.assertEqual(self.store.collections['despesas'][record['id']]['userId'], 'owner-1')
        self.assertTrue(self.expenses.reconciler.pending)

    def test_create_then_reconcile_keeps_order(self):
        record = self.expenses.create({'descricao': 'Lanche', 'valor': 35.5, 'categoria': 'Eventos',
                                       'status': 'Pago', 'data': '2024-04-10'})
        optimistic = [r['id'] for r in self.expenses.records]

        self.assertTrue(self.expenses.reconciler.flush())

        self.assertEqual([r['id'] for r in self.expenses.records], optimistic)
        self.assertEqual(self.expenses.records[0]['id'], record['id'])

    def test_create_requires_authentication(self):
        """
        Scenario: Session signed out
        Expected: AuthRequiredError (a PersistenceError), no remote write
        """
        self.session.sign_out()

        with self.assertRaises(AuthRequiredError) as ctx:
            self.expenses.create({'descricao': 'Lanche', 'valor': 1.0})

        self.assertIsInstance(ctx.exception, PersistenceError)
        self.assertEqual(self.store.count('insert'), 0)

    def test_failed_create_leaves_cache_unchanged(self):
        before = self.expenses.records
        self.store.fail_writes = True

        with self.assertRaises(PersistenceError):
            self.expenses.create({'descricao': 'Lanche', 'valor': 1.0})

        self.assertEqual(self.expenses.records, before)
        self.assertEqual(self.notifier.sent, [])
        self.assertFalse(self.expenses.reconciler.pending)

    def test_update_merges_patch(self):
        updated = self.expenses.update('e2', {'status': 'Pago', 'createdAt': datetime(1999, 1, 1)})

        self.assertEqual(updated['status'], 'Pago')
        self.assertEqual(updated['createdAt'], datetime(2024, 3, 2))
        self.assertEqual(self.store.collections['despesas']['e2']['status'], 'Pago')
        self.assertEqual([r['id'] for r in self.expenses.records], ['e2', 'e3', 'e1'])

    def test_failed_update_keeps_cached_record(self):
        self.store.fail_writes = True

        with self.assertRaises(PersistenceError):
            self.expenses.update('e2', {'status': 'Pago'})

        self.assertEqual(self.expenses.get_local('e2')['status'], 'Pendente')

    def test_delete_removes_record(self):
        self.expenses.delete('e3')

        self.assertIsNone(self.expenses.get_local('e3'))
        self.assertNotIn('e3', self.store.collections['despesas'])

    def test_update_and_delete_require_authentication(self):
        self.session.sign_out()
        with self.assertRaises(AuthRequiredError):
            self.expenses.update('e2', {'status': 'Pago'})
        with self.assertRaises(AuthRequiredError):
            self.expenses.delete('e2')

    def test_find_checks_ownership(self):
        with self.assertRaises(NotFoundError):
            self.expenses.find('x1')
        with self.assertRaises(NotFoundError):
            self.expenses.find('missing')
        self.assertEqual(self.expenses.find('e1')['descricao'], 'Luz')

    def test_update_and_delete_never_touch_other_owners(self):
        """
        Scenario: owner-1 updates then deletes a record owned by owner-2
        Expected: NotFoundError both times, the other owner's document is untouched
        """
        with self.assertRaises(NotFoundError):
            self.expenses.update('x1', {'valor': 999.0})
        with self.assertRaises(NotFoundError):
            self.expenses.delete('x1')
        with self.assertRaises(NotFoundError):
            self.expenses.delete('missing')

        self.assertEqual(self.store.collections['despesas']['x1']['valor'], 10.0)
        self.assertEqual(self.store.count('update'), 0)
        self.assertEqual(self.store.count('delete'), 0)

    def test_expense_notifications(self):
        """
        Scenario: An overdue expense is registered
        Expected: New-expense and overdue notifications are both sent
        """
        self.expenses.create({'descricao': 'IPTU', 'valor': 300.0, 'categoria': 'Impostos',
                              'status': 'Vencido', 'data': '2024-01-01'})

        self.assertEqual(self.notifier.titles(), ['Nova Despesa Registrada', 'Despesa Vencida!'])

    def test_notification_failure_does_not_fail_create(self):
        self.expenses.notifier = FakeNotifier(fail=True)

        record = self.expenses.create({'descricao': 'IPTU', 'valor': 300.0, 'categoria': 'Impostos',
                                       'status': 'Pendente', 'data': '2024-01-01'})

        self.assertEqual(self.expenses.records[0]['id'], record['id'])


class TestSessionLifecycle(unittest.TestCase):

    def setUp(self):
        self.store = FakeDocumentStore()
        seed_expenses(self.store)
        self.session = AuthSession(user=OWNER)
        self.expenses = ExpenseCollection(self.store, self.session, reconcile_delay=60)

    def tearDown(self):
        self.expenses.close()

    def test_sign_out_clears_cache(self):
        self.session.sign_out()

        self.assertEqual(self.expenses.records, [])

    def test_switching_user_reloads_for_new_owner(self):
        self.session.restore(OTHER)

        self.assertEqual([r['id'] for r in self.expenses.records], ['x1'])

    def test_closed_collection_ignores_session(self):
        self.expenses.close()
        self.session.sign_out()

        self.assertEqual(len(self.expenses.records), 3)


class TestEntityCollections(unittest.TestCase):

    def setUp(self):
        self.store = FakeDocumentStore()
        self.session = AuthSession(user=OWNER)

    def test_income_defaults_on_read(self):
        """
        Scenario: Legacy income stored without payment method or notes
        Expected: Read back with formaPagamento 'pix', empty observacoes and membro
        """
        self.store.seed('receitas', 'r1', {'descricao': 'Dízimo', 'valor': 100.0, 'categoria': 'Dízimo',
                                           'data': '2024-01-07', 'userId': 'owner-1',
                                           'createdAt': datetime(2024, 1, 7)})
        income = IncomeCollection(self.store, self.session, reconcile_delay=60)
        self.addCleanup(income.close)

        record = income.records[0]
        self.assertEqual(record['formaPagamento'], 'pix')
        self.assertEqual(record['observacoes'], '')
        self.assertEqual(record['membro'], '')

    def test_income_defaults_on_create(self):
        notifier = FakeNotifier()
        income = IncomeCollection(self.store, self.session, notifier=notifier, reconcile_delay=60)
        self.addCleanup(income.close)

        record = income.create({'descricao': 'Oferta culto', 'valor': 250.0, 'categoria': 'Oferta',
                                'data': '2024-01-07', 'formaPagamento': 'dinheiro'})

        stored = self.store.collections['receitas'][record['id']]
        self.assertEqual(stored['formaPagamento'], 'dinheiro')
        self.assertEqual(stored['observacoes'], '')
        self.assertEqual(notifier.titles(), ['Nova Receita Registrada'])

    def test_categories_append_in_creation_order(self):
        categories = CategoryCollection(self.store, self.session, collection_name='despesaCategories',
                                        reconcile_delay=60)
        self.addCleanup(categories.close)

        categories.add('Contas')
        categories.add('Eventos')
        categories.add('Contas')

        self.assertEqual(categories.names, ['Contas', 'Eventos', 'Contas'])

    def test_member_defaults(self):
        members = MemberCollection(self.store, self.session, reconcile_delay=60)
        self.addCleanup(members.close)

        record = members.create({'nome': 'Davi'})

        self.assertEqual(record['status'], 'Ativo')
        self.assertEqual(len(record['dataCadastro']), 10)


if __name__ == '__main__':
    unittest.main()
