"""
Unit Tests for the birthday view and birthday notifications
"""

import unittest
from datetime import date

from fakes import FakeDocumentStore, FakeNotifier
from utils.birthdays import BirthdayService, build_birthday_view, calculate_age, days_until_birthday


class TestBirthdayArithmetic(unittest.TestCase):

    def test_age_and_days_on_birthday(self):
        birth = date(1990, 3, 15)
        self.assertEqual(calculate_age(birth, date(2024, 3, 15)), 34)
        self.assertEqual(days_until_birthday(birth, date(2024, 3, 15)), 0)

    def test_day_after_birthday(self):
        birth = date(1990, 3, 15)
        self.assertEqual(calculate_age(birth, date(2024, 3, 16)), 34)
        self.assertEqual(days_until_birthday(birth, date(2024, 3, 16)), 364)

    def test_before_birthday(self):
        birth = date(1990, 3, 15)
        self.assertEqual(calculate_age(birth, date(2024, 1, 1)), 33)
        self.assertEqual(days_until_birthday(birth, date(2024, 1, 1)), 74)

    def test_leap_day_birthday_in_common_year(self):
        birth = date(2000, 2, 29)
        self.assertEqual(days_until_birthday(birth, date(2023, 2, 28)), 0)
        self.assertEqual(days_until_birthday(birth, date(2024, 2, 28)), 1)


class TestBirthdayView(unittest.TestCase):

    def setUp(self):
        self.today = date(2024, 3, 15)
        self.members = [
            {'id': 'm1', 'nome': 'Ana', 'dataNascimento': '1990-03-15'},
            {'id': 'm2', 'nome': 'Bruno', 'dataNascimento': '1985-03-16'},
            {'id': 'm3', 'nome': 'Carla', 'dataNascimento': '2000-04-20'},
            {'id': 'm4', 'nome': 'Davi', 'dataNascimento': '1970-12-01'},
            {'id': 'm5', 'nome': 'Eva', 'dataNascimento': '1995-03-01'},
            {'id': 'm6', 'nome': 'Sem data'},
        ]

    def test_buckets(self):
        """
        Scenario: Members with birthdays today, tomorrow, in 36 days, in December, earlier this month
        Expected: Each lands in the right buckets, ordered by days remaining
        """
        view = build_birthday_view(self.members, self.today, congratulated_ids=['m1'])

        self.assertEqual([e['id'] for e in view['today']], ['m1'])
        self.assertEqual([e['id'] for e in view['tomorrow']], ['m2'])
        self.assertEqual([e['id'] for e in view['upcoming']], ['m1', 'm2', 'm3'])
        self.assertEqual([e['id'] for e in view['this_month']], ['m1', 'm2', 'm5'])
        self.assertTrue(view['today'][0]['parabenizado'])
        self.assertEqual(view['today'][0]['idade'], 34)
        self.assertEqual(view['upcoming'][2]['diasRestantes'], 36)


class TestBirthdayService(unittest.TestCase):

    def setUp(self):
        self.store = FakeDocumentStore()
        self.notifier = FakeNotifier()
        self.service = BirthdayService(self.store, self.notifier)
        self.today = date(2024, 3, 15)
        self.store.seed('membros', 'm1', {'nome': 'Ana', 'dataNascimento': '1990-03-15', 'userId': 'owner-1'})
        self.store.seed('membros', 'm2', {'nome': 'Bruno', 'dataNascimento': '1985-03-16', 'userId': 'owner-1'})
        self.store.seed('membros', 'm3', {'nome': 'Carla', 'dataNascimento': '1985-03-15', 'userId': 'owner-2'})

    def test_daily_check_notifies_once_per_day(self):
        """
        Scenario: The daily check runs twice on the same day
        Expected: One notification per member per day, markers written
        """
        first = self.service.run_daily_check('owner-1', today=self.today)
        second = self.service.run_daily_check('owner-1', today=self.today)

        self.assertEqual(first, 2)
        self.assertEqual(second, 0)
        self.assertEqual(self.notifier.titles(), ['🎉 Aniversário Hoje!', '🎂 Aniversário Amanhã!'])
        self.assertIn('owner-1_m1_hoje_2024-03-15', self.store.collections['notificacoes_aniversario'])
        self.assertIn('owner-1_m2_amanha_2024-03-15', self.store.collections['notificacoes_aniversario'])

    def test_notification_bodies(self):
        self.service.run_daily_check('owner-1', today=self.today)

        self.assertEqual(self.notifier.sent[0]['body'], 'Ana está fazendo 34 anos hoje!')
        self.assertTrue(self.notifier.sent[0]['requireInteraction'])
        self.assertEqual(self.notifier.sent[1]['body'], 'Bruno fará 39 anos amanhã')

    def test_markers_are_per_owner(self):
        self.service.run_daily_check('owner-1', today=self.today)
        sent = self.service.run_daily_check('owner-2', today=self.today)

        self.assertEqual(sent, 1)

    def test_congratulated_members_are_skipped(self):
        self.service.mark_congratulated('owner-1', 'm1', self.today)

        sent = self.service.run_daily_check('owner-1', today=self.today)

        self.assertEqual(sent, 1)
        self.assertTrue(self.service.is_congratulated('owner-1', 'm1', self.today))
        self.assertFalse(self.service.is_congratulated('owner-1', 'm1', date(2024, 3, 16)))

    def test_birthdays_for_sets_congratulated_flag(self):
        self.service.mark_congratulated('owner-1', 'm2', self.today)
        members = self.store.query('membros', {'userId': 'owner-1'})

        view = self.service.birthdays_for('owner-1', members, self.today)

        self.assertFalse(view['today'][0]['parabenizado'])
        self.assertTrue(view['tomorrow'][0]['parabenizado'])

    def test_unreachable_store_sends_nothing(self):
        self.store.fail_queries = True

        self.assertEqual(self.service.run_daily_check('owner-1', today=self.today), 0)
        self.assertEqual(self.notifier.sent, [])

    def test_send_congratulations(self):
        self.assertTrue(self.service.send_congratulations({'id': 'm1', 'nome': 'Ana'}))
        self.assertEqual(self.notifier.sent[0]['tag'], 'parabens-enviado-m1')


if __name__ == '__main__':
    unittest.main()
