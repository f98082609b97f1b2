"""
Unit Tests for backup creation, download, validation and local retention
"""

import json
import shutil
import tempfile
import unittest
from datetime import date, datetime

from fakes import FakeDocumentStore, FakeNotifier
from utils.backup_service import BackupService, LocalBackupStore, download_backup, parse_backup
from utils.errors import ValidationError


class TestBackupFiles(unittest.TestCase):

    def test_download_filename_and_iso_dates(self):
        backup = {
            'receitas': [{'id': 'r1', 'valor': 10.0, 'createdAt': datetime(2024, 3, 15, 10, 30)}],
            'despesas': [],
            'membros': [],
            'timestamp': '2024-03-15T10:30:00',
            'userId': 'owner-1'
        }

        filename, payload = download_backup(backup, today=date(2024, 3, 15))

        self.assertEqual(filename, 'backup-igreja-2024-03-15.json')
        data = json.loads(payload.decode('utf-8'))
        self.assertEqual(data['receitas'][0]['createdAt'], '2024-03-15T10:30:00')

    def test_parse_valid_backup(self):
        raw = json.dumps({'receitas': [], 'despesas': [], 'timestamp': '2024-03-15T10:30:00'})
        self.assertEqual(parse_backup(raw)['timestamp'], '2024-03-15T10:30:00')

    def test_parse_rejects_missing_keys(self):
        """
        Scenario: Backup file without despesas
        Expected: ValidationError naming the missing key
        """
        with self.assertRaises(ValidationError) as ctx:
            parse_backup(json.dumps({'receitas': [], 'timestamp': 'x'}))
        self.assertIn('despesas', ctx.exception.errors)

    def test_parse_rejects_garbage(self):
        with self.assertRaises(ValidationError):
            parse_backup(b'not json at all')
        with self.assertRaises(ValidationError):
            parse_backup('[1, 2, 3]')


class TestLocalBackups(unittest.TestCase):

    def setUp(self):
        self.directory = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.directory, True)

    def test_keeps_last_five(self):
        local_store = LocalBackupStore(self.directory)
        ids = [local_store.save({'receitas': [], 'despesas': [], 'timestamp': str(i)}) for i in range(7)]

        backups = local_store.list()

        self.assertEqual(len(backups), 5)
        self.assertEqual([b['id'] for b in backups], list(reversed(ids[2:])))
        self.assertIsNone(local_store.load(ids[0]))

    def test_delete(self):
        local_store = LocalBackupStore(self.directory)
        backup_id = local_store.save({'receitas': [], 'despesas': [], 'timestamp': 'now'})

        self.assertTrue(local_store.delete(backup_id))
        self.assertFalse(local_store.delete(backup_id))
        self.assertEqual(local_store.list(), [])


class TestBackupService(unittest.TestCase):

    def setUp(self):
        self.directory = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.directory, True)
        self.store = FakeDocumentStore()
        self.store.seed('receitas', 'r1', {'valor': 100.0, 'userId': 'owner-1'})
        self.store.seed('receitas', 'r2', {'valor': 5.0, 'userId': 'owner-2'})
        self.store.seed('despesas', 'd1', {'valor': 40.0, 'userId': 'owner-1'})
        self.store.seed('membros', 'm1', {'nome': 'Ana', 'userId': 'owner-1'})
        self.notifier = FakeNotifier()
        self.service = BackupService(self.store, self.directory, notifier=self.notifier)

    def test_create_backup_is_owner_scoped(self):
        backup = self.service.create_backup('owner-1')

        self.assertEqual([r['id'] for r in backup['receitas']], ['r1'])
        self.assertEqual(len(backup['despesas']), 1)
        self.assertEqual(len(backup['membros']), 1)
        self.assertEqual(backup['userId'], 'owner-1')
        self.assertTrue(datetime.fromisoformat(backup['timestamp']))

    def test_auto_backup_stores_and_notifies(self):
        backup_id = self.service.perform_auto_backup('owner-1')

        self.assertIsNotNone(backup_id)
        self.assertEqual(self.service.local_store('owner-1').list()[0]['receitas'], 1)
        self.assertEqual(self.notifier.titles(), ['Backup Realizado'])

    def test_auto_backup_swallows_errors(self):
        self.store.fail_queries = True

        self.assertIsNone(self.service.perform_auto_backup('owner-1'))
        self.assertEqual(self.notifier.sent, [])


if __name__ == '__main__':
    unittest.main()
