"""
Backup of a church's financial and membership records.

A backup is a plain JSON document with the income, expense and member lists
of one owner. Backups can be downloaded, validated before a restore, or kept
locally (the last few only) by the automatic backup job.
"""
import itertools
import json
import logging
import os
import threading
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from models import EXPENSES, INCOME, MEMBERS
from utils.errors import ValidationError

logger = logging.getLogger(__name__)

REQUIRED_BACKUP_KEYS = (INCOME, EXPENSES, 'timestamp')
DEFAULT_MAX_BACKUPS = 5

# Orders backups saved within the same microsecond
_sequence = itertools.count()


def _json_default(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def download_backup(backup: Dict[str, Any], today: Optional[date] = None) -> Tuple[str, bytes]:
    """
    Serialize a backup for download.

    Returns:
        tuple: (filename, JSON bytes)
    """
    today = today or date.today()
    filename = f"backup-igreja-{today.isoformat()}.json"
    payload = json.dumps(backup, default=_json_default, ensure_ascii=False, indent=2)
    return filename, payload.encode('utf-8')


def parse_backup(raw: Union[str, bytes, Dict[str, Any]]) -> Dict[str, Any]:
    """
    Parse and structurally validate a backup before restoring it.

    Raises:
        ValidationError: not JSON, or receitas/despesas/timestamp missing
    """
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except ValueError:
            raise ValidationError({'backup': ['Arquivo de backup inválido']}, 'Invalid backup file')
    else:
        data = raw

    if not isinstance(data, dict):
        raise ValidationError({'backup': ['Arquivo de backup inválido']}, 'Invalid backup file')

    missing = [key for key in REQUIRED_BACKUP_KEYS if key not in data]
    if missing:
        raise ValidationError(
            {key: ['Campo obrigatório ausente no backup'] for key in missing},
            'Invalid backup file'
        )
    return data


class LocalBackupStore:
    """Keeps the most recent backups as JSON files in one directory"""

    def __init__(self, directory: str, max_backups: int = DEFAULT_MAX_BACKUPS):
        self.directory = directory
        self.max_backups = max_backups
        self._lock = threading.Lock()

    def _path(self, backup_id: str) -> str:
        return os.path.join(self.directory, f"{os.path.basename(backup_id)}.json")

    def save(self, backup: Dict[str, Any]) -> str:
        """Write a backup and prune the oldest beyond max_backups. Returns the backup id."""
        backup_id = f"backup_{datetime.utcnow().strftime('%Y%m%d%H%M%S%f')}_{next(_sequence):06d}"
        _, payload = download_backup(backup)

        with self._lock:
            os.makedirs(self.directory, exist_ok=True)
            with open(self._path(backup_id), 'wb') as f:
                f.write(payload)

            for stale in self._ids()[self.max_backups:]:
                os.remove(self._path(stale))
                logger.info(f"Removed old local backup {stale}")

        return backup_id

    def _ids(self) -> List[str]:
        if not os.path.isdir(self.directory):
            return []
        ids = [name[:-5] for name in os.listdir(self.directory)
               if name.startswith('backup_') and name.endswith('.json')]
        return sorted(ids, reverse=True)

    def list(self) -> List[Dict[str, Any]]:
        """Stored backups, newest first"""
        backups = []
        for backup_id in self._ids():
            with open(self._path(backup_id), 'rb') as f:
                data = json.loads(f.read())
            backups.append({
                'id': backup_id,
                'timestamp': data.get('timestamp'),
                'userId': data.get('userId'),
                'receitas': len(data.get(INCOME, [])),
                'despesas': len(data.get(EXPENSES, [])),
                'membros': len(data.get(MEMBERS, [])),
            })
        return backups

    def load(self, backup_id: str) -> Optional[Dict[str, Any]]:
        path = self._path(backup_id)
        if not os.path.exists(path):
            return None
        with open(path, 'rb') as f:
            return json.loads(f.read())

    def delete(self, backup_id: str) -> bool:
        with self._lock:
            path = self._path(backup_id)
            if not os.path.exists(path):
                return False
            os.remove(path)
            logger.info(f"Deleted local backup {backup_id}")
            return True


class BackupService:
    """Backups for every owner; local copies go to one subdirectory per owner"""

    def __init__(self, store, backup_dir: Optional[str] = None, max_backups: int = DEFAULT_MAX_BACKUPS,
                 notifier=None):
        self.store = store
        self.backup_dir = backup_dir
        self.max_backups = max_backups
        self.notifier = notifier
        self._local_stores: Dict[str, LocalBackupStore] = {}
        self._lock = threading.Lock()

    def local_store(self, owner_id: str) -> Optional[LocalBackupStore]:
        if not self.backup_dir:
            return None
        with self._lock:
            if owner_id not in self._local_stores:
                directory = os.path.join(self.backup_dir, os.path.basename(owner_id))
                self._local_stores[owner_id] = LocalBackupStore(directory, self.max_backups)
            return self._local_stores[owner_id]

    def create_backup(self, owner_id: str) -> Dict[str, Any]:
        """
        Snapshot the owner's income, expenses and members.

        Raises:
            QueryError: any of the reads failed
        """
        owner_filter = {'userId': owner_id}
        backup = {
            INCOME: self.store.query(INCOME, owner_filter),
            EXPENSES: self.store.query(EXPENSES, owner_filter),
            MEMBERS: self.store.query(MEMBERS, owner_filter),
            'timestamp': datetime.utcnow().isoformat(),
            'userId': owner_id
        }
        logger.info(
            f"Backup created for user {owner_id}: {len(backup[INCOME])} receitas, "
            f"{len(backup[EXPENSES])} despesas, {len(backup[MEMBERS])} membros"
        )
        return backup

    def perform_auto_backup(self, owner_id: str) -> Optional[str]:
        """
        Create and store a backup, then notify. Never raises.

        Returns:
            str: local backup id, or None if the backup failed
        """
        try:
            backup = self.create_backup(owner_id)
            local_store = self.local_store(owner_id)
            backup_id = local_store.save(backup) if local_store else None
            if self.notifier is not None:
                self.notifier.notify_backup_completed()
            logger.info(f"Automatic backup completed for user {owner_id}")
            return backup_id
        except Exception as e:
            logger.error(f"Automatic backup failed for user {owner_id}: {e}")
            return None
