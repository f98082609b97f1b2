"""
Church profile (igrejaConfig): a single settings document per owner, keyed
by the owner's uid rather than a generated id.
"""
import logging
import threading
from datetime import datetime
from typing import Any, Dict

from models import CHURCH_CONFIG, CHURCH_PROFILE_FIELDS
from utils.errors import AuthRequiredError, PersistenceError, QueryError

logger = logging.getLogger(__name__)


def default_profile(owner_id: str = '') -> Dict[str, Any]:
    now = datetime.utcnow()
    profile = {field: '' for field in CHURCH_PROFILE_FIELDS}
    profile.update({'userId': owner_id, 'createdAt': now, 'updatedAt': now})
    return profile


class ChurchProfileStore:

    def __init__(self, store, session):
        self.store = store
        self.session = session
        self.config = default_profile()
        self.loading = True
        self.saving = False
        self._lock = threading.RLock()
        self._unsubscribe = session.subscribe(self._on_auth_state_changed)

    def fetch(self) -> Dict[str, Any]:
        """
        Load the owner's profile; defaults are kept when none was saved yet.

        Raises:
            QueryError: the read failed, the current config is kept
        """
        owner_id = self.session.owner_id
        if not owner_id:
            logger.info("No user found, skipping config fetch")
            self.loading = False
            return dict(self.config)

        with self._lock:
            try:
                doc = self.store.get(CHURCH_CONFIG, owner_id)
            finally:
                self.loading = False
            if doc:
                doc.pop('id', None)
                self.config = {**default_profile(owner_id), **doc}
                logger.info(f"Church config loaded for user {owner_id}")
            else:
                logger.info("No church config found, using defaults")
                self.config = {**self.config, 'userId': owner_id}
            return dict(self.config)

    def update_local(self, updates: Dict[str, Any]):
        """Apply unsaved edits to the in-memory config"""
        with self._lock:
            self.config = {**self.config, **updates}

    def save(self, new_config: Dict[str, Any]) -> bool:
        """
        Persist the profile, creating the document on first save.

        Unlike the collection mutations, a failed read or write is reported
        through the return value and not raised: the settings form shows its
        own error message and keeps the unsaved edits.

        Returns:
            bool: True if saved, False if the store read or write failed

        Raises:
            AuthRequiredError: nobody is signed in
        """
        owner_id = self.session.owner_id
        if not owner_id:
            raise AuthRequiredError()

        with self._lock:
            self.saving = True
            try:
                config_data = {
                    **self.config,
                    **new_config,
                    'userId': owner_id,
                    'updatedAt': datetime.utcnow()
                }
                config_data.pop('id', None)

                if self.store.get(CHURCH_CONFIG, owner_id):
                    config_data.pop('createdAt', None)
                    self.store.update_fields(CHURCH_CONFIG, owner_id, config_data)
                    logger.info("Church config updated")
                else:
                    config_data['createdAt'] = datetime.utcnow()
                    self.store.set(CHURCH_CONFIG, owner_id, config_data)
                    logger.info("Church config created")

                self.config = {**self.config, **config_data}
                return True
            except (PersistenceError, QueryError) as e:
                logger.error(f"Failed to save church config: {e}")
                return False
            finally:
                self.saving = False

    def _on_auth_state_changed(self, user):
        if user is None:
            with self._lock:
                self.config = default_profile()
                self.loading = False
            return
        try:
            self.fetch()
        except QueryError as e:
            logger.error(f"Failed to load church config: {e}")

    def close(self):
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
