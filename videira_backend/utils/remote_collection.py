"""
Remote Collection Sync

Keeps an in-memory, ordered mirror of one owner's documents in a remote
collection and applies create/update/delete against the store, reflecting
each confirmed write into the local cache without waiting for a new read.

Reads go through an ordered query first. When that fails (typically an
unindexed sort) the same owner filter is re-issued without ordering and the
result is sorted locally with the key the server would have used.
"""
import logging
import threading
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from utils.errors import AuthRequiredError, NotFoundError, PersistenceError, QueryError
from utils.reconciliation import DEFAULT_RECONCILE_DELAY, ReconciliationTrigger

logger = logging.getLogger(__name__)

OWNER_FIELD = 'userId'

# Never accepted from callers on create or update
PROTECTED_FIELDS = ('id', OWNER_FIELD, 'createdAt')


def _sort_value(value: Any) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and value:
        try:
            return _sort_value(datetime.fromisoformat(value.replace('Z', '+00:00')))
        except ValueError:
            return datetime.min
    return datetime.min


def sort_records(records: List[Dict[str, Any]], field: str, descending: bool) -> List[Dict[str, Any]]:
    """
    Order records by a timestamp-like field the way the store would.

    Values may be datetimes, dates or ISO strings. Missing or unparsable
    values sort as the oldest possible timestamp. Records with equal values
    keep the order the store returned them in.
    """
    return sorted(records, key=lambda record: _sort_value(record.get(field)), reverse=descending)


def _dedupe(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    seen = set()
    unique = []
    for record in records:
        if record['id'] in seen:
            continue
        seen.add(record['id'])
        unique.append(record)
    return unique


class RemoteCollection:
    """
    Local cache plus mutation operations for one remote collection.

    One instance belongs to one AuthSession. It fetches when the session
    signs in, clears itself when the session signs out, and serializes its
    own operations so cache mutations never interleave.
    """

    collection_name: Optional[str] = None
    sort_field = 'createdAt'
    sort_direction = 'desc'

    def __init__(self, store, session, collection_name: Optional[str] = None,
                 reconcile_delay: float = DEFAULT_RECONCILE_DELAY, subscribe: bool = True):
        if collection_name:
            self.collection_name = collection_name
        if not self.collection_name:
            raise ValueError('collection_name is required')

        self.store = store
        self.session = session
        self.loading = True
        self.last_error: Optional[Exception] = None
        self._records: List[Dict[str, Any]] = []
        self._lock = threading.RLock()
        self.reconciler = ReconciliationTrigger(self._reconcile, reconcile_delay, name=self.collection_name)
        self._unsubscribe = session.subscribe(self._on_auth_state_changed) if subscribe else None

    # ==================== CACHE ====================

    @property
    def records(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(record) for record in self._records]

    @property
    def descending(self) -> bool:
        return self.sort_direction == 'desc'

    def get_local(self, record_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            for record in self._records:
                if record['id'] == record_id:
                    return dict(record)
        return None

    def _replace_local(self, records: List[Dict[str, Any]]):
        self._records = _dedupe(records)

    def _insert_local(self, record: Dict[str, Any]):
        others = [r for r in self._records if r['id'] != record['id']]
        if self.descending:
            self._records = [record] + others
        else:
            self._records = others + [record]

    def _merge_local(self, record_id: str, patch: Dict[str, Any]):
        self._records = [{**r, **patch} if r['id'] == record_id else r for r in self._records]

    def _remove_local(self, record_id: str):
        self._records = [r for r in self._records if r['id'] != record_id]

    def clear(self):
        self.reconciler.cancel()
        with self._lock:
            self._records = []
            self.loading = False

    # ==================== QUERY ====================

    def refetch(self) -> List[Dict[str, Any]]:
        """
        Reload the owner's documents and fully replace the cache.

        Raises:
            QueryError: both the ordered and the unordered query failed.
                The cache keeps its previous contents.
        """
        owner_id = self.session.owner_id
        if not owner_id:
            logger.info(f"No user found, skipping fetch of '{self.collection_name}'")
            with self._lock:
                self.loading = False
            return self.records

        with self._lock:
            self.loading = True
            try:
                records = self._run_query(owner_id)
            except QueryError as e:
                self.last_error = e
                raise
            finally:
                self.loading = False
            self._replace_local(records)
            self.last_error = None
        logger.info(f"Loaded {len(records)} {self.collection_name} for user {owner_id}")
        return self.records

    def _run_query(self, owner_id: str) -> List[Dict[str, Any]]:
        filters = {OWNER_FIELD: owner_id}
        try:
            records = self.store.query(self.collection_name, filters,
                                       order_by=(self.sort_field, self.sort_direction))
        except Exception as e:
            logger.warning(f"Ordered query on '{self.collection_name}' failed ({e}), retrying without order_by")
            try:
                records = self.store.query(self.collection_name, filters)
            except Exception as retry_error:
                logger.error(f"Query on '{self.collection_name}' failed even without order_by: {retry_error}")
                if isinstance(retry_error, QueryError):
                    raise
                raise QueryError(str(retry_error)) from retry_error
            records = sort_records(records, self.sort_field, self.descending)

        return [self.normalize(record) for record in records if record.get(OWNER_FIELD) == owner_id]

    def find(self, record_id: str) -> Dict[str, Any]:
        """
        Look a record up by id, cache first, then the store.

        Raises:
            NotFoundError: the record does not exist or belongs to someone else
        """
        record = self.get_local(record_id)
        if record is not None:
            return record
        owner_id = self._require_owner()
        record = self.store.get(self.collection_name, record_id)
        if not record or record.get(OWNER_FIELD) != owner_id:
            raise NotFoundError(f"Record '{record_id}' not found in '{self.collection_name}'")
        return self.normalize(record)

    def normalize(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Hook: fill defaults on records read from the store"""
        return record

    # ==================== MUTATIONS ====================

    def _require_owner(self) -> str:
        owner_id = self.session.owner_id
        if not owner_id:
            raise AuthRequiredError()
        return owner_id

    def prepare_create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Hook: defaults applied to a new document before it is written"""
        return fields

    def prepare_update(self, patch: Dict[str, Any]) -> Dict[str, Any]:
        """Hook: adjust a patch before it is written"""
        return patch

    def after_create(self, record: Dict[str, Any]):
        """Hook: best-effort side effects of a confirmed create"""

    def create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Persist a new document and prepend it to the cache.

        The owner and creation time are stamped here; a reconciliation
        refetch is scheduled once the write is confirmed.

        Raises:
            AuthRequiredError: nobody is signed in (no remote call is made)
            PersistenceError: the remote write failed, cache unchanged
        """
        owner_id = self._require_owner()
        data = self.prepare_create({k: v for k, v in fields.items() if k not in PROTECTED_FIELDS})
        data[OWNER_FIELD] = owner_id
        data['createdAt'] = datetime.utcnow()

        with self._lock:
            try:
                new_id = self.store.insert(self.collection_name, data)
            except PersistenceError as e:
                logger.error(f"Failed to add to '{self.collection_name}': {e}")
                raise
            except Exception as e:
                logger.error(f"Failed to add to '{self.collection_name}': {e}")
                raise PersistenceError(str(e)) from e

            record = {'id': new_id, **data}
            self._insert_local(record)

        logger.info(f"Saved '{self.collection_name}/{new_id}' for user {owner_id}")
        self.reconciler.schedule()
        self.after_create(dict(record))
        return dict(record)

    def update(self, record_id: str, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Persist a partial update, then merge it into the cached record.

        Raises:
            AuthRequiredError: nobody is signed in
            NotFoundError: the record does not exist or belongs to someone else
            PersistenceError: the remote update failed, cache unchanged
        """
        self._require_owner()
        self.find(record_id)
        patch = self.prepare_update({k: v for k, v in patch.items() if k not in PROTECTED_FIELDS})
        if not patch:
            return self.get_local(record_id)

        with self._lock:
            try:
                self.store.update_fields(self.collection_name, record_id, patch)
            except PersistenceError as e:
                logger.error(f"Failed to update '{self.collection_name}/{record_id}': {e}")
                raise
            except Exception as e:
                logger.error(f"Failed to update '{self.collection_name}/{record_id}': {e}")
                raise PersistenceError(str(e)) from e
            self._merge_local(record_id, patch)

        logger.info(f"Updated '{self.collection_name}/{record_id}'")
        return self.get_local(record_id)

    def delete(self, record_id: str):
        """
        Delete a document permanently, then drop it from the cache.

        Raises:
            AuthRequiredError: nobody is signed in
            NotFoundError: the record does not exist or belongs to someone else
            PersistenceError: the remote delete failed, cache unchanged
        """
        self._require_owner()
        self.find(record_id)

        with self._lock:
            try:
                self.store.delete(self.collection_name, record_id)
            except PersistenceError as e:
                logger.error(f"Failed to delete '{self.collection_name}/{record_id}': {e}")
                raise
            except Exception as e:
                logger.error(f"Failed to delete '{self.collection_name}/{record_id}': {e}")
                raise PersistenceError(str(e)) from e
            self._remove_local(record_id)

        logger.info(f"Deleted '{self.collection_name}/{record_id}'")

    # ==================== LIFECYCLE ====================

    def _reconcile(self):
        self.refetch()

    def _on_auth_state_changed(self, user):
        if user is None:
            logger.info(f"No user, clearing '{self.collection_name}'")
            self.clear()
            return
        try:
            self.refetch()
        except QueryError as e:
            logger.error(f"Initial load of '{self.collection_name}' failed: {e}")

    def close(self):
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        self.reconciler.cancel()
