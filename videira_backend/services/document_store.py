"""
Remote document store adapters.

The sync layer only talks to the small DocumentStore surface below, so the
backing database can be MongoDB (the default deployment) or Cloud Firestore
(the store the church console was first deployed on). Tests substitute an
in-memory fake.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.errors import PyMongoError

from utils.errors import PersistenceError, QueryError

logger = logging.getLogger(__name__)

OrderBy = Tuple[str, str]


class DocumentStore:
    """Interface of the remote document store consumed by the sync layer"""

    def query(self, collection: str, filters: Dict[str, Any],
              order_by: Optional[OrderBy] = None) -> List[Dict[str, Any]]:
        """
        Return every document matching the equality filters.

        Args:
            collection: Collection name
            filters: Field -> value equality filters
            order_by: Optional (field, 'asc'|'desc') server-side ordering

        Returns:
            list: Documents with their store id under 'id'
        """
        raise NotImplementedError

    def insert(self, collection: str, doc: Dict[str, Any]) -> str:
        raise NotImplementedError

    def update_fields(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        raise NotImplementedError

    def delete(self, collection: str, doc_id: str) -> None:
        raise NotImplementedError

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def set(self, collection: str, doc_id: str, doc: Dict[str, Any]) -> None:
        raise NotImplementedError


class MongoDocumentStore(DocumentStore):
    """DocumentStore backed by a PyMongo database"""

    def __init__(self, mongo_db):
        self.db = mongo_db

    @classmethod
    def from_uri(cls, mongo_uri: str, db_name: Optional[str] = None):
        client = MongoClient(mongo_uri)
        db = client[db_name] if db_name else client.get_default_database()
        return cls(db)

    @staticmethod
    def _id_filter(doc_id: str) -> Dict[str, Any]:
        # Inserted documents carry ObjectIds, documents keyed by owner or
        # marker keys carry plain strings
        if ObjectId.is_valid(doc_id):
            return {'_id': {'$in': [ObjectId(doc_id), doc_id]}}
        return {'_id': doc_id}

    @staticmethod
    def _to_record(doc: Dict[str, Any]) -> Dict[str, Any]:
        record = dict(doc)
        record['id'] = str(record.pop('_id'))
        return record

    def query(self, collection, filters, order_by=None):
        try:
            cursor = self.db[collection].find(dict(filters))
            if order_by:
                field, direction = order_by
                cursor = cursor.sort(field, DESCENDING if direction == 'desc' else ASCENDING)
            return [self._to_record(doc) for doc in cursor]
        except PyMongoError as e:
            raise QueryError(f"Query on '{collection}' failed: {e}") from e

    def insert(self, collection, doc):
        try:
            payload = {k: v for k, v in doc.items() if k != 'id'}
            result = self.db[collection].insert_one(payload)
            return str(result.inserted_id)
        except PyMongoError as e:
            raise PersistenceError(f"Insert into '{collection}' failed: {e}") from e

    def update_fields(self, collection, doc_id, fields):
        try:
            result = self.db[collection].update_one(self._id_filter(doc_id), {'$set': dict(fields)})
        except PyMongoError as e:
            raise PersistenceError(f"Update of '{collection}/{doc_id}' failed: {e}") from e
        if result.matched_count == 0:
            raise PersistenceError(f"Document '{collection}/{doc_id}' not found")

    def delete(self, collection, doc_id):
        try:
            self.db[collection].delete_one(self._id_filter(doc_id))
        except PyMongoError as e:
            raise PersistenceError(f"Delete of '{collection}/{doc_id}' failed: {e}") from e

    def get(self, collection, doc_id):
        try:
            doc = self.db[collection].find_one(self._id_filter(doc_id))
        except PyMongoError as e:
            raise QueryError(f"Read of '{collection}/{doc_id}' failed: {e}") from e
        return self._to_record(doc) if doc else None

    def set(self, collection, doc_id, doc):
        try:
            payload = {k: v for k, v in doc.items() if k != 'id'}
            self.db[collection].replace_one({'_id': doc_id}, payload, upsert=True)
        except PyMongoError as e:
            raise PersistenceError(f"Write of '{collection}/{doc_id}' failed: {e}") from e


class FirestoreDocumentStore(DocumentStore):
    """DocumentStore backed by Cloud Firestore through firebase_admin"""

    def __init__(self, firebase_app=None):
        from firebase_admin import firestore

        self.client = firestore.client(app=firebase_app)

    def query(self, collection, filters, order_by=None):
        from google.api_core.exceptions import GoogleAPICallError
        from google.cloud.firestore_v1.base_query import FieldFilter
        from google.cloud.firestore_v1 import Query

        try:
            ref = self.client.collection(collection)
            for field, value in filters.items():
                ref = ref.where(filter=FieldFilter(field, '==', value))
            if order_by:
                field, direction = order_by
                ref = ref.order_by(field, direction=Query.DESCENDING if direction == 'desc' else Query.ASCENDING)
            return [{'id': snap.id, **snap.to_dict()} for snap in ref.stream()]
        except GoogleAPICallError as e:
            # FailedPrecondition here usually means a missing composite index
            raise QueryError(f"Query on '{collection}' failed: {e}") from e

    def insert(self, collection, doc):
        from google.api_core.exceptions import GoogleAPICallError

        try:
            payload = {k: v for k, v in doc.items() if k != 'id'}
            _, ref = self.client.collection(collection).add(payload)
            return ref.id
        except GoogleAPICallError as e:
            raise PersistenceError(f"Insert into '{collection}' failed: {e}") from e

    def update_fields(self, collection, doc_id, fields):
        from google.api_core.exceptions import GoogleAPICallError

        try:
            self.client.collection(collection).document(doc_id).update(dict(fields))
        except GoogleAPICallError as e:
            raise PersistenceError(f"Update of '{collection}/{doc_id}' failed: {e}") from e

    def delete(self, collection, doc_id):
        from google.api_core.exceptions import GoogleAPICallError

        try:
            self.client.collection(collection).document(doc_id).delete()
        except GoogleAPICallError as e:
            raise PersistenceError(f"Delete of '{collection}/{doc_id}' failed: {e}") from e

    def get(self, collection, doc_id):
        from google.api_core.exceptions import GoogleAPICallError

        try:
            snap = self.client.collection(collection).document(doc_id).get()
        except GoogleAPICallError as e:
            raise QueryError(f"Read of '{collection}/{doc_id}' failed: {e}") from e
        return {'id': snap.id, **snap.to_dict()} if snap.exists else None

    def set(self, collection, doc_id, doc):
        from google.api_core.exceptions import GoogleAPICallError

        try:
            payload = {k: v for k, v in doc.items() if k != 'id'}
            self.client.collection(collection).document(doc_id).set(payload)
        except GoogleAPICallError as e:
            raise PersistenceError(f"Write of '{collection}/{doc_id}' failed: {e}") from e
