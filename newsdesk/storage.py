"""
Durable Key-Value Store

Collections are stored whole: get() returns the full ordered list of records
for a key and put() replaces it. put_many() writes several keys as one atomic
unit, which is what lets the pipeline approve a submission and publish its
item together.

Backends:
- SQLAlchemyKeyValueStore: one row per key in the kv_collection table
- RedisKeyValueStore: one string per key, MULTI/EXEC for put_many
- MemoryKeyValueStore: process-local, for tests and throwaway runs
"""

import json
import logging
import threading
from typing import Dict, Iterable, List

from newsdesk.db_retry import with_store_retry
from newsdesk.news.errors import StorageFailure

logger = logging.getLogger(__name__)


def _decode(key: str, raw) -> List[Dict]:
    if raw is None:
        return []
    if isinstance(raw, bytes):
        raw = raw.decode('utf-8')
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise StorageFailure(f"Collection '{key}' holds corrupt JSON: {e}") from e
    if not isinstance(value, list):
        raise StorageFailure(f"Collection '{key}' is not a list")
    return value


def _encode(key: str, records: Iterable) -> str:
    try:
        return json.dumps(list(records))
    except (TypeError, ValueError) as e:
        raise StorageFailure(f"Collection '{key}' is not JSON serializable: {e}") from e


class KeyValueStore:
    """Contract shared by every backend."""

    def get(self, key: str) -> List[Dict]:
        raise NotImplementedError

    def put(self, key: str, records: List) -> None:
        self.put_many({key: records})

    def put_many(self, collections: Dict[str, List]) -> None:
        raise NotImplementedError

    def delete(self, keys: Iterable[str]) -> None:
        raise NotImplementedError

    def keys(self, prefix: str = '') -> List[str]:
        raise NotImplementedError


class MemoryKeyValueStore(KeyValueStore):
    """Keeps serialized collections in a dict so callers never share objects."""

    def __init__(self):
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key):
        with self._lock:
            raw = self._data.get(key)
        return _decode(key, raw)

    def put_many(self, collections):
        encoded = {key: _encode(key, records) for key, records in collections.items()}
        with self._lock:
            self._data.update(encoded)

    def delete(self, keys):
        with self._lock:
            for key in keys:
                self._data.pop(key, None)

    def keys(self, prefix=''):
        with self._lock:
            return sorted(key for key in self._data if key.startswith(prefix))


def _rollback_session(store):
    try:
        store.db.session.rollback()
    except Exception as e:
        logger.debug(f"Session rollback after store error failed: {e}")


class SQLAlchemyKeyValueStore(KeyValueStore):
    """
    Stores each collection as a JSON text row.

    Requires an application context (uses the Flask-SQLAlchemy session).
    put_many() commits all rows in a single transaction.
    """

    def __init__(self, db):
        self.db = db

    @with_store_retry(on_error=_rollback_session)
    def get(self, key):
        from newsdesk.models import KeyValueCollection

        row = self.db.session.get(KeyValueCollection, key)
        return _decode(key, row.value if row else None)

    @with_store_retry(on_error=_rollback_session)
    def put_many(self, collections):
        from newsdesk.models import KeyValueCollection

        for key, records in collections.items():
            row = self.db.session.get(KeyValueCollection, key)
            if row is None:
                row = KeyValueCollection(key=key)
                self.db.session.add(row)
            row.value = _encode(key, records)
        self.db.session.commit()

    @with_store_retry(on_error=_rollback_session)
    def delete(self, keys):
        from newsdesk.models import KeyValueCollection

        keys = list(keys)
        if keys:
            KeyValueCollection.query.filter(KeyValueCollection.key.in_(keys)).delete(
                synchronize_session=False
            )
        self.db.session.commit()

    @with_store_retry(on_error=_rollback_session)
    def keys(self, prefix=''):
        from newsdesk.models import KeyValueCollection

        rows = self.db.session.query(KeyValueCollection.key).filter(
            KeyValueCollection.key.startswith(prefix, autoescape=True)
        ).order_by(KeyValueCollection.key).all()
        return [key for (key,) in rows]


class RedisKeyValueStore(KeyValueStore):
    """
    Stores each collection as a JSON string under ``key_prefix + key``.

    put_many() uses a transactional pipeline (MULTI/EXEC).
    """

    def __init__(self, client, key_prefix: str = 'newsdesk:'):
        self.client = client
        self.key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, key_prefix: str = 'newsdesk:', timeout: float = 5.0):
        import redis

        client = redis.from_url(url, socket_timeout=timeout, socket_connect_timeout=timeout)
        return cls(client, key_prefix=key_prefix)

    def _full_key(self, key):
        return f"{self.key_prefix}{key}"

    @with_store_retry()
    def get(self, key):
        return _decode(key, self.client.get(self._full_key(key)))

    @with_store_retry()
    def put_many(self, collections):
        pipe = self.client.pipeline(transaction=True)
        for key, records in collections.items():
            pipe.set(self._full_key(key), _encode(key, records))
        pipe.execute()

    @with_store_retry()
    def delete(self, keys):
        full_keys = [self._full_key(key) for key in keys]
        if full_keys:
            self.client.delete(*full_keys)

    @with_store_retry()
    def keys(self, prefix=''):
        found = []
        for raw in self.client.scan_iter(match=f"{self._full_key(prefix)}*"):
            if isinstance(raw, bytes):
                raw = raw.decode('utf-8')
            found.append(raw[len(self.key_prefix):])
        return sorted(found)


def build_store(config, db=None) -> KeyValueStore:
    """Create the durable store selected by STORE_BACKEND."""
    backend = config.get('STORE_BACKEND', 'sqlalchemy')

    if backend == 'sqlalchemy':
        if db is None:
            raise ValueError("The sqlalchemy store backend needs the Flask-SQLAlchemy db")
        return SQLAlchemyKeyValueStore(db)

    if backend == 'redis':
        return RedisKeyValueStore.from_url(
            config.get('REDIS_URL'),
            key_prefix=config.get('STORE_KEY_PREFIX', 'newsdesk:'),
        )

    if backend == 'memory':
        logger.warning("Using in-memory store - data is lost when the process exits")
        return MemoryKeyValueStore()

    raise ValueError(f"Unknown STORE_BACKEND: {backend}")
