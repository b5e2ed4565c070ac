# nft_ownership/store.py
"""
Session-scoped key/value storage for raw user input.

`PersistentInputStore` namespaces its keys (`<namespace>.<key>`) so several
logical fields can share one backend. Backends only have to implement
`get_item`/`set_item`/`clear`:

- `MemorySessionBackend`: a dict, for tests and one-shot scripts.
- `SqlSessionBackend`: rows in `session_storage` keyed by a session id;
  `clear()` is what ends the session.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol

from sqlalchemy import text as sql_text
from sqlalchemy.orm import Session, sessionmaker

from .config import INPUT_STORE_NAMESPACE

logger = logging.getLogger(__name__)


class SessionBackend(Protocol):
    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def clear(self) -> None:
        ...


class MemorySessionBackend:
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def clear(self) -> None:
        self._items.clear()


class SqlSessionBackend:
    def __init__(self, session_factory: sessionmaker, session_id: str) -> None:
        self._session_factory = session_factory
        self.session_id = session_id

    def _session(self) -> Session:
        return self._session_factory()

    def get_item(self, key: str) -> Optional[str]:
        with self._session() as db:
            row = db.execute(sql_text(
                "SELECT value FROM session_storage WHERE session_id = :s AND key = :k"
            ), {"s": self.session_id, "k": key}).fetchone()
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        with self._session() as db:
            db.execute(sql_text(
                "INSERT INTO session_storage (session_id, key, value) VALUES (:s, :k, :v) "
                "ON CONFLICT (session_id, key) DO UPDATE SET value = excluded.value"
            ), {"s": self.session_id, "k": key, "v": value})
            db.commit()

    def clear(self) -> None:
        with self._session() as db:
            db.execute(sql_text(
                "DELETE FROM session_storage WHERE session_id = :s"
            ), {"s": self.session_id})
            db.commit()
        logger.info("Cleared session storage for session %s", self.session_id)


class PersistentInputStore:
    def __init__(self, backend: SessionBackend, namespace: str = INPUT_STORE_NAMESPACE) -> None:
        self._backend = backend
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}.{key}"

    def get(self, key: str, default: str = "") -> str:
        value = self._backend.get_item(self._key(key))
        return default if value is None else value

    def set(self, key: str, value: str) -> None:
        self._backend.set_item(self._key(key), value)
