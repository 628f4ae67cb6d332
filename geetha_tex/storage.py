"""Key/value persistence for the app state.

Every logical key (settings, batches, batch-types, theme, demo-seeded) maps to
one JSON document. Reads never raise: a missing or unreadable value gives the
caller's default. Writes never raise either: a failed write is logged and the
in-memory state stays authoritative for the rest of the session.
"""

import json
import logging
from typing import Any, Dict, Protocol
from sqlalchemy.exc import SQLAlchemyError
from geetha_tex.config import Config
from geetha_tex.models import StoredValue

logger = logging.getLogger(__name__)

SETTINGS = "settings"
BATCHES = "batches"
BATCH_TYPES = "batch-types"
THEME = "theme"
DEMO_SEEDED = "demo-seeded"


def storage_key(name: str) -> str:
    return f"{Config.STORAGE_PREFIX}-{name}"


class KeyValueStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class SqlKeyValueStore:
    """One row per key in the ``kv_store`` table."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def get(self, key: str, default: Any = None) -> Any:
        db = self.session_factory()
        try:
            row = db.query(StoredValue).filter(StoredValue.key == storage_key(key)).first()
            if row is None:
                return default
            return json.loads(row.value)
        except (SQLAlchemyError, ValueError):
            logger.exception("Could not read %r from storage, using default", key)
            return default
        finally:
            db.close()

    def set(self, key: str, value: Any) -> None:
        db = self.session_factory()
        try:
            db.merge(StoredValue(key=storage_key(key), value=json.dumps(value)))
            db.commit()
        except (SQLAlchemyError, TypeError, ValueError):
            db.rollback()
            logger.exception("Could not write %r to storage, keeping in-memory state", key)
        finally:
            db.close()


class InMemoryStore:
    """Process-local store. Values go through JSON so they behave like stored ones."""

    def __init__(self, initial: Dict[str, Any] = None):
        self.data: Dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str, default: Any = None) -> Any:
        raw = self.data.get(key)
        if raw is None:
            return default
        return json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        try:
            self.data[key] = json.dumps(value)
        except (TypeError, ValueError):
            logger.exception("Could not serialise %r, keeping in-memory state", key)
