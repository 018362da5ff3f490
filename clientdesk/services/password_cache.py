"""
Short-lived store of generated client credentials, shown to admins until the
client picks their own password.

Two interchangeable backends:

* ``PasswordCache`` keeps entries in process memory. Entries are lost on
  restart and are not shared between workers.
* ``DatabasePasswordStore`` keeps them in the ``password_storage`` table.

Both take a ``clock`` so expiry can be driven from tests. The application
builds one instance per app in ``create_app`` and keeps it on ``app.state``.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional
import logging

from clientdesk.core.database import utcnow
from clientdesk.models import PasswordStorage

logger = logging.getLogger(__name__)


@dataclass
class CachedCredential:
    client_id: int
    password: str
    email: str
    stored_at: datetime
    expires_at: datetime


class PasswordCache:
    def __init__(self, ttl: timedelta, clock: Callable[[], datetime] = utcnow):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[int, CachedCredential] = {}

    def store(self, client_id: int, password: str, email: str) -> CachedCredential:
        now = self._clock()
        entry = CachedCredential(client_id, password, email, now, now + self.ttl)
        self._entries[client_id] = entry
        return entry

    def get(self, client_id: int) -> Optional[CachedCredential]:
        entry = self._entries.get(client_id)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[client_id]
            return None
        return entry

    def remove(self, client_id: int) -> bool:
        return self._entries.pop(client_id, None) is not None

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self):
        return len(self._entries)


class DatabasePasswordStore:
    """Same interface as ``PasswordCache``, persisted in ``password_storage``"""

    def __init__(self, session_factory, ttl: timedelta, clock: Callable[[], datetime] = utcnow):
        self.session_factory = session_factory
        self.ttl = ttl
        self._clock = clock

    def store(self, client_id: int, password: str, email: str) -> CachedCredential:
        now = self._clock()
        with self.session_factory() as db:
            row = db.get(PasswordStorage, client_id)
            if row is None:
                row = PasswordStorage(client_id=client_id)
                db.add(row)
            row.password = password
            row.email = email
            row.created_at = now
            row.expires_at = now + self.ttl
            db.commit()
        return CachedCredential(client_id, password, email, now, now + self.ttl)

    def get(self, client_id: int) -> Optional[CachedCredential]:
        with self.session_factory() as db:
            row = db.get(PasswordStorage, client_id)
            if row is None:
                return None
            if self._clock() >= row.expires_at:
                db.delete(row)
                db.commit()
                return None
            return CachedCredential(row.client_id, row.password, row.email, row.created_at, row.expires_at)

    def remove(self, client_id: int) -> bool:
        with self.session_factory() as db:
            deleted = db.query(PasswordStorage).filter(PasswordStorage.client_id == client_id).delete()
            db.commit()
        return deleted > 0

    def purge_expired(self) -> int:
        with self.session_factory() as db:
            deleted = db.query(PasswordStorage)\
                .filter(PasswordStorage.expires_at <= self._clock())\
                .delete(synchronize_session=False)
            db.commit()
        return deleted


def build_password_cache(config, session_factory, clock: Callable[[], datetime] = utcnow):
    """Pick the backend named by ``PASSWORD_CACHE_BACKEND``"""
    ttl = timedelta(days=config.PASSWORD_CACHE_TTL_DAYS)
    backend = config.PASSWORD_CACHE_BACKEND.lower()
    if backend == "database":
        return DatabasePasswordStore(session_factory, ttl, clock)
    if backend != "memory":
        logger.warning(f"Unknown PASSWORD_CACHE_BACKEND '{backend}', using memory")
    return PasswordCache(ttl, clock)
