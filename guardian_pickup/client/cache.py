"""
Client-side guardian credential cache.

One reserved slot per device holds the last guardian session: the auth code
plus guardian and student snapshots. The cache has no authority of its own;
it only lets the app skip the scanner on the next launch. Every I/O problem
is logged and reported as a miss, never raised.
"""

import json
import logging
import os
import tempfile
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)

GUARDIAN_SESSION_MAX_AGE_DAYS = int(os.getenv("GUARDIAN_SESSION_MAX_AGE_DAYS", "30"))

SLOT_VERSION = 1


@dataclass
class CachedSession:
    auth_code: str
    guardian: Dict
    student: Dict
    stored_at: float

    def as_triple(self) -> Tuple[Dict, str, Dict]:
        return self.guardian, self.auth_code, self.student


def _is_complete(payload: Dict) -> bool:
    guardian = payload.get("guardian")
    student = payload.get("student")
    stored_at = payload.get("stored_at")
    return bool(
        isinstance(stored_at, (int, float))
        and not isinstance(stored_at, bool)
        and isinstance(payload.get("auth_code"), str)
        and isinstance(guardian, dict)
        and guardian.get("name")
        and guardian.get("pickup_card_id")
        and payload.get("auth_code")
        and isinstance(student, dict)
        and student.get("student_id")
        and student.get("name")
    )


class CredentialCache(ABC):
    """
    store/load/clear over a single slot.

    Subclasses replace the slot contents in one step, so load() sees either
    the previous session or the new one.
    """

    def __init__(self, max_age_days: int = GUARDIAN_SESSION_MAX_AGE_DAYS, clock=time.time):
        self.max_age = max_age_days * 24 * 60 * 60
        self.clock = clock

    @abstractmethod
    def _read(self) -> Optional[str]:
        pass

    @abstractmethod
    def _write(self, data: str):
        pass

    @abstractmethod
    def _delete(self):
        pass

    def store(self, guardian: Dict, auth_code: str, student: Dict) -> bool:
        """
        Save a session, replacing whatever was cached.

        Returns:
            False if the session could not be persisted
        """
        return self._store(guardian, auth_code, student, self.clock())

    def _store(self, guardian: Dict, auth_code: str, student: Dict, stored_at: float) -> bool:
        payload = {
            "version": SLOT_VERSION,
            "auth_code": auth_code,
            "guardian": guardian,
            "student": student,
            "stored_at": stored_at,
        }
        try:
            self._write(json.dumps(payload))
        except (OSError, TypeError, ValueError):
            logger.exception("Failed to store guardian session")
            return False
        return True

    def load(self) -> Optional[CachedSession]:
        """
        Return the cached session, or None.

        Corrupt, incomplete and expired entries are wiped and reported as absent.
        """
        try:
            data = self._read()
            if data is None:
                return None
            payload = json.loads(data)
        except (OSError, ValueError):
            logger.warning("Guardian session cache unreadable, clearing it", exc_info=True)
            self.clear()
            return None

        if not isinstance(payload, dict) or not _is_complete(payload):
            logger.warning("Guardian session cache incomplete, clearing it")
            self.clear()
            return None

        stored_at = payload["stored_at"]
        if self.clock() - stored_at > self.max_age:
            logger.info("Guardian session cache expired, clearing it")
            self.clear()
            return None

        return CachedSession(
            auth_code=payload["auth_code"],
            guardian=payload["guardian"],
            student=payload["student"],
            stored_at=stored_at,
        )

    def clear(self) -> bool:
        """Wipe the slot. Clearing an empty slot succeeds."""
        try:
            self._delete()
        except OSError:
            logger.exception("Failed to clear guardian session cache")
            return False
        return True

    def update_guardian(self, guardian: Dict) -> bool:
        """Replace the cached guardian snapshot after a profile edit."""
        current = self.load()
        if current is None:
            return False
        return self._store(guardian, current.auth_code, current.student, current.stored_at)


class FileCredentialCache(CredentialCache):
    """JSON file slot, replaced atomically with os.replace."""

    def __init__(self, path, **kwargs):
        super().__init__(**kwargs)
        self.path = Path(path)

    def _read(self) -> Optional[str]:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _write(self, data: str):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=".guardian-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _delete(self):
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


class MemoryCredentialCache(CredentialCache):
    """Process-local slot, for tests and headless clients."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._slot: Optional[str] = None

    def _read(self) -> Optional[str]:
        return self._slot

    def _write(self, data: str):
        self._slot = data

    def _delete(self):
        self._slot = None
