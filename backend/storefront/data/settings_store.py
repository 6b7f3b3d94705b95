import json
import logging
import os
from contextlib import contextmanager
from typing import Optional

from filelock import FileLock
from pydantic import ValidationError

from ..schemas import DataSettings
from ..security import SettingsCipher

logger = logging.getLogger(__name__)


class DataSettingsManager:
    """Owns the single on-disk record that says whether the store is installed.

    A valid record is cached in memory after the first load; ``load(reload=True)``
    and ``reset_cache()`` are the only invalidation points. An invalid record is
    re-read on every load, so a worker notices an install finished by another
    process. A missing or unreadable file means "not installed".
    """

    def __init__(self, path: str, cipher: Optional[SettingsCipher] = None):
        self.path = path
        self._cipher = cipher or SettingsCipher(key_path=path + ".key")
        self._lock = FileLock(path + ".lock")
        self._cached: Optional[DataSettings] = None

    def load(self, reload: bool = False) -> DataSettings:
        if self._cached is not None and self._cached.is_valid and not reload:
            return self._cached
        self._cached = self._read()
        return self._cached

    def is_installed(self, reload: bool = False) -> bool:
        return self.load(reload=reload).is_valid

    def save(self, settings: DataSettings) -> None:
        payload = {
            "data_provider": settings.data_provider.value if settings.data_provider else None,
            "connection_string": (
                self._cipher.encrypt(settings.connection_string) if settings.connection_string else ""
            ),
        }
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        with self._lock:
            tmp_path = self.path + ".tmp"
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, self.path)
        self._cached = None
        logger.info("Data settings saved (provider=%s)", payload["data_provider"])

    def reset_cache(self) -> None:
        self._cached = None

    @contextmanager
    def exclusive(self, timeout: float = -1):
        """Hold the cross-process settings lock, e.g. for a whole install attempt."""
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        with self._lock.acquire(timeout=timeout):
            yield self

    def _read(self) -> DataSettings:
        if not os.path.exists(self.path):
            return DataSettings()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            if not isinstance(raw, dict):
                raise ValueError("data settings must be an object")
            encrypted = raw.get("connection_string") or ""
            raw["connection_string"] = self._cipher.decrypt(encrypted) if encrypted else ""
            return DataSettings(**raw)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("Data settings at %s are unreadable, treating as not installed: %s", self.path, e)
            return DataSettings()
