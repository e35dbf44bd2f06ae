"""Client-local durable key/value storage.

Both backends expose ``get``/``set``/``remove``. ``get`` returns ``None`` when
a key is missing or unreadable; ``set`` and ``remove`` log failures and
return ``False`` instead of raising.
"""

import logging
import os
import re
import tempfile
import threading
from typing import Dict, Optional

from .errors import StorageError

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r'^[A-Za-z0-9_.-]+$')


class MemoryStorage:
    """In-process storage, used by tests and short-lived sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> bool:
        with self._lock:
            self._data[key] = value
        return True

    def remove(self, key: str) -> bool:
        with self._lock:
            self._data.pop(key, None)
        return True


class JSONFileStorage:
    """One file per key under ``directory``.

    Writes go to a temp file that is moved into place with ``os.replace``
    while holding the store lock, so the file on disk always holds the most
    recent complete snapshot.
    """

    def __init__(self, directory: str):
        self.directory = directory
        self._lock = threading.Lock()

    def _path(self, key: str) -> str:
        if not _KEY_PATTERN.match(key):
            raise StorageError(f'Invalid storage key: {key!r}')
        return os.path.join(self.directory, f'{key}.json')

    def get(self, key: str) -> Optional[str]:
        try:
            path = self._path(key)
            with self._lock:
                with open(path, 'r', encoding='utf-8') as fh:
                    return fh.read()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, StorageError) as exc:
            logger.warning('Failed to read %r from local storage: %s', key, exc)
            return None

    def set(self, key: str, value: str) -> bool:
        tmp_path = None
        try:
            path = self._path(key)
            with self._lock:
                os.makedirs(self.directory, exist_ok=True)
                with tempfile.NamedTemporaryFile('w', encoding='utf-8', dir=self.directory,
                                                 prefix=f'.{key}.', suffix='.tmp',
                                                 delete=False) as tmp:
                    tmp_path = tmp.name
                    tmp.write(value)
                os.replace(tmp_path, path)
                tmp_path = None
            return True
        except (OSError, StorageError) as exc:
            logger.warning('Failed to write %r to local storage: %s', key, exc)
            return False
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)

    def remove(self, key: str) -> bool:
        try:
            path = self._path(key)
            with self._lock:
                os.remove(path)
            return True
        except FileNotFoundError:
            return True
        except (OSError, StorageError) as exc:
            logger.warning('Failed to remove %r from local storage: %s', key, exc)
            return False
