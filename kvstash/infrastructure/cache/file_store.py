"""Single-file implementation of the CacheStore interface.

The whole cache lives in one file holding a serialized mapping of
`key -> {"ttl": expires_at, "value": value}`. The store keeps a decoded
snapshot of that mapping in memory and only re-reads the file when its
marker (mtime and ctime in nanoseconds, size, inode) no longer matches the
one recorded when the snapshot was built. Every mutation rewrites the whole
file under an exclusive lock by replacing it with a fully written
temporary file, so readers never observe a partial write.

The snapshot only ever holds values decoded from the bytes on disk, and
reads hand out copies, so callers cannot change cached data in place.
"""

import copy
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, NamedTuple, Optional, Tuple, Union

from filelock import FileLock, Timeout

from kvstash.core.keys import validate_items, validate_key, validate_keys
from kvstash.core.ttl import resolve_expires_at
from kvstash.domain.exceptions import BackendUnavailableError, SerializationError
from kvstash.domain.interfaces.cache import CacheStore, InspectableStore
from kvstash.domain.interfaces.clock import Clock
from kvstash.domain.models.common import TTL
from kvstash.domain.models.entry import CacheEntry
from kvstash.infrastructure.clock import SystemClock
from kvstash.infrastructure.serializers.serializers import METHOD_NATIVE, create_serializer

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT_SECONDS = 10.0


class FileMarker(NamedTuple):
    """Cheap metadata probe identifying one version of the backing file.

    Two versions can still share a marker if a freed inode is reused for a
    file of the same size whose mtime and ctime fall in the same timestamp
    tick of a coarse-grained filesystem.
    """
    mtime_ns: int
    ctime_ns: int
    size: int
    inode: int

    @classmethod
    def of(cls, path: Union[str, Path]) -> "FileMarker":
        st = os.stat(path)
        return cls(mtime_ns=st.st_mtime_ns, ctime_ns=st.st_ctime_ns, size=st.st_size, inode=st.st_ino)


class FileStore(CacheStore, InspectableStore):
    """Cache backed by one local file, with an in-process snapshot."""

    def __init__(
        self,
        file_path: Union[str, Path],
        serialize_method: Optional[str] = METHOD_NATIVE,
        clock: Optional[Clock] = None,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS,
    ):
        """Opens (and creates if needed) the backing file.

        Args:
            file_path: Location of the cache file.
            serialize_method: 'native', 'msgpack' or 'json'.
            clock: Time source for expirations, the system clock by default.
            lock_timeout: Seconds to wait for the write lock before a write fails.

        Raises:
            InvalidArgumentError: If the serialization method is unknown.
            BackendUnavailableError: If the file cannot be created, or the file
                or its directory is not writable.
        """
        self.file_path = Path(file_path)
        self.serializer = create_serializer(serialize_method)
        self.clock = clock or SystemClock()
        self._lock = FileLock(f"{self.file_path}.lock", timeout=lock_timeout)

        self._ensure_backing_file()

        # Snapshot is loaded lazily on first access
        self._snapshot: Optional[Dict[str, CacheEntry]] = None
        self._marker: Optional[FileMarker] = self._probe_marker()

        logger.info(f"FileStore initialized. file={self.file_path}, serializer={self.serializer.method}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.file_path)!r}, serialize_method={self.serializer.method!r})"

    # --- Backing file management ---

    def _ensure_backing_file(self) -> None:
        if self.file_path.is_dir():
            raise BackendUnavailableError(f"Cache path {self.file_path} is a directory")

        if not self.file_path.exists():
            try:
                self.file_path.parent.mkdir(parents=True, exist_ok=True)
                self.file_path.touch()
            except OSError as e:
                raise BackendUnavailableError(f"Cannot create cache file {self.file_path}: {e}") from e
            logger.debug(f"Created empty cache file: {self.file_path}")

        if not os.access(self.file_path, os.W_OK):
            raise BackendUnavailableError(f"Cache file {self.file_path} is not writable")
        # Writes create the lock file and a temporary file next to the cache file
        if not os.access(self.file_path.parent, os.W_OK | os.X_OK):
            raise BackendUnavailableError(f"Cache directory {self.file_path.parent} is not writable")

    def _probe_marker(self) -> Optional[FileMarker]:
        try:
            return FileMarker.of(self.file_path)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise BackendUnavailableError(f"Cannot stat cache file {self.file_path}: {e}") from e

    def _decode(self, payload: bytes) -> Dict[str, CacheEntry]:
        if not payload:
            return {}

        records = self.serializer.deserialize(payload)
        if not isinstance(records, dict):
            raise SerializationError(
                f"Cache file {self.file_path} does not contain a mapping (got {type(records).__name__})"
            )
        return {key: CacheEntry.from_record(record) for key, record in records.items()}

    def _fresh_snapshot(self) -> Dict[str, CacheEntry]:
        """Returns the snapshot, reloading it when the file changed since it was built."""
        # Probe before reading: a write landing in between leaves an outdated
        # marker, which costs one extra reload but never a stale read.
        marker = self._probe_marker()
        if self._snapshot is not None and marker is not None and marker == self._marker:
            return self._snapshot

        if marker is None:
            logger.warning(f"Cache file {self.file_path} disappeared, treating it as empty")
            payload = b""
        else:
            try:
                payload = self.file_path.read_bytes()
            except FileNotFoundError:
                payload = b""
            except OSError as e:
                raise BackendUnavailableError(f"Cannot read cache file {self.file_path}: {e}") from e

        self._snapshot = self._decode(payload)
        self._marker = marker
        logger.debug(f"Reloaded {len(self._snapshot)} entries from {self.file_path}")
        return self._snapshot

    def _replace_file(self, payload: bytes) -> Optional[FileMarker]:
        """Writes payload to a temporary sibling file and moves it over the cache file.

        Must be called with the write lock held.

        Returns:
            The marker of the newly written file, or None when another writer
            replaced it before it could be probed.
        """
        fd, temp_name = tempfile.mkstemp(
            prefix=f".{self.file_path.name}.", suffix=".tmp", dir=self.file_path.parent
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
                temp_inode = os.fstat(f.fileno()).st_ino
            try:
                os.chmod(temp_name, stat.S_IMODE(os.stat(self.file_path).st_mode))
            except FileNotFoundError:
                pass
            os.replace(temp_name, self.file_path)
        except OSError:
            try:
                os.unlink(temp_name)
            except OSError:
                pass  # Already moved or never created
            raise

        # Probed after the rename, which updates the ctime
        marker = self._probe_marker()
        if marker is None or marker.inode != temp_inode:
            logger.warning(f"Cache file {self.file_path} was replaced outside the lock")
            return None
        return marker

    def _commit(self, snapshot: Dict[str, CacheEntry]) -> bool:
        """Persists a whole mutated snapshot, adopting what was written only if the write succeeded."""
        records = {key: entry.to_record() for key, entry in snapshot.items()}
        payload = self.serializer.serialize(records)
        # Decoded before writing, so a payload that cannot be read back is never persisted
        written = self._decode(payload)

        try:
            with self._lock:
                marker = self._replace_file(payload)
        except (Timeout, OSError) as e:
            logger.error(f"Failed to write cache file {self.file_path}: {e}")
            return False

        self._snapshot = written
        self._marker = marker
        logger.debug(f"Wrote {len(written)} entries ({len(payload)} bytes) to {self.file_path}")
        return True

    def _live_value(self, entry: Optional[CacheEntry], now: int, default: Any) -> Any:
        if entry is None or not entry.is_live(now):
            return default
        return copy.deepcopy(entry.value)

    # --- CacheStore Interface Implementation ---

    def get(self, key: str, default: Any = None) -> Any:
        key = validate_key(key)
        entry = self._fresh_snapshot().get(key)
        return self._live_value(entry, self.clock.now(), default)

    def has(self, key: str) -> bool:
        key = validate_key(key)
        entry = self._fresh_snapshot().get(key)
        return entry is not None and entry.is_live(self.clock.now())

    def get_multiple(self, keys: Iterable[str], default: Any = None) -> Dict[str, Any]:
        keys = validate_keys(keys)
        snapshot = self._fresh_snapshot()
        now = self.clock.now()
        return {key: self._live_value(snapshot.get(key), now, default) for key in keys}

    def set(self, key: str, value: Any, ttl: TTL = None) -> bool:
        key = validate_key(key)
        expires_at = resolve_expires_at(ttl, self.clock)

        snapshot = dict(self._fresh_snapshot())
        snapshot[key] = CacheEntry(value=value, expires_at=expires_at)
        return self._commit(snapshot)

    def set_multiple(
        self,
        values: Union[Mapping[str, Any], Iterable[Tuple[str, Any]]],
        ttl: TTL = None,
    ) -> bool:
        items = validate_items(values)
        expires_at = resolve_expires_at(ttl, self.clock)

        snapshot = dict(self._fresh_snapshot())
        for key, value in items:
            snapshot[key] = CacheEntry(value=value, expires_at=expires_at)
        return self._commit(snapshot)

    def delete(self, key: str) -> bool:
        return self.delete_multiple([validate_key(key)])

    def delete_multiple(self, keys: Iterable[str]) -> bool:
        keys = validate_keys(keys)
        current = self._fresh_snapshot()

        present = [key for key in keys if key in current]
        if not present:
            logger.debug(f"Nothing to delete in {self.file_path}")
            return True

        snapshot = dict(current)
        for key in present:
            del snapshot[key]
        return self._commit(snapshot)

    def clear(self) -> bool:
        logger.info(f"Clearing cache file: {self.file_path}")
        return self._commit({})

    # --- InspectableStore Interface Implementation ---

    def entries(self) -> Dict[str, CacheEntry]:
        """Returns a deep copy of the current snapshot, stale entries included."""
        return copy.deepcopy(self._fresh_snapshot())
