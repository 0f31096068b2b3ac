"""
File-based cache for the downloaded bundle.

The bundle is stored as a single file holding the raw zip bytes exactly as
received. Freshness is judged by the file's modification time only.
"""

import os
import tempfile
import time
from pathlib import Path

from config import CACHE_TTL_SECONDS, TEMP_FILE_PREFIX
from utils.logging import get_logger

logger = get_logger(__name__)


class CacheError(Exception):
    """Base exception for cache errors."""

    pass


class BundleCache:
    """
    Single-file cache for the raw bundle bytes.

    Writes are atomic: data goes to a sibling temporary file which is then
    renamed over the target, so a reader never sees a half-written bundle.
    Concurrent writers may still race, the last rename wins.

    When caching is disabled (see `temporary`), the cache is backed by a
    process-unique temp file and never reports itself as fresh.

    Usage:
        cache = BundleCache(Path("data/cache/info.zip"), ttl_seconds=3600)
        if not cache.is_fresh():
            cache.write(client.fetch())
        data = cache.read()
    """

    def __init__(
        self,
        path: Path,
        ttl_seconds: int = CACHE_TTL_SECONDS,
        enabled: bool = True,
    ):
        """
        Initialize the bundle cache.

        Args:
            path: Location of the cached bundle file
            ttl_seconds: Freshness window in seconds
            enabled: If False, the cache is never fresh
        """
        self.path = Path(path)
        self.ttl_seconds = ttl_seconds
        self.enabled = enabled

    @classmethod
    def temporary(cls) -> "BundleCache":
        """
        Create a disabled cache backed by a unique temp file.

        The file is private to this instance; call `discard` when done.
        """
        fd, name = tempfile.mkstemp(prefix=TEMP_FILE_PREFIX)
        os.close(fd)
        return cls(Path(name), ttl_seconds=0, enabled=False)

    def _mtime(self) -> float | None:
        """Current modification time, or None if the file is missing."""
        # os.stat always hits the filesystem, so a file replaced by another
        # process is seen immediately.
        try:
            return os.stat(self.path).st_mtime
        except FileNotFoundError:
            return None

    def exists(self) -> bool:
        return self._mtime() is not None

    def age_seconds(self, now: float | None = None) -> float | None:
        """
        Seconds since the cached file was last written.

        Args:
            now: Reference time as a POSIX timestamp (default: current time)

        Returns:
            Age in seconds, or None if there is no cached file
        """
        mtime = self._mtime()
        if mtime is None:
            return None
        if now is None:
            now = time.time()
        return now - mtime

    def is_fresh(self, now: float | None = None) -> bool:
        """
        Check whether the cached bundle can be used without refetching.

        A file written at time T with TTL D is fresh strictly before T + D.

        Args:
            now: Reference time as a POSIX timestamp (default: current time)

        Returns:
            True if caching is enabled, the file exists and is within TTL
        """
        if not self.enabled or self.ttl_seconds <= 0:
            return False

        age = self.age_seconds(now)
        if age is None:
            return False

        return age < self.ttl_seconds

    def write(self, data: bytes) -> Path:
        """
        Atomically replace the cached bundle with `data`.

        Args:
            data: Raw bundle bytes

        Returns:
            Path to the cache file
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)

        tmp = tempfile.NamedTemporaryFile(
            mode="wb",
            dir=self.path.parent,
            prefix=f".{self.path.name}.",
            suffix=".tmp",
            delete=False,
        )
        tmp_path = Path(tmp.name)
        try:
            with tmp:
                tmp.write(data)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise CacheError(f"Failed to write cache file {self.path}: {e}") from e

        logger.debug("Cached %d bytes at %s", len(data), self.path)
        return self.path

    def read(self) -> bytes:
        """
        Read the cached bundle.

        Returns:
            Raw bundle bytes
        """
        try:
            return self.path.read_bytes()
        except OSError as e:
            raise CacheError(f"Failed to read cache file {self.path}: {e}") from e

    def invalidate(self) -> bool:
        """
        Remove the cached bundle.

        Returns:
            True if a file was removed, False if there was none
        """
        if self.path.exists():
            self.path.unlink()
            return True
        return False

    def discard(self) -> None:
        """Remove the backing temp file of a disabled cache."""
        if not self.enabled:
            self.path.unlink(missing_ok=True)
