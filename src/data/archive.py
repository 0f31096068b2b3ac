"""
In-memory access to the bundle's zip members.
"""

import io
import zipfile

from utils.logging import get_logger

logger = get_logger(__name__)


class ArchiveError(Exception):
    """Base exception for bundle archive errors."""

    pass


class CorruptArchiveError(ArchiveError):
    """Raised when the bundle bytes are not a readable zip archive."""

    pass


class MissingMemberError(ArchiveError):
    """Raised when an expected member is absent from the archive."""

    def __init__(self, name: str):
        super().__init__(f"Member {name!r} not found in bundle archive")
        self.name = name


class BundleArchive:
    """
    Read-only view of a zip bundle held in memory.

    Usage:
        with BundleArchive.open(data) as archive:
            raw = archive.read_member("bm_rates.dat")
    """

    def __init__(self, zf: zipfile.ZipFile):
        self._zf = zf

    @classmethod
    def open(cls, data: bytes) -> "BundleArchive":
        """
        Open raw bytes as a zip archive.

        Args:
            data: Raw bundle bytes

        Returns:
            Archive handle

        Raises:
            CorruptArchiveError: Empty, truncated or non-zip input
        """
        if not data:
            raise CorruptArchiveError("Bundle is empty")

        try:
            zf = zipfile.ZipFile(io.BytesIO(data))
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError) as e:
            raise CorruptArchiveError(f"Bundle is not a valid zip archive: {e}") from e

        # testzip reads every member and returns the first one with a bad CRC
        try:
            bad_member = zf.testzip()
        except (zipfile.BadZipFile, OSError, EOFError, NotImplementedError) as e:
            zf.close()
            raise CorruptArchiveError(f"Bundle archive is damaged: {e}") from e
        if bad_member is not None:
            zf.close()
            raise CorruptArchiveError(f"Bundle member {bad_member!r} failed CRC check")

        logger.debug("Opened bundle archive with members: %s", zf.namelist())
        return cls(zf)

    def read_member(self, name: str) -> bytes:
        """
        Read a member's raw bytes.

        A present but empty member yields b"".

        Raises:
            MissingMemberError: No member with this name
        """
        try:
            info = self._zf.getinfo(name)
        except KeyError:
            raise MissingMemberError(name) from None
        return self._zf.read(info)

    def close(self) -> None:
        self._zf.close()

    def __enter__(self) -> "BundleArchive":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
