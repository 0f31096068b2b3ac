"""
Tests for the bundle file cache.

Tests cover:
- Freshness window boundaries
- Atomic writes
- Disabled (temporary) cache
"""

import os
import tempfile
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from data.cache import BundleCache, CacheError


class TestBundleCache:
    """Tests for the BundleCache class."""

    @pytest.fixture
    def temp_cache_dir(self):
        """Create a temporary cache directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    @pytest.fixture
    def cache(self, temp_cache_dir):
        """Create a BundleCache instance."""
        return BundleCache(temp_cache_dir / "info.zip", ttl_seconds=3600)

    # =========================================================================
    # Freshness Tests
    # =========================================================================

    def test_missing_file_is_not_fresh(self, cache):
        """Test that a missing cache file is never fresh."""
        assert cache.exists() is False
        assert cache.is_fresh() is False
        assert cache.age_seconds() is None

    def test_just_written_is_fresh(self, cache):
        """Test that a newly written file is fresh."""
        cache.write(b"bundle")
        assert cache.is_fresh() is True

    def test_freshness_boundary(self, cache):
        """Test fresh strictly before T + D and stale at/after it."""
        cache.write(b"bundle")
        written_at = 1_700_000_000.0
        os.utime(cache.path, (written_at, written_at))

        assert cache.is_fresh(now=written_at) is True
        assert cache.is_fresh(now=written_at + 3599.999) is True
        assert cache.is_fresh(now=written_at + 3600) is False
        assert cache.is_fresh(now=written_at + 7200) is False

    def test_zero_ttl_is_never_fresh(self, temp_cache_dir):
        """Test that ttl_seconds=0 forces a refetch every time."""
        cache = BundleCache(temp_cache_dir / "info.zip", ttl_seconds=0)
        cache.write(b"bundle")
        assert cache.is_fresh() is False

    def test_externally_replaced_file_is_seen(self, cache):
        """Test that freshness reflects the file currently on disk."""
        cache.write(b"old")
        old = time.time() - 10_000
        os.utime(cache.path, (old, old))
        assert cache.is_fresh() is False

        # Another process replaces the file
        cache.path.write_bytes(b"new")
        assert cache.is_fresh() is True

    def test_age_seconds(self, cache):
        """Test age relative to a reference time."""
        cache.write(b"bundle")
        os.utime(cache.path, (1000.0, 1000.0))
        assert cache.age_seconds(now=1060.0) == pytest.approx(60.0)

    # =========================================================================
    # Write / Read Tests
    # =========================================================================

    def test_write_and_read(self, cache):
        """Test round trip of raw bytes."""
        path = cache.write(b"\x50\x4b\x03\x04data")
        assert path == cache.path
        assert cache.read() == b"\x50\x4b\x03\x04data"

    def test_write_replaces_content(self, cache):
        """Test that a new write fully replaces the old bundle."""
        cache.write(b"first version, longer")
        cache.write(b"second")
        assert cache.read() == b"second"

    def test_write_creates_parent_dirs(self, temp_cache_dir):
        """Test that missing directories are created."""
        cache = BundleCache(temp_cache_dir / "nested" / "dir" / "info.zip")
        cache.write(b"bundle")
        assert cache.path.exists()

    def test_write_leaves_no_temp_files(self, cache, temp_cache_dir):
        """Test that only the target file remains after a write."""
        cache.write(b"bundle")
        assert [p.name for p in temp_cache_dir.iterdir()] == ["info.zip"]

    def test_failed_write_keeps_previous_bundle(self, cache, temp_cache_dir):
        """Test that a failed rename leaves the old file intact."""
        cache.write(b"good")

        with patch("data.cache.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(CacheError):
                cache.write(b"partial")

        assert cache.read() == b"good"
        assert [p.name for p in temp_cache_dir.iterdir()] == ["info.zip"]

    def test_read_missing_raises(self, cache):
        """Test that reading a missing file raises CacheError."""
        with pytest.raises(CacheError):
            cache.read()

    def test_invalidate(self, cache):
        """Test removing the cached bundle."""
        cache.write(b"bundle")
        assert cache.invalidate() is True
        assert cache.exists() is False
        assert cache.invalidate() is False


class TestTemporaryCache:
    """Tests for the disabled cache."""

    def test_temporary_is_never_fresh(self):
        """Test that a disabled cache always reports stale."""
        cache = BundleCache.temporary()
        try:
            cache.write(b"bundle")
            assert cache.enabled is False
            assert cache.is_fresh() is False
        finally:
            cache.discard()

    def test_temporary_paths_are_unique(self):
        """Test that each instance gets its own file."""
        first = BundleCache.temporary()
        second = BundleCache.temporary()
        try:
            assert first.path != second.path
            assert first.path.name.startswith("art")
        finally:
            first.discard()
            second.discard()

    def test_discard_removes_file(self):
        """Test that discard deletes the temp file."""
        cache = BundleCache.temporary()
        cache.write(b"bundle")
        cache.discard()
        assert cache.path.exists() is False

    def test_discard_keeps_enabled_cache(self, tmp_path):
        """Test that discard never deletes a real cache file."""
        cache = BundleCache(tmp_path / "info.zip")
        cache.write(b"bundle")
        cache.discard()
        assert cache.path.exists() is True
