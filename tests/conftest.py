"""
Pytest configuration and fixtures for BestChange client tests.
"""

import io
import os
import sys
import zipfile
from pathlib import Path

import pytest

# Add src directory to Python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (actual downloads)"
    )


def pytest_addoption(parser):
    """Add command line option for integration tests."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests that download the real bundle",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is specified."""
    if config.getoption("--run-integration"):
        os.environ["RUN_INTEGRATION_TESTS"] = "1"
        return

    skip_integration = pytest.mark.skip(reason="Use --run-integration to run download tests")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# =============================================================================
# Bundle fixtures
# =============================================================================

SAMPLE_CURRENCIES = "1;USD;US Dollar\n2;EUR;Euro\n10;RUB;Рубль\n"
SAMPLE_EXCHANGERS = "7;Обменник\n5;FastSwap\n3;Alpha\n"
SAMPLE_RATES = (
    "1;2;5;100.0;95.5;1000\n"
    "1;2;7;1;0.9;250.5\n"
    "2;10;3;1;98.1;5000000\n"
    "1;2;3;0;95.5;1000\n"
    "\n"
)
SAMPLE_INFO = (
    "last_update = 18 октября 2026, 12:34:56\n"
    "current_version = 2.0\n"
    "compressed_size = 123456\n"
)


def encode(text: str) -> bytes:
    """Encode text the way the vendor does."""
    return text.encode("cp1251")


def build_bundle(
    currencies: str | None = SAMPLE_CURRENCIES,
    exchangers: str | None = SAMPLE_EXCHANGERS,
    rates: str | None = SAMPLE_RATES,
    info: str | None = SAMPLE_INFO,
) -> bytes:
    """
    Build an in-memory zip bundle.

    Pass None for a member to leave it out of the archive.
    """
    buffer = io.BytesIO()
    members = {
        "bm_cy.dat": currencies,
        "bm_exch.dat": exchangers,
        "bm_rates.dat": rates,
        "bm_info.dat": info,
    }
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, text in members.items():
            if text is not None:
                zf.writestr(name, encode(text))
    return buffer.getvalue()


@pytest.fixture
def bundle_bytes() -> bytes:
    """A complete, valid sample bundle."""
    return build_bundle()


@pytest.fixture
def make_bundle():
    """Factory for custom bundles."""
    return build_bundle
