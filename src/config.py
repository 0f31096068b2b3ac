"""
Configuration constants for the BestChange bundle client.

BestChange publishes its exchanger directory and current rates as a single
zip bundle that is refreshed every few seconds on the vendor side.
"""

from pathlib import Path

# =============================================================================
# Project Paths
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"
CACHE_DIR = DATA_DIR / "cache"
OUTPUT_DIR = PROJECT_ROOT / "output"

# Default location of the cached bundle (used by the CLI)
DEFAULT_CACHE_FILE = CACHE_DIR / "info.zip"

# =============================================================================
# BestChange API Configuration
# =============================================================================

BESTCHANGE_API_URL = "http://api.bestchange.ru/info.zip"

# Wall-clock limit for one download attempt, in seconds.
# Some deployments run with 5; keep it overridable per client and per call.
FETCH_TIMEOUT_SECONDS = 25

# Retry configuration (only transient HTTP statuses are retried)
FETCH_MAX_ATTEMPTS = 3
FETCH_RETRY_MIN_WAIT = 1  # seconds
FETCH_RETRY_MAX_WAIT = 10  # seconds
TRANSIENT_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

# Streaming chunk size for the download
FETCH_CHUNK_SIZE = 64 * 1024

# =============================================================================
# Cache Configuration
# =============================================================================

# Cached bundle is considered fresh for one hour
CACHE_TTL_SECONDS = 3600

# Prefix for the per-process temp file used when caching is disabled
TEMP_FILE_PREFIX = "art"

# =============================================================================
# Bundle Layout
# =============================================================================

MEMBER_CURRENCIES = "bm_cy.dat"
MEMBER_EXCHANGERS = "bm_exch.dat"
MEMBER_RATES = "bm_rates.dat"
MEMBER_INFO = "bm_info.dat"

# All members are semicolon-delimited text in this legacy encoding
BUNDLE_ENCODING = "cp1251"
FIELD_DELIMITER = ";"
