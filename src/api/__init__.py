"""
API client modules for external data sources.

BestChange publishes a single zip bundle; the client only downloads it.
"""

from .bestchange import (
    BestChangeClient,
    BestChangeError,
    FetchUnavailableError,
    TransientFetchError,
)

__all__ = [
    "BestChangeClient",
    "BestChangeError",
    "FetchUnavailableError",
    "TransientFetchError",
]
