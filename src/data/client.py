"""
Read-only access to the BestChange dataset.
"""

from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

from api.bestchange import BestChangeClient
from config import CACHE_TTL_SECONDS, FETCH_TIMEOUT_SECONDS
from data.cache import BundleCache
from data.models import (
    Currency,
    Dataset,
    Exchanger,
    ParseStats,
    Rate,
    RateView,
    RecordKind,
)
from data.pipeline import BundlePipeline


class BestChange:
    """
    Loads the BestChange bundle once and exposes the parsed records.

    Construction runs the whole pipeline and raises if any fatal stage
    fails, so an instance always holds a complete dataset. The mappings it
    returns are read-only views shared by all callers. There is no refresh;
    create a new instance to pick up newer data.

    Usage:
        bc = BestChange(cache_path=Path("data/cache/info.zip"), cache_ttl=600)
        usd = bc.lookup(1, "currencies")
        offer = bc.get_rate(1, 2, 5)
    """

    def __init__(
        self,
        cache_path: Path | str | None = None,
        cache_ttl: int = CACHE_TTL_SECONDS,
        timeout: float = FETCH_TIMEOUT_SECONDS,
        client: BestChangeClient | None = None,
        show_progress: bool = False,
    ):
        """
        Load the dataset.

        Args:
            cache_path: Cached bundle location; None disables caching
            cache_ttl: Freshness window of the cached bundle, in seconds
            timeout: Download timeout, in seconds (ignored if `client` is given)
            client: Download client (default: new instance)
            show_progress: Display a progress bar while downloading
        """
        if cache_path:
            cache = BundleCache(Path(cache_path), ttl_seconds=cache_ttl)
        else:
            cache = BundleCache.temporary()

        self._pipeline = BundlePipeline(
            cache,
            client=client or BestChangeClient(timeout=timeout),
            show_progress=show_progress,
        )
        self._dataset = self._pipeline.run().read_only()

    @property
    def dataset(self) -> Dataset:
        return self._dataset

    @property
    def fetched(self) -> bool:
        """True if this instance downloaded the bundle instead of using the cache."""
        return self._pipeline.fetched

    def version(self) -> str:
        return self._dataset.metadata.version

    def last_update(self) -> datetime | None:
        return self._dataset.metadata.last_update

    def currencies(self) -> Mapping[int, Currency]:
        return self._dataset.currencies

    def exchangers(self) -> Mapping[int, Exchanger]:
        return self._dataset.exchangers

    def rates(self) -> RateView:
        return self._dataset.rates

    def stats(self) -> ParseStats:
        return self._dataset.stats

    def lookup(self, record_id: int, kind: RecordKind | str = RecordKind.CURRENCIES) -> Any | None:
        """Find a record by id; None if absent. See Dataset.lookup."""
        return self._dataset.lookup(record_id, kind)

    def rates_between(self, from_currency_id: int, to_currency_id: int) -> Mapping[int, Rate]:
        return self._dataset.rates_between(from_currency_id, to_currency_id)

    def get_rate(
        self,
        from_currency_id: int,
        to_currency_id: int,
        exchanger_id: int,
    ) -> Rate | None:
        return self._dataset.get_rate(from_currency_id, to_currency_id, exchanger_id)
