"""
Fetch -> cache -> unzip -> parse pipeline for the BestChange bundle.

States:
    IDLE --(cache stale or disabled)--> FETCHING --> PARSING --> READY
    IDLE --(cache fresh)--------------------------> PARSING --> READY
    any state --(fatal error)--> FAILED

A downloaded bundle is written to the cache only after it parses, so a
broken download never shadows a good cache entry. READY and FAILED are
terminal. A pipeline runs once; build a new one to refresh.
"""

from enum import Enum

from api.bestchange import BestChangeClient
from config import MEMBER_CURRENCIES, MEMBER_EXCHANGERS, MEMBER_INFO, MEMBER_RATES
from data.archive import BundleArchive
from data.cache import BundleCache
from data.models import Dataset, ParseStats
from data.parsers import parse_currencies, parse_exchangers, parse_metadata, parse_rates
from utils.logging import get_logger

logger = get_logger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    PARSING = "parsing"
    READY = "ready"
    FAILED = "failed"


class PipelineError(Exception):
    """Base exception for pipeline errors."""

    pass


class PipelineStateError(PipelineError):
    """Raised when `run` is called on a pipeline that already ran."""

    pass


class BundlePipeline:
    """
    Produces a Dataset from the cached or freshly downloaded bundle.

    Fatal errors from any stage (FetchUnavailableError, CacheError,
    CorruptArchiveError, MissingMemberError) are re-raised unchanged after
    the pipeline moves to FAILED; `failed_stage` names the stage.

    Usage:
        pipeline = BundlePipeline(BundleCache(path, ttl_seconds=3600))
        dataset = pipeline.run()
    """

    def __init__(
        self,
        cache: BundleCache,
        client: BestChangeClient | None = None,
        show_progress: bool = False,
    ):
        """
        Initialize the pipeline.

        Args:
            cache: Bundle cache (use BundleCache.temporary() to disable caching)
            client: Download client (default: new instance)
            show_progress: Display a progress bar while downloading
        """
        self.cache = cache
        self.client = client or BestChangeClient()
        self.show_progress = show_progress
        self.state = PipelineState.IDLE
        self.failed_stage: PipelineState | None = None
        self.fetched = False
        self.dataset: Dataset | None = None

    def _transition(self, state: PipelineState) -> None:
        logger.debug("Pipeline %s -> %s", self.state.value, state.value)
        self.state = state

    def run(self) -> Dataset:
        """
        Execute the pipeline.

        Returns:
            Fully populated Dataset

        Raises:
            PipelineStateError: The pipeline already ran
        """
        if self.state is not PipelineState.IDLE:
            raise PipelineStateError(f"Pipeline already ran (state: {self.state.value})")

        try:
            if self.cache.is_fresh():
                logger.info("Using cached bundle %s", self.cache.path)
                self._transition(PipelineState.PARSING)
                dataset = self._parse(self.cache.read())
            else:
                self._transition(PipelineState.FETCHING)
                data = self.client.fetch(show_progress=self.show_progress)
                self._transition(PipelineState.PARSING)
                dataset = self._parse(data)
                # Only a bundle that parsed cleanly may replace the cached one
                self.cache.write(data)
                self.fetched = True
        except Exception as e:
            self.failed_stage = self.state
            self._transition(PipelineState.FAILED)
            logger.error("Pipeline failed during %s: %s", self.failed_stage.value, e)
            raise
        finally:
            self.cache.discard()

        self.dataset = dataset
        self._transition(PipelineState.READY)
        return dataset

    def _parse(self, data: bytes) -> Dataset:
        with BundleArchive.open(data) as archive:
            raw_currencies = archive.read_member(MEMBER_CURRENCIES)
            raw_exchangers = archive.read_member(MEMBER_EXCHANGERS)
            raw_rates = archive.read_member(MEMBER_RATES)
            raw_info = archive.read_member(MEMBER_INFO)

        metadata = parse_metadata(raw_info)
        currencies = parse_currencies(raw_currencies)
        exchangers = parse_exchangers(raw_exchangers)
        rates = parse_rates(raw_rates)

        dataset = Dataset(
            currencies=currencies.records,
            exchangers=exchangers.records,
            rates=rates.records,
            metadata=metadata,
            stats=ParseStats(
                currencies=currencies.stats,
                exchangers=exchangers.stats,
                rates=rates.stats,
            ),
        )
        logger.info(
            "Parsed bundle version %s: %d currencies, %d exchangers, %d rates",
            metadata.version or "?",
            len(dataset.currencies),
            len(dataset.exchangers),
            dataset.rate_count,
        )
        return dataset
