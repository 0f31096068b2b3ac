"""
BestChange bundle download client.

BestChange exposes no query API: the whole dataset is published as one zip
file at a fixed URL. This client downloads it with a bounded wall-clock time
and turns every failure into a `FetchUnavailableError`.
"""

import time
from importlib.metadata import PackageNotFoundError, version

import requests
from config import (
    BESTCHANGE_API_URL,
    FETCH_CHUNK_SIZE,
    FETCH_MAX_ATTEMPTS,
    FETCH_RETRY_MAX_WAIT,
    FETCH_RETRY_MIN_WAIT,
    FETCH_TIMEOUT_SECONDS,
    TRANSIENT_STATUS_CODES,
)
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    stop_any,
    wait_exponential,
)
from tqdm import tqdm

from utils.logging import get_logger

logger = get_logger(__name__)


def get_version() -> str:
    """Get package version for User-Agent."""
    try:
        return version("bestchange-client")
    except PackageNotFoundError:
        return "dev"


class BestChangeError(Exception):
    """Base exception for BestChange download errors."""

    pass


class FetchUnavailableError(BestChangeError):
    """Raised when the bundle is unreachable or returned no data."""

    pass


class TransientFetchError(FetchUnavailableError):
    """Raised for server statuses worth retrying (rate limit, 5xx)."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class BestChangeClient:
    """
    Downloads the BestChange info.zip bundle.

    Usage:
        client = BestChangeClient(timeout=5)
        data = client.fetch()
    """

    def __init__(
        self,
        url: str = BESTCHANGE_API_URL,
        timeout: float = FETCH_TIMEOUT_SECONDS,
        max_attempts: int = FETCH_MAX_ATTEMPTS,
        retry_min_wait: float = FETCH_RETRY_MIN_WAIT,
        retry_max_wait: float = FETCH_RETRY_MAX_WAIT,
        session: requests.Session | None = None,
    ):
        """
        Initialize the download client.

        Args:
            url: Bundle URL
            timeout: Wall-clock limit for the whole download, retries included
            max_attempts: Attempts for transient HTTP statuses
            retry_min_wait: Minimum backoff between attempts, in seconds
            retry_max_wait: Maximum backoff between attempts, in seconds
            session: Optional preconfigured requests session
        """
        self.url = url
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.retry_min_wait = retry_min_wait
        self.retry_max_wait = retry_max_wait

        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/zip, application/octet-stream, */*",
                "User-Agent": f"bestchange-client/{get_version()}",
            }
        )

    def fetch(
        self,
        url: str | None = None,
        timeout: float | None = None,
        show_progress: bool = False,
    ) -> bytes:
        """
        Download the bundle.

        Args:
            url: Override the configured URL
            timeout: Override the configured timeout, in seconds. It bounds the
                whole call: every attempt and every backoff wait share it.
            show_progress: Display a download progress bar

        Returns:
            Full response body

        Raises:
            FetchUnavailableError: Unreachable, timed out, non-2xx or empty
        """
        url = url or self.url
        timeout = self.timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout
        backoff = wait_exponential(multiplier=1, min=self.retry_min_wait, max=self.retry_max_wait)

        def wait_within_deadline(retry_state) -> float:
            return min(backoff(retry_state), max(0.0, deadline - time.monotonic()))

        def no_time_for_another_attempt(retry_state) -> bool:
            return time.monotonic() + self.retry_min_wait >= deadline

        retryer = Retrying(
            retry=retry_if_exception_type(TransientFetchError),
            stop=stop_any(
                stop_after_attempt(self.max_attempts),
                stop_after_delay(timeout),
                no_time_for_another_attempt,
            ),
            wait=wait_within_deadline,
            reraise=True,
        )
        data = retryer(self._fetch_once, url, timeout, deadline, show_progress)

        logger.info("Downloaded %d bytes from %s", len(data), url)
        return data

    def _fetch_once(self, url: str, timeout: float, deadline: float, show_progress: bool) -> bytes:
        """Single GET attempt, limited to the time left before `deadline`."""
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise FetchUnavailableError(f"Timed out fetching {url} after {timeout}s")
        logger.debug("GET %s (%.1fs left)", url, remaining)

        try:
            response = self.session.get(
                url,
                timeout=remaining,
                allow_redirects=True,
                stream=True,
            )
        except requests.Timeout as e:
            raise FetchUnavailableError(f"Timed out fetching {url} after {timeout}s") from e
        except requests.RequestException as e:
            raise FetchUnavailableError(f"Request to {url} failed: {e}") from e

        try:
            status = response.status_code
            if status in TRANSIENT_STATUS_CODES:
                raise TransientFetchError(f"{url} returned HTTP {status}", status)
            if not 200 <= status < 300:
                raise FetchUnavailableError(f"{url} returned HTTP {status}")

            data = self._read_body(response, url, timeout, deadline, show_progress)
        finally:
            response.close()

        if not data:
            raise FetchUnavailableError(f"{url} returned an empty body")

        return data

    def _read_body(
        self,
        response: requests.Response,
        url: str,
        timeout: float,
        deadline: float,
        show_progress: bool,
    ) -> bytes:
        """
        Stream the body, aborting once `deadline` passes.

        A stalled socket read is cut off by the read timeout passed to
        `session.get`, which is the time that was left when the attempt began.
        """
        total = response.headers.get("Content-Length")
        chunks: list[bytes] = []

        with tqdm(
            total=int(total) if total and total.isdigit() else None,
            unit="B",
            unit_scale=True,
            desc="info.zip",
            disable=not show_progress,
        ) as progress:
            try:
                for chunk in response.iter_content(chunk_size=FETCH_CHUNK_SIZE):
                    if time.monotonic() > deadline:
                        raise FetchUnavailableError(
                            f"Timed out fetching {url} after {timeout}s"
                        )
                    if chunk:
                        chunks.append(chunk)
                        progress.update(len(chunk))
            except requests.Timeout as e:
                raise FetchUnavailableError(f"Timed out fetching {url} after {timeout}s") from e
            except requests.RequestException as e:
                raise FetchUnavailableError(f"Download from {url} interrupted: {e}") from e

        return b"".join(chunks)
