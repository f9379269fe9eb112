"""
Infrastructure layer: resolves dataset sources, downloading remote ones with retry logic.
"""
import logging
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from richness_report.config import settings
from richness_report.domain.exceptions import LoadError

logger = logging.getLogger(__name__)

REMOTE_SCHEMES = ("http", "https")


def is_remote(source: str) -> bool:
    """Return True when the source is an http(s) URL."""
    return urlparse(str(source)).scheme in REMOTE_SCHEMES


class SourceFetcher:
    """
    Turns a source string into a readable local path.

    Local paths are checked and returned as-is. Remote sources are downloaded
    to a private temporary directory; server errors and transport failures
    are retried with exponential backoff.
    """

    def __init__(self, client: Optional[httpx.Client] = None):
        """
        Initialize the fetcher.

        Args:
            client: Optional preconfigured HTTP client
        """
        self.client = client or httpx.Client(
            timeout=settings.http_timeout,
            follow_redirects=True,
        )
        self._download_dir: Optional[Path] = None
        self._lock = threading.Lock()

    def __enter__(self) -> "SourceFetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP client and remove downloaded files."""
        self.client.close()
        with self._lock:
            if self._download_dir is not None:
                shutil.rmtree(self._download_dir, ignore_errors=True)
                self._download_dir = None

    def resolve(self, source: str) -> Path:
        """
        Resolve a source to a local file path.

        Args:
            source: Local path or http(s) URL

        Returns:
            Path to a readable local file

        Raises:
            LoadError: If the file does not exist or the download fails
        """
        if is_remote(source):
            return self._download(str(source))

        path = Path(source)
        if not path.exists():
            raise LoadError(f"Source not found: {source}")
        return path

    @retry(
        stop=stop_after_attempt(settings.max_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.retry_backoff_multiplier,
            min=settings.retry_min_wait,
            max=settings.retry_max_wait,
        ),
        retry=retry_if_exception_type((httpx.HTTPStatusError, httpx.TransportError)),
        reraise=True,
    )
    def _fetch(self, url: str) -> bytes:
        """
        Fetch a URL, raising retryable errors for 5xx and transport failures.

        Raises:
            LoadError: On client errors (4xx), which are not retried
        """
        response = self.client.get(url)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            # Retry on server errors (5xx)
            if e.response.status_code >= 500:
                raise
            # Don't retry on client errors (4xx)
            raise LoadError(
                f"Download failed: {e.response.status_code} - {url}"
            )
        return response.content

    def _download(self, url: str) -> Path:
        logger.info(f"Downloading remote source {url}")
        try:
            content = self._fetch(url)
        except httpx.HTTPStatusError as e:
            raise LoadError(f"Download failed after retries: {e.response.status_code} - {url}")
        except httpx.TransportError as e:
            raise LoadError(f"Download error for {url}: {str(e)}")

        # Each download gets its own file, even for repeated URLs or shared basenames
        name = Path(urlparse(url).path)
        with tempfile.NamedTemporaryFile(
            dir=self._ensure_download_dir(),
            prefix=f"{name.stem or 'source'}-",
            suffix=name.suffix,
            delete=False,
        ) as handle:
            handle.write(content)
        target = Path(handle.name)
        logger.debug(f"Saved {len(content)} bytes to {target}")
        return target

    def _ensure_download_dir(self) -> Path:
        with self._lock:
            if self._download_dir is None:
                self._download_dir = Path(tempfile.mkdtemp(prefix="richness-report-"))
            return self._download_dir
