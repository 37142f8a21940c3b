"""Raw venue CSV download.

Uploaded venue exports are addressed by a storage path (for example
"2025-01-06/auckland.csv"). Two stores resolve those paths:

- LocalBlobStore: files under a root directory (DataPaths.raw_uploads).
- HttpBlobStore: GET <base_url>/<storage_path> with retry and timeout.

Both expose download(storage_path) -> bytes and raise ExtractionError when
the file cannot be fetched.

Environment (HttpBlobStore.from_env):
  REPORTS_BLOB_BASE=https://storage.example.com/report-csvs
  REPORTS_BLOB_TOKEN=...   # optional bearer token
  REPORTS_TIMEOUT=60       # seconds
  REPORTS_RETRIES=3
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from pos_reports.config import BlobSettings
from pos_reports.exceptions import ConfigError, ExtractionError

logger = logging.getLogger(__name__)


class LocalBlobStore:
    """Storage paths resolved against a local directory."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def _resolve(self, storage_path: str) -> Path:
        root = self.root.resolve()
        path = (root / storage_path.lstrip("/")).resolve()
        if root != path and root not in path.parents:
            raise ExtractionError(f"Storage path escapes blob root: {storage_path}")
        return path

    def download(self, storage_path: str) -> bytes:
        """Read the file stored at storage_path.

        Raises:
            ExtractionError: If the file is missing or unreadable.
        """
        path = self._resolve(storage_path)
        try:
            return path.read_bytes()
        except OSError as e:
            raise ExtractionError(f"Failed to download CSV {storage_path}: {e}") from e


def make_session(timeout: float = 60.0, retries: int = 3) -> requests.Session:
    """Create a requests Session with retry logic and default timeout.

    Retries on 429, 500, 502, 503, 504 with exponential backoff.

    Args:
        timeout: Default timeout in seconds for all requests.
        retries: Number of retry attempts.

    Returns:
        Configured requests.Session object.
    """
    s = requests.Session()
    retry = Retry(
        total=retries,
        connect=retries,
        read=retries,
        status=retries,
        backoff_factor=0.8,  # 0.8, 1.6, 3.2, ...
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset({"GET", "HEAD"}),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    s.mount("http://", adapter)
    s.mount("https://", adapter)
    orig_request = s.request

    def timed_request(method: str, url: str, **kwargs: Any) -> requests.Response:
        kwargs.setdefault("timeout", timeout)
        return orig_request(method, url, **kwargs)

    s.request = timed_request  # type: ignore[method-assign,assignment]
    return s


class HttpBlobStore:
    """Storage paths fetched over HTTP from a blob store bucket.

    Example:
        >>> store = HttpBlobStore("https://storage.example.com/report-csvs", token="...")
        >>> content = store.download("2025-01-06/auckland.csv")
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 60.0,
        retries: int = 3,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or make_session(timeout=timeout, retries=retries)
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})

    @classmethod
    def from_env(cls) -> HttpBlobStore:
        """Build a store from REPORTS_BLOB_* settings.

        Raises:
            ConfigError: If REPORTS_BLOB_BASE is not set.
        """
        settings = BlobSettings.from_env()
        if not settings.base_url:
            raise ConfigError("REPORTS_BLOB_BASE is required for the HTTP blob store")
        return cls(
            settings.base_url,
            token=settings.token,
            timeout=settings.timeout,
            retries=settings.retries,
        )

    def download(self, storage_path: str) -> bytes:
        """GET the stored object.

        Raises:
            ExtractionError: On connection errors or a non-2xx response.
        """
        url = f"{self.base_url}/{quote(storage_path.lstrip('/'))}"
        try:
            resp = self.session.get(url)
        except requests.RequestException as e:
            raise ExtractionError(f"Failed to download CSV {storage_path}: {e}") from e
        if not (200 <= resp.status_code < 300):
            raise ExtractionError(
                f"Failed to download CSV {storage_path}. HTTP {resp.status_code}: {resp.text[:400]}"
            )
        logger.debug("Downloaded %s (%d bytes)", url, len(resp.content))
        return resp.content
