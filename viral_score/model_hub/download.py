"""Artifact sources: fetch the model bytes with incremental progress.

Sources are synchronous and meant to run in a worker thread. They call
on_progress after every chunk and poll an optional cancel event so an
abandoned load stops reading. Only a complete body is ever returned.
"""

import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import unquote, urlparse

import requests

from viral_score.exceptions import DownloadCancelled, DownloadError
from viral_score.model_hub.types import DownloadProgress

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1024 * 1024
DEFAULT_TIMEOUT = 60

ProgressCallback = Callable[[DownloadProgress], None]


class ArtifactSource(ABC):
    """Base interface for places the model artifact can come from."""

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.chunk_size = chunk_size

    @abstractmethod
    def fetch(
        self,
        url: str,
        on_progress: Optional[ProgressCallback] = None,
        cancel: Optional[threading.Event] = None
    ) -> bytes:
        """
        Fetch the full artifact.

        Raises:
            DownloadError: On transport failure, non-2xx status or short body
            DownloadCancelled: If cancel was set mid-transfer
        """
        pass

    @staticmethod
    def _check_cancel(url: str, cancel: Optional[threading.Event]) -> None:
        if cancel is not None and cancel.is_set():
            raise DownloadCancelled(f"Download of {url} cancelled")

    @staticmethod
    def _report(on_progress: Optional[ProgressCallback], loaded: int, total: Optional[int]) -> None:
        if on_progress is not None:
            on_progress(DownloadProgress(loaded=loaded, total=total))


class HttpArtifactSource(ArtifactSource):
    """Streams the artifact over HTTP(S) with requests."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        timeout: float = DEFAULT_TIMEOUT
    ):
        super().__init__(chunk_size)
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch(
        self,
        url: str,
        on_progress: Optional[ProgressCallback] = None,
        cancel: Optional[threading.Event] = None
    ) -> bytes:
        logger.info(f"Downloading artifact from {url}")
        try:
            with self.session.get(url, stream=True, timeout=self.timeout) as response:
                if not 200 <= response.status_code < 300:
                    raise DownloadError(
                        f"Download of {url} failed with HTTP {response.status_code}",
                        status_code=response.status_code
                    )

                total = _expected_length(response.headers)
                buffer = bytearray()
                for chunk in response.iter_content(chunk_size=self.chunk_size):
                    self._check_cancel(url, cancel)
                    if not chunk:
                        continue
                    buffer.extend(chunk)
                    self._report(on_progress, len(buffer), total)
        except requests.RequestException as e:
            raise DownloadError(f"Download of {url} failed: {e}") from e

        if total is not None and len(buffer) != total:
            raise DownloadError(f"Incomplete download of {url}: got {len(buffer)} of {total} bytes")

        logger.info(f"Downloaded {len(buffer)} bytes from {url}")
        return bytes(buffer)


class LocalArtifactSource(ArtifactSource):
    """Reads the artifact from a local path or file:// URL."""

    def fetch(
        self,
        url: str,
        on_progress: Optional[ProgressCallback] = None,
        cancel: Optional[threading.Event] = None
    ) -> bytes:
        path = _local_path(url)
        try:
            total = path.stat().st_size
            buffer = bytearray()
            with open(path, 'rb') as f:
                while True:
                    self._check_cancel(url, cancel)
                    chunk = f.read(self.chunk_size)
                    if not chunk:
                        break
                    buffer.extend(chunk)
                    self._report(on_progress, len(buffer), total)
        except OSError as e:
            raise DownloadError(f"Could not read artifact {path}: {e}") from e

        logger.info(f"Read {len(buffer)} bytes from {path}")
        return bytes(buffer)


def _expected_length(headers) -> Optional[int]:
    """Decoded body length, or None when it cannot be known up front."""
    # iter_content yields decoded bytes; Content-Length counts encoded ones
    encoding = headers.get('Content-Encoding', '').strip().lower()
    if encoding not in ('', 'identity'):
        return None
    value = headers.get('Content-Length')
    if not value:
        return None
    try:
        length = int(value)
    except ValueError:
        return None
    return length if length > 0 else None


def _local_path(url: str) -> Path:
    parsed = urlparse(url)
    if parsed.scheme == 'file':
        return Path(unquote(parsed.path))
    return Path(url).expanduser()


def create_artifact_source(
    url: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    timeout: float = DEFAULT_TIMEOUT
) -> ArtifactSource:
    """Pick an HTTP source for http(s) URLs and a local source otherwise."""
    scheme = urlparse(url).scheme.lower()
    if scheme in ('http', 'https'):
        return HttpArtifactSource(chunk_size=chunk_size, timeout=timeout)
    return LocalArtifactSource(chunk_size=chunk_size)
