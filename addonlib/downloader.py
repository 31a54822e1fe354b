"""HTTP fetch and download primitives"""

import logging
import os
import time
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from addonlib.exceptions import ArtifactIOError, DownloadError

logger = logging.getLogger(__name__)

# Download limits
DEFAULT_MAX_SIZE = 50 * 1024 * 1024  # 50MB
DEFAULT_TIMEOUT = 15
CHUNK_SIZE = 8192  # 8KB chunks

# Suffix of in-flight downloads; never matches an artifact suffix
PARTIAL_SUFFIX = ".part"

USER_AGENT = "addonlib/1.0"


class URLDownloader:
    """Blocking HTTP client for catalog documents and artifact files"""

    def __init__(
        self,
        max_retries: int = 3,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize downloader

        Args:
            max_retries: Maximum number of retry attempts
            timeout: Request timeout in seconds
            session: Pre-built session (a retrying session is created if omitted)
        """
        self.timeout = timeout

        if session is not None:
            self.session = session
            return

        # Configure session with retry strategy
        self.session = requests.Session()

        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET", "HEAD"]
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def _validate_url(self, url: str) -> None:
        """
        Validate URL format and scheme

        Raises:
            DownloadError: If URL is invalid
        """
        try:
            parsed = urlparse(url)
        except ValueError as e:
            raise DownloadError(f"Invalid URL format: {e}")
        if parsed.scheme not in ('http', 'https'):
            raise DownloadError(f"Invalid URL scheme: {parsed.scheme!r}. Only http/https allowed.")
        if not parsed.netloc:
            raise DownloadError("Invalid URL: missing hostname")

    def _get(self, url: str):
        self._validate_url(url)
        try:
            response = self.session.get(
                url,
                stream=True,
                timeout=self.timeout,
                headers={'User-Agent': USER_AGENT}
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise DownloadError(f"Request to {url} failed: {e}")
        return response

    def fetch_bytes(self, url: str, max_size: int = DEFAULT_MAX_SIZE) -> bytes:
        """
        GET a URL and return the body

        Raises:
            DownloadError: If the request fails or the body is too large
        """
        logger.debug(f"Fetching: {url}")
        response = self._get(url)
        try:
            chunks = []
            received = 0
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if not chunk:
                    continue
                received += len(chunk)
                if received > max_size:
                    raise DownloadError(f"Response from {url} exceeded size limit")
                chunks.append(chunk)
            return b"".join(chunks)
        except requests.RequestException as e:
            raise DownloadError(f"Reading response from {url} failed: {e}")
        finally:
            response.close()

    def download(
        self,
        url: str,
        target_path: Path,
        max_size: int = DEFAULT_MAX_SIZE,
        progress_callback: Optional[Callable[[int, int], None]] = None
    ) -> int:
        """
        Download a file, publishing it only after the transfer completes

        The body is streamed to `<target>.part` in the same directory and
        moved onto `target_path` with os.replace once complete.

        Args:
            url: URL to download from
            target_path: Final file path
            max_size: Maximum file size in bytes
            progress_callback: Callback function (downloaded_bytes, total_bytes)

        Returns:
            Number of bytes written

        Raises:
            DownloadError: If the transfer fails
            ArtifactIOError: If the file cannot be written or moved
        """
        logger.info(f"Starting download from: {url}")

        temp_path = target_path.with_name(target_path.name + PARTIAL_SUFFIX)

        try:
            target_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ArtifactIOError(f"Cannot create directory {target_path.parent}: {e}")

        response = self._get(url)
        try:
            content_length = response.headers.get('Content-Length')
            total_size = int(content_length) if content_length and content_length.isdigit() else 0
            if total_size > max_size:
                raise DownloadError(
                    f"File too large: {total_size / 1024 / 1024:.2f}MB "
                    f"(max: {max_size / 1024 / 1024}MB)"
                )

            downloaded_bytes = 0
            start_time = time.time()

            with open(temp_path, 'wb') as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if not chunk:  # keep-alive
                        continue
                    f.write(chunk)
                    downloaded_bytes += len(chunk)

                    if downloaded_bytes > max_size:
                        raise DownloadError(
                            f"Download exceeded size limit: {downloaded_bytes / 1024 / 1024:.2f}MB"
                        )

                    if progress_callback:
                        progress_callback(downloaded_bytes, total_size)

            # Content-Length counts encoded bytes; iter_content yields decoded ones
            encoded = bool(response.headers.get('Content-Encoding'))
            if total_size and not encoded and downloaded_bytes != total_size:
                raise DownloadError(
                    f"Incomplete download: got {downloaded_bytes} of {total_size} bytes"
                )

            os.replace(temp_path, target_path)

            elapsed_time = time.time() - start_time
            logger.info(
                f"Download complete: {downloaded_bytes / 1024:.2f}KB "
                f"in {elapsed_time:.2f}s -> {target_path}"
            )
            return downloaded_bytes

        except requests.RequestException as e:
            raise DownloadError(f"Download failed: {e}")

        except OSError as e:
            raise ArtifactIOError(f"Failed to write {target_path}: {e}")

        finally:
            response.close()
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError as e:
                    logger.warning(f"Failed to clean up temporary file {temp_path}: {e}")

    def close(self):
        """Close the session"""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
