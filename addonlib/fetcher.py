"""Catalog retrieval with primary/backup fallback"""

import logging
from typing import Dict, List, Optional, Sequence

from addonlib.downloader import URLDownloader
from addonlib.exceptions import DownloadError, FetchFailure, MalformedCatalog
from addonlib.models import Catalog

logger = logging.getLogger(__name__)

# Catalog documents are small
MAX_CATALOG_SIZE = 5 * 1024 * 1024


class CatalogFetcher:
    """Fetches the catalog from the first source that answers with a valid document"""

    def __init__(
        self,
        urls: Sequence[str],
        downloader: Optional[URLDownloader] = None
    ):
        """
        Initialize fetcher

        Args:
            urls: Catalog URLs in priority order (primary first)
            downloader: HTTP client to use
        """
        self.urls: List[str] = [url for url in urls if url]
        self.downloader = downloader or URLDownloader()

    def fetch(self) -> Catalog:
        """
        Fetch and decode the catalog

        Each source is tried in order; a network error or a malformed
        document moves on to the next one.

        Returns:
            Decoded Catalog

        Raises:
            FetchFailure: If no source produced a valid catalog
        """
        if not self.urls:
            raise FetchFailure("No catalog URL configured")

        errors: Dict[str, str] = {}
        for url in self.urls:
            try:
                payload = self.downloader.fetch_bytes(url, max_size=MAX_CATALOG_SIZE)
                catalog = Catalog.from_json(payload)
            except (DownloadError, MalformedCatalog) as e:
                logger.warning(f"Catalog source {url} failed: {e}")
                errors[url] = str(e)
                continue

            logger.info(f"Catalog loaded from {url}: {len(catalog.extensions)} extension(s)")
            return catalog

        raise FetchFailure(
            f"All catalog sources failed: {'; '.join(f'{u}: {m}' for u, m in errors.items())}",
            errors=errors
        )
