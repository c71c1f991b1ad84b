"""HTTP implementation of the ListingSource port."""

import datetime
import re
from typing import List, Optional

import httpx

from ..application.domain import ArchiveReference, ListingSource
from ..application.exceptions import ConfigurationError, ListingError

from .base_client import BaseClient
from .decorators import retry_on_network_error

# 1-5 letters, 1-11 digits, ".zip", e.g. href="ipa210107.zip"
_ARCHIVE_LINK = re.compile(
    r'a\s+href="([a-z]{1,5}[0-9]{1,11}\.zip)"',
    re.IGNORECASE,
)


class HttpListingSource(BaseClient, ListingSource):
    """Discovers bulk archives by scraping the per-year index pages."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        timeout: float,
        retry_attempts: int = 1,
    ):
        """Initializes the listing adapter."""
        super().__init__(client, timeout, retry_attempts)
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"

    def year_url(self, year: int) -> str:
        return f"{self.base_url}{year}/"

    @retry_on_network_error
    async def _execute_fetch(self, url: str) -> str:
        """Executes the raw HTTP GET request for one index page."""
        response = await self.client.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.text

    def _extract_references(
        self, page_url: str, markup: str
    ) -> List[ArchiveReference]:
        """Pulls every archive link out of an index page, in page order."""
        return [
            ArchiveReference(name=name, url=page_url + name)
            for name in _ARCHIVE_LINK.findall(markup)
        ]

    async def discover(
        self,
        file_limit: int = 1,
        start_year: int = 2005,
        end_year: Optional[int] = None,
    ) -> List[ArchiveReference]:
        """
        Lists archive references for every year in the range, inclusive.

        Pages are fetched one at a time; the remote index is known to serve
        broken pages under concurrent load.

        Args:
            file_limit: The maximum number of references to return.
            start_year: The first year to scan.
            end_year: The last year to scan. Defaults to the current year.

        Returns:
            References in year-ascending, within-page order, truncated to
            file_limit.

        Raises:
            ConfigurationError: If file_limit is negative.
            ListingError: If any index page cannot be fetched. No partial
                          result is returned.
        """

        if file_limit < 0:
            raise ConfigurationError(
                f"file_limit must be non-negative, got {file_limit}"
            )
        if end_year is None:
            end_year = datetime.date.today().year

        references: List[ArchiveReference] = []
        for year in range(start_year, end_year + 1):
            url = self.year_url(year)
            try:
                markup = await self._execute_fetch(url)
            except httpx.HTTPError as e:
                raise ListingError(f"Failed to fetch index page {url}: {e}") from e

            found = self._extract_references(url, markup)
            self.logger.info(
                f"Successfully fetched {url} ({len(found)} archives)."
            )
            references.extend(found)

        return references[:file_limit]
