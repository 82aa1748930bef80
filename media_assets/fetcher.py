"""
Remote byte stream fetching over HTTP.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from media_assets.config import AssetConfig, get_config
from media_assets.errors import FetchFailure

logger = logging.getLogger(__name__)


@dataclass
class FetchedBytes:
    """A fetched remote byte stream."""

    data: bytes
    content_type: Optional[str]


class RemoteFetcher:
    """Fetches remote asset bytes. Failures are raised, never retried."""

    def __init__(
        self,
        config: Optional[AssetConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the fetcher.

        Args:
            config: Asset configuration. If None, uses default config.
            transport: Optional httpx transport (used to stub the network)
        """
        self.config = config or get_config()
        self.transport = transport
        self.logger = logging.getLogger(__name__)

    async def fetch(self, locator: str) -> FetchedBytes:
        """
        Fetch the byte stream at a locator.

        Args:
            locator: Network address of the asset

        Returns:
            FetchedBytes with the body and its content type

        Raises:
            FetchFailure: On transport errors or non-2xx responses
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.config.fetch_timeout_seconds,
                transport=self.transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(locator)
        except httpx.HTTPError as e:
            self.logger.error(f"Request error fetching {locator}: {e}")
            raise FetchFailure(f"Failed to fetch {locator}: {e}", locator) from e

        if not response.is_success:
            self.logger.error(f"Failed to fetch {locator}: HTTP {response.status_code}")
            raise FetchFailure(
                f"Failed to fetch {locator}: HTTP {response.status_code}", locator
            )

        content_type = response.headers.get("content-type")
        if content_type:
            content_type = content_type.split(";")[0].strip()

        self.logger.info(f"Fetched {locator} ({len(response.content)} bytes)")
        return FetchedBytes(data=response.content, content_type=content_type or None)
