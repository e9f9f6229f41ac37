"""Media Fetcher

Fetches attachment binaries by URL over HTTP, the same way a browser would
load them from the blob store.
"""

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class MediaFetchError(Exception):
    """Raised when a media URL cannot be fetched"""


class MediaFetcher:
    """Thin httpx wrapper returning the full body of a media URL"""

    def __init__(
        self,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.timeout = timeout
        self.transport = transport

    async def fetch(self, url: str) -> bytes:
        """
        Download a media URL

        Raises:
            MediaFetchError: On transport errors or non-2xx responses
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self.transport,
                follow_redirects=True
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise MediaFetchError(f"HTTP {e.response.status_code} for {url}") from e
        except httpx.HTTPError as e:
            raise MediaFetchError(f"Failed to fetch {url}: {e}") from e

        logger.debug(f"Fetched {len(response.content)} bytes from {url}")
        return response.content
