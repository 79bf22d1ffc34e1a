"""
Collection aggregation over paginated Web API collections

Spotify returns large collections (liked songs, playlists, playlist tracks) one page
at a time, each page pointing at the next through an absolute URL. This module turns
"fetch one page" into "the whole collection":

- `iter_pages` is a lazy, finite async generator over the pages of one collection
- `collect_all` drains it eagerly into one ordered list

Both take the page fetcher as a plain coroutine function
``fetch(url, params) -> PageResult`` (normally `SpotifyClient.fetch_page`), so the
aggregation logic has no knowledge of HTTP.

Guarantees:
    - Server page order and within-page order are preserved
    - No deduplication or filtering happens here
    - Page count and page sizes are never assumed; only the first request carries
      the caller's parameters, every later request is the server's pointer verbatim
    - A failing page fails the whole aggregation; no partial list is returned
"""

from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

from ..spotify.models import PageResult
from ..utils.logger import get_logger

PageFetcher = Callable[[str, Optional[Dict[str, str]]], Awaitable[PageResult]]

logger = get_logger(__name__)


async def iter_pages(
    fetch: PageFetcher,
    url: str,
    params: Optional[Dict[str, str]] = None
) -> AsyncIterator[PageResult]:
    """
    Iterate over every page of a collection

    Args:
        fetch: Coroutine function performing one authenticated page request
        url: Collection endpoint for the first page
        params: Query parameters for the first page only (e.g. ``limit``)

    Yields:
        PageResult objects in server order, stopping after the page without a next pointer
    """
    next_url: Optional[str] = url
    next_params = params
    page_number = 0

    while next_url:
        page = await fetch(next_url, next_params)
        page_number += 1
        logger.debug(f"Fetched page {page_number} of {url}: {len(page.items)} items")

        yield page

        next_url = page.next or None
        next_params = None


async def collect_all(
    fetch: PageFetcher,
    url: str,
    params: Optional[Dict[str, str]] = None
) -> List[Any]:
    """
    Fetch a complete collection into one ordered list

    Args:
        fetch: Coroutine function performing one authenticated page request
        url: Collection endpoint
        params: Query parameters for the first page only

    Returns:
        Concatenation of every page's items

    Raises:
        Whatever ``fetch`` raises for any page; nothing collected so far is returned
    """
    items: List[Any] = []

    async for page in iter_pages(fetch, url, params):
        items.extend(page.items)

    logger.debug(f"Collected {len(items)} items from {url}")
    return items
