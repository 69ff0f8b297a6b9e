"""Feed fetcher with async support, bounded concurrency, and retries."""

import asyncio
import time
from typing import Dict, List, Optional

import aiohttp
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential
import structlog

from .interfaces import FeedDefinition, FeedItem, FetcherInterface
from .parser import parse_feed
from ..config.settings import settings
from ..errors import FetchError

logger = structlog.get_logger()


class FeedFetcher(FetcherInterface):
    """Concurrent feed fetcher that isolates per-source failures."""

    def __init__(
        self,
        max_concurrency: int = None,
        max_retries: int = None,
        timeout_seconds: int = None,
    ):
        self.session: Optional[aiohttp.ClientSession] = None
        self.semaphore = asyncio.Semaphore(max_concurrency or settings.fetch_max_concurrency)
        self.max_retries = max_retries or settings.fetch_max_retries
        self.timeout_seconds = timeout_seconds or settings.fetch_timeout_seconds

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            headers={"User-Agent": settings.user_agent}
        )
        return self

    async def __aexit__(self, *args):
        if self.session:
            await self.session.close()
            self.session = None

    async def fetch_feed(self, source: FeedDefinition) -> List[FeedItem]:
        """Fetch and parse one feed.

        Raises FetchError on network/HTTP failure and ParseError on a
        malformed document. Only FetchError is retried.
        """
        async with self.semaphore:
            start_time = time.time()
            text = await self._download_with_retry(source)
            items = parse_feed(text, source.format)

            logger.info(
                "feed_fetched",
                feed=source.id,
                items=len(items),
                time_ms=int((time.time() - start_time) * 1000)
            )
            return items

    async def fetch_all(self, sources: List[FeedDefinition]) -> Dict[str, List[FeedItem]]:
        """Fetch every enabled source concurrently.

        Every input source id is a key in the result; disabled or failed
        sources map to an empty list.
        """
        if self.session is None:
            async with self:
                return await self.fetch_all(sources)

        results: Dict[str, List[FeedItem]] = {source.id: [] for source in sources}
        enabled = [s for s in sources if s.enabled]

        outcomes = await asyncio.gather(
            *(self.fetch_feed(source) for source in enabled),
            return_exceptions=True
        )

        for source, outcome in zip(enabled, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(
                    "feed_fetch_failed",
                    feed=source.id,
                    url=source.url,
                    error_type=type(outcome).__name__,
                    error=str(outcome)
                )
                continue
            results[source.id] = outcome

        logger.info(
            "all_feeds_fetched",
            feeds=len(enabled),
            total=sum(len(items) for items in results.values())
        )
        return results

    async def _download_with_retry(self, source: FeedDefinition) -> str:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(FetchError),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._download(source)

    async def _download(self, source: FeedDefinition) -> str:
        try:
            async with self.session.get(source.url) as response:
                if response.status >= 400:
                    raise FetchError(
                        f"HTTP {response.status}: {response.reason}",
                        source_id=source.id
                    )
                return await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError(f"Failed to fetch {source.url}: {e}", source_id=source.id) from e
