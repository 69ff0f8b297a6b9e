"""Discord webhook notifications for newly ingested articles."""

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional

import httpx
import structlog

from ..config.feeds import DEFAULT_COLOR, get_feed_by_id
from ..config.settings import settings
from ..errors import NotificationError
from ..ingestion.interfaces import FeedDefinition
from ..ingestion.parser import format_timestamp
from ..storage.interfaces import Article

logger = structlog.get_logger()

NO_SUMMARY_TEXT = "No summary available"

# Discord rejects embeds whose title or description exceed these
MAX_TITLE_LENGTH = 256
MAX_DESCRIPTION_LENGTH = 4096


class DiscordNotifier:
    """Posts one embed per article to a Discord webhook."""

    def __init__(
        self,
        webhook_url: str = None,
        feeds: List[FeedDefinition] = None,
        delay_seconds: float = None,
        client: httpx.AsyncClient = None,
        sleep: Callable[[float], Awaitable[None]] = None,
    ):
        self.webhook_url = webhook_url if webhook_url is not None else settings.discord_webhook_url
        self.feeds = feeds
        self.delay_seconds = settings.notification_delay_seconds if delay_seconds is None else delay_seconds
        self._client = client
        self._sleep = sleep or asyncio.sleep

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    async def notify_article(self, article: Article) -> None:
        """Send a single notification; raises NotificationError on failure."""
        if not self.enabled:
            logger.info("discord_not_configured")
            return

        payload = self.build_payload(article)
        try:
            if self._client is not None:
                response = await self._client.post(self.webhook_url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=settings.fetch_timeout_seconds) as client:
                    response = await client.post(self.webhook_url, json=payload)
        except httpx.HTTPError as e:
            raise NotificationError(f"Discord webhook request failed: {e}") from e

        if response.is_error:
            raise NotificationError(
                f"Discord webhook failed: {response.status_code} {response.reason_phrase}"
            )

        logger.info(
            "discord_notification_sent",
            article_id=article.id,
            title=article.title[:80],
            feed=article.feed_source
        )

    async def notify_batch(self, articles: List[Article]) -> int:
        """Notify each article in turn, pacing requests.

        Per-article failures are logged and skipped. Returns the number of
        notifications delivered.
        """
        if not self.enabled:
            logger.info("discord_not_configured", skipped=len(articles))
            return 0

        sent = 0
        for i, article in enumerate(articles):
            try:
                await self.notify_article(article)
                sent += 1
            except NotificationError as e:
                logger.error(
                    "discord_notification_failed",
                    article_id=article.id,
                    title=article.title[:80],
                    feed=article.feed_source,
                    error=str(e)
                )
            if i < len(articles) - 1:
                await self._sleep(self.delay_seconds)

        return sent

    def build_payload(self, article: Article) -> dict:
        """Build the webhook body for an article."""
        feed = self._feed(article.feed_source)
        description = article.summary if article.summary else NO_SUMMARY_TEXT

        return {
            "embeds": [{
                "title": article.title[:MAX_TITLE_LENGTH],
                "description": description[:MAX_DESCRIPTION_LENGTH],
                "url": article.url,
                "color": feed.color if feed else DEFAULT_COLOR,
                "footer": {
                    "text": feed.display_name if feed else article.feed_source,
                },
                "timestamp": _valid_timestamp(article.published_date),
            }],
        }

    async def test_notification(self) -> bool:
        """Send a synthetic notification to verify the webhook."""
        if not self.enabled:
            logger.warning("discord_test_not_configured")
            return False

        now = format_timestamp(datetime.now(timezone.utc))
        test_article = Article(
            id=0,
            title="Test notification - Discord integration check",
            url="https://example.com/test",
            published_date=now,
            feed_source="test",
            summary="This is a test notification. If you can read this, the webhook works.",
        )
        try:
            await self.notify_article(test_article)
        except NotificationError as e:
            logger.error("discord_test_failed", error=str(e))
            return False
        return True

    def _feed(self, feed_id: str) -> Optional[FeedDefinition]:
        return get_feed_by_id(feed_id, self.feeds)


def _valid_timestamp(value: Optional[str]) -> str:
    """The article date if it parses, otherwise now."""
    if value:
        try:
            return format_timestamp(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            pass
    return format_timestamp(datetime.now(timezone.utc))
