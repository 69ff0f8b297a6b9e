"""Unit tests for Discord notifications."""

import json

import httpx
import pytest
from unittest.mock import AsyncMock

from feed_digest.config.feeds import DEFAULT_COLOR
from feed_digest.errors import NotificationError
from feed_digest.notifications.discord import NO_SUMMARY_TEXT, DiscordNotifier
from feed_digest.storage.interfaces import Article

WEBHOOK = "https://discord.com/api/webhooks/1/abc"


def make_article(article_id=1, summary="Short summary", feed_source="aws", published="2024-01-01T10:00:00.000Z"):
    return Article(
        id=article_id,
        title=f"Article {article_id}",
        url=f"https://aws.amazon.com/{article_id}",
        published_date=published,
        feed_source=feed_source,
        summary=summary,
    )


def make_notifier(handler, feeds, webhook_url=WEBHOOK):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return DiscordNotifier(
        webhook_url=webhook_url, feeds=feeds, delay_seconds=0.5, client=client, sleep=AsyncMock(),
    )


class TestBuildPayload:
    """Tests for the webhook body."""

    def test_embed_fields(self, aws_feed):
        notifier = DiscordNotifier(webhook_url=WEBHOOK, feeds=[aws_feed])

        embed = notifier.build_payload(make_article())["embeds"][0]

        assert embed["title"] == "Article 1"
        assert embed["description"] == "Short summary"
        assert embed["url"] == "https://aws.amazon.com/1"
        assert embed["color"] == 0x3498DB
        assert embed["footer"] == {"text": "AWS News"}
        assert embed["timestamp"] == "2024-01-01T10:00:00.000Z"

    def test_long_text_truncated(self, aws_feed):
        """Title and description are cut to Discord's embed limits."""
        notifier = DiscordNotifier(webhook_url=WEBHOOK, feeds=[aws_feed])
        article = make_article(summary="s" * 5000)
        article.title = "t" * 300

        embed = notifier.build_payload(article)["embeds"][0]

        assert embed["title"] == "t" * 256
        assert len(embed["description"]) == 4096

    def test_missing_summary(self, aws_feed):
        notifier = DiscordNotifier(webhook_url=WEBHOOK, feeds=[aws_feed])
        embed = notifier.build_payload(make_article(summary=None))["embeds"][0]
        assert embed["description"] == NO_SUMMARY_TEXT

    def test_unknown_source_defaults(self, aws_feed):
        notifier = DiscordNotifier(webhook_url=WEBHOOK, feeds=[aws_feed])
        embed = notifier.build_payload(make_article(feed_source="mystery"))["embeds"][0]

        assert embed["color"] == DEFAULT_COLOR
        assert embed["footer"]["text"] == "mystery"

    def test_invalid_date_replaced(self, aws_feed):
        notifier = DiscordNotifier(webhook_url=WEBHOOK, feeds=[aws_feed])
        embed = notifier.build_payload(make_article(published="yesterday"))["embeds"][0]
        assert embed["timestamp"].endswith("Z")
        assert embed["timestamp"] != "yesterday"


class TestNotifyArticle:
    """Tests for single deliveries."""

    @pytest.mark.asyncio
    async def test_posts_payload(self, aws_feed):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(204)

        notifier = make_notifier(handler, [aws_feed])
        await notifier.notify_article(make_article())

        assert len(requests) == 1
        assert str(requests[0].url) == WEBHOOK
        assert json.loads(requests[0].content)["embeds"][0]["title"] == "Article 1"

    @pytest.mark.asyncio
    async def test_http_error_status(self, aws_feed):
        notifier = make_notifier(lambda request: httpx.Response(429), [aws_feed])

        with pytest.raises(NotificationError) as exc:
            await notifier.notify_article(make_article())

        assert "429" in str(exc.value)

    @pytest.mark.asyncio
    async def test_transport_error(self, aws_feed):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        notifier = make_notifier(handler, [aws_feed])

        with pytest.raises(NotificationError):
            await notifier.notify_article(make_article())


class TestNotifyBatch:
    """Tests for paced batch delivery."""

    @pytest.mark.asyncio
    async def test_failures_are_isolated(self, aws_feed):
        """The second article fails, the first and third are still sent."""
        def handler(request):
            title = json.loads(request.content)["embeds"][0]["title"]
            return httpx.Response(500 if title == "Article 2" else 204)

        notifier = make_notifier(handler, [aws_feed])
        articles = [make_article(i) for i in (1, 2, 3)]

        sent = await notifier.notify_batch(articles)

        assert sent == 2

    @pytest.mark.asyncio
    async def test_paces_between_items_only(self, aws_feed):
        notifier = make_notifier(lambda request: httpx.Response(204), [aws_feed])

        await notifier.notify_batch([make_article(i) for i in (1, 2, 3)])

        assert [call.args[0] for call in notifier._sleep.await_args_list] == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_empty_batch(self, aws_feed):
        notifier = make_notifier(lambda request: httpx.Response(204), [aws_feed])
        assert await notifier.notify_batch([]) == 0
        notifier._sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disabled_without_webhook(self, aws_feed):
        notifier = make_notifier(lambda request: httpx.Response(204), [aws_feed], webhook_url="")

        assert notifier.enabled is False
        assert await notifier.notify_batch([make_article()]) == 0

    @pytest.mark.asyncio
    async def test_test_notification(self, aws_feed):
        notifier = make_notifier(lambda request: httpx.Response(204), [aws_feed])
        assert await notifier.test_notification() is True

        failing = make_notifier(lambda request: httpx.Response(404), [aws_feed])
        assert await failing.test_notification() is False

        disabled = make_notifier(lambda request: httpx.Response(204), [aws_feed], webhook_url="")
        assert await disabled.test_notification() is False
