"""Integration tests for the ingestion cycle."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from feed_digest.errors import FetchError, PersistenceError, SummarizationError
from feed_digest.ingestion.interfaces import FeedItem
from feed_digest.pipeline.cycle import IngestionPipeline, summarize_sources
from feed_digest.pipeline.models import ItemStatus
from feed_digest.summarization.interfaces import SummaryResponse


def make_item(n, source="aws"):
    return FeedItem(
        title=f"{source} post {n}",
        url=f"https://{source}.example/{n}",
        published_date=f"2024-01-0{n}T10:00:00.000Z",
        content=f"Body of post {n}",
    )


@pytest.fixture
def summarizer():
    mock = AsyncMock()
    mock.summarize = AsyncMock(side_effect=lambda title, content: SummaryResponse(summary=f"Summary of {title}"))
    return mock


@pytest.fixture
def notifier():
    mock = AsyncMock()
    mock.notify_batch = AsyncMock(side_effect=lambda articles: len(articles))
    return mock


@pytest.fixture
def make_pipeline(storage, summarizer, notifier, static_fetcher, aws_feed, fowler_feed):
    def factory(items_by_source, **kwargs):
        kwargs.setdefault("storage", storage)
        return IngestionPipeline(
            fetcher=static_fetcher(items_by_source),
            summarizer=summarizer,
            notifier=notifier,
            feeds=[aws_feed, fowler_feed],
            **kwargs,
        )
    return factory


class TestIngestionCycle:
    """End-to-end cycle behaviour against a real database."""

    @pytest.mark.asyncio
    async def test_new_items_saved_and_notified(self, make_pipeline, storage, notifier):
        pipeline = make_pipeline({
            "aws": [make_item(1), make_item(2)],
            "martinfowler": [make_item(1, "martinfowler")],
        })

        report = await pipeline.run()

        assert report.processed_count == 3
        assert report.new_articles_count == 3
        assert report.error_count == 0
        assert report.notified == 3
        assert storage.count() == 3

        saved = storage.get_by_url("https://aws.example/1")
        assert saved.summary == "Summary of aws post 1"
        assert saved.feed_source == "aws"

        notified = notifier.notify_batch.await_args.args[0]
        assert [a.url for a in notified] == [
            "https://aws.example/1", "https://aws.example/2", "https://martinfowler.example/1",
        ]

    @pytest.mark.asyncio
    async def test_second_run_is_deduplicated(self, make_pipeline, storage, summarizer, notifier):
        """Re-running with the same feed content adds nothing."""
        items = {"aws": [make_item(1), make_item(2)]}
        await make_pipeline(items).run()
        summarizer.summarize.reset_mock()
        notifier.notify_batch.reset_mock()

        report = await make_pipeline(items).run()

        assert report.processed_count == 2
        assert report.new_articles_count == 0
        assert storage.count() == 2
        summarizer.summarize.assert_not_awaited()
        notifier.notify_batch.assert_not_awaited()
        assert all(r.status == ItemStatus.SKIPPED_EXISTING for r in report.results)

    @pytest.mark.asyncio
    async def test_existing_url_not_summarized_or_saved(self, make_pipeline, summarizer):
        storage = MagicMock()
        storage.get_by_url.return_value = MagicMock()
        pipeline = make_pipeline({"aws": [make_item(1)]}, storage=storage)

        report = await pipeline.run()

        assert report.processed_count == 1
        summarizer.summarize.assert_not_awaited()
        storage.save_article.assert_not_called()

    @pytest.mark.asyncio
    async def test_summary_failure_still_saves(self, make_pipeline, storage, summarizer):
        summarizer.summarize.side_effect = SummarizationError("failed to generate summary after 3 attempts: 503", attempts=3)

        report = await make_pipeline({"aws": [make_item(1)]}).run()

        assert report.new_articles_count == 1
        assert report.error_count == 0
        assert report.results[0].status == ItemStatus.SAVED_WITHOUT_SUMMARY
        assert storage.get_by_url("https://aws.example/1").summary is None

    @pytest.mark.asyncio
    async def test_empty_item_skips_summarizer(self, make_pipeline, storage, summarizer):
        blank = FeedItem(url="https://aws.example/blank", published_date="2024-01-01T00:00:00.000Z")

        await make_pipeline({"aws": [blank]}).run()

        summarizer.summarize.assert_not_awaited()
        assert storage.get_by_url("https://aws.example/blank") is not None

    @pytest.mark.asyncio
    async def test_persistence_failure_isolated(self, make_pipeline, storage, notifier):
        """A failing write counts as an error; the rest of the cycle continues."""
        original_save = storage.save_article

        def flaky_save(article):
            if article.url.endswith("/2"):
                raise PersistenceError("database is locked")
            return original_save(article)

        storage.save_article = flaky_save

        report = await make_pipeline({"aws": [make_item(1), make_item(2), make_item(3)]}).run()

        assert report.error_count == 1
        assert report.new_articles_count == 2
        assert report.sources["aws"].errors == 1
        assert [r.status for r in report.results] == [
            ItemStatus.SAVED_WITH_SUMMARY, ItemStatus.FAILED, ItemStatus.SAVED_WITH_SUMMARY,
        ]
        assert "database is locked" in report.results[1].error
        assert len(notifier.notify_batch.await_args.args[0]) == 2

    @pytest.mark.asyncio
    async def test_unexpected_error_isolated(self, make_pipeline, summarizer):
        summarizer.summarize.side_effect = [KeyError("boom"), SummaryResponse(summary="ok")]

        report = await make_pipeline({"aws": [make_item(1), make_item(2)]}).run()

        assert report.error_count == 1
        assert report.new_articles_count == 1

    @pytest.mark.asyncio
    async def test_duplicate_urls_within_one_feed(self, make_pipeline, storage):
        report = await make_pipeline({"aws": [make_item(1), make_item(1)]}).run()

        assert report.new_articles_count == 1
        assert report.results[1].status == ItemStatus.SKIPPED_EXISTING
        assert storage.count() == 1

    @pytest.mark.asyncio
    async def test_failed_source_yields_empty(self, make_pipeline, storage):
        """A source the fetcher could not read contributes nothing."""
        report = await make_pipeline({"martinfowler": [make_item(1, "martinfowler")]}).run()

        assert report.sources["aws"].fetched == 0
        assert report.sources["martinfowler"].new == 1
        assert summarize_sources(report) == {"aws": 0, "martinfowler": 1}

    @pytest.mark.asyncio
    async def test_fetch_all_failure_propagates(self, storage, summarizer, notifier, aws_feed):
        fetcher = AsyncMock()
        fetcher.fetch_all.side_effect = FetchError("resolver down")
        pipeline = IngestionPipeline(
            storage=storage, fetcher=fetcher, summarizer=summarizer, notifier=notifier, feeds=[aws_feed],
        )

        with pytest.raises(FetchError):
            await pipeline.run()

        assert storage.count() == 0
        notifier.notify_batch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_fail_cycle(self, make_pipeline, storage, notifier):
        notifier.notify_batch.side_effect = RuntimeError("webhook exploded")

        report = await make_pipeline({"aws": [make_item(1)]}).run()

        assert report.notified == 0
        assert report.new_articles_count == 1
        assert storage.count() == 1

    @pytest.mark.asyncio
    async def test_no_new_articles_no_notification(self, make_pipeline, notifier):
        report = await make_pipeline({}).run()

        assert report.processed_count == 0
        notifier.notify_batch.assert_not_awaited()
        assert report.finished_at is not None

    @pytest.mark.asyncio
    async def test_concurrent_items_keep_feed_order(self, make_pipeline, storage):
        items = [make_item(n) for n in range(1, 6)]

        report = await make_pipeline({"aws": items}, item_concurrency=3).run()

        assert report.new_articles_count == 5
        assert [a.url for a in report.new_articles] == [i.url for i in items]
        assert storage.count() == 5

    @pytest.mark.asyncio
    async def test_reports_are_independent(self, make_pipeline):
        first = await make_pipeline({"aws": [make_item(1)]}).run()
        second = await make_pipeline({"aws": [make_item(2)]}).run()

        assert first.new_articles_count == 1
        assert second.new_articles_count == 1
        assert first.new_articles[0].url != second.new_articles[0].url


class TestMaintenance:
    """Tests for backfill and retention."""

    @pytest.mark.asyncio
    async def test_backfill_summaries(self, make_pipeline, storage, summarizer):
        summarizer.summarize.side_effect = SummarizationError("down")
        await make_pipeline({"aws": [make_item(1), make_item(2)]}).run()
        assert len(storage.get_articles_missing_summary()) == 2

        summarizer.summarize.side_effect = lambda title, content: SummaryResponse(summary="late")
        updated = await make_pipeline({}).backfill_summaries()

        assert updated == 2
        assert storage.get_by_url("https://aws.example/1").summary == "late"

    def test_prune_delegates(self, make_pipeline):
        storage = MagicMock()
        storage.delete_old_articles.return_value = 4

        assert make_pipeline({}, storage=storage).prune(days_to_keep=30) == 4
        storage.delete_old_articles.assert_called_once_with(30)
