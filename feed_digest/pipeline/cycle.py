"""Ingestion cycle orchestration: fetch → dedup → summarize → persist → notify."""

import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional

import structlog

from .models import CycleReport, ItemResult, ItemStatus, ProcessingOutcome
from ..config.feeds import get_feeds
from ..config.settings import settings
from ..errors import FeedDigestError, PersistenceError, SummarizationError
from ..ingestion.fetcher import FeedFetcher
from ..ingestion.interfaces import FeedDefinition, FeedItem, FetcherInterface
from ..notifications.discord import DiscordNotifier
from ..storage.interfaces import Article, NewArticle, StorageInterface
from ..summarization.interfaces import SummarizerInterface
from ..summarization.summarizer import Summarizer

logger = structlog.get_logger()


class IngestionPipeline:
    """One end-to-end ingestion run over every configured feed."""

    def __init__(
        self,
        storage: StorageInterface = None,
        fetcher: FetcherInterface = None,
        summarizer: SummarizerInterface = None,
        notifier: DiscordNotifier = None,
        feeds: List[FeedDefinition] = None,
        item_concurrency: int = None,
    ):
        if storage is None:
            from ..storage.factory import get_article_storage
            storage = get_article_storage()

        self.storage = storage
        self.fetcher = fetcher or FeedFetcher()
        self.summarizer = summarizer or Summarizer()
        self.notifier = notifier or DiscordNotifier(feeds=feeds)
        self.feeds = list(feeds) if feeds is not None else list(get_feeds())
        self.item_concurrency = max(1, item_concurrency or settings.item_concurrency)

    async def run(self) -> CycleReport:
        """Run one ingestion cycle.

        Only a failure of the fetch-all step propagates; every per-item and
        notification failure is logged and counted.
        """
        report = CycleReport()
        logger.info("ingestion_cycle_started", feeds=len(self.feeds))

        try:
            fetched = await self.fetcher.fetch_all(self.feeds)
        except Exception as e:
            logger.error("ingestion_cycle_failed", error_type=type(e).__name__, error=str(e))
            raise

        for source_id, items in fetched.items():
            report.source(source_id).fetched = len(items)
            for result in await self._process_source(source_id, items):
                report.record(result)

        if report.new_articles:
            report.notified = await self._notify(report.new_articles)

        report.finish()
        logger.info("ingestion_cycle_completed", **report.to_dict())
        return report

    async def process_item(self, item: FeedItem, source_id: str) -> ProcessingOutcome:
        """Dedup, summarize, and persist one item.

        Raises PersistenceError when the lookup or the write fails.
        """
        if self.storage.get_by_url(item.url) is not None:
            return ProcessingOutcome(is_new=False)

        summary = await self._summarize(item)

        new_article = NewArticle(
            title=item.title,
            url=item.url,
            published_date=item.published_date,
            feed_source=source_id,
            original_content=item.content,
            summary=summary,
            date_was_fallback=item.date_was_fallback,
        )
        article_id = self.storage.save_article(new_article)

        now = datetime.now(timezone.utc)
        saved = Article(
            id=article_id,
            title=new_article.title,
            url=new_article.url,
            published_date=new_article.published_date,
            feed_source=source_id,
            original_content=new_article.original_content,
            summary=summary,
            date_was_fallback=new_article.date_was_fallback,
            created_at=now,
            updated_at=now,
        )
        return ProcessingOutcome(is_new=True, saved_article=saved)

    async def backfill_summaries(self, limit: int = 50) -> int:
        """Summarize stored articles that were saved without a summary."""
        updated = 0
        for article in self.storage.get_articles_missing_summary(limit=limit):
            try:
                response = await self.summarizer.summarize(article.title, article.original_content or "")
                self.storage.update_summary(article.id, response.summary)
                updated += 1
            except (SummarizationError, PersistenceError) as e:
                logger.warning("summary_backfill_failed", url=article.url, error=str(e))

        logger.info("summary_backfill_completed", updated=updated)
        return updated

    def prune(self, days_to_keep: int = None) -> int:
        """Delete articles older than the retention window."""
        return self.storage.delete_old_articles(days_to_keep or settings.article_retention_days)

    async def _process_source(self, source_id: str, items: List[FeedItem]) -> List[ItemResult]:
        if self.item_concurrency == 1:
            return [await self._ingest_item(item, source_id) for item in items]

        # Results come back in feed order, so counters and logs stay reproducible
        semaphore = asyncio.Semaphore(self.item_concurrency)

        async def bounded(item: FeedItem) -> ItemResult:
            async with semaphore:
                return await self._ingest_item(item, source_id)

        return list(await asyncio.gather(*(bounded(item) for item in items)))

    async def _ingest_item(self, item: FeedItem, source_id: str) -> ItemResult:
        try:
            outcome = await self.process_item(item, source_id)
        except Exception as e:
            log = logger.error if isinstance(e, FeedDigestError) else logger.exception
            log("article_processing_failed", feed=source_id, url=item.url, error=str(e))
            return ItemResult(source_id=source_id, url=item.url, status=ItemStatus.FAILED, error=str(e))

        if not outcome.is_new:
            status = ItemStatus.SKIPPED_EXISTING
        elif outcome.saved_article.summary:
            status = ItemStatus.SAVED_WITH_SUMMARY
        else:
            status = ItemStatus.SAVED_WITHOUT_SUMMARY
        return ItemResult(source_id=source_id, url=item.url, status=status, outcome=outcome)

    async def _summarize(self, item: FeedItem) -> Optional[str]:
        if not (item.title or item.content):
            return None
        try:
            response = await self.summarizer.summarize(item.title, item.content)
            return response.summary
        except SummarizationError as e:
            logger.warning("summary_failed", url=item.url, attempts=e.attempts, error=str(e))
            return None

    async def _notify(self, articles: List[Article]) -> int:
        try:
            sent = await self.notifier.notify_batch(articles)
            logger.info("notifications_sent", sent=sent, articles=len(articles))
            return sent
        except Exception as e:
            logger.error("notifications_failed", articles=len(articles), error=str(e))
            return 0


async def run_ingestion_cycle(
    storage: StorageInterface = None,
    feeds: List[FeedDefinition] = None,
) -> CycleReport:
    """Run one ingestion cycle; the single entry point for every trigger."""
    pipeline = IngestionPipeline(storage=storage, feeds=feeds)
    return await pipeline.run()


def summarize_sources(report: CycleReport) -> Dict[str, int]:
    """New-article counts per source, for trigger responses."""
    return {source_id: stats.new for source_id, stats in report.sources.items()}
