"""HTTP trigger surface: article listing, manual cycle trigger, health."""

import secrets
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import Depends, FastAPI, Header, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config.settings import settings
from ..errors import PersistenceError
from ..notifications.discord import DiscordNotifier
from ..pipeline.cycle import run_ingestion_cycle, summarize_sources
from ..storage.factory import get_article_storage

logger = structlog.get_logger()

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20
LOG_LEVELS = {"info", "warning", "error"}


def get_storage():
    return get_article_storage()


def get_notifier() -> DiscordNotifier:
    return DiscordNotifier()


def get_cycle_runner():
    """The coroutine function a manual trigger invokes."""
    return run_ingestion_cycle


def _token_matches(authorization: Optional[str], token: str) -> bool:
    """Constant-time comparison of the Authorization header with the admin token."""
    expected = f"Bearer {token}".encode("utf-8")
    return secrets.compare_digest((authorization or "").encode("utf-8"), expected)


def create_app() -> FastAPI:
    app = FastAPI(title="Feed Digest", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400,
    )

    @app.get("/api/health")
    async def health_check(storage=Depends(get_storage)):
        """Health check endpoint for load balancers."""
        try:
            return {
                "status": "healthy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "version": __version__,
                "articles": storage.count(),
            }
        except PersistenceError as e:
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "error": str(e)}
            )

    @app.get("/api/articles")
    async def list_articles(
        page: int = Query(1),
        limit: int = Query(DEFAULT_PAGE_SIZE),
        source: str = Query("all"),
        storage=Depends(get_storage),
    ):
        """Paginated article listing, newest first."""
        if page < 1:
            page = 1
        if limit < 1 or limit > MAX_PAGE_SIZE:
            limit = DEFAULT_PAGE_SIZE

        try:
            result = storage.get_articles(source=source, page=page, limit=limit)
        except PersistenceError as e:
            logger.error("api_articles_failed", error=str(e))
            return JSONResponse(
                status_code=500,
                content={"error": "Internal server error", "message": str(e)}
            )

        logger.info("api_articles_request", page=page, limit=limit, source=source, total=result.total)
        return result.to_dict()

    @app.post("/api/cron/update-feeds")
    async def trigger_cycle(
        authorization: Optional[str] = Header(None),
        storage=Depends(get_storage),
        run_cycle=Depends(get_cycle_runner),
    ):
        """Run one ingestion cycle on demand."""
        if settings.admin_token and not _token_matches(authorization, settings.admin_token):
            return JSONResponse(status_code=401, content={"success": False, "error": "Unauthorized"})

        logger.info("manual_trigger_requested")
        try:
            report = await run_cycle(storage=storage)
        except Exception as e:
            logger.error("manual_trigger_failed", error=str(e))
            return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

        return {
            "success": True,
            "message": "Feeds updated successfully",
            "report": report.to_dict(),
            "new_by_source": summarize_sources(report),
        }

    @app.post("/api/discord/test")
    async def discord_test(notifier: DiscordNotifier = Depends(get_notifier)):
        """Send a synthetic notification to the configured webhook."""
        ok = await notifier.test_notification()
        return JSONResponse(
            status_code=200 if ok else 500,
            content={
                "success": ok,
                "message": "Discord test notification sent successfully" if ok
                else "Discord test notification failed",
            }
        )

    @app.get("/api/logs")
    async def list_logs(
        page: int = Query(1),
        limit: int = Query(10),
        level: Optional[str] = Query(None),
        storage=Depends(get_storage),
    ):
        """Recent persisted log entries."""
        if level is not None and level not in LOG_LEVELS:
            return JSONResponse(status_code=400, content={"error": f"Unknown level: {level}"})
        limit = min(max(limit, 1), MAX_PAGE_SIZE)

        entries = storage.get_logs(page=max(page, 1), limit=limit, level=level)
        return {"data": [e.to_dict() for e in entries], "page": max(page, 1), "limit": limit}

    return app


app = create_app()
