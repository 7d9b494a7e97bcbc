"""HTTP trigger endpoints for the ingestion pipeline.

Two independent bearer credentials guard different capabilities:
``CRON_SECRET`` only opens the scheduled trigger, ``INGEST_API_KEY`` opens
the preview, admin commit, keyword and scheduler endpoints.
"""

import asyncio
import logging
import secrets
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse

from peoples_thread.config import Settings, settings as default_settings
from peoples_thread.models import IngestionResult, utc_now
from peoples_thread.pipeline import IngestionPipeline
from peoples_thread.processing import load_keywords, save_keywords
from peoples_thread.scheduler import IngestionScheduler, get_scheduler
from peoples_thread.storage import ArticleDatabase

logger = logging.getLogger(__name__)


class Unauthorized(Exception):
    """Missing or wrong bearer credential."""


class BadRequest(Exception):
    """Malformed request body."""


def _timestamp() -> str:
    return utc_now().isoformat()


def bearer_matches(authorization: str | None, secret: str | None) -> bool:
    """Check an Authorization header against a configured secret.

    An unset secret never matches, so an unconfigured trigger stays closed.
    """
    if not secret or not authorization:
        return False
    return secrets.compare_digest(authorization.encode(), f"Bearer {secret}".encode())


def commit_response(result: IngestionResult) -> JSONResponse:
    """Map a commit result to the trigger response."""
    body = {
        "success": result.success,
        "message": result.message,
        "timestamp": _timestamp(),
        "details": {
            "articlesProcessed": result.articles_processed,
            "articlesCreated": result.articles_created,
            "duplicatesSkipped": result.duplicates_skipped,
            "errors": result.errors,
        },
    }
    return JSONResponse(body, status_code=200 if result.success else 500)


def preview_response(result: IngestionResult) -> JSONResponse:
    """Map a preview result to the trigger response, without article bodies."""
    if not result.success:
        return JSONResponse(
            {
                "success": False,
                "error": result.message,
                "details": "; ".join(result.errors),
                "timestamp": _timestamp(),
            },
            status_code=500,
        )
    return JSONResponse(
        {
            "success": True,
            "message": result.message,
            "articles": [
                {
                    "title": item.title,
                    "url": item.url,
                    "summary": item.summary,
                    "publishedDate": item.published_date.isoformat(),
                    "contentLength": item.content_length,
                }
                for item in result.items
            ],
            "timestamp": _timestamp(),
        }
    )


async def _json_body(request: Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError as e:
        raise BadRequest("Request body must be valid JSON") from e
    if not isinstance(payload, dict):
        raise BadRequest("Request body must be a JSON object")
    return payload


def _string_list(payload: dict[str, Any], key: str) -> list[str]:
    value = payload.get(key)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise BadRequest(f"{key.capitalize()} must be an array of strings")
    return value


def create_app(
    app_settings: Settings | None = None,
    pipeline: IngestionPipeline | None = None,
    scheduler: IngestionScheduler | None = None,
    store: ArticleDatabase | None = None,
) -> FastAPI:
    """Build the trigger API.

    Raises:
        ValueError: Both credentials are configured with the same value
    """
    cfg = app_settings or default_settings
    if cfg.cron_secret and cfg.cron_secret == cfg.ingest_api_key:
        raise ValueError("CRON_SECRET and INGEST_API_KEY must be different secrets")
    if not cfg.cron_secret:
        logger.warning("CRON_SECRET is not set; the cron trigger will reject every request")
    if not cfg.ingest_api_key:
        logger.warning("INGEST_API_KEY is not set; API-key endpoints will reject every request")

    if store is None:
        store = pipeline.store if pipeline is not None else ArticleDatabase(cfg.db_path)
    if pipeline is None:
        pipeline = IngestionPipeline.from_settings(cfg, store=store)
    if scheduler is None:
        scheduler = get_scheduler(pipeline.commit)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if cfg.scheduler_autostart:
            scheduler.initialize()
        yield
        scheduler.stop()

    app = FastAPI(title="Peoples Thread ingestion", lifespan=lifespan)
    app.state.settings = cfg
    app.state.pipeline = pipeline
    app.state.scheduler = scheduler
    app.state.store = store

    def require_cron_secret(authorization: str | None = Header(default=None)) -> None:
        if not bearer_matches(authorization, cfg.cron_secret):
            raise Unauthorized()

    def require_api_key(authorization: str | None = Header(default=None)) -> None:
        if not bearer_matches(authorization, cfg.ingest_api_key):
            raise Unauthorized()

    @app.exception_handler(Unauthorized)
    async def unauthorized_handler(request: Request, exc: Unauthorized) -> JSONResponse:
        logger.warning(f"Rejected unauthenticated request to {request.url.path}")
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    @app.exception_handler(BadRequest)
    async def bad_request_handler(request: Request, exc: BadRequest) -> JSONResponse:
        return JSONResponse({"error": str(exc)}, status_code=400)

    @app.exception_handler(Exception)
    async def error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled error on {request.url.path}: {exc}")
        return JSONResponse(
            {"error": "Request failed", "details": str(exc), "timestamp": _timestamp()},
            status_code=500,
        )

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "scheduler": scheduler.state.value, "timestamp": _timestamp()}

    @app.get("/api/cron/ingest", dependencies=[Depends(require_cron_secret)])
    async def cron_ingest() -> JSONResponse:
        logger.info("Cron job triggered: feed ingestion")
        return commit_response(await pipeline.commit())

    @app.post("/api/ingest/commit", dependencies=[Depends(require_api_key)])
    async def admin_ingest() -> JSONResponse:
        logger.info("Admin triggered feed ingestion")
        return commit_response(await pipeline.commit())

    @app.post("/api/ingest/preview", dependencies=[Depends(require_api_key)])
    async def preview_ingest() -> JSONResponse:
        logger.info("Fetching feed articles for preview")
        return preview_response(await pipeline.preview())

    @app.post("/api/ingest/check-existing", dependencies=[Depends(require_api_key)])
    async def check_existing(request: Request) -> dict:
        urls = _string_list(await _json_body(request), "urls")
        existing = await asyncio.to_thread(store.find_by_source_urls, urls)
        return {
            "success": True,
            "urlStatus": [
                {
                    "url": url,
                    "hasResponse": url in existing,
                    "responseArticle": {
                        "slug": existing[url].slug,
                        "title": existing[url].title,
                        "sourceTitle": existing[url].source_title,
                    }
                    if url in existing
                    else None,
                }
                for url in urls
            ],
            "totalChecked": len(urls),
            "existingResponses": len(existing),
        }

    @app.get("/api/keywords", dependencies=[Depends(require_api_key)])
    async def get_keywords() -> dict:
        keywords = await asyncio.to_thread(load_keywords, cfg.keywords_path)
        return {"success": True, "keywords": keywords, "count": len(keywords)}

    def _add_keywords(new: list[str]) -> list[str]:
        return save_keywords(load_keywords(cfg.keywords_path) + new, cfg.keywords_path)

    def _remove_keywords(removed: set[str]) -> list[str]:
        current = load_keywords(cfg.keywords_path)
        return save_keywords([k for k in current if k not in removed], cfg.keywords_path)

    @app.post("/api/keywords", dependencies=[Depends(require_api_key)])
    async def add_keywords(request: Request) -> dict:
        new = _string_list(await _json_body(request), "keywords")
        keywords = await asyncio.to_thread(_add_keywords, new)
        return {"success": True, "keywords": keywords, "count": len(keywords)}

    @app.delete("/api/keywords", dependencies=[Depends(require_api_key)])
    async def remove_keywords(request: Request) -> dict:
        removed = {k.strip().lower() for k in _string_list(await _json_body(request), "keywords")}
        keywords = await asyncio.to_thread(_remove_keywords, removed)
        return {"success": True, "keywords": keywords, "count": len(keywords)}

    @app.get("/api/scheduler", dependencies=[Depends(require_api_key)])
    async def scheduler_status() -> dict:
        return scheduler.status()

    @app.post("/api/scheduler/init", dependencies=[Depends(require_api_key)])
    async def init_scheduler() -> dict:
        started = scheduler.initialize()
        message = (
            "Ingestion scheduler initialized successfully"
            if started
            else "Ingestion scheduler already running"
        )
        return {"message": message, **scheduler.status()}

    @app.post("/api/scheduler/stop", dependencies=[Depends(require_api_key)])
    async def stop_scheduler() -> dict:
        scheduler.stop()
        return {"message": "Ingestion scheduler stopped", **scheduler.status()}

    return app
