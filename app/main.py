"""Entry point for the FastAPI-powered media log service."""

from __future__ import annotations

import json
import logging
import secrets
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, TypeVar

import httpx
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from .config import settings
from .database import Database, StorageUnavailableError
from .models import ImportRequest, LinkAccountRequest, YearlyGoalRequest
from .services.feeds import FeedClient
from .services.importer import ImportService
from .services.library import (
    LibraryService,
    serialize_account,
    serialize_goal,
    serialize_log,
)
from .services.sync import SyncService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app: FastAPI

ServiceT = TypeVar("ServiceT")

PROVIDERS = ("letterboxd", "goodreads")
MEDIA_TYPES = ("movie", "book")


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    feed_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            timeout=httpx.Timeout(
                settings.feed_timeout_seconds,
                connect=settings.feed_connect_timeout_seconds,
            ),
        )
    )
    database = Database(settings.database_url)
    await database.create_all()

    feed_client = FeedClient(settings, feed_http_client)
    sync_service = SyncService(settings, feed_client, database.session_factory)
    import_service = ImportService(database.session_factory)
    library_service = LibraryService(settings, database.session_factory)

    fastapi_app.state.database = database
    fastapi_app.state.sync_service = sync_service
    fastapi_app.state.import_service = import_service
    fastapi_app.state.library_service = library_service
    await sync_service.start()

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await sync_service.stop()
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Yearly movie and book log fed by Letterboxd and Goodreads",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def _get_service(fastapi_app: FastAPI, name: str, expected: type[ServiceT]) -> ServiceT:
    service = getattr(fastapi_app.state, name, None)
    if not isinstance(service, expected):
        raise StorageUnavailableError("Database not available")
    return service


def _require_user(request: Request) -> str:
    """Return the caller's user id as set by the upstream auth layer."""

    user_id = (request.headers.get(settings.user_id_header) or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user_id


def _check_cron_secret(request: Request) -> None:
    expected = settings.cron_secret
    if not expected:
        return
    header = request.headers.get("authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not secrets.compare_digest(
        token.strip(), expected
    ):
        raise HTTPException(status_code=401, detail="Invalid cron credentials")


async def _json_body(request: Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except json.JSONDecodeError:
        payload = None
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid payload")
    return payload


def _validation_detail(exc: ValidationError) -> list[dict[str, Any]]:
    return exc.errors(include_url=False, include_context=False)


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.exception_handler(StorageUnavailableError)
    async def storage_unavailable_handler(
        _: Request, exc: StorageUnavailableError
    ) -> JSONResponse:
        logger.error("Storage unavailable: %s", exc)
        return JSONResponse({"error": "Database not available"}, status_code=500)

    @fastapi_app.exception_handler(OperationalError)
    async def operational_error_handler(
        _: Request, exc: OperationalError
    ) -> JSONResponse:
        logger.error("Database operation failed: %s", exc)
        return JSONResponse({"error": "Database not available"}, status_code=500)

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.api_route("/api/cron", methods=["GET", "POST"])
    async def cron(request: Request) -> JSONResponse:
        _check_cron_secret(request)
        service = _get_service(fastapi_app, "sync_service", SyncService)
        report = await service.sync_all()
        return JSONResponse(report.to_payload())

    @fastapi_app.post("/api/import")
    async def import_media(request: Request) -> JSONResponse:
        user_id = _require_user(request)
        payload = await _json_body(request)
        try:
            batch = ImportRequest.model_validate(payload)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=_validation_detail(exc)) from exc
        service = _get_service(fastapi_app, "import_service", ImportService)
        result = await service.import_batch(user_id, batch.source, batch.items)
        return JSONResponse(result.to_payload())

    @fastapi_app.post("/api/import/csv")
    async def import_csv(
        request: Request, source: str | None = Query(default=None, alias="type")
    ) -> JSONResponse:
        user_id = _require_user(request)
        if source not in PROVIDERS:
            raise HTTPException(status_code=400, detail="Unsupported import type")
        raw = await request.body()
        try:
            text = raw.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise HTTPException(status_code=400, detail="CSV must be UTF-8") from exc
        service = _get_service(fastapi_app, "import_service", ImportService)
        result = await service.import_csv(user_id, source, text)
        return JSONResponse(result.to_payload())

    @fastapi_app.get("/api/accounts")
    async def list_accounts(request: Request) -> list[dict[str, Any]]:
        user_id = _require_user(request)
        service = _get_service(fastapi_app, "library_service", LibraryService)
        accounts = await service.list_accounts(user_id)
        return [serialize_account(account) for account in accounts]

    @fastapi_app.post("/api/accounts")
    async def link_account(request: Request) -> dict[str, Any]:
        user_id = _require_user(request)
        payload = await _json_body(request)
        try:
            data = LinkAccountRequest.model_validate(payload)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=_validation_detail(exc)) from exc
        service = _get_service(fastapi_app, "library_service", LibraryService)
        await service.link_account(user_id, data.provider, data.username)
        return {"success": True}

    @fastapi_app.get("/api/goals")
    async def get_goals(request: Request, year: int) -> list[dict[str, Any]]:
        user_id = _require_user(request)
        service = _get_service(fastapi_app, "library_service", LibraryService)
        goals = await service.get_yearly_goals(user_id, year)
        return [serialize_goal(goal) for goal in goals]

    @fastapi_app.post("/api/goals")
    async def save_goal(request: Request) -> dict[str, Any]:
        user_id = _require_user(request)
        payload = await _json_body(request)
        try:
            data = YearlyGoalRequest.model_validate(payload)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=_validation_detail(exc)) from exc
        service = _get_service(fastapi_app, "library_service", LibraryService)
        await service.save_yearly_goal(user_id, data.year, data.media_type, data.target)
        return {"success": True}

    @fastapi_app.get("/api/recent")
    async def recent_media(request: Request, limit: int = 10) -> list[dict[str, Any]]:
        user_id = _require_user(request)
        if not 1 <= limit <= 100:
            raise HTTPException(status_code=400, detail="limit must be between 1 and 100")
        service = _get_service(fastapi_app, "library_service", LibraryService)
        logs = await service.recent_media(user_id, limit=limit)
        return [serialize_log(log) for log in logs]

    @fastapi_app.get("/api/years/{year}")
    async def media_for_year(request: Request, year: int) -> list[dict[str, Any]]:
        user_id = _require_user(request)
        service = _get_service(fastapi_app, "library_service", LibraryService)
        logs = await service.media_for_year(user_id, year)
        return [serialize_log(log) for log in logs]

    @fastapi_app.get("/api/years/{year}/progress")
    async def year_progress(request: Request, year: int) -> list[dict[str, Any]]:
        user_id = _require_user(request)
        service = _get_service(fastapi_app, "library_service", LibraryService)
        progress = await service.year_progress(user_id, year)
        return [entry.to_payload() for entry in progress]

    @fastapi_app.get("/api/years/{year}/{media_type}")
    async def media_for_year_and_type(
        request: Request, year: int, media_type: str
    ) -> list[dict[str, Any]]:
        user_id = _require_user(request)
        if media_type not in MEDIA_TYPES:
            raise HTTPException(status_code=400, detail="Unsupported media type")
        service = _get_service(fastapi_app, "library_service", LibraryService)
        logs = await service.media_for_year(user_id, year, media_type)
        return [serialize_log(log) for log in logs]


app = create_app()
