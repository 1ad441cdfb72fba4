from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Annotated, Callable

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from networth.formatting import format_plain
from networth.history import HistoryStore
from networth.logging_config import setup_logging
from networth.query import QueryService
from networth.scheduler import AccountSource, RefreshScheduler
from networth.schemas import ErrorRead, HealthRead, NetWorthDetails
from networth.services.cache import SnapshotCache
from networth.services.simplefin import SimpleFinClient
from networth.settings import Settings, get_settings

logger = logging.getLogger(__name__)

CORS_HEADERS = {
	"Access-Control-Allow-Origin": "*",
	"Access-Control-Allow-Methods": "GET, OPTIONS",
	"Access-Control-Allow-Headers": "Content-Type",
}


@dataclass(slots=True)
class NetWorthRuntime:
	"""Everything a running server owns; one instance per application."""

	settings: Settings
	scheduler: RefreshScheduler
	query_service: QueryService


def build_runtime(
	settings: Settings,
	client: AccountSource | None = None,
	now: Callable[[], datetime] | None = None,
) -> NetWorthRuntime:
	if client is None:
		settings.validate_runtime()
		client = SimpleFinClient(
			settings.access_url_value() or "",
			timeout=settings.request_timeout_seconds,
		)

	history = HistoryStore(settings.history_path())
	cache = SnapshotCache()
	scheduler = RefreshScheduler(
		client=client,
		history=history,
		cache=cache,
		interval_seconds=settings.refresh_interval_seconds,
		fallback_currency=settings.fallback_currency,
		now=now,
	)
	query_service = QueryService(
		cache=cache,
		history=history,
		change_window_days=settings.change_window_days,
		now=now,
	)
	return NetWorthRuntime(settings=settings, scheduler=scheduler, query_service=query_service)


def get_query_service(request: Request) -> QueryService:
	return request.app.state.runtime.query_service


QueryDependency = Annotated[QueryService, Depends(get_query_service)]
router = APIRouter(redirect_slashes=False)


@router.get("/health", response_model=HealthRead)
def healthcheck() -> HealthRead:
	return HealthRead(status="ok")


@router.get("/", response_class=PlainTextResponse)
@router.get("/networth", response_class=PlainTextResponse)
def get_net_worth(query_service: QueryDependency) -> PlainTextResponse:
	net_worth = query_service.current_net_worth()
	if net_worth is None:
		return PlainTextResponse("Service unavailable", status_code=503)

	return PlainTextResponse(format_plain(net_worth))


@router.get("/change", response_class=PlainTextResponse)
@router.get("/networth/change", response_class=PlainTextResponse)
def get_net_worth_change(query_service: QueryDependency) -> PlainTextResponse:
	change = query_service.change_30_days()
	if change is None:
		return PlainTextResponse("Insufficient data", status_code=503)

	return PlainTextResponse(format_plain(change))


@router.get(
	"/networth/details",
	response_model=NetWorthDetails,
	responses={503: {"model": ErrorRead}},
)
def get_net_worth_details(query_service: QueryDependency) -> NetWorthDetails | JSONResponse:
	details = query_service.details()
	if details is None:
		return JSONResponse(
			ErrorRead(error="Net worth data not available yet").model_dump(),
			status_code=503,
		)

	return details


def create_app(
	settings: Settings | None = None,
	client: AccountSource | None = None,
	now: Callable[[], datetime] | None = None,
) -> FastAPI:
	"""Build the HTTP app; the first refresh runs during startup and must succeed."""

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		runtime_settings = settings or get_settings()
		runtime = build_runtime(runtime_settings, client=client, now=now)
		await runtime.scheduler.start()
		app.state.runtime = runtime

		try:
			yield
		finally:
			logger.info("Shutting down net worth refresh.")
			await runtime.scheduler.stop(runtime_settings.shutdown_grace_seconds)

	app = FastAPI(
		title="Net Worth Server",
		version="0.1.0",
		lifespan=lifespan,
		redirect_slashes=False,
	)

	@app.middleware("http")
	async def add_cors_headers(request: Request, call_next):
		if request.method == "OPTIONS":
			response: Response = Response(status_code=204)
		else:
			response = await call_next(request)
		response.headers.update(CORS_HEADERS)
		return response

	# Runs inside ServerErrorMiddleware, outside the header middleware above.
	@app.exception_handler(Exception)
	async def plain_text_server_error(request: Request, exc: Exception):
		return PlainTextResponse("Internal server error", status_code=500, headers=CORS_HEADERS)

	@app.exception_handler(StarletteHTTPException)
	async def plain_text_not_found(request: Request, exc: StarletteHTTPException):
		if exc.status_code == 404:
			return PlainTextResponse("Not found", status_code=404)
		return await http_exception_handler(request, exc)

	app.include_router(router)
	return app


app = create_app()


def run() -> None:
	setup_logging()
	settings = get_settings()
	uvicorn.run(
		create_app(settings),
		host=settings.host,
		port=settings.port,
		timeout_graceful_shutdown=int(settings.shutdown_grace_seconds),
		log_config=None,
	)


if __name__ == "__main__":
	run()
