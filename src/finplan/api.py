"""HTTP surface: the function handlers as ``POST /functions/v1/<name>`` routes."""

from collections.abc import AsyncIterator
from typing import Any

import httpx
import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict, Field

from finplan import __version__
from finplan.baas import AuthenticationError, BaaSClient, BaaSError
from finplan.clients.gateway import GatewayClient, GatewayError, RateLimitError
from finplan.config import bind_request_context, get_settings
from finplan.functions import (
    FunctionError,
    ReceiptFetchError,
    calculate_weekly_metrics,
    categorize_transactions,
    match_receipts,
    parse_actual,
    parse_bank_statement,
    parse_plan,
    parse_receipt,
    suggest_duration,
)

logger = structlog.get_logger(__name__)

bearer = HTTPBearer(auto_error=False)


# === Request bodies ===


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class CategorizeRequest(_Body):
    transactions: list[dict[str, Any]] = Field(default_factory=list)
    categories: list[dict[str, Any]] | None = None


class BankStatementRequest(_Body):
    file_content: str = Field("", alias="fileContent")
    file_type: str | None = Field(None, alias="fileType")
    file_name: str | None = Field(None, alias="fileName")
    batch_index: int | None = Field(None, alias="batchIndex")
    total_batches: int | None = Field(None, alias="totalBatches")


class ReceiptRequest(_Body):
    image_url: str = Field(..., alias="imageUrl")


class PlanRequest(_Body):
    text: str | None = None
    date: str | None = None
    timezone: str | None = None
    now: str | None = None


class ActualRequest(PlanRequest):
    timezone_offset: float | None = Field(None, alias="timezoneOffset")
    local_time: str | None = Field(None, alias="localTime")


class WeeklyMetricsRequest(_Body):
    week_start: str = Field(..., alias="weekStart")


class SuggestDurationRequest(_Body):
    category: str | None = None


class MatchReceiptsRequest(_Body):
    receipt_id: str | None = Field(None, alias="receiptId")
    year: int | None = None
    month: int | None = None


# === Dependencies ===


async def get_gateway() -> AsyncIterator[GatewayClient]:
    gateway = GatewayClient()
    try:
        yield gateway
    finally:
        await gateway.close()


async def get_service_baas() -> AsyncIterator[BaaSClient]:
    baas = BaaSClient.for_service()
    try:
        yield baas
    finally:
        await baas.close()


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(timeout=httpx.Timeout(60.0), follow_redirects=True) as http:
        yield http


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> dict[str, Any]:
    """Resolve the caller from ``Authorization: Bearer <token>``."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authorization header required", status_code=401)
    async with BaaSClient.for_user(credentials.credentials) as baas:
        return await baas.get_user()


# === Error mapping ===


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


async def _function_error_handler(request: Request, exc: FunctionError) -> JSONResponse:
    logger.warning("function_rejected", path=request.url.path, error=exc.message)
    return _error(exc.status_code, exc.message, **exc.details)


async def _gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    logger.error(
        "gateway_failed", path=request.url.path, status_code=exc.status_code, error=str(exc)
    )
    if isinstance(exc, RateLimitError):
        return _error(429, str(exc), retryAfter=exc.retry_after)
    if exc.status_code in (402, 504):
        return _error(exc.status_code, str(exc))
    return _error(500, str(exc))


async def _baas_error_handler(request: Request, exc: BaaSError) -> JSONResponse:
    if isinstance(exc, AuthenticationError):
        logger.warning("authentication_failed", path=request.url.path, error=str(exc))
        return _error(401, str(exc))
    logger.error("baas_failed", path=request.url.path, status_code=exc.status_code, error=str(exc))
    return _error(500, str(exc))


async def _fetch_error_handler(request: Request, exc: ReceiptFetchError) -> JSONResponse:
    logger.error("receipt_fetch_failed", path=request.url.path, error=str(exc))
    return _error(500, str(exc))


# === App ===


def create_app() -> FastAPI:
    """Build the API with CORS and error mapping configured."""
    settings = get_settings()
    app = FastAPI(title="finplan functions", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type", "x-request-id"],
    )
    app.add_exception_handler(FunctionError, _function_error_handler)
    app.add_exception_handler(GatewayError, _gateway_error_handler)
    app.add_exception_handler(BaaSError, _baas_error_handler)
    app.add_exception_handler(ReceiptFetchError, _fetch_error_handler)

    @app.middleware("http")
    async def request_context(request: Request, call_next: Any) -> Any:
        request_id = bind_request_context(request.url.path, request.headers.get("x-request-id"))
        response = await call_next(request)
        response.headers["x-request-id"] = request_id
        logger.info("request_completed", method=request.method, status_code=response.status_code)
        return response

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @app.post("/functions/v1/categorize-transactions", dependencies=[Depends(get_current_user)])
    async def categorize_route(
        body: CategorizeRequest,
        gateway: GatewayClient = Depends(get_gateway),
    ) -> dict[str, Any]:
        return await categorize_transactions(body.transactions, gateway, body.categories)

    @app.post("/functions/v1/parse-bank-statement", dependencies=[Depends(get_current_user)])
    async def bank_statement_route(
        body: BankStatementRequest,
        gateway: GatewayClient = Depends(get_gateway),
    ) -> dict[str, Any]:
        return await parse_bank_statement(
            gateway,
            body.file_content,
            file_type=body.file_type,
            file_name=body.file_name,
            batch_index=body.batch_index,
            total_batches=body.total_batches,
        )

    @app.post("/functions/v1/parse-receipt", dependencies=[Depends(get_current_user)])
    async def receipt_route(
        body: ReceiptRequest,
        gateway: GatewayClient = Depends(get_gateway),
        http: httpx.AsyncClient = Depends(get_http_client),
    ) -> dict[str, Any]:
        return await parse_receipt(gateway, http, body.image_url)

    @app.post("/functions/v1/parse-plan")
    async def plan_route(
        body: PlanRequest,
        user: dict[str, Any] = Depends(get_current_user),
        gateway: GatewayClient = Depends(get_gateway),
        baas: BaaSClient = Depends(get_service_baas),
    ) -> dict[str, Any]:
        return await parse_plan(
            gateway,
            baas,
            user["id"],
            body.text,
            date=body.date,
            timezone_name=body.timezone,
            now=body.now,
        )

    @app.post("/functions/v1/parse-actual")
    async def actual_route(
        body: ActualRequest,
        user: dict[str, Any] = Depends(get_current_user),
        gateway: GatewayClient = Depends(get_gateway),
        baas: BaaSClient = Depends(get_service_baas),
    ) -> dict[str, Any]:
        return await parse_actual(
            gateway,
            baas,
            user["id"],
            body.text,
            date=body.date,
            timezone_name=body.timezone,
            now=body.now,
            timezone_offset=body.timezone_offset,
            local_time=body.local_time,
        )

    @app.post("/functions/v1/calculate-weekly-metrics")
    async def weekly_metrics_route(
        body: WeeklyMetricsRequest,
        user: dict[str, Any] = Depends(get_current_user),
        baas: BaaSClient = Depends(get_service_baas),
    ) -> dict[str, Any]:
        return await calculate_weekly_metrics(baas, user["id"], body.week_start)

    @app.post("/functions/v1/suggest-duration")
    async def suggest_duration_route(
        body: SuggestDurationRequest,
        user: dict[str, Any] = Depends(get_current_user),
        baas: BaaSClient = Depends(get_service_baas),
    ) -> dict[str, Any]:
        return await suggest_duration(baas, user["id"], body.category)

    @app.post("/functions/v1/match-receipts")
    async def match_receipts_route(
        body: MatchReceiptsRequest,
        user: dict[str, Any] = Depends(get_current_user),
        baas: BaaSClient = Depends(get_service_baas),
    ) -> dict[str, Any]:
        return await match_receipts(
            baas, user["id"], receipt_id=body.receipt_id, year=body.year, month=body.month
        )

    logger.debug("app_created", cors_origins=settings.cors_origins)
    return app
