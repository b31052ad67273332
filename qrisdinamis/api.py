"""FastAPI application for qris-dinamis."""
from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from .config import settings
from .logging_conf import configure_logging
from .middleware import RequestLoggingMiddleware
from .models import get_session, init_db
from .monitoring import metrics_payload, record_service_error
from .renderer import render_qr_payload
from .schemas import (
    ConvertRequest,
    ConvertResponse,
    HistoryEntryResponse,
    PayloadSummaryResponse,
    RenderRequest,
    ScanRequest,
    ScanResponse,
)
from .services.converter import PaymentConverter
from .services.errors import ServiceError, err_bad_payload, err_invalid_amount
from .services.history import HistoryService
from .services.scan import ScanService

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = logging.getLogger("qrisdinamis.api")


def _warn_insecure_defaults() -> None:
    if settings.api_key == "dev-secret-key":
        logger.warning(
            "api key menggunakan nilai default",
            extra={"config_key": "api_key"},
        )


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging()
    _warn_insecure_defaults()
    await init_db()
    logger.info("service started", extra={"environment": settings.environment, "history_limit": settings.history_limit})


async def require_api_key(x_api_key: str = Header(...)) -> None:
    if x_api_key != settings.api_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    route = request.scope.get("route")
    route_path = route.path if route else request.url.path
    logger.warning(
        "service error",
        extra={"code": exc.code, "path": route_path, "method": request.method},
    )
    record_service_error(exc.code, route_path)
    return JSONResponse(status_code=exc.status_code, content={"code": exc.code, "message": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = list(exc.errors())
    amount_errors = [err for err in errors if tuple(err["loc"])[-1:] == ("amount",) and err["type"] != "missing"]
    if amount_errors:
        return await service_error_handler(request, err_invalid_amount(amount_errors[0]["msg"]))

    message = None
    if errors:
        location = ".".join(str(part) for part in errors[0]["loc"])
        message = f"{location}: {errors[0]['msg']}"
    return await service_error_handler(request, err_bad_payload(message))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    route = request.scope.get("route")
    route_path = route.path if route else request.url.path
    logger.exception(
        "unhandled exception",
        extra={"path": route_path, "method": request.method},
    )
    return JSONResponse(status_code=500, content={"code": "ERR_INTERNAL", "message": "Internal server error"})


@app.get("/health", tags=["system"])
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/metrics", tags=["system"])
async def metrics() -> Response:
    payload, content_type = metrics_payload()
    return Response(content=payload, media_type=content_type)


@app.post("/v1/scan", response_model=ScanResponse, tags=["scan"], dependencies=[Depends(require_api_key)])
async def scan_qr(payload: ScanRequest, session: AsyncSession = Depends(get_session)) -> ScanResponse:
    service = ScanService(session)
    result = await service.handle_scan(payload=payload.payload, image_base64=payload.image_base64)
    summary = result.summary

    return ScanResponse(
        history_id=result.entry.id,
        payload=result.payload,
        merchant_name=result.merchant_name,
        summary=PayloadSummaryResponse(
            merchant_name=summary.merchant_name,
            merchant_city=summary.merchant_city,
            point_of_initiation=summary.point_of_initiation,
            currency=summary.currency,
            amount=summary.amount,
            crc=summary.crc,
            crc_valid=summary.crc_valid,
            is_dynamic=summary.is_dynamic,
            global_ids=list(summary.global_ids),
        ),
    )


@app.post("/v1/convert", response_model=ConvertResponse, tags=["qr"], dependencies=[Depends(require_api_key)])
async def convert_qr(payload: ConvertRequest) -> ConvertResponse:
    converter = PaymentConverter()
    result = converter.convert(payload=payload.payload, amount=payload.amount, render=payload.render, size=payload.size)

    return ConvertResponse(
        payload=result.encoded.payload,
        crc=result.encoded.crc,
        merchant_name=result.merchant_name,
        amount=result.amount,
        amount_display=result.amount_display,
        qr_png_base64=result.qr_png_base64,
    )


@app.post("/v1/qr/render", tags=["qr"], dependencies=[Depends(require_api_key)])
async def render_qr(payload: RenderRequest) -> Response:
    render = render_qr_payload(payload.payload, title=payload.title, size=payload.size or settings.qr_size)
    return Response(content=render["png_bytes"], media_type="image/png")


@app.get("/v1/history", response_model=list[HistoryEntryResponse], tags=["history"], dependencies=[Depends(require_api_key)])
async def list_history(session: AsyncSession = Depends(get_session)) -> list[HistoryEntryResponse]:
    entries = await HistoryService(session).list_entries()
    return [HistoryEntryResponse.model_validate(entry) for entry in entries]


@app.delete(
    "/v1/history/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["history"],
    dependencies=[Depends(require_api_key)],
)
async def delete_history(entry_id: int, session: AsyncSession = Depends(get_session)) -> Response:
    await HistoryService(session).delete(entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
