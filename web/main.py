"""FastAPI application exposing the trial checkout API."""

from __future__ import annotations

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.logging import get_logger
from web import routers

logger = get_logger(__name__)

app = FastAPI(
    title="Trial Checkout API",
    description="Starts 14-day trial subscriptions through Stripe or Mercado Pago.",
    version="1.0.0",
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework errors (404 route, 405 method) with the ``{error}`` body used by checkout."""
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        message = "Method not allowed"
    elif isinstance(exc.detail, str):
        message = exc.detail
    else:
        message = "Request failed"
    return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=getattr(exc, "headers", None))


@app.get("/", summary="Health Check", tags=["Default"])
def health_check():
    return {"status": "ok", "message": "Trial Checkout API is running."}


@app.get("/healthz", include_in_schema=False)
def readiness_check():
    """Lightweight readiness probe including the tenant database."""
    db_ok, db_error = routers.health.ping_database()
    payload = {"status": "ok" if db_ok else "unhealthy", "database": {"ok": db_ok}}
    if db_error:
        payload["database"]["error"] = db_error
    status_code = status.HTTP_200_OK if db_ok else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=status_code, content=payload)


@app.get("/metrics", include_in_schema=False)
def prometheus_metrics():
    """Expose Prometheus metrics."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


app.include_router(routers.payments.router, prefix="/api/v1")
app.include_router(routers.payment_outcome.router, prefix="/api/v1")
app.include_router(routers.plan.router, prefix="/api/v1")
app.include_router(routers.health.router, prefix="/api/v1")
