import os
import time
from contextlib import asynccontextmanager
from typing import Optional
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from sqlgate.core.errors import GatewayError
from sqlgate.core.logging import get_logger, setup_logging
from sqlgate.db.explorer import count_rows, list_tables
from sqlgate.db.session import Store
from sqlgate.tools.sql_gateway import router as sql_router

setup_logging()
logger = get_logger("sqlgate.server")

CORS_ORIGINS = [o.strip() for o in os.getenv("SQLGATE_CORS_ORIGINS", "*").split(",") if o.strip()]
PREFLIGHT_MAX_AGE = 600


def preflight_headers(origin: Optional[str]) -> dict:
    """CORS headers for an OPTIONS acknowledgement."""
    if "*" in CORS_ORIGINS:
        allow_origin = "*"
    elif origin in CORS_ORIGINS:
        allow_origin = origin
    else:
        allow_origin = None
    headers = {
        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
        "Access-Control-Max-Age": str(PREFLIGHT_MAX_AGE),
    }
    if allow_origin:
        headers["Access-Control-Allow-Origin"] = allow_origin
        if allow_origin != "*":
            headers["Vary"] = "Origin"
    return headers


def create_app(store: Optional[Store] = None) -> FastAPI:
    """Build the gateway app.

    When ``store`` is given it must already be open and the caller owns its
    lifetime; otherwise a Store is opened at startup and closed at shutdown.
    A store that cannot be opened aborts startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = store is None
        if owned:
            app.state.store = await Store().open()
        try:
            yield
        finally:
            if owned:
                await app.state.store.close()

    app = FastAPI(title="SQL Gateway", lifespan=lifespan)
    if store is not None:
        app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
        max_age=PREFLIGHT_MAX_AGE,
    )

    # answered here so every OPTIONS gets 204 without a body, preflight or not
    @app.middleware("http")
    async def answer_options(request: Request, call_next):
        if request.method != "OPTIONS":
            return await call_next(request)
        return Response(status_code=204, headers=preflight_headers(request.headers.get("origin")))

    @app.middleware("http")
    async def add_request_id_and_log(request: Request, call_next):
        request_id = str(uuid4())
        start = time.time()
        logger.info(f"request_start request_id={request_id} method={request.method} path={request.url.path}")
        try:
            response = await call_next(request)
        except Exception as exc:  # catch so we can log and re-raise handled by exception handlers
            logger.exception(f"unhandled error request_id={request_id} path={request.url.path} error={exc}")
            raise
        duration = (time.time() - start) * 1000
        logger.info(f"request_end request_id={request_id} method={request.method} path={request.url.path} status_code={response.status_code} duration_ms={duration:.1f}")
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # unknown paths and unsupported methods on known paths are both "not found"
        if exc.status_code in (404, 405):
            return JSONResponse(status_code=404, content={"error": "Not found"})
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception: %s", exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    app.include_router(sql_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        return PlainTextResponse(
            "SQL gateway ready.\nTry: /api/v1/sql/select%20*%20from%20patient"
        )

    @app.get("/health")
    async def health(request: Request):
        """Report service health, probing the store for its tables and row count."""
        result = {"status": "ok", "components": {}}
        try:
            store = request.app.state.store
            result["components"]["store"] = {
                "status": "ok",
                "path": store.path,
                "tables": await list_tables(store),
                "rows": await count_rows(store),
            }
        except Exception as e:
            logger.exception("Store health check failed")
            result["components"]["store"] = {"status": "unavailable", "error": str(e)}
            result["status"] = "degraded"
        return result

    return app


app = create_app()
