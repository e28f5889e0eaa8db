# backend/app/main.py
"""FastAPI application for the endpoint security scanner."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.app.core import AppException, configure_logging, logs, settings
from backend.app.features.scanner.routes import router as scanner_router
from backend.app.features.scanner.services import get_scanner_service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging()
    logs.info("API starting", "api", {"version": settings.APP_VERSION})
    yield
    await get_scanner_service().shutdown()
    logs.info("API stopped", "api")


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        logs.warning(
            exc.message,
            "api",
            {"path": request.url.path, "status": exc.status_code},
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message, "details": exc.details},
        )

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    app.include_router(scanner_router, prefix=settings.API_PREFIX)
    return app


app = create_app()
