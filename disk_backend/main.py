from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from disk_backend.config import Settings, settings as default_settings
from disk_backend.container import Services, build_services
from disk_backend.errors import ServiceError
from disk_backend.logging_config import configure_logging
from disk_backend.routers import auth, files, health, users

LOGGER = logging.getLogger(__name__)


def _error_response(request: Request, status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "code": status_code,
            "message": message,
            "data": None,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "path": request.url.path,
        },
    )


def _format_validation_errors(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        text = str(error.get("msg", "Invalid value"))
        messages.append(f"{location}: {text}" if location else text)
    return "; ".join(messages) or "Invalid request"


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
        if exc.status_code >= 500:
            LOGGER.error(
                "Request failed: %s %s %s",
                request.method,
                request.url.path,
                exc.message,
                exc_info=exc.__cause__ or exc,
            )
        return _error_response(request, exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return _error_response(request, 422, _format_validation_errors(exc))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return _error_response(request, exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        LOGGER.exception("Unexpected error: %s %s", request.method, request.url.path)
        return _error_response(request, 500, "Internal server error")


def create_app(
    settings: Optional[Settings] = None, services: Optional[Services] = None
) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.log_level, settings.log_dir)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.services is None:
            app.state.services = build_services(settings)
        app.state.services.database.init_db()
        LOGGER.info("disk-backend started")
        yield
        app.state.services.close()

    app = FastAPI(title="disk-backend", lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        client = request.client.host if request.client else "unknown"
        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        LOGGER.log(
            level,
            "%s %s %s - %.0fms client=%s agent=%s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            client,
            request.headers.get("user-agent", "Unknown"),
        )
        return response

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(auth.router, prefix="/api")
    app.include_router(users.router, prefix="/api")
    app.include_router(files.router, prefix="/api")
    return app


app = create_app()


def run() -> None:
    uvicorn.run(app, host=default_settings.host, port=default_settings.port)


if __name__ == "__main__":
    run()
