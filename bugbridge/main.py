import logging
import os
import sys
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError, version as pkg_version
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.staticfiles import StaticFiles

import bugbridge.core.config as config
from bugbridge.api.routes.router import api_router
from bugbridge.container import container
from bugbridge.core.config import log_settings, validate_startup
from bugbridge.core.errors import ApiError
from bugbridge.core.logging import attach_trace_log_filter, request_logging_middleware, setup_logging
from bugbridge.core.telemetry import init_telemetry

logger = logging.getLogger("bugbridge.startup")

PKG_NAME = "bugbridge"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Log configuration at startup (SecretStr fields are masked)
    log_settings()

    # Tests inject their own tracker before startup; only build one when none is wired
    if container.tracker is None:
        problems = validate_startup(config.settings)
        if problems:
            raise RuntimeError("Invalid configuration: " + "; ".join(problems))
        container.init_tracker()
    yield
    await container.shutdown()


def resolve_version() -> str:
    try:
        return pkg_version(PKG_NAME)
    except PackageNotFoundError:
        return os.getenv("APP_VERSION", "0.0.0+unknown")


APP_VERSION = resolve_version()


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail, **exc.extra},
    )


def validation_message(errors: list[dict]) -> str:
    """Summarise pydantic request errors as one line for the JSON error body."""
    if any(e.get("type") == "missing" and tuple(e.get("loc", ())) == ("body",) for e in errors):
        return "Request body is required"
    parts = []
    for error in errors:
        loc = ".".join(str(p) for p in error.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {error.get('msg')}" if loc else str(error.get("msg")))
    return "Invalid request: " + "; ".join(parts)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = list(exc.errors())
    logger.warning("request.invalid path=%s errors=%d", request.url.path, len(errors))
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": validation_message(errors)},
    )


def create_app() -> FastAPI:
    setup_logging(config.settings.LOG_LEVEL)
    # Attach filters early so startup logs carry the context fields
    attach_trace_log_filter()
    app = FastAPI(
        title="BugBridge",
        version=APP_VERSION,
        lifespan=lifespan,
        openapi_url=f"{config.settings.API_PREFIX}/openapi.json",
        docs_url=f"{config.settings.API_PREFIX}/docs",
        redoc_url=None,
    )
    app.add_exception_handler(ApiError, _api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]

    @app.get("/healthz")
    async def _healthz() -> dict[str, str]:
        """Liveness probe."""
        return {"status": "ok"}

    request_logging_middleware(app)
    app.include_router(api_router, prefix=config.settings.API_PREFIX)

    # Optional static frontend serving
    def _get_frontend_dir() -> Path | None:
        if not config.settings.FRONTEND_DIR:
            return None
        d = Path(config.settings.FRONTEND_DIR)
        if d.is_dir() and (d / config.settings.FRONTEND_INDEX).is_file():
            return d
        logger.warning("FRONTEND_DIR %s has no %s; not serving it", d, config.settings.FRONTEND_INDEX)
        return None

    frontend_dir = _get_frontend_dir()
    if frontend_dir:

        class SPAStaticFiles(StaticFiles):
            # Serve index.html for any 404 to support client-side routing
            async def get_response(self, path: str, scope):  # type: ignore[override]
                try:
                    return await super().get_response(path, scope)
                except StarletteHTTPException as exc:
                    if exc.status_code == 404:
                        return await super().get_response(config.settings.FRONTEND_INDEX, scope)
                    raise

        app.mount("/", SPAStaticFiles(directory=str(frontend_dir), html=True), name="frontend")
        app.state.spa_enabled = True
    else:
        app.state.spa_enabled = False

    _ = (_healthz,)

    # Initialize telemetry (no-op if disabled or not configured)
    init_telemetry(app, config.settings)

    return app


def run() -> None:
    """Console entry point: validate configuration, then serve with uvicorn."""
    setup_logging(config.settings.LOG_LEVEL)
    problems = validate_startup(config.settings)
    if problems:
        for problem in problems:
            logger.error("Configuration error: %s", problem)
        sys.exit(1)

    import uvicorn

    uvicorn.run(
        "bugbridge.main:create_app",
        factory=True,
        host=config.settings.HOST,
        port=config.settings.PORT,
        log_level=config.settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
