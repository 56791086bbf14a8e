from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from .core.config import get_settings, Settings
from .core.logging import init_logging, request_context_middleware
from .core import errors
from .routers import rates
from .services.rates.errors import RateError
from .services.rates.orchestrator import SourceOrchestrator


def create_app(
    settings_override: Settings | None = None,
    orchestrator: SourceOrchestrator | None = None,
) -> FastAPI:
    """Application factory.

    settings_override: pass an already constructed Settings instance for tests.
    orchestrator: the instance holding the registered sources; adapters are
    wired by the caller. An empty one is created when omitted.
    """
    settings = settings_override or get_settings()
    # Initialize logging early
    init_logging(debug=settings.debug)

    fxm = orchestrator or SourceOrchestrator(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await fxm.start()
        try:
            yield
        finally:
            await fxm.stop()

    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        version=settings.version,
        lifespan=lifespan,
    )
    app.state.orchestrator = fxm

    # Middleware (request id / structured logging)
    app.middleware("http")(request_context_middleware)

    # Error handlers
    app.add_exception_handler(StarletteHTTPException, errors.not_found_handler)
    app.add_exception_handler(RequestValidationError, errors.validation_error_handler)
    app.add_exception_handler(RateError, errors.rate_error_handler)
    app.add_exception_handler(Exception, errors.server_error_handler)

    @app.get("/")
    async def root():
        return {"message": "200 OK", "info": "/info", "version": settings.version}

    # Routers
    app.include_router(rates.router)

    return app
