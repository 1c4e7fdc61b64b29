from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from statement_categorizer.api.routes import categories, imports, reports, training, transactions
from statement_categorizer.core import settings
from statement_categorizer.errors import (
    CategorizerError,
    EmptyCategoryList,
    InsufficientTrainingData,
    InvalidTransition,
    ModelNotTrained,
    NotFoundError,
    PersistenceError,
)
from statement_categorizer.logger import get_logger, setup_logging
from statement_categorizer.manager import CategorizerService

logger = get_logger(__name__)

_ERROR_STATUS: tuple[tuple[type[CategorizerError], int], ...] = (
    (NotFoundError, 404),
    (InsufficientTrainingData, 409),
    (ModelNotTrained, 409),
    (InvalidTransition, 409),
    (EmptyCategoryList, 409),
    (PersistenceError, 500),
)


def error_status(exc: CategorizerError) -> int:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 400


def create_app(service: CategorizerService | None = None) -> FastAPI:
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Initializing services...")
        settings.log_environment()

        active: CategorizerService | None = getattr(app.state, "service", None)
        if active is None:
            active = CategorizerService.sqlite(
                settings.get_database_path(),
                settings.get_classifier_settings(),
            )
        await active.open()
        if settings.get_env_bool("SEED_DEFAULT_CATEGORIES", True):
            await active.seed_default_categories()
        app.state.service = active

        logger.info("Services initialized.")
        yield
        await active.close()
        logger.info("Service shutting down.")

    app = FastAPI(title="Statement Categorizer", lifespan=lifespan)
    if service is not None:
        app.state.service = service

    @app.exception_handler(CategorizerError)
    async def handle_categorizer_error(request: Request, exc: CategorizerError) -> JSONResponse:
        status_code = error_status(exc)
        if status_code >= 500:
            logger.error("[API] %s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "timestamp": datetime.now().isoformat()}

    app.include_router(imports.router)
    app.include_router(transactions.router)
    app.include_router(categories.router)
    app.include_router(training.router)
    app.include_router(reports.router)

    return app
