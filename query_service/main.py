import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from query_service.api.router import api_router
from query_service.core.audit import AuditSink, LoggingAuditSink
from query_service.core.config import Settings
from query_service.core.database import create_db_engine, init_db
from query_service.core.dispatch import QueryDispatcher
from query_service.core.engine import QueryEngine, SqlQueryEngine
from query_service.core.errors import QueryServiceError
from query_service.core.schemas import QueryResponse
from query_service.core.security import BearerGate

logger = logging.getLogger(__name__)


async def query_service_error_handler(request: Request, exc: QueryServiceError):
    body = QueryResponse.from_error(exc.status_code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(exclude_none=True),
        headers=exc.headers,
    )


async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.url.path}: {exc!r}")
    body = QueryResponse.from_error(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "internal server error"
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(exclude_none=True),
    )


def create_app(
    settings: Settings,
    engine: Optional[QueryEngine] = None,
    audit: Optional[AuditSink] = None,
) -> FastAPI:
    """
    Build the application around explicit settings.

    `engine` and `audit` replace the SQLAlchemy engine and the logging audit
    sink, mostly for tests.
    """
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    db_engine = None
    if engine is None:
        db_engine = create_db_engine(settings.DATABASE_URL)
        init_db(db_engine, seed=settings.SEED_DEMO_DATA)
        engine = SqlQueryEngine(db_engine)

    # Close the engine once everything is done
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.DEV_MODE or not settings.API_TOKEN:
            logger.warning("Authorization is disabled")
        yield
        if db_engine is not None:
            db_engine.dispose()

    app = FastAPI(title=settings.SERVICE_NAME, lifespan=lifespan)

    app.state.settings = settings
    app.state.gate = BearerGate(settings.API_TOKEN, settings.DEV_MODE)
    app.state.dispatcher = QueryDispatcher(
        engine=engine,
        audit=audit or LoggingAuditSink(),
        default_timeout=settings.DEFAULT_QUERY_TIMEOUT,
    )

    app.add_exception_handler(QueryServiceError, query_service_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    # Include the master router containing all our endpoints
    app.include_router(api_router)

    @app.get("/")
    async def root():
        return {
            "service": settings.SERVICE_NAME,
            "endpoints": {"query": "/query"},
        }

    return app


# Create a single instance of the settings at process start
settings = Settings()
app = create_app(settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.SERVICE_HOST, port=settings.SERVICE_PORT)
