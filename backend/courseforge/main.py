import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv


# backend/.env must be loaded before settings are first read
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from sqlalchemy.exc import OperationalError

from .auth.validation import validate_auth_on_startup
from .categories.router import router as categories_router
from .chapters.router import router as chapters_router
from .config.logging import setup_logging
from .config.settings import get_settings
from .courses.router import router as courses_router
from .database.engine import engine
from .database.init import init_database
from .middleware.error_handlers import register_exception_handlers
from .middleware.security import SecurityHeadersMiddleware, limiter


setup_logging("DEBUG" if get_settings().DEBUG else "INFO")
logger = logging.getLogger(__name__)

DB_CONNECT_ATTEMPTS = 5


async def _init_database_with_retry() -> None:
    """Initialise the schema, waiting for the database to accept connections."""
    delay = 1
    for attempt in range(1, DB_CONNECT_ATTEMPTS + 1):
        try:
            await init_database(engine)
        except OperationalError:
            if attempt == DB_CONNECT_ATTEMPTS:
                logger.exception("Database unreachable after %d attempts", attempt)
                raise
            logger.warning("Database not ready (attempt %d/%d), retrying in %ds", attempt, DB_CONNECT_ATTEMPTS, delay)
            await asyncio.sleep(delay)
            delay *= 2
        else:
            return


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    validate_auth_on_startup()
    await _init_database_with_retry()
    logger.info("CourseForge API ready")

    yield

    await engine.dispose()
    logger.info("Database connections closed")


def create_app() -> FastAPI:
    """Build the API: middleware, error handlers and the procedure routers."""
    settings = get_settings()

    app = FastAPI(
        title="CourseForge API",
        description="Course authoring, publishing and learner progress",
        version="0.1.0",
        debug=settings.DEBUG,
        # Tests create their own schema per database
        lifespan=None if settings.ENVIRONMENT == "test" else lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(SecurityHeadersMiddleware)
    app.state.limiter = limiter

    register_exception_handlers(app)

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    for router in (courses_router, chapters_router, categories_router):
        app.include_router(router)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT)
