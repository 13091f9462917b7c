import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator
import os
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from alembic.config import Config
from alembic import command

from src.db import init_db, close_db
from src.db.redis import close_redis_client
from src.core import get_settings
from src.core.exceptions import StatisticsError
from src.api.v1 import api_router
from src.api.errors import to_http_exception
from src.core.middleware import RequestLoggingMiddleware
from src.logs.server_log import api_logger

settings = get_settings()


def run_migrations() -> None:
    alembic_cfg = Config(os.path.join(Path(__file__).parent.parent, "alembic.ini"))
    command.upgrade(alembic_cfg, "head")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    try:
        if settings.RUN_MIGRATIONS:
            # env.py запускает свой event loop, поэтому миграции идут в отдельном потоке
            await asyncio.to_thread(run_migrations)
            api_logger.info("Database migrations applied")

        await init_db()
    except Exception as e:
        api_logger.error(f"Database initialization failed: {e}")
        raise

    api_logger.info(f"{settings.PROJECT_NAME} started, success rate mode: {settings.SUCCESS_RATE_MODE}")
    yield

    await close_redis_client()
    await close_db()
    api_logger.info(f"{settings.PROJECT_NAME} stopped")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Submission statistics API: task and sheet results, aggregates, daily progress",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Process-Time", "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset", "Retry-After"],
    max_age=3600,
)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)


@app.exception_handler(StatisticsError)
async def statistics_error_handler(request: Request, exc: StatisticsError):
    """Доменные ошибки, не перехваченные в обработчике маршрута"""
    http_exc = to_http_exception(exc)
    return JSONResponse(
        status_code=http_exc.status_code,
        content={"detail": http_exc.detail},
        headers=http_exc.headers,
    )


@app.get("/")
async def root():
    """Health check endpoint"""
    return {"message": f"{settings.PROJECT_NAME} is running"}


if __name__ == "__main__":
    import uvicorn

    api_logger.info("Сервер запускается на http://0.0.0.0:8000")

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info"
    )
