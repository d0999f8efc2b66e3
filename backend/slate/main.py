import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from slate.core.database import Base, SessionLocal, engine
from slate.domain.errors import (
    LinkStateError,
    NotFound,
    PasswordIncorrect,
    PasswordRequired,
    PermissionDenied,
    SelfShareRejected,
    SlateError,
    TokenCollision,
    TransientStorageError,
    ValidationError,
)
from slate.domain.types import LinkState
from slate.monitoring.setup import setup_monitoring
from slate.notifications import NotificationDispatcher
from slate.routes import presentations, share_links, sharing
from slate.utils.clock import utcnow

logger = logging.getLogger("slate")

ERROR_STATUS = {
    ValidationError: 400,
    SelfShareRejected: 400,
    PasswordRequired: 401,
    PasswordIncorrect: 401,
    PermissionDenied: 403,
    NotFound: 404,
    TransientStorageError: 503,
    TokenCollision: 503,
}


def status_for(exc: SlateError) -> int:
    if isinstance(exc, LinkStateError):
        return 410 if exc.reason is LinkState.EXPIRED else 403
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        async with engine.begin() as conn:
            if engine.dialect.name == "sqlite":
                await conn.execute(text("PRAGMA journal_mode=WAL;"))
            logger.info("Creating database tables:")
            for table in Base.metadata.tables.values():
                logger.info(" - Table: %s", table.name)
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error("Database initialization failed: %s", e)
        raise

    app.state.notifications = NotificationDispatcher()
    await app.state.notifications.start()

    yield

    await app.state.notifications.stop()
    await engine.dispose()
    logger.info("Application shutdown complete")


app = FastAPI(
    title="Slate Share",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SlateError)
async def slate_error_handler(request: Request, exc: SlateError):
    status_code = status_for(exc)
    content = {"error": exc.code, "detail": exc.message}
    headers = None
    if isinstance(exc, (PasswordRequired, PasswordIncorrect)):
        content["requires_password"] = True
    if status_code == 503:
        headers = {"Retry-After": "1"}
    if status_code >= 500:
        logger.warning("%s %s -> %s (%s)", request.method, request.url.path, status_code, exc.code)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


app.include_router(presentations)
app.include_router(sharing)
app.include_router(share_links)

setup_monitoring(app)


@app.get("/health")
async def health_check():
    try:
        async with SessionLocal() as session:
            await session.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception as e:
        db_status = f"error: {e.__class__.__name__}"

    return {
        "status": "running",
        "timestamp": utcnow().isoformat(),
        "database": db_status,
    }


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level="info",
        timeout_keep_alive=60,
        limit_concurrency=100,
    )
