"""attachtree FastAPI application entry point."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from attachtree import config
from attachtree.file_watcher import file_watcher
from attachtree.mirror.errors import MirrorError
from attachtree.routers.mirror import mirror_router
from attachtree.services.attachment_service import get_service

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("attachtree")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("attachtree starting up")

    # 1. Load the outline and bring the mirror up to date
    service = get_service()
    try:
        service.sync_all()
    except MirrorError as e:
        logger.error(f"Initial mirror sync failed: {e}")

    # 2. Start File Watcher
    if config.WATCH_ENABLED:
        await file_watcher.start(service, config.OUTLINE_PATH)

    yield

    logger.info("attachtree shutting down")
    await file_watcher.stop()


app = FastAPI(
    title="attachtree API",
    description="Symlink mirror of outline attachment directories",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(mirror_router)


@app.get("/api/health")
def health():
    """Health check endpoint."""
    service = get_service()
    return {
        "status": "ok",
        "outline": str(service.outline.path) if service.outline.path else None,
        "mirrorRoot": str(service.resolver.mirror_root()),
        "watcher": "running" if file_watcher.is_running else "stopped",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.HOST, port=config.PORT)
