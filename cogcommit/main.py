"""CogCommit studio: local FastAPI app over the SQLite store."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cogcommit import config
from cogcommit.db import connection, migrations
from cogcommit.db.file_watcher import file_watcher
from cogcommit.routers.api import (
    commits_router,
    projects_router,
    search_router,
    stats_router,
)

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger("cogcommit.studio")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("CogCommit studio starting up")

    config.ensure_global_storage_dir()
    db = await connection.get_connection()
    await migrations.run_migrations(db)

    if config.STUDIO_WATCH:
        await file_watcher.start(db, config.CLAUDE_PROJECTS_DIR, config.CODEX_SESSIONS_DIR)

    yield

    logger.info("CogCommit studio shutting down")
    await file_watcher.stop()
    await connection.close_connection()


app = FastAPI(
    title="CogCommit Studio",
    description="Local API for browsing cognitive commits",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        f"http://{config.STUDIO_HOST}:{config.STUDIO_PORT}",
        f"http://localhost:{config.STUDIO_PORT}",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(commits_router)
app.include_router(projects_router)
app.include_router(search_router)
app.include_router(stats_router)


@app.get("/api/health")
def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "db": "connected" if connection._connection else "disconnected",
        "watcher": "running" if file_watcher.is_running else "stopped",
    }
