"""CogCommit hosted dashboard API (Supabase auth, Postgres storage)."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cogcommit import config
from cogcommit.db import connection, migrations
from cogcommit.routers.dashboard import dashboard_router, me_router

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger("cogcommit.web")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("CogCommit dashboard API starting up")
    if config.DATABASE_URL:
        pool = await connection.get_cloud_pool()
        await migrations.run_migrations(pool)
    else:
        logger.warning("COGCOMMIT_DATABASE_URL is not set; dashboard endpoints will return 503")

    yield

    logger.info("CogCommit dashboard API shutting down")
    await connection.close_cloud_pool()


app = FastAPI(
    title="CogCommit Dashboard API",
    description="Hosted API for synced cognitive commits",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        config.FRONTEND_ORIGIN,
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(dashboard_router)
app.include_router(me_router)


@app.get("/api/health")
def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "db": "connected" if connection._cloud_pool else "disconnected",
        "supabase": "configured" if config.is_supabase_configured() else "missing",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.HOST, port=config.PORT)
