from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hotrank.core.config import settings
from hotrank.core.http_client import CatalogClient
from hotrank.routers import health
from hotrank.routers import trending as trending_router
from hotrank.services.engine import TrendingEngine
from hotrank.services.store import memory_storage

logger = logging.getLogger("hotrank")
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s: %(message)s",
)


def build_storage():
    if settings.storage_backend == "mongo":
        from hotrank.services.mongo_store import mongo_storage
        return mongo_storage()
    return memory_storage()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    catalog = CatalogClient()
    app.state.engine = TrendingEngine(
        storage=build_storage(),
        catalog=catalog,
        cache_ttl_seconds=settings.cache_ttl(),
        update_interval=settings.trending_update_interval,
    )
    logger.info(
        "[startup] Trending engine up; backend=%s cache_ttl=%s",
        settings.storage_backend,
        settings.cache_ttl(),
    )

    yield

    try:
        await catalog.aclose()
    except Exception as e:
        logger.warning("[shutdown] Catalog client close failed: %s", e)

app = FastAPI(
    title="Hotrank Trending Service",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(trending_router.router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("hotrank.main:app", host="127.0.0.1", port=settings.port, reload=True)
