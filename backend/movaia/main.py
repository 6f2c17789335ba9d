import logging
import sys
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from movaia import models  # noqa: F401  registers tables on Base.metadata
from movaia.api import analysis, videos
from movaia.config import get_settings
from movaia.core.database import Base, engine

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    app.state.http_client = httpx.AsyncClient(timeout=settings.worker_timeout_seconds)
    try:
        yield
    finally:
        await app.state.http_client.aclose()
        await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description="Movaia - running gait video analysis API",
    lifespan=lifespan,
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions and log them."""
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.method} {request.url}: {exc}",
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(videos.router, prefix=f"{settings.api_prefix}/videos", tags=["videos"])
app.include_router(analysis.router, prefix=f"{settings.api_prefix}/analysis", tags=["analysis"])


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": settings.app_name}
