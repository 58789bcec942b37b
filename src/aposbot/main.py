"""FastAPI application entry point."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

# Logging constants defined here (not in constants/) because logging.basicConfig()
# must run before any module imports that might create loggers.
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logging.basicConfig(
    format=LOG_FORMAT,
    datefmt=DATE_FORMAT,
    level=logging.INFO,
)

# Unify uvicorn loggers with app format
for uvicorn_logger_name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
    uvicorn_logger = logging.getLogger(uvicorn_logger_name)
    uvicorn_logger.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    uvicorn_logger.addHandler(handler)

from aposbot.api import deps  # noqa: E402
from aposbot.api.routers import qa  # noqa: E402
from aposbot.vectorstore.store import VectorStore  # noqa: E402

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan handler for startup and shutdown events.

    On startup:
    - Connects the documentation vector store, retrying a few times.
      Startup fails if it cannot be opened.

    On shutdown:
    - Closes the vector store
    """
    settings = deps.get_settings()
    store = await VectorStore.connect(
        settings.chroma_path,
        deps.get_embedder(),
        collection_name=settings.vectorstore.collection_name,
        attempts=settings.vectorstore.init_attempts,
        retry_delay=settings.vectorstore.retry_delay_seconds,
    )
    deps.set_vectorstore(store)
    logger.info(f"aposbot started (model {settings.llm_model})")

    yield

    deps.set_vectorstore(None)
    store.close()


app = FastAPI(
    title="aposbot",
    description="ApostropheCMS documentation assistant",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.get("/", response_class=PlainTextResponse)
async def root() -> str:
    """Liveness probe."""
    return "OK"


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint, including the vector store."""
    try:
        store = deps.get_vectorstore()
    except HTTPException:
        return {"status": "degraded", "vectorstore": "Vector store not connected."}
    healthy, message = await asyncio.to_thread(store.health_check)
    return {"status": "healthy" if healthy else "degraded", "vectorstore": message}


app.include_router(qa.router)
