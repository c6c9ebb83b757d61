"""Family share backend application.

This is the main entry point for the family file-sharing service: family
members drop files into the UI, the server keeps them on disk (or S3) and
lists, previews and deletes them on request.

Modules:
    - files: upload, list, delete and raw file serving endpoints
    - storage: local disk and S3 storage back-ends
    - client: HTTP client, upload widget and preview modal logic
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from familyshare.config import get_config
from familyshare.files.router import router as files_router
from familyshare.files.router import uploads_router
from familyshare.storage import get_store

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Silence verbose third-party loggers.
# botocore.auth logs the full SigV4 canonical request, including the
# security token.  urllib3/httpx/httpcore log every TCP connection.
for _noisy in (
    "botocore",
    "boto3",
    "urllib3",
    "urllib3.connectionpool",
    "httpx",
    "httpcore",
):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = get_config()

    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    store = get_store()
    logger.info(
        "Family share running on http://%s:%s (storage=%s)",
        config.server.host,
        config.server.port,
        store.kind,
    )

    yield  # Application runs here

    # Shutdown
    logger.info("Application shutdown complete")


# Create FastAPI application with metadata
app = FastAPI(
    title="Family Share API",
    description="Share files and memories with your family",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(files_router)
app.include_router(uploads_router)


@app.get("/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status object indicating the server is running.
    """
    return {"status": "ok"}
