"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

import custody_gate.models  # noqa: F401
from custody_gate.config import get_settings
from custody_gate.database import Base, engine
from custody_gate.exceptions import CryptoError, ProcessingError, StorageError
from custody_gate.routers.admin import router as admin_router
from custody_gate.routers.bootstrap import router as bootstrap_router
from custody_gate.routers.checkpoint import router as checkpoint_router
from custody_gate.routers.dependencies import get_codec

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    """Configure logging, build the codec and initialize the schema.

    Yields
    ------
    None
        Runs the application lifespan.
    """
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    get_codec()
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    logger.info("%s started", settings.app_name)
    yield


app = FastAPI(title="Custody Gate", lifespan=lifespan)
app.include_router(bootstrap_router)
app.include_router(checkpoint_router)
app.include_router(admin_router)


@app.exception_handler(StorageError)
async def storage_error_handler(_: Request, exc: StorageError) -> JSONResponse:
    """Report persistence failures as a temporary outage."""
    logger.error("Storage failure: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage temporarily unavailable"},
    )


@app.exception_handler(ProcessingError)
async def processing_error_handler(_: Request, exc: ProcessingError) -> JSONResponse:
    """Report a rolled-back checkpoint write."""
    logger.error("Processing failure: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Unable to process scan"},
    )


@app.exception_handler(CryptoError)
async def crypto_error_handler(_: Request, exc: CryptoError) -> JSONResponse:
    """Report a sealing failure without leaking details."""
    logger.error("Crypto failure: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Unable to seal QR payload"},
    )
