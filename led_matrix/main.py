"""
LED Matrix Control Service

Manages a fleet of networked LED-matrix display devices: stores device
endpoints and images, and pushes rendered frames to a device's HTTP
control API.
"""

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI

# Load environment variables
load_dotenv()

from led_matrix import __version__
from led_matrix.database import init_db
from led_matrix.routers import display_router, images_router, instances_router

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup: Initialize database tables
    init_db()
    yield


app = FastAPI(
    title="LED Matrix Control API",
    version=__version__,
    description="""
Manages LED-matrix display devices: stores device endpoints and images,
and pushes rendered frames to a device's HTTP control API.
    """,
    lifespan=lifespan,
)

# Include routers
app.include_router(display_router)
app.include_router(images_router)
app.include_router(instances_router)


@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    debug = os.getenv("DEBUG", "false").lower() == "true"

    uvicorn.run("led_matrix.main:app", host=host, port=port, reload=debug)
