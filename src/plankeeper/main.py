# src/plankeeper/main.py
"""Main entry point for the PlanKeeper Stage application."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from plankeeper.api import auth_router, users_router
from plankeeper.core.logging_config import configure_logging
from plankeeper.core.settings import settings
from plankeeper.services.purge import ChallengePurgeWorker

configure_logging()

# Initialize FastAPI app
app = FastAPI(
    title="PlanKeeper API",
    description="Wallet-authenticated plan management API",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(auth_router, prefix="/api")
app.include_router(users_router, prefix="/api")


@app.on_event("startup")
async def on_startup() -> None:
    if settings.challenge_purge_enabled:
        worker = ChallengePurgeWorker()
        await worker.start()
        app.state.purge_worker = worker
    else:
        app.state.purge_worker = None


@app.on_event("shutdown")
async def on_shutdown() -> None:
    worker: ChallengePurgeWorker | None = getattr(app.state, "purge_worker", None)
    if worker:
        await worker.stop()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("plankeeper.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
