"""
Chat Memory Service - FastAPI Application
Main entry point for the API server.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
from datetime import datetime, timezone

import aiosqlite
from redis.exceptions import RedisError

from config.settings import settings
from api.routes import memory_router
from api.models import HealthResponse, ErrorResponse
from memory import SerializationError, memory_store

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Runs on startup and shutdown.
    """
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    settings.ensure_directories()
    logger.info(
        f"Memory: backend={settings.memory_backend}, "
        f"max_messages={settings.memory_max_messages}, "
        f"trim_on_write={settings.memory_trim_on_write}"
    )

    yield

    # Shutdown
    logger.info("Shutting down...")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Chat assistant with persistent per-conversation memory",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, error: str, code: str, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=error,
            code=code,
            details={"message": str(exc)} if settings.debug else None,
            timestamp=datetime.now(timezone.utc),
        ).model_dump(mode="json")
    )


@app.exception_handler(aiosqlite.Error)
@app.exception_handler(RedisError)
@app.exception_handler(OSError)
async def storage_exception_handler(request: Request, exc: Exception):
    logger.error(f"Storage error on {request.url.path}: {exc}", exc_info=True)
    return _error_response(503, "Memory storage unavailable", "STORAGE_ERROR", exc)


@app.exception_handler(SerializationError)
async def serialization_exception_handler(request: Request, exc: SerializationError):
    logger.error(f"Corrupt memory record on {request.url.path}: {exc}")
    return _error_response(500, "Stored conversation could not be read", "SERIALIZATION_ERROR", exc)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return _error_response(500, "Internal server error", "INTERNAL_ERROR", exc)


# Health check
@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    """
    Health check endpoint.
    Returns status of all services.
    """
    try:
        memory_ok = await memory_store.ping()
    except Exception as e:
        logger.warning(f"Memory backend health check failed: {e}")
        memory_ok = False

    services = {
        "api": True,
        "memory": memory_ok,
    }

    all_healthy = all(services.values())

    return HealthResponse(
        status="healthy" if all_healthy else "degraded",
        version=settings.app_version,
        services=services,
    )


# Include routers
app.include_router(memory_router)


# Root endpoint
@app.get("/", tags=["System"])
async def root():
    """
    Root endpoint with API information.
    """
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health",
        "chat": "/memory/process",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
