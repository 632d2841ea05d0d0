"""
Algo Workspace - Main FastAPI Application

Local workspace manager for coding exercises:
- Problem directory layout and path resolution
- Archive/restore between active and completed areas
- Debounced change notifications for problems and templates
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
import sys

from app.utils.config import get_settings
from app.utils.errors import (
    AlreadyRunningError,
    CollisionError,
    ExhaustedError,
    NotFoundError,
    ValidationError,
    WorkspaceError,
    format_error,
)
from app.utils.workspace_service import get_workspace_service, close_workspace_service
from app.api import archive, events, health, workspace
from domains.workspace.manager import init_workspace


# Configure logging
logger.remove()
logger.add(
    sys.stdout,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
    level=get_settings().log_level
)

# Most specific class wins (looked up along the exception's MRO)
ERROR_STATUS_CODES = {
    ValidationError: 400,
    NotFoundError: 404,
    CollisionError: 409,
    AlreadyRunningError: 409,
    ExhaustedError: 500,
    WorkspaceError: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(f"Starting {settings.api_title} v{settings.api_version}")

    service = get_workspace_service()
    init_workspace(service.root, service.resolver)

    if settings.watch_enabled:
        try:
            service.start_watching()
        except WorkspaceError as e:
            logger.error(f"Failed to start file watcher: {e.formatted_message()}")

    yield

    # Cleanup
    logger.info("Shutting down application...")
    close_workspace_service()
    logger.success("Application shut down complete")


# Create FastAPI app
settings = get_settings()
app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description="Workspace manager for coding exercise problems",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def status_code_for(exc: WorkspaceError) -> int:
    """HTTP status for a workspace error."""
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 500


# Exception handlers
@app.exception_handler(WorkspaceError)
async def workspace_exception_handler(request: Request, exc: WorkspaceError):
    """Map workspace errors to HTTP responses."""
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"Workspace error: {exc.formatted_message()}")
    else:
        logger.warning(f"Request failed: {exc.formatted_message()}")
    return JSONResponse(
        status_code=status_code,
        content={
            "error": exc.code,
            "detail": exc.message,
            "operation": exc.context.get("operation"),
        }
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {format_error(exc)}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if settings.log_level == "DEBUG" else "An error occurred"
        }
    )


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(workspace.router, prefix="/workspace", tags=["Workspace"])
app.include_router(archive.router, tags=["Archive"])
app.include_router(events.router, prefix="/events", tags=["Events"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Algo Workspace",
        "version": settings.api_version,
        "status": "operational",
        "docs": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.api_port,
        reload=True,
        log_level=settings.log_level.lower()
    )
