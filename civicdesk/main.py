"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from civicdesk.core.config import settings
from civicdesk.core.middleware import setup_middleware
from civicdesk.core.exceptions import (
    CivicDeskError, AuthenticationError, PermissionDeniedError, InvalidPermissionError,
    AuditWriteFailure, ResourceNotFoundError, ValidationError,
)
from civicdesk.services.permission_catalog import get_catalog

from civicdesk.api.auth import router as auth_router
from civicdesk.api.admin import router as admin_router
from civicdesk.api.workflow import router as workflow_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("civicdesk")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting %s API", settings.APP_NAME)
    # Fail fast on a broken permission matrix
    catalog = get_catalog()
    logger.info("Permission matrix v%s ready (%d roles)", catalog.version, len(catalog.roles()))

    yield

    logger.info("Shutting down %s API", settings.APP_NAME)


app = FastAPI(
    title="CivicDesk API",
    description="Municipal records portal: role permissions, delegation and audit trail",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Middleware
setup_middleware(app)


@app.exception_handler(AuthenticationError)
async def authentication_exception_handler(request: Request, exc: AuthenticationError):
    return JSONResponse(
        status_code=401,
        content={"detail": "Not authenticated"},
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.exception_handler(PermissionDeniedError)
async def permission_exception_handler(request: Request, exc: PermissionDeniedError):
    # Body never names the missing role or permission
    return JSONResponse(status_code=403, content={"detail": "Insufficient permission"})


@app.exception_handler(InvalidPermissionError)
async def invalid_permission_exception_handler(request: Request, exc: InvalidPermissionError):
    return JSONResponse(
        status_code=422,
        content={"detail": "Invalid permissions provided.", "invalid_permissions": exc.invalid},
    )


@app.exception_handler(ResourceNotFoundError)
async def not_found_exception_handler(request: Request, exc: ResourceNotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.exception_handler(AuditWriteFailure)
async def audit_failure_exception_handler(request: Request, exc: AuditWriteFailure):
    logger.error("Request %s %s aborted: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(CivicDeskError)
async def civicdesk_exception_handler(request: Request, exc: CivicDeskError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


# Register routers
app.include_router(auth_router, prefix="/api")
app.include_router(admin_router, prefix="/api")
app.include_router(workflow_router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/api/health")
async def health():
    """Quick health check endpoint."""
    return {"status": "ok"}
