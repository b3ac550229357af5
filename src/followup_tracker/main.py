"""Main FastAPI application for the follow-up tracker."""

import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError  # type: ignore

from . import __version__
from .api import documents
from .api.middleware import register_problem_handlers
from .config import get_config
from .db.database import SessionLocal

config = get_config()

# Create FastAPI app
app = FastAPI(
    title=config.app.app_name,
    description=config.app.description,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

register_problem_handlers(app)

if config.app.enable_cors:
    allowed_origins = [
        f"http://{config.server.host}:{config.server.port}",
        f"http://localhost:{config.server.port}",
    ]

    # In development mode, allow additional localhost ports
    if config.server.debug:
        allowed_origins.extend([
            "http://127.0.0.1:3000",
            "http://localhost:3000",
        ])

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "Origin", "X-Requested-With"],
    )

# Register API routers
app.include_router(documents.router)
app.include_router(documents.lookup_router)


@app.get("/", include_in_schema=False)
async def root():
    """Redirect to the API docs."""
    return RedirectResponse(url="/docs")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "followup-tracker", "version": __version__}


@app.get("/ready")
def readiness_check():
    """Readiness check endpoint that validates database connectivity."""
    start_time = time.time()
    checks = {"database": False}
    errors = []

    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = True
    except SQLAlchemyError as e:
        errors.append(f"Database check failed: {e}")
    finally:
        db.close()

    response = {
        "status": "ready" if all(checks.values()) else "not_ready",
        "service": "followup-tracker",
        "version": __version__,
        "checks": checks,
        "response_time_ms": round((time.time() - start_time) * 1000, 2),
    }
    if errors:
        response["errors"] = errors

    return JSONResponse(content=response, status_code=200 if all(checks.values()) else 503)
