"""
backend/fieldstats/main.py

Purpose:
    FastAPI application bootstrap, middleware/router wiring, database
    lifecycle and error mapping for the statistics API.

Dependencies:
    - fieldstats.database
    - fieldstats.middleware.logging
    - fieldstats.routers
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import ConnectionFailure, OperationFailure, ServerSelectionTimeoutError

from fieldstats.config import settings
import fieldstats.database as _db
from fieldstats.database import connect_db, close_db
from fieldstats.middleware.logging import StructuredLoggingMiddleware, setup_logging

logger = logging.getLogger("fieldstats")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    await connect_db()
    logger.info("Connected to MongoDB database %s", settings.MONGO_DB)

    yield

    await close_db()


app = FastAPI(
    title="Fieldstats",
    description="Football match lists and league standings",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS.split(","),
    allow_credentials=False,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# Structured logging
app.add_middleware(StructuredLoggingMiddleware)

# Routers
from fieldstats.routers.matches import router as matches_router
from fieldstats.routers.teams import router as teams_router
from fieldstats.routers.leagues import router as leagues_router

app.include_router(matches_router)
app.include_router(teams_router)
app.include_router(leagues_router)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Return clean validation errors without leaking internal field paths."""
    errors = []
    for err in exc.errors():
        loc = err.get("loc", ())
        field = ".".join(str(l) for l in loc[1:]) if len(loc) > 1 else str(loc[-1]) if loc else "unknown"
        errors.append({"field": field, "message": err.get("msg", "Invalid value.")})
    return JSONResponse(status_code=422, content={"detail": "Validation error.", "errors": errors})


@app.exception_handler(ServerSelectionTimeoutError)
async def db_timeout_handler(request: Request, exc: ServerSelectionTimeoutError):
    logger.error("Database timeout: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable."})


@app.exception_handler(ConnectionFailure)
async def db_connection_handler(request: Request, exc: ConnectionFailure):
    logger.error("Database connection failure: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable."})


@app.exception_handler(OperationFailure)
async def db_operation_handler(request: Request, exc: OperationFailure):
    logger.error("Database operation error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "An internal error occurred."})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all: log the real error, return a safe generic message."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "An internal error occurred."})


@app.get("/health")
async def health():
    """Health check -- verifies the DB connection."""
    try:
        result = await _db.db.command("ping")
        db_ok = result.get("ok") == 1.0
    except Exception:
        logger.warning("Health check ping failed", exc_info=True)
        db_ok = False

    return {
        "status": "healthy" if db_ok else "degraded",
        "db": "connected" if db_ok else "disconnected",
    }
