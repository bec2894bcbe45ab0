import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from clinicbook.api.routes import appointments, doctors, slots
from clinicbook.core.config import _ENV_FILE, settings
from clinicbook.core.db import init_db
from clinicbook.core.errors import PersistenceError

if os.getenv("ENV") != "production":
    logging.basicConfig(level=logging.DEBUG)
else:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}',
    )
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Loading .env from: %s (exists: %s)", _ENV_FILE, _ENV_FILE.exists())
    if settings.is_sqlite:
        # Local SQLite databases are created in place; other databases go through Alembic
        await init_db()
        logger.info("SQLite schema ensured for %s", settings.database_url)
    logger.info(
        "Scheduling: default slot %d min, max appointment %d min, clinic timezone %s",
        settings.default_slot_duration_minutes,
        settings.max_appointment_duration_minutes,
        settings.clinic_timezone,
    )
    yield


app = FastAPI(
    title="Clinicbook API",
    description="Appointment slots and bookings for clinic doctors",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(slots.router, prefix="/api/v1")
app.include_router(appointments.router, prefix="/api/v1")
app.include_router(doctors.router, prefix="/api/v1")


def _cors_headers(origin: str | None) -> dict[str, str]:
    """Add CORS headers to error responses so the browser doesn't block them."""
    headers = {
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "GET, POST, PUT, PATCH, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Authorization, Content-Type",
    }
    if origin and origin in settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = origin
    elif settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = settings.cors_origins_list[0]
    return headers


def _error_response(request: Request, status_code: int, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": detail},
        headers=_cors_headers(request.headers.get("origin")),
    )


@app.exception_handler(PersistenceError)
async def persistence_exception_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    return _error_response(request, 503, f"Storage unavailable: {exc}")


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return actual error in JSON; include CORS so 500 responses are not blocked by browser."""
    if isinstance(exc, HTTPException):
        return _error_response(request, exc.status_code, exc.detail)
    logger.exception("Unhandled exception: %s", exc)
    return _error_response(request, 500, f"{type(exc).__name__}: {exc}")


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
