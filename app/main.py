"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api import router as api_router
from app.core.config import get_settings, validate_generation_config
from app.core.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Missing generation credentials abort startup
    settings = get_settings()
    validate_generation_config(settings)
    logger.info(f"BevGenie engine starting (env={settings.BEVGENIE_ENV})")
    yield


app = FastAPI(
    title="BevGenie Engine",
    description="Persona detection and personalized page generation for the BevGenie chat widget",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are client errors (400), not 422."""
    logger.info(f"Rejected malformed request to {request.url.path}: {exc.errors()[:1]}")
    return JSONResponse(content={"detail": "Invalid request format"}, status_code=400)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"}, status_code=200)


app.include_router(api_router)
