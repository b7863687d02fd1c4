"""Main FastAPI application."""
import sys
import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from image_similarity import __version__
from image_similarity.core.config import settings
from image_similarity.core.database import close_db, init_db
from image_similarity.core.exceptions import SimilarityException
from image_similarity.api.dependencies import get_extractor, shutdown_dependencies
from image_similarity.api.middleware import RequestTimingMiddleware
from image_similarity.api.routes import api_router


def configure_logging():
    """Configure root logging from settings."""
    settings.ensure_directories_exist()
    handlers = [logging.StreamHandler(sys.stdout)]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file))

    logging.basicConfig(
        level=settings.log_level.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    # Startup
    logger.info(f"Starting Image Similarity API {__version__}")
    logger.info(f"Storage backend: {settings.storage_backend}")
    logger.info(f"Feature extractor: {get_extractor().extractor_name}")

    if settings.uses_database:
        url = settings.database_url
        logger.info(f"Database: {url.split('@')[1] if '@' in url else url}")
        await init_db()

    yield

    # Shutdown
    logger.info("Shutting down Image Similarity API")
    await shutdown_dependencies()
    await close_db()


# Create FastAPI application
app = FastAPI(
    title="Image Similarity API",
    description="Upload images and find visually similar ones by feature vector",
    version=__version__,
    lifespan=lifespan
)


@app.exception_handler(SimilarityException)
async def similarity_exception_handler(request: Request, exc: SimilarityException):
    """Map domain errors to responses without leaking internal detail."""
    if exc.is_client_error:
        logger.warning(f"HTTP {exc.status_code} on {request.method} {request.url}: {exc.message}")
        detail = exc.message
    else:
        logger.error(
            f"{type(exc).__name__} on {request.method} {request.url}: {exc.message}",
            exc_info=exc
        )
        detail = "Internal server error"
        if exc.status_code == 502:
            detail = "Failed to process image"

    return JSONResponse(status_code=exc.status_code, content={"detail": detail})


# Global exception handler to catch and log all unhandled exceptions
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions and log them with full traceback."""
    logger.error(f"Unhandled exception on {request.method} {request.url}")
    logger.error(f"Exception type: {type(exc).__name__}")
    logger.error(f"Exception message: {str(exc)}")
    logger.error(f"Full traceback:\n{traceback.format_exc()}")

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


# HTTP exception handler for more details
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with logging."""
    logger.warning(f"HTTP {exc.status_code} on {request.method} {request.url}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail}
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add request timing middleware
app.add_middleware(RequestTimingMiddleware)

# Include API routes
app.include_router(api_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Image Similarity API",
        "version": __version__,
        "docs": "/docs",
        "health": "/api/health"
    }


def run():
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "image_similarity.main:app",
        host=settings.api_host,
        port=settings.api_port
    )


if __name__ == "__main__":
    run()
