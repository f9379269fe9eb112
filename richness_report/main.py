"""
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from richness_report.config import settings
from richness_report.api.v1.routers import report
from richness_report.infrastructure.source_fetcher import is_remote
from richness_report.middleware.error_handler import ErrorHandlerMiddleware
from richness_report.middleware.rate_limit import REPORT_RATE_LIMIT, limiter

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events using the modern FastAPI pattern.
    """
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Sources: polygons={settings.polygon_source}, "
                f"occurrences={settings.occurrence_source}")
    logger.info(f"Analysis config: target_crs={settings.target_crs}, "
                f"predicate={settings.join_predicate}, top_species={settings.top_species_limit}")
    logger.info(f"Report rate limit: {REPORT_RATE_LIMIT}")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Species Richness Report for Conservation Areas

    Joins orchid occurrence records to conservation-area polygons and reports
    how many distinct species each area holds.

    ## Features

    - **Spatial Join**: Each occurrence is attached to the area whose interior
      contains it ("within"); points outside every area stay unjoined
    - **Richness**: Distinct species per area, zero for areas without records
    - **Report**: Sortable table, interactive map and bar charts as one HTML page
    - **Remote Sources**: http(s) sources are downloaded with retries
    - **Rate Limiting**: Protects the report endpoint from abuse
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware with configurable origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add global error handling middleware
app.add_middleware(ErrorHandlerMiddleware)

# Include routers
app.include_router(report.router, prefix="/api/v1")


@app.get("/", tags=["health"])
async def root():
    """
    Root endpoint for health check.

    Returns:
        Status message
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint.

    Reports where each configured source lives without downloading it:
    "remote" for URLs, "local" for existing files, "missing" otherwise.
    A missing source does not make the service unhealthy; report requests
    fail with 503 until it appears.
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "sources": {
            "polygons": _source_state(settings.polygon_source),
            "occurrences": _source_state(settings.occurrence_source),
        },
    }


def _source_state(source: str) -> str:
    if is_remote(source):
        return "remote"
    return "local" if Path(source).exists() else "missing"
