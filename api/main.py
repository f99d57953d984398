"""
FastAPI application initialization
"""

from fastapi import FastAPI
from api.routes import health, stats, questions
from core.config import settings
from core.logging import setup_logging
import logging
from api.middleware import RequestContextMiddleware
from enrichment.scheduler import EnrichmentScheduler

setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Question Enrichment API",
    description="Work queue health, statistics and inline question generation",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)

# Initialize Scheduler
scheduler = EnrichmentScheduler()


# Include routers
app.include_router(health.router)
app.include_router(stats.router)
app.include_router(questions.router)


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Starting Question Enrichment API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")

    if settings.SCHEDULER_ENABLED:
        scheduler.start()
    else:
        logger.info("Scheduler disabled; bots must be triggered externally")


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down Question Enrichment API")
    scheduler.stop()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Question Enrichment API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "queue_stats": "/stats/queue",
            "generate": "/questions/generate"
        }
    }
