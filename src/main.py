"""
HitTags API Gateway
FastAPI Application Entry Point
"""

import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.db.session import close_db, init_db
from src.middleware.api_gateway import APIGatewayMiddleware
from src.routes.api_key_routes import router as keys_router
from src.routes.public_api_routes import info_router as v1_info_router
from src.routes.public_api_routes import router as v1_router
from src.routes.webhook_routes import router as webhooks_router
from src.routes.zapier_routes import router as zapier_router
from src.utils import config
from src.utils.exceptions import HitTagsServiceError
from src.utils.responses import error_response, exception_response

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout), logging.FileHandler("app.log")],
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup"""
    logger.info("Starting up HitTags API gateway...")
    try:
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}", exc_info=True)
        raise

    yield

    logger.info("Shutting down HitTags API gateway...")
    try:
        await close_db()
        logger.info("Database connections closed")
    except Exception as e:
        logger.error(f"Error closing database: {str(e)}", exc_info=True)


app = FastAPI(
    title="HitTags API",
    description="Bookmark API with scoped API keys, rate limits and webhooks",
    version="1.0.0",
    lifespan=lifespan,
)

# Starlette runs the last added middleware first: CORS answers preflights
# before the gateway sees them
app.add_middleware(
    APIGatewayMiddleware,
    guarded_prefixes=config.GUARDED_PATH_PREFIXES,
    exempt_paths=config.GATEWAY_EXEMPT_PATHS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[
        "X-RateLimit-Limit-Hour",
        "X-RateLimit-Remaining-Hour",
        "X-RateLimit-Limit-Day",
        "X-RateLimit-Remaining-Day",
        "Retry-After",
    ],
)


@app.exception_handler(HitTagsServiceError)
async def service_error_handler(request: Request, exc: HitTagsServiceError):
    """Service errors raised by dependencies and handlers keep their status"""
    if exc.status_code >= 500:
        logger.error(f"{exc.message} - Path: {request.url.path}")
    return exception_response(exc)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and parameters are client errors in the shared error shape"""
    return error_response(
        status_code=status.HTTP_400_BAD_REQUEST,
        message="Invalid request",
        extra={"details": exc.errors()},
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler to catch unhandled exceptions
    Logs error and returns generic error message to client
    """
    logger.error(
        f"Unhandled exception: {str(exc)} - Path: {request.url.path}", exc_info=True
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "An internal error occurred. Please try again later.",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


# Include routers
app.include_router(keys_router, prefix="/developer/api-keys", tags=["API Keys"])
app.include_router(webhooks_router, prefix="/developer/webhooks", tags=["Webhooks"])
app.include_router(v1_info_router, prefix="/api/v1", tags=["Public API"])
app.include_router(v1_router, prefix="/api/v1", tags=["Public API"])
app.include_router(zapier_router, prefix="/api/zapier", tags=["Zapier"])


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "HitTags API",
        "version": "1.0.0",
        "status": "operational",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}
