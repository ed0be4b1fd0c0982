"""
Main Application Module

This module builds the FastAPI application for the reporting service,
configuring routes, middleware and logging.

Features:
- Route management
- CORS configuration
- Request logging
- Error handling
- Health check

Security:
- CORS policies
- Bearer authentication on API routes

Dependencies:
- FastAPI for routing
- CORS middleware
- Logging
- Database

Author: Hourglass Development Team
"""

# First import database to ensure it's initialized first
from .shared.database import lifespan

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from .shared.config import CORS_ORIGINS, LOG_LEVEL
from .features.reports.routes_reports import router as reports_router
from .features.reports.routes_saved import router as saved_reports_router
from .features.preferences.routes_preferences import router as preferences_router
from .features.team.routes_team import router as team_router

# Set up logging
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Hourglass Reporting", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*", "Authorization"],
    expose_headers=["Content-Disposition"],
)

logger.info("Mounting API routers...")

app.include_router(saved_reports_router, prefix="/api")
app.include_router(reports_router, prefix="/api")
app.include_router(preferences_router, prefix="/api")
app.include_router(team_router, prefix="/api")


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    """
    Log HTTP requests and responses.

    Args:
        request: HTTP request
        call_next: Next handler

    Returns:
        Response: HTTP response

    Notes:
        - Unexpected errors become a 500 JSON response
    """
    logger.info(f"Incoming request: {request.method} {request.url.path}")
    try:
        response = await call_next(request)
        logger.info(f"Response status: {response.status_code}")
        return response
    except Exception as e:
        logger.error(f"Request failed: {str(e)}")
        logger.exception("Full traceback:")
        return JSONResponse(
            status_code=500,
            content={"detail": str(e)}
        )
