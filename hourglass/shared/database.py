"""
Database Module

This module manages MongoDB database connections and collections
for the application.

Features:
- Connection management
- Collection access
- Database initialization
- Error handling
- Lifecycle management

Data Model:
- Clients, projects, tasks
- Users and teams
- Timesheets
- Saved reports
- View preferences

Security:
- SSL/TLS
- Retry logic
- Connection pooling

Dependencies:
- Motor for async MongoDB
- FastAPI for lifecycle
- certifi for SSL

Author: Hourglass Development Team
"""

from motor.motor_asyncio import AsyncIOMotorClient
from fastapi import FastAPI
from contextlib import asynccontextmanager
import asyncio
import logging
import certifi

from .config import MONGODB_URL, DB_NAME, MONGO_TLS

logger = logging.getLogger(__name__)

# MongoDB Connection Settings
MONGO_SETTINGS = {
    "serverSelectionTimeoutMS": 10000,
    "connectTimeoutMS": 20000,
    "maxPoolSize": 100,
    "retryWrites": True
}
if MONGO_TLS:
    MONGO_SETTINGS.update({"tls": True, "tlsCAFile": certifi.where()})

# Motor does not connect until the first operation
async_client = AsyncIOMotorClient(MONGODB_URL, **MONGO_SETTINGS)
db = async_client[DB_NAME]

# Reference collections
clients_collection = db["clients"]
projects_collection = db["projects"]
tasks_collection = db["tasks"]

# People
users_collection = db["users"]
teams_collection = db["teams"]

# Time tracking
timesheets_collection = db["timesheets"]

# Report state
saved_reports_collection = db["saved_reports"]
preferences_collection = db["preferences"]


async def init_db():
    """
    Initialize database connection.

    Returns:
        bool: Connection status

    Notes:
        - Retries connection
        - Validates ping
        - Logs status
    """
    retry_count = 3
    retry_delay = 5  # seconds

    for attempt in range(retry_count):
        try:
            logger.info(f"Database initialization attempt {attempt + 1}/{retry_count}...")
            await async_client.admin.command('ping')
            logger.info("MongoDB ping successful")
            return True
        except Exception as e:
            logger.error(f"Database connection attempt {attempt + 1} failed: {e}")
            if attempt < retry_count - 1:
                logger.info(f"Retrying in {retry_delay} seconds...")
                await asyncio.sleep(retry_delay)
            else:
                logger.error("All connection attempts failed")
                return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage database lifecycle.

    Args:
        app: FastAPI application

    Yields:
        None
    """
    logger.info("Starting database initialization...")
    success = await init_db()
    if not success:
        raise RuntimeError("Failed to initialize database")
    logger.info("Database initialization complete")

    yield

    logger.info("Shutting down database connections...")
    async_client.close()
    logger.info("Database connections closed")


__all__ = [
    'async_client',
    'db',
    'clients_collection',
    'projects_collection',
    'tasks_collection',
    'users_collection',
    'teams_collection',
    'timesheets_collection',
    'saved_reports_collection',
    'preferences_collection',
    'lifespan',
    'init_db'
]
