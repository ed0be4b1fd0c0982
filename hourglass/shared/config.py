"""
Configuration Module

This module manages application configuration settings and environment
variables for the reporting service.

Features:
- Environment loading
- Database settings
- Token settings
- Mutation API location
- Logging level

Data Model:
- Connection strings
- Token secrets
- Server config
- Report defaults

Dependencies:
- os for env
- dotenv for loading

Author: Hourglass Development Team
"""

import os
from dotenv import load_dotenv

load_dotenv()

# MongoDB Configuration
MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
DB_NAME = os.getenv("DB_NAME", "Hourglass")
MONGO_TLS = os.getenv("MONGO_TLS", "false").lower() == "true"

# Token Configuration
JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_VERIFY_SIGNATURE = bool(JWT_SECRET)

# Mutation API (team, tasks, archive, pin)
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:3000")
API_TIMEOUT_SECONDS = float(os.getenv("API_TIMEOUT_SECONDS", "30"))

# Server Configuration
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Report Configuration
REPORT_TIMEZONE = os.getenv("REPORT_TIMEZONE", "UTC")
ALL_TIME_START = "2000-01-01"
