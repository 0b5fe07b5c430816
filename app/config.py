"""
XP Mentorship API Configuration
Database, token and bootstrap-account settings
"""

import os


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


# MongoDB
MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "xp_mentorship")
# Multi-document transactions need a replica set; standalone servers fall back
# to compensating writes
MONGO_USE_TRANSACTIONS = _env_bool("MONGO_USE_TRANSACTIONS")

# Session tokens
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS", "7"))

# Password hashing
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

# Bootstrap superadmin (not stored in the users collection)
SUPERADMIN_ID = os.getenv("SUPERADMIN_ID", "superadmin-demo")
SUPERADMIN_USERNAME = os.getenv("SUPERADMIN_USERNAME", "superadmin")
SUPERADMIN_PASSWORD = os.getenv("SUPERADMIN_PASSWORD", "demo123")
SUPERADMIN_EMAIL = os.getenv("SUPERADMIN_EMAIL", "superadmin@example.com")

# HTTP
FRONTEND_URL = os.getenv("FRONTEND_URL")
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if origin.strip()
]
if FRONTEND_URL:
    CORS_ORIGINS.append(FRONTEND_URL)

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # text | json

VERSION = os.getenv("VERSION", "1.0.0")

# Leaderboard
LEADERBOARD_DEFAULT_LIMIT = 50
