import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from app import config

logger = logging.getLogger(__name__)

client = AsyncIOMotorClient(config.MONGO_URL)
db = client[config.MONGO_DB_NAME]


async def get_db() -> AsyncIOMotorDatabase:
    """Database dependency"""
    return db


async def create_indexes(database: AsyncIOMotorDatabase):
    """
    Create database indexes
    Called during application startup
    """

    # Identities
    await database.users.create_index("username", unique=True)
    await database.users.create_index("email", unique=True)
    await database.users.create_index("role")
    await database.users.create_index("groupId")
    await database.users.create_index([("role", ASCENDING), ("isActive", ASCENDING), ("xp", DESCENDING)])

    # Groups
    await database.groups.create_index("name", unique=True)
    await database.groups.create_index("adminId")
    await database.groups.create_index("isActive")

    # Projects
    await database.projects.create_index("studentId")
    await database.projects.create_index("groupId")
    await database.projects.create_index("status")
    await database.projects.create_index([("createdAt", DESCENDING)])

    # Group admin tasks
    await database.tasks.create_index("groupId")
    await database.tasks.create_index("assignedTo")
    await database.tasks.create_index("status")
    await database.tasks.create_index("dueDate")

    # Audit logs
    await database.audit_logs.create_index("actorId")
    await database.audit_logs.create_index([("targetType", ASCENDING), ("targetId", ASCENDING)])
    await database.audit_logs.create_index([("timestamp", DESCENDING)])

    logger.info("Database indexes created")
