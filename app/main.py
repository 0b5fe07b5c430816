import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app import config
from app.admins.admin_router import router as admins_router
from app.auth.auth_router import router as auth_router
from app.common.errors import register_exception_handlers
from app.database import create_indexes, db
from app.groups.group_router import router as groups_router
from app.leaderboard.leaderboard_router import router as leaderboard_router
from app.logging_config import setup_logging
from app.middleware import RequestLoggingMiddleware
from app.projects.project_router import router as projects_router
from app.students.student_router import router as students_router
from app.system.health_router import router as health_router
from app.tasks.task_router import router as tasks_router

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="XP Mentorship API", version=config.VERSION)


@app.on_event("startup")
async def startup_event():
    await create_indexes(db)
    logger.info(f"XP Mentorship API {config.VERSION} started")


app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)

register_exception_handlers(app)

# ==================== ROUTER REGISTRATION ====================
app.include_router(auth_router, prefix="/api")
app.include_router(students_router, prefix="/api")
app.include_router(admins_router, prefix="/api")
app.include_router(groups_router, prefix="/api")
app.include_router(tasks_router, prefix="/api")
app.include_router(projects_router, prefix="/api")
app.include_router(leaderboard_router, prefix="/api")
app.include_router(health_router, prefix="/api")
# ============================================================
