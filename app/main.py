import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import health, interview, sessions
from app.core import config
from app.core.errors import register_exception_handlers
from app.core.logging_config import setup_logging
from app.db.init_db import init_db
from app.db.migrate import run_migrations

logger = logging.getLogger(__name__)


# ============================================
# ✅ STARTUP
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(config.LOG_LEVEL)
    if config.RUN_MIGRATIONS:
        run_migrations()
    else:
        init_db()
    if not config.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY not configured - question and report generation will fail")
    logger.info("Interview Practice API started")
    yield


# ============================================
# ✅ FASTAPI APP INIT
# ============================================

app = FastAPI(title="Interview Practice API", lifespan=lifespan)

# ✅ CORS: the web client calls every endpoint cross-origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

register_exception_handlers(app)


# ============================================
# ✅ REGISTER ALL ROUTERS
# ============================================

app.include_router(sessions.router)
app.include_router(interview.router)
app.include_router(health.router)


@app.get("/")
def root():
    return {"status": "Interview Practice API running"}
