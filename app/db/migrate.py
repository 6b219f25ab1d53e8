"""
Alembic runner used at startup when RUN_MIGRATIONS=1.
"""
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from app.core import config

logger = logging.getLogger(__name__)

ALEMBIC_INI = Path(__file__).resolve().parents[2] / "alembic.ini"

# Arbitrary key shared by every API worker
MIGRATION_LOCK_KEY = 731904556


@contextmanager
def migration_lock(engine: Engine):
    """
    Hold a PostgreSQL advisory lock for the duration of the block so only one
    worker migrates at a time. Other backends run unlocked.
    """
    if engine.dialect.name != "postgresql":
        yield
        return

    with engine.connect() as conn:
        conn.execute(text("SELECT pg_advisory_lock(:key)"), {"key": MIGRATION_LOCK_KEY})
        conn.commit()
        logger.info("Migration lock acquired")
        try:
            yield
        finally:
            conn.execute(text("SELECT pg_advisory_unlock(:key)"), {"key": MIGRATION_LOCK_KEY})
            conn.commit()
            logger.info("Migration lock released")


def build_alembic_config(database_url: str) -> Config:
    cfg = Config(str(ALEMBIC_INI))
    cfg.set_main_option("script_location", str(ALEMBIC_INI.parent / "alembic"))
    # configparser treats % as interpolation
    cfg.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    cfg.attributes["explicit_url"] = True
    return cfg


def run_migrations(database_url: Optional[str] = None, revision: str = "head") -> None:
    """Upgrade the schema to `revision`."""
    url = database_url or config.DATABASE_URL
    if not url:
        raise ValueError("DATABASE_URL is not set")

    logger.info(f"Running alembic upgrade {revision}")
    engine = create_engine(url, pool_pre_ping=True)
    try:
        with migration_lock(engine):
            command.upgrade(build_alembic_config(url), revision)
        logger.info("Migrations complete")
    except Exception:
        logger.exception("Migration failed")
        raise
    finally:
        engine.dispose()
