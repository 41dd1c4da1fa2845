from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()

ALEMBIC_DIR = Path(__file__).resolve().parents[3] / "alembic"
BASELINE_REVISION = "0001_create_audio_records"


def create_db_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Upload and delete run on worker threads.
        connect_args["check_same_thread"] = False
    return create_engine(database_url, future=True, connect_args=connect_args)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )


def alembic_config() -> Config:
    config = Config()
    config.set_main_option("script_location", str(ALEMBIC_DIR))
    return config


def upgrade_database(engine: Engine) -> None:
    """Bring the schema to the head revision of the alembic history.

    Tables created before migrations were tracked are stamped at the
    baseline revision first, so later revisions still apply.
    """
    config = alembic_config()
    head = ScriptDirectory.from_config(config).get_current_head()
    with engine.begin() as connection:
        current = MigrationContext.configure(connection).get_current_revision()
        logger.info("Database revision: %s, head revision: %s", current or "none", head)
        if current == head:
            return

        config.attributes["connection"] = connection
        if current is None and inspect(connection).has_table("audio_records"):
            logger.info("Untracked schema found, stamping %s", BASELINE_REVISION)
            command.stamp(config, BASELINE_REVISION)
        logger.info("Applying migrations...")
        command.upgrade(config, "head")
        logger.info("Migrations applied successfully")
