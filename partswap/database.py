"""Database schema management."""

import logging
import re
from pathlib import Path

from sqlalchemy import MetaData, inspect, text
from sqlalchemy.exc import SQLAlchemyError

from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory
from partswap.config import get_settings
from partswap.extensions import db

logger = logging.getLogger(__name__)


def init_db() -> None:
    """Create all tables that do not exist yet. Safe to call multiple times."""
    # Import all models to ensure they're registered with SQLAlchemy
    import partswap.models  # noqa: F401

    db.create_all()


def check_db_connection() -> bool:
    """Check if database connection is working."""
    try:
        result = db.session.execute(text("SELECT 1"))
        return result.scalar() == 1
    except SQLAlchemyError as e:
        logger.warning(f"Database connection check failed: {e}")
        return False


def _get_alembic_config() -> Config:
    """Alembic configuration with the database URL from the application settings."""
    # alembic.ini lives in the project root (parent of partswap/)
    alembic_cfg_path = Path(__file__).parent.parent / "alembic.ini"

    config = Config(str(alembic_cfg_path))
    config.set_main_option("script_location", str(Path(__file__).parent.parent / "alembic"))
    config.set_main_option("sqlalchemy.url", get_settings().DATABASE_URL)

    return config


def get_current_revision() -> str | None:
    """Current revision from the Alembic version table, None for an unversioned database."""
    inspector = inspect(db.engine)
    if "alembic_version" not in inspector.get_table_names():
        return None

    with db.engine.connect() as connection:
        row = connection.execute(text("SELECT version_num FROM alembic_version")).fetchone()
        return row[0] if row else None


def get_pending_migrations() -> list[str]:
    """Revisions between the current one and head, oldest first."""
    script = ScriptDirectory.from_config(_get_alembic_config())

    current_rev = get_current_revision()
    head_rev = script.get_current_head()

    if not head_rev or current_rev == head_rev:
        return []

    revisions = [
        rev.revision
        for rev in script.walk_revisions(base="base", head=head_rev)
    ]
    revisions.reverse()

    if current_rev and current_rev in revisions:
        revisions = revisions[revisions.index(current_rev) + 1:]
    return revisions


def drop_all_tables() -> None:
    """Drop all tables including Alembic version table."""
    metadata = MetaData()
    metadata.reflect(bind=db.engine)
    metadata.drop_all(bind=db.engine)


def _get_migration_info(script_dir: ScriptDirectory, revision: str) -> tuple[str, str]:
    """Short revision id and the first docstring line of its migration file."""
    rev_obj = script_dir.get_revision(revision)
    if not rev_obj or not rev_obj.path:
        return revision, "Unknown migration"

    content = Path(rev_obj.path).read_text()
    docstring_match = re.search(r'"""([^"\n]+)', content)
    if docstring_match:
        return revision[:7], docstring_match.group(1).strip()

    return revision[:7], "Migration"


def upgrade_database(recreate: bool = False) -> list[tuple[str, str]]:
    """Apply pending migrations one at a time.

    Args:
        recreate: If True, drop all tables first

    Returns:
        List of (revision, description) tuples for applied migrations
    """
    config = _get_alembic_config()
    applied_migrations: list[tuple[str, str]] = []

    if recreate:
        logger.warning("Dropping all tables")
        drop_all_tables()

    pending = get_pending_migrations()
    if not pending:
        return applied_migrations

    script = ScriptDirectory.from_config(config)

    with db.engine.begin() as connection:
        config.attributes["connection"] = connection

        for revision in pending:
            rev_short, description = _get_migration_info(script, revision)
            logger.info(f"Applying schema {rev_short} - {description}")
            command.upgrade(config, revision)
            applied_migrations.append((rev_short, description))

    return applied_migrations
