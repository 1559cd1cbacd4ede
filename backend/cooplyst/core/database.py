"""
Database configuration
"""
import logging
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from cooplyst.core.config import settings

logger = logging.getLogger(__name__)

DATABASE_URL = settings.DATABASE_URL

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    echo=False  # set to True to log SQL statements
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

# Default runtime settings, written once on first start
DEFAULT_SETTINGS = {
    "vote_threshold": str(settings.DEFAULT_VOTE_THRESHOLD),
    "vote_visibility": "public",
    "game_api_providers": "[]",
}

# Metadata columns added after the first schema version
GAME_COLUMN_MIGRATIONS = {
    "backdrop_url": "VARCHAR(1000)",
    "thumbnail_url": "VARCHAR(1000)",
    "logo_url": "VARCHAR(1000)",
    "rating": "FLOAT",
    "developer": "VARCHAR(255)",
    "release_date": "VARCHAR(50)",
    "age_rating": "VARCHAR(100)",
    "time_to_beat": "VARCHAR(100)",
    "player_counts": "VARCHAR(100)",
    "coop": "VARCHAR(255)",
    "online_offline": "VARCHAR(50)",
    "screenshots": "JSON",
    "videos": "JSON",
    "provider_payload": "JSON",
    "tags": "TEXT",
    "website": "VARCHAR(1000)",
    "last_run_number": "INTEGER NOT NULL DEFAULT 0",
}


def install_sqlite_pragmas(target: Engine) -> None:
    """Enable WAL journaling and foreign keys on every new SQLite connection"""
    if target.dialect.name != "sqlite":
        return

    @event.listens_for(target, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


install_sqlite_pragmas(engine)


def get_db():
    """Yield a database session for one request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def import_models():
    """Import every model so Base.metadata knows all tables"""
    from cooplyst.models.user import User
    from cooplyst.models.setting import Setting
    from cooplyst.models.game import Game
    from cooplyst.models.vote import Vote
    from cooplyst.models.player import Player
    from cooplyst.models.run import Run
    from cooplyst.models.rating import Rating


async def init_db():
    """Create tables, migrate older databases and seed default settings"""
    import_models()

    Base.metadata.create_all(bind=engine)

    _migrate_database()

    db = SessionLocal()
    try:
        seed_default_settings(db)
    finally:
        db.close()

    logger.info("Database initialised at %s", DATABASE_URL)


def seed_default_settings(db: Session) -> None:
    """Insert default runtime settings that are missing"""
    from cooplyst.models.setting import Setting

    existing = {row.key for row in db.query(Setting.key).all()}
    for key, value in DEFAULT_SETTINGS.items():
        if key not in existing:
            db.add(Setting(key=key, value=value))
    db.commit()


def _migrate_database():
    """Add game metadata columns missing from databases created by older versions"""
    if engine.dialect.name != "sqlite":
        return
    try:
        with engine.connect() as conn:
            result = conn.execute(text("PRAGMA table_info(games)"))
            columns = [row[1] for row in result.fetchall()]

            for column, ddl in GAME_COLUMN_MIGRATIONS.items():
                if column in columns:
                    continue
                logger.info("Migrating games table: adding %s", column)
                conn.execute(text(f"ALTER TABLE games ADD COLUMN {column} {ddl}"))
            conn.commit()
    except Exception as e:
        logger.warning("Database migration failed: %s", e)
        logger.warning("Continuing start-up; newer metadata fields may be unavailable")
