# EquipRent - Construction Equipment Rental Marketplace
# Copyright (C) 2025 Oleg Tokmakov
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""Database setup and connection management."""

import logging
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from equiprent.config import get_settings

logger = logging.getLogger(__name__)

# Base class for all models
Base = declarative_base()

# Global engine and session factory
_engine = None
_SessionLocal = None


def get_database_url() -> str:
    """Get the database URL from settings."""
    settings = get_settings()
    db_path = settings.database.path

    # Ensure directory exists
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    return f"sqlite:///{db_path}"


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def init_engine(engine: Optional[Engine] = None):
    """Initialize the database engine.

    Args:
        engine: Pre-built engine to use instead of the configured SQLite file.
    """
    global _engine, _SessionLocal

    if engine is None:
        engine = create_engine(
            get_database_url(),
            connect_args={"check_same_thread": False},  # Needed for SQLite
            echo=get_settings().app.debug,
        )

    if engine.dialect.name == "sqlite":
        _enable_sqlite_foreign_keys(engine)

    _engine = engine
    _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)

    return _engine


def get_engine():
    """Get the database engine, initializing if needed."""
    global _engine
    if _engine is None:
        init_engine()
    return _engine


def get_session_local():
    """Get the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


def get_db() -> Generator[Session, None, None]:
    """Dependency to get database session."""
    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    """Create all database tables."""
    # Import all models to ensure they're registered
    from equiprent.models import auth, equipment, rental, user, verification  # noqa: F401

    engine = get_engine()
    Base.metadata.create_all(bind=engine)


def init_database():
    """Initialize database with tables and seed data."""
    from equiprent.models.auth import CronJob
    from equiprent.models.user import User, UserRole
    from equiprent.utils.helpers import hash_password

    create_tables()

    settings = get_settings()
    SessionLocal = get_session_local()
    db = SessionLocal()

    try:
        # Create admin user if doesn't exist
        admin_email = settings.admin.email.lower()
        admin_user = db.query(User).filter(User.email == admin_email).first()

        if not admin_user:
            password_hash, salt = hash_password(settings.admin.password)
            admin_user = User(
                email=admin_email,
                password_hash=password_hash,
                password_salt=salt,
                first_name=settings.admin.first_name,
                last_name=settings.admin.last_name,
                role=UserRole.ADMIN.value,
                is_active=True,
            )
            db.add(admin_user)
            db.commit()
            logger.info("Created admin user: %s", admin_email)

        # Seed default cron jobs
        cron_jobs_data = [
            (
                "daily_cleanup",
                "Daily Cleanup",
                "Clean up expired tokens and old read notifications",
                "0 3 * * *",
            ),
        ]

        for job_key, job_name, description, cron_schedule in cron_jobs_data:
            existing = db.query(CronJob).filter(CronJob.job_key == job_key).first()
            if not existing:
                job = CronJob(
                    job_key=job_key,
                    job_name=job_name,
                    description=description,
                    cron_schedule=cron_schedule,
                    is_enabled=True,
                )
                db.add(job)

        db.commit()
        logger.info("Database initialized successfully")

    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
