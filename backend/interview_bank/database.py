"""Database engine and helpers.

This module configures the SQLModel/SQLAlchemy engine from
`settings.DATABASE_URL` (a local SQLite file `app.db` by default) and
provides small helpers used by the application, scripts and tests.
"""

import logging
from sqlmodel import SQLModel, create_engine, Session, select
from . import models
from .config import settings

logger = logging.getLogger(__name__)

DB_URL = settings.DATABASE_URL
_connect_args = {"check_same_thread": False} if DB_URL.startswith("sqlite") else {}
engine = create_engine(DB_URL, echo=False, connect_args=_connect_args)

SEED_CATEGORIES = [
    {"id": 1, "name": "C# Fundamentals", "description": "Core C# programming concepts", "icon": "fa-code", "color_code": "#5B21B6", "display_order": 1, "range_start": 21, "range_end": 50},
    {"id": 2, "name": "ASP.NET MVC", "description": "ASP.NET MVC and Web Development", "icon": "fa-globe", "color_code": "#059669", "display_order": 2, "range_start": 51, "range_end": 90},
    {"id": 3, "name": "Advanced .NET", "description": "Advanced .NET & ASP.NET Core", "icon": "fa-rocket", "color_code": "#DC2626", "display_order": 3, "range_start": 91, "range_end": 99},
    {"id": 4, "name": "Azure Cloud", "description": "Azure Cloud Services", "icon": "fa-cloud", "color_code": "#2563EB", "display_order": 4, "range_start": 100, "range_end": 120},
    {"id": 5, "name": "DevOps & Microservices", "description": "DevOps, CI/CD and Microservices", "icon": "fa-cubes", "color_code": "#7C3AED", "display_order": 5, "range_start": 121, "range_end": 140},
    {"id": 6, "name": "Advanced Microservices", "description": "Advanced Microservices Patterns", "icon": "fa-project-diagram", "color_code": "#EA580C", "display_order": 6, "range_start": 141, "range_end": 171},
    {"id": 7, "name": "SQL Server & Database", "description": "SQL Server and Database concepts", "icon": "fa-database", "color_code": "#0891B2", "display_order": 7, "range_start": 172, "range_end": 200},
]


def create_db_and_tables():
    """Create database tables using SQLModel metadata and seed categories.

    This function is intended for local development and lightweight
    scripts; production deployments should rely on a proper migration
    tool (alembic) instead.
    """
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        seed_categories(session)


def seed_categories(session: Session) -> int:
    """Insert the built-in categories that are not present yet.

    Idempotent: categories are matched by primary key. Returns the number
    of rows inserted.
    """
    existing = set(session.exec(select(models.Category.id)).all())
    created = 0
    for row in SEED_CATEGORIES:
        if row["id"] in existing:
            continue
        session.add(models.Category(**row))
        created += 1
    if created:
        session.commit()
        logger.info("Seeded %d categories", created)
    return created


def get_session():
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session and ensures it is closed when the
    request scope finishes.
    """
    with Session(engine) as session:
        yield session
