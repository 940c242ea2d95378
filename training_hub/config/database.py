"""
Database Configuration
SQLAlchemy engine, session factory and declarative base
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from training_hub.config.settings import settings


connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    # SQLite connections are shared across the threadpool FastAPI runs sync work in
    connect_args = {"check_same_thread": False}

engine = create_engine(
    settings.DATABASE_URL,
    connect_args=connect_args,
    pool_pre_ping=True
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    Database session dependency

    Yields:
        Session: Database session, closed after the request
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def enum_values(enum_cls):
    """Persist str enums by value ("pending") rather than member name ("PENDING")"""
    return [member.value for member in enum_cls]
