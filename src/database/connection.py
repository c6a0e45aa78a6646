"""
Database connection management for the segmentation engine
"""
import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, scoped_session, sessionmaker

from .models import Base

# Get database URL from environment variable
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///constituents.db')

engine = create_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def configure(database_url: str) -> Engine:
    """Rebind the session factory to another database"""
    global engine
    engine = create_engine(database_url)
    SessionLocal.configure(bind=engine)
    return engine


def init_db() -> None:
    """Initialize the database, creating all tables"""
    Base.metadata.create_all(bind=engine)


def get_db_session() -> Session:
    """Get a new database session"""
    return SessionLocal()


def get_scoped_session() -> scoped_session:
    """Get a registry handing each thread its own session; call remove() on each thread when done"""
    return scoped_session(SessionLocal)
