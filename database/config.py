"""
Database Configuration for Imposter.

Contains database engine setup, session management, and initialization functions.
"""

import logging
from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from config.settings import DATABASE_URL, SQL_DEBUG
from .models import Base, LobbyRecord, PlayerRecord, GameStateRecord

# Configure logging
logger = logging.getLogger(__name__)


def create_db_engine(database_url: str, echo: bool = SQL_DEBUG):
    """
    Create a SQLAlchemy engine suited to the database backend.

    Args:
        database_url: SQLAlchemy database URL
        echo: Log emitted SQL

    Returns:
        Engine instance
    """
    if database_url.startswith('postgres://'):
        database_url = database_url.replace('postgres://', 'postgresql://', 1)

    if database_url.startswith('sqlite'):
        # In-memory databases live on one connection, shared across threads
        if database_url in ('sqlite://', 'sqlite:///:memory:'):
            return create_engine(
                database_url,
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool
            )
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=NullPool
        )

    # PostgreSQL configuration
    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=20,
        max_overflow=30,
        pool_timeout=30,
        pool_recycle=3600,  # Recycle connections after 1 hour
    )


# Create database engine
engine = create_db_engine(DATABASE_URL)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def configure_database(database_url: str, echo: bool = SQL_DEBUG):
    """
    Point the module-level engine and session factory at another database.

    Args:
        database_url: SQLAlchemy database URL
        echo: Log emitted SQL

    Returns:
        The new session factory
    """
    global engine, SessionLocal

    engine = create_db_engine(database_url, echo=echo)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    logger.info(f"Database configured: {engine.url.render_as_string(hide_password=True)}")
    return SessionLocal


@contextmanager
def get_db_session(session_factory=None):
    """Context manager for database sessions with automatic cleanup."""
    session = (session_factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Database error: {e}")
        raise
    finally:
        session.close()


def init_database(session_factory=None):
    """Initialize the database, create tables, and drop lobbies left by a previous run."""
    factory = session_factory or SessionLocal
    try:
        Base.metadata.create_all(bind=factory.kw['bind'])
        logger.info("Database tables created successfully")

        # In-progress games do not survive a restart
        clean_database(factory)

    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


def clean_database(session_factory=None):
    """
    Clean all transient game data while preserving accounts.

    Removes:
    - All lobbies with their players and game states
    - Does NOT remove users or their statistics
    """
    try:
        with get_db_session(session_factory) as session:
            # Count items before cleanup for logging
            lobby_count = session.query(LobbyRecord).count()
            player_count = session.query(PlayerRecord).count()

            session.query(GameStateRecord).delete()
            session.query(PlayerRecord).delete()
            session.query(LobbyRecord).delete()

            logger.info(f"Database cleanup complete: removed {lobby_count} lobbies, "
                        f"{player_count} players")

            return {
                'lobbies_removed': lobby_count,
                'players_removed': player_count
            }

    except Exception as e:
        logger.error(f"Failed to clean database: {e}")
        raise
