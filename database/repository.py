"""
Lobby Repository for Imposter.

Mirrors in-memory lobbies to the database. The lobby manager calls
save() at the end of every mutation and delete() when a lobby goes away.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from utils.errors import PersistenceError
from .config import get_db_session
from .setters import save_lobby_record, delete_lobby_record

logger = logging.getLogger(__name__)


class SqlLobbyRepository:
    """Writes lobby, player and game state rows through SQLAlchemy."""

    def __init__(self, session_factory=None):
        """
        Initialize the repository.

        Args:
            session_factory: sessionmaker to use (module default when omitted)
        """
        self.session_factory = session_factory

    def save(self, lobby):
        """
        Persist the current state of a lobby.

        Raises:
            PersistenceError: If the write fails
        """
        try:
            with get_db_session(self.session_factory) as session:
                save_lobby_record(session, lobby)
        except SQLAlchemyError as e:
            logger.error(f"Error saving lobby {lobby.code}: {e}")
            raise PersistenceError() from e

    def delete(self, lobby_id: str):
        """
        Remove a lobby's rows.

        Raises:
            PersistenceError: If the delete fails
        """
        try:
            with get_db_session(self.session_factory) as session:
                delete_lobby_record(session, lobby_id)
        except SQLAlchemyError as e:
            logger.error(f"Error deleting lobby {lobby_id}: {e}")
            raise PersistenceError() from e
