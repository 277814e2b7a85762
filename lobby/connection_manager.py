"""
Connection Manager for Imposter Lobbies.

Maps live socket connections to authenticated accounts and remembers which
lobby each connection is currently in. Contains no game logic.
"""

import logging
from threading import RLock
from typing import Dict, Optional, List, Tuple
from dataclasses import dataclass, field
from datetime import datetime

from utils.errors import GameError, NotAuthenticated

logger = logging.getLogger(__name__)


@dataclass
class PlayerSession:
    """Information about an authenticated connection."""
    user_id: int
    username: str
    socket_id: str
    lobby_id: Optional[str] = None
    connection_time: datetime = field(default_factory=datetime.now)
    last_activity: datetime = field(default_factory=datetime.now)


class ConnectionManager:
    """
    Session registry for socket connections.

    A session exists from a successful authenticate() until the socket
    disconnects. One account has at most one live session; a newer socket
    replaces the older one and inherits its lobby.
    """

    def __init__(self, account_service):
        """
        Initialize connection manager.

        Args:
            account_service: Collaborator exposing verify_identity(user_id)
        """
        self.account_service = account_service
        self.sessions: Dict[str, PlayerSession] = {}  # socket_id -> PlayerSession
        self.user_to_socket: Dict[int, str] = {}  # user_id -> socket_id
        self._lock = RLock()
        logger.debug("Connection manager initialized")

    def authenticate(self, socket_id: str, user_id) -> Tuple[bool, str]:
        """
        Bind a connection to an account.

        Args:
            socket_id: Unique socket connection ID
            user_id: Account ID claimed by the client

        Returns:
            Tuple of (success, message)
        """
        try:
            user = self.account_service.verify_identity(user_id)
        except GameError as e:
            logger.warning(f"Authentication rejected for socket {socket_id}: {e.message}")
            return False, e.message

        with self._lock:
            lobby_id = None

            # Re-authentication on the same socket keeps the lobby
            current = self.sessions.get(socket_id)
            if current:
                lobby_id = current.lobby_id
                if current.user_id != user.id:
                    self.user_to_socket.pop(current.user_id, None)
                    lobby_id = None

            # A newer connection for the same account replaces the old one
            previous_socket_id = self.user_to_socket.get(user.id)
            if previous_socket_id and previous_socket_id != socket_id:
                previous = self.sessions.pop(previous_socket_id, None)
                if previous and lobby_id is None:
                    lobby_id = previous.lobby_id
                logger.info(f"Replaced connection {previous_socket_id} for {user.username}")

            self.sessions[socket_id] = PlayerSession(
                user_id=user.id,
                username=user.username,
                socket_id=socket_id,
                lobby_id=lobby_id
            )
            self.user_to_socket[user.id] = socket_id

        logger.info(f"Authenticated connection: {user.username} ({socket_id})")
        return True, f"Authenticated as {user.username}"

    def unregister_connection(self, socket_id: str) -> Optional[PlayerSession]:
        """
        Drop a connection's session.

        Args:
            socket_id: Socket connection ID to unregister

        Returns:
            The removed session, or None if the socket never authenticated
        """
        with self._lock:
            session = self.sessions.pop(socket_id, None)
            if not session:
                return None

            if self.user_to_socket.get(session.user_id) == socket_id:
                del self.user_to_socket[session.user_id]

        logger.info(f"Unregistered connection: {session.username} ({socket_id})")
        return session

    def get_session(self, socket_id: str) -> Optional[PlayerSession]:
        """Get the session of a connection, if authenticated."""
        session = self.sessions.get(socket_id)
        if session:
            session.last_activity = datetime.now()
        return session

    def require_session(self, socket_id: str) -> PlayerSession:
        """
        Get the session of a connection.

        Raises:
            NotAuthenticated: If the connection has not authenticated
        """
        session = self.get_session(socket_id)
        if not session:
            raise NotAuthenticated()
        return session

    def get_socket_for_user(self, user_id: int) -> Optional[str]:
        """Current socket ID of an account, if connected."""
        return self.user_to_socket.get(user_id)

    def is_user_connected(self, user_id: int) -> bool:
        return user_id in self.user_to_socket

    def associate_with_lobby(self, socket_id: str, lobby_id: str) -> bool:
        """
        Remember which lobby a connection is in.

        Returns:
            True if the connection has a session
        """
        with self._lock:
            session = self.sessions.get(socket_id)
            if not session:
                return False
            session.lobby_id = lobby_id
        return True

    def disassociate(self, socket_id: str):
        """Forget a connection's lobby."""
        with self._lock:
            session = self.sessions.get(socket_id)
            if session:
                session.lobby_id = None

    def disassociate_lobby(self, lobby_id: str) -> List[str]:
        """
        Forget a lobby on every connection that was in it.

        Returns:
            Socket IDs that were associated with the lobby
        """
        with self._lock:
            socket_ids = [s.socket_id for s in self.sessions.values() if s.lobby_id == lobby_id]
            for socket_id in socket_ids:
                self.sessions[socket_id].lobby_id = None
        return socket_ids

    def get_connection_stats(self) -> Dict[str, int]:
        """Counts for the health endpoint."""
        sessions = list(self.sessions.values())
        return {
            'connections': len(sessions),
            'in_lobby': len([s for s in sessions if s.lobby_id])
        }
