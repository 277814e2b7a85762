"""
Lobby Manager for Imposter.

Main coordinator for lobby operations. Owns the in-memory table of
lobbies, serializes changes to each lobby behind its own lock and mirrors
every committed change to the database.
"""

import copy
import logging
import random
from contextlib import contextmanager
from threading import RLock
from typing import Dict, Optional, Tuple, Any, Callable

from utils.constants import MAX_CODE_ATTEMPTS
from utils.errors import NotFound, Forbidden, InvalidPhase, GameError, PersistenceError
from utils.helpers import generate_lobby_code, normalize_lobby_code
from .models import LobbyData, LobbySettings, PlayerData
from .player_manager import PlayerManager

logger = logging.getLogger(__name__)


class LobbyManager:
    """
    Main lobby management coordinator.

    Lobbies are independent: each has its own lock, and no operation
    touches more than one lobby.
    """

    def __init__(self, player_manager: Optional[PlayerManager] = None,
                 repository=None, rng: Optional[random.Random] = None):
        """
        Initialize lobby manager.

        Args:
            player_manager: Roster operations (new instance when omitted)
            repository: Optional store with save(lobby) and delete(lobby_id)
            rng: Randomness source for lobby codes
        """
        self.player_manager = player_manager or PlayerManager()
        self.repository = repository
        self.rng = rng or random.Random()

        self.active_lobbies: Dict[str, LobbyData] = {}  # lobby_id -> LobbyData
        self.code_index: Dict[str, str] = {}  # code -> lobby_id
        self._locks: Dict[str, RLock] = {}
        self._registry_lock = RLock()

        logger.info("Lobby manager initialized")

    # ==========================================================================
    # LOCKING AND PERSISTENCE
    # ==========================================================================

    def _get_lock(self, lobby_id: str) -> RLock:
        with self._registry_lock:
            lock = self._locks.get(lobby_id)
            if lock is None:
                raise NotFound("Lobby not found")
            return lock

    @contextmanager
    def mutate(self, lobby_id: str, persist: bool = True):
        """
        Change a lobby as one unit.

        Holds the lobby lock for the duration of the block. If the block
        raises, or the database write at the end fails, the lobby is put
        back exactly as it was and the error propagates.

        Args:
            lobby_id: Lobby to change
            persist: Write the result to the repository

        Yields:
            The live LobbyData

        Raises:
            NotFound: If the lobby does not exist
            PersistenceError: If the database write fails
        """
        lock = self._get_lock(lobby_id)
        with lock:
            lobby = self.active_lobbies.get(lobby_id)
            if lobby is None:
                raise NotFound("Lobby not found")

            backup = copy.deepcopy(lobby)
            try:
                yield lobby
                if persist and lobby_id in self.active_lobbies:
                    self._save(lobby)
            except Exception:
                self._restore(backup)
                raise

    @contextmanager
    def locked(self, lobby_id: str):
        """Hold the lobby lock for a consistent read."""
        lock = self._get_lock(lobby_id)
        with lock:
            lobby = self.active_lobbies.get(lobby_id)
            if lobby is None:
                raise NotFound("Lobby not found")
            yield lobby

    def _restore(self, backup: LobbyData):
        with self._registry_lock:
            self.active_lobbies[backup.id] = backup
            self.code_index[backup.code] = backup.id
            self._locks.setdefault(backup.id, RLock())
        logger.warning(f"Rolled back changes to lobby {backup.code}")

    def _save(self, lobby: LobbyData):
        if self.repository is None:
            return
        self.repository.save(lobby)

    # ==========================================================================
    # LOBBY OPERATIONS
    # ==========================================================================

    def create_lobby(self, user_id: int, username: str,
                     socket_id: Optional[str] = None) -> Tuple[LobbyData, PlayerData]:
        """
        Create a new lobby with the creator as host.

        Args:
            user_id: Account ID of the host
            username: Host display name
            socket_id: Host connection

        Returns:
            Tuple of (lobby, host_player)

        Raises:
            GameError: If no free code could be found
            PersistenceError: If the lobby could not be stored
        """
        with self._registry_lock:
            code = None
            for _ in range(MAX_CODE_ATTEMPTS):
                candidate = generate_lobby_code(self.rng)
                if candidate not in self.code_index:
                    code = candidate
                    break
                logger.warning(f"Lobby code collision on {candidate}, retrying")

            if code is None:
                raise GameError("Could not allocate a lobby code")

            lobby = LobbyData(code=code, host_user_id=user_id)
            host, _ = self.player_manager.join(lobby, user_id, username, socket_id)

            try:
                self._save(lobby)
            except PersistenceError:
                logger.error(f"Failed to store new lobby {code}")
                raise

            self.active_lobbies[lobby.id] = lobby
            self.code_index[code] = lobby.id
            self._locks[lobby.id] = RLock()

        logger.info(f"Created lobby {code} hosted by {username}")
        return lobby, host

    def find_lobby(self, lobby_id: str) -> Optional[LobbyData]:
        """Get a lobby by ID, or None."""
        if not isinstance(lobby_id, str):
            return None
        return self.active_lobbies.get(lobby_id)

    def get_lobby(self, lobby_id: str) -> LobbyData:
        """
        Get a lobby by ID.

        Raises:
            NotFound: If the lobby does not exist
        """
        lobby = self.find_lobby(lobby_id)
        if lobby is None:
            raise NotFound("Lobby not found")
        return lobby

    def find_by_code(self, code: str) -> LobbyData:
        """
        Resolve a join code, case-insensitively.

        Raises:
            NotFound: If no lobby has this code
        """
        lobby_id = self.code_index.get(normalize_lobby_code(code))
        if lobby_id is None or lobby_id not in self.active_lobbies:
            raise NotFound("Lobby not found")
        return self.active_lobbies[lobby_id]

    def join_lobby(self, lobby_id: str, user_id: int, username: str,
                   socket_id: Optional[str] = None) -> Tuple[PlayerData, bool]:
        """
        Join a lobby, or reconnect to it.

        Returns:
            Tuple of (player, reconnected)
        """
        with self.mutate(lobby_id) as lobby:
            return self.player_manager.join(lobby, user_id, username, socket_id)

    def check_join(self, lobby_id: str, user_id: int):
        """Raise the error joining would fail with, without joining."""
        with self.locked(lobby_id) as lobby:
            self.player_manager.check_join(lobby, user_id)

    def remove_member(self, lobby: LobbyData,
                      user_id: int) -> Tuple[PlayerData, Optional[PlayerData], bool]:
        """
        Remove a member from a lobby the caller already holds locked.

        Returns:
            Tuple of (removed_player, new_host, lobby_deleted)

        Raises:
            NotFound: If the user is not in the lobby
        """
        player = lobby.get_player_by_user(user_id)
        if not player:
            raise NotFound("You are not in this lobby")

        removed, new_host = self.player_manager.leave(lobby, player.id)
        deleted = self.delete_if_empty(lobby.id)
        return removed, new_host, deleted

    def leave_lobby(self, lobby_id: str,
                    user_id: int) -> Tuple[PlayerData, Optional[PlayerData], bool]:
        """
        Remove a member from a lobby.

        Returns:
            Tuple of (removed_player, new_host, lobby_deleted)
        """
        with self.mutate(lobby_id) as lobby:
            return self.remove_member(lobby, user_id)

    def update_settings(self, lobby_id: str, user_id: int,
                        partial: Dict[str, Any]) -> LobbySettings:
        """
        Merge a partial settings update.

        Args:
            lobby_id: Lobby to change
            user_id: Requesting account
            partial: Wire-format settings

        Returns:
            The resulting settings

        Raises:
            Forbidden: If the requester is not the host
            InvalidPhase: If a game is running
            InvalidRequest: If a value is invalid
        """
        with self.mutate(lobby_id) as lobby:
            if not lobby.is_host_user(user_id):
                raise Forbidden("Only the host can change settings")
            if lobby.game_state.in_game:
                raise InvalidPhase("Settings cannot change during a game")

            lobby.settings = lobby.settings.merge(partial)
            logger.info(f"Updated settings for lobby {lobby.code}: {lobby.settings.to_dict()}")
            return lobby.settings

    def close_lobby(self, lobby_id: str, user_id: int,
                    notify: Optional[Callable[[LobbyData], None]] = None) -> LobbyData:
        """
        Close a lobby on the host's request.

        Args:
            lobby_id: Lobby to close
            user_id: Requesting account
            notify: Called with the lobby before it is removed

        Returns:
            The closed lobby

        Raises:
            Forbidden: If the requester is not the host
        """
        with self.mutate(lobby_id, persist=False) as lobby:
            if not lobby.is_host_user(user_id):
                raise Forbidden("Only the host can close the lobby")

            # Pending timers see a new generation and stop
            lobby.game_state.generation += 1
            if notify:
                notify(lobby)
            self._remove_lobby(lobby)

        logger.info(f"Closed lobby {lobby.code}")
        return lobby

    def delete_if_empty(self, lobby_id: str) -> bool:
        """
        Remove a lobby whose roster is empty.

        Returns:
            True if the lobby was removed
        """
        lobby = self.find_lobby(lobby_id)
        if lobby is None:
            return False

        with self._get_lock(lobby_id):
            if lobby.players:
                return False
            lobby.game_state.generation += 1
            self._remove_lobby(lobby)

        logger.info(f"Deleted empty lobby {lobby.code}")
        return True

    def _remove_lobby(self, lobby: LobbyData):
        """
        Drop a lobby from memory and the database.

        A failed database delete only leaves a stale row, which
        init_database() clears on the next start.
        """
        with self._registry_lock:
            self.active_lobbies.pop(lobby.id, None)
            if self.code_index.get(lobby.code) == lobby.id:
                del self.code_index[lobby.code]
            self._locks.pop(lobby.id, None)

        if self.repository is not None:
            try:
                self.repository.delete(lobby.id)
            except PersistenceError:
                logger.error(f"Lobby {lobby.code} removed from memory but not from the database")

    @property
    def lobby_count(self) -> int:
        return len(self.active_lobbies)
