"""
Player Manager for Imposter Lobbies.

Handles the roster of a lobby: joining, leaving, reachability, host
transfer and per-round flags. Callers hold the lobby lock and pass in the
LobbyData to change; nothing here persists or broadcasts.
"""

import logging
import random
from typing import List, Optional, Tuple, Iterable

from utils.constants import MAX_ACTIVE_PLAYERS
from utils.errors import LobbyFull, InvalidPhase, NotFound
from .models import LobbyData, PlayerData

logger = logging.getLogger(__name__)


class PlayerManager:
    """
    Manages players within lobbies.

    Keeps exactly one host in every non-empty lobby and resets
    round flags between rounds.
    """

    def __init__(self, max_active_players: int = MAX_ACTIVE_PLAYERS):
        """
        Initialize player manager.

        Args:
            max_active_players: Non-eliminated players a lobby may hold
        """
        self.max_active_players = max_active_players
        logger.debug("Player manager initialized")

    def check_join(self, lobby: LobbyData, user_id: int):
        """
        Raise if the account could not join the lobby right now.

        Players already in the lobby can always come back.

        Raises:
            LobbyFull: If the lobby has no room for a new player
            InvalidPhase: If a game is running and the player is new
        """
        if lobby.get_player_by_user(user_id):
            return

        if len(lobby.active_players) >= self.max_active_players:
            raise LobbyFull()

        if lobby.game_state.in_game:
            raise InvalidPhase("Game already in progress")

    def join(self, lobby: LobbyData, user_id: int, username: str,
             socket_id: Optional[str] = None) -> Tuple[PlayerData, bool]:
        """
        Add a player to a lobby, or reconnect an existing one.

        Args:
            lobby: Lobby to join
            user_id: Account ID of the player
            username: Display name
            socket_id: Connection the player is using

        Returns:
            Tuple of (player, reconnected)

        Raises:
            LobbyFull: If the lobby has no room for a new player
            InvalidPhase: If a game is running and the player is new
        """
        existing = lobby.get_player_by_user(user_id)
        if existing:
            self.mark_reachable(lobby, existing.id, socket_id)
            logger.info(f"Player {existing.username} reconnected to lobby {lobby.code}")
            return existing, True

        self.check_join(lobby, user_id)

        player = PlayerData(
            user_id=user_id,
            username=username,
            socket_id=socket_id,
            join_order=lobby.next_join_order,
            is_host=not lobby.players
        )
        lobby.next_join_order += 1
        lobby.players.append(player)
        if player.is_host:
            lobby.host_user_id = user_id

        logger.info(f"Player {username} joined lobby {lobby.code}")
        return player, False

    def leave(self, lobby: LobbyData, player_id: str) -> Tuple[PlayerData, Optional[PlayerData]]:
        """
        Remove a player entirely.

        If the host leaves, the remaining player who joined earliest becomes host.

        Args:
            lobby: Lobby to leave
            player_id: ID of the leaving player

        Returns:
            Tuple of (removed_player, new_host). new_host is None when no
            transfer happened.

        Raises:
            NotFound: If the player is not in the lobby
        """
        player = lobby.get_player(player_id)
        if not player:
            raise NotFound("Player not found")

        lobby.players.remove(player)
        logger.info(f"Player {player.username} left lobby {lobby.code}")

        new_host = None
        if lobby.players and not lobby.host:
            new_host = self.transfer_host(lobby)

        return player, new_host

    def transfer_host(self, lobby: LobbyData) -> Optional[PlayerData]:
        """Make the earliest-joined player the only host."""
        if not lobby.players:
            return None

        new_host = min(lobby.players, key=lambda p: p.join_order)
        for player in lobby.players:
            player.is_host = player is new_host
        lobby.host_user_id = new_host.user_id

        logger.info(f"Host of lobby {lobby.code} transferred to {new_host.username}")
        return new_host

    def mark_unreachable(self, lobby: LobbyData, player_id: str,
                         socket_id: Optional[str] = None) -> bool:
        """
        Flag a player as disconnected without touching game flags.

        Args:
            lobby: Lobby of the player
            player_id: Player ID
            socket_id: Only act if this is still the player's socket

        Returns:
            True if the player was marked
        """
        player = lobby.get_player(player_id)
        if not player:
            return False
        if socket_id and player.socket_id != socket_id:
            # A newer connection already took over
            return False

        player.is_connected = False
        player.socket_id = None
        logger.info(f"Player {player.username} unreachable in lobby {lobby.code}")
        return True

    def mark_reachable(self, lobby: LobbyData, player_id: str, socket_id: Optional[str]) -> bool:
        """Attach a new connection to a player."""
        player = lobby.get_player(player_id)
        if not player:
            return False

        player.socket_id = socket_id
        player.is_connected = True
        return True

    def reset_round_flags(self, lobby: LobbyData):
        """Clear readiness and votes for every player."""
        for player in lobby.players:
            player.reset_round_flags()

    def reset_game_flags(self, lobby: LobbyData):
        """Clear roles, eliminations, readiness and votes for every player."""
        for player in lobby.players:
            player.reset_game_flags()

    def assign_roles(self, lobby: LobbyData, imposter_ids: Iterable[str]):
        """Set the imposter flag on exactly the given players."""
        imposter_ids = set(imposter_ids)
        for player in lobby.players:
            player.is_imposter = player.id in imposter_ids

    def select_imposters(self, candidates: List[PlayerData], count: int,
                         rng: Optional[random.Random] = None) -> List[str]:
        """Uniformly sample imposter IDs without replacement."""
        rng = rng or random
        count = max(0, min(count, len(candidates)))
        return [p.id for p in rng.sample(candidates, count)]
