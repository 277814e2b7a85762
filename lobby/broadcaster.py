"""
Lobby Broadcaster for Imposter.

Builds the public view of a lobby and pushes events to lobby rooms and to
single players. Socket.IO rooms are named after lobby codes.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Tuple

from utils.errors import NotFound
from .models import LobbyData, PlayerData

logger = logging.getLogger(__name__)


class LobbyBroadcaster:
    """
    Sends lobby state to clients.

    The emitter is anything with ``emit(event, data, to=...)``; in the
    running server that is the SocketIO instance.
    """

    def __init__(self, lobby_manager, emitter, connection_manager=None):
        """
        Initialize broadcaster.

        Args:
            lobby_manager: Source of lobby state
            emitter: Object exposing emit(event, data, to=room_or_sid)
            connection_manager: Used to reach a user outside any lobby
        """
        self.lobby_manager = lobby_manager
        self.emitter = emitter
        self.connection_manager = connection_manager

    def snapshot(self, lobby: LobbyData) -> Dict[str, Any]:
        """
        Public view of a lobby.

        Contains no word, no roles and no vote targets; only whether each
        player has voted.
        """
        return {
            'lobbyId': lobby.id,
            'code': lobby.code,
            'players': [p.to_public_dict() for p in lobby.players],
            'gameState': lobby.game_state.to_public_dict(),
            'settings': lobby.settings.to_dict()
        }

    def private_payload(self, lobby: LobbyData, player: PlayerData) -> Dict[str, Any]:
        """What one player may know about their own role this round."""
        state = lobby.game_state
        is_imposter = player.is_imposter
        return {
            'phase': state.phase,
            'word': None if is_imposter else state.current_word,
            'isImposter': is_imposter,
            'imposterHint': state.imposter_hint if is_imposter else None,
            'roundNumber': state.round_number
        }

    def send_lobby_update(self, lobby_id: str) -> bool:
        """
        Push the current snapshot to every member.

        Returns:
            False if the lobby no longer exists
        """
        try:
            with self.lobby_manager.locked(lobby_id) as lobby:
                data = self.snapshot(lobby)
                room = lobby.code
        except NotFound:
            return False

        self.emitter.emit('lobby-updated', data, to=room)
        return True

    def emit_to_lobby(self, lobby: LobbyData, event: str, data: Dict[str, Any]):
        """Send an event to every member of a lobby."""
        logger.debug(f"Emitting {event} to lobby {lobby.code}")
        self.emitter.emit(event, data, to=lobby.code)

    def emit_to_user(self, user_id: int, event: str, data: Dict[str, Any]) -> bool:
        """Send an event to an account's live connection, if any."""
        if self.connection_manager is None:
            return False

        socket_id = self.connection_manager.get_socket_for_user(user_id)
        if not socket_id:
            return False

        self.emitter.emit(event, data, to=socket_id)
        return True

    def outbox(self) -> 'Outbox':
        return Outbox(self)


@dataclass
class Outbox:
    """
    Events queued during a lobby change and sent once it has committed.

    Nothing is sent if the change raised. Queued events for a lobby whose
    generation moved on in the meantime are dropped.
    """
    broadcaster: LobbyBroadcaster
    messages: List[Tuple[str, str, Dict[str, Any], str]] = field(default_factory=list)
    updates: List[str] = field(default_factory=list)
    generations: Dict[str, int] = field(default_factory=dict)

    def watch(self, lobby: LobbyData):
        """Remember the lobby's latest generation; queue calls refresh it."""
        self.generations[lobby.id] = lobby.game_state.generation

    def to_lobby(self, lobby: LobbyData, event: str, data: Dict[str, Any]):
        self.watch(lobby)
        self.messages.append((lobby.id, event, data, lobby.code))

    def to_player(self, lobby: LobbyData, player: PlayerData, event: str, data: Dict[str, Any]):
        self.watch(lobby)
        if player.is_connected and player.socket_id:
            self.messages.append((lobby.id, event, data, player.socket_id))

    def lobby_update(self, lobby: LobbyData):
        self.watch(lobby)
        if lobby.id not in self.updates:
            self.updates.append(lobby.id)

    def _is_current(self, lobby_id: str) -> bool:
        lobby = self.broadcaster.lobby_manager.find_lobby(lobby_id)
        return lobby is not None and lobby.game_state.generation == self.generations.get(lobby_id)

    def flush(self) -> int:
        """
        Send everything queued.

        Returns:
            Number of events sent
        """
        sent = 0
        for lobby_id, event, data, to in self.messages:
            if not self._is_current(lobby_id):
                logger.debug(f"Dropping stale {event} for lobby {lobby_id}")
                continue
            self.broadcaster.emitter.emit(event, data, to=to)
            sent += 1

        for lobby_id in self.updates:
            if self._is_current(lobby_id) and self.broadcaster.send_lobby_update(lobby_id):
                sent += 1

        self.messages = []
        self.updates = []
        return sent
