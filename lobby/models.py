"""
Data models for lobby management.

These are pure data structures used to pass information between
lobby management, game systems, and handlers.
"""

import uuid
from dataclasses import dataclass, field, fields
from typing import List, Optional, Dict, Any
from datetime import datetime, timezone

from utils.constants import DEFAULT_SETTINGS, PHASES, TIMING_CONFIG
from utils.errors import InvalidRequest


def new_id() -> str:
    return uuid.uuid4().hex


# Wire name -> attribute name
SETTINGS_FIELDS = {
    'randomOrder': 'random_order',
    'twoImposters': 'two_imposters',
    'threeImposters': 'three_imposters',
    'imposterHint': 'imposter_hint',
    'wordTimeMode': 'word_time_mode',
    'survivalMode': 'survival_mode',
    'wordTimeSeconds': 'word_time_seconds'
}

# Setting a key to True clears the listed keys
SETTINGS_EXCLUSIONS = {
    'twoImposters': ('threeImposters', 'survivalMode'),
    'threeImposters': ('twoImposters', 'survivalMode'),
    'wordTimeMode': ('survivalMode', 'twoImposters', 'threeImposters'),
    'survivalMode': ('wordTimeMode', 'twoImposters', 'threeImposters')
}


@dataclass
class LobbySettings:
    """Host-controlled options for a lobby."""
    random_order: bool = DEFAULT_SETTINGS['randomOrder']
    two_imposters: bool = DEFAULT_SETTINGS['twoImposters']
    three_imposters: bool = DEFAULT_SETTINGS['threeImposters']
    imposter_hint: bool = DEFAULT_SETTINGS['imposterHint']
    word_time_mode: bool = DEFAULT_SETTINGS['wordTimeMode']
    survival_mode: bool = DEFAULT_SETTINGS['survivalMode']
    word_time_seconds: int = DEFAULT_SETTINGS['wordTimeSeconds']

    def merge(self, partial: Dict[str, Any]) -> 'LobbySettings':
        """
        Apply a partial update and return the resulting settings.

        Keys are processed in the order given; turning an option on clears
        the options it conflicts with. Unknown keys are ignored.

        Args:
            partial: Wire-format settings (camelCase keys)

        Returns:
            New LobbySettings instance

        Raises:
            InvalidRequest: If a value has the wrong type or is out of range
        """
        if not isinstance(partial, dict):
            raise InvalidRequest("Settings must be an object")

        merged = self.to_dict()
        for key, value in partial.items():
            if key not in SETTINGS_FIELDS:
                continue

            if key == 'wordTimeSeconds':
                if isinstance(value, bool) or not isinstance(value, int):
                    raise InvalidRequest("wordTimeSeconds must be a whole number")
                low = TIMING_CONFIG['MIN_WORD_TIME_SECONDS']
                high = TIMING_CONFIG['MAX_WORD_TIME_SECONDS']
                if not low <= value <= high:
                    raise InvalidRequest(f"wordTimeSeconds must be between {low} and {high}")
                merged[key] = value
                continue

            if not isinstance(value, bool):
                raise InvalidRequest(f"{key} must be true or false")

            merged[key] = value
            if value:
                for cleared in SETTINGS_EXCLUSIONS.get(key, ()):
                    merged[cleared] = False

        return LobbySettings.from_dict(merged)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'LobbySettings':
        data = data or {}
        return cls(**{
            attr: data[key] for key, attr in SETTINGS_FIELDS.items() if key in data
        })

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {key: getattr(self, attr) for key, attr in SETTINGS_FIELDS.items()}


@dataclass
class PlayerData:
    """Represents a player in a lobby."""
    user_id: int
    username: str
    socket_id: Optional[str] = None
    join_order: int = 0
    id: str = field(default_factory=new_id)
    is_host: bool = False
    is_connected: bool = True
    joined_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # Round-transient flags
    is_ready: bool = False
    is_imposter: bool = False
    is_eliminated: bool = False
    vote_target: Optional[str] = None
    ready_for_voting: bool = False
    ready_for_next_round: bool = False

    @property
    def has_voted(self) -> bool:
        return self.vote_target is not None

    def reset_round_flags(self):
        """Clear per-round readiness and votes."""
        self.is_ready = False
        self.vote_target = None
        self.ready_for_voting = False
        self.ready_for_next_round = False

    def reset_game_flags(self):
        """Clear everything a finished game leaves behind."""
        self.reset_round_flags()
        self.is_imposter = False
        self.is_eliminated = False

    def to_public_dict(self) -> Dict[str, Any]:
        """Fields every lobby member may see. Roles and vote targets stay hidden."""
        return {
            'id': self.id,
            'userId': self.user_id,
            'username': self.username,
            'isHost': self.is_host,
            'isReady': self.is_ready,
            'isEliminated': self.is_eliminated,
            'isConnected': self.is_connected,
            'hasVoted': self.has_voted,
            'readyForVoting': self.ready_for_voting,
            'readyForNextRound': self.ready_for_next_round
        }


@dataclass
class GameStateData:
    """Per-lobby game state. Only the game manager changes the phase."""
    phase: str = PHASES['LOBBY']
    current_word: Optional[str] = None
    speaking_order: Optional[List[str]] = None
    round_number: int = 0
    current_speaker: Optional[str] = None
    time_remaining: Optional[int] = None
    imposter_hint: Optional[str] = None
    votes_revealed: bool = False
    generation: int = 0
    last_result: Optional[Dict[str, Any]] = None

    @property
    def in_game(self) -> bool:
        return self.phase != PHASES['LOBBY']

    def clear(self):
        """Return to the idle lobby state, keeping the generation counter."""
        generation = self.generation
        for f in fields(self):
            setattr(self, f.name, f.default)
        self.generation = generation

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            'phase': self.phase,
            'speakingOrder': self.speaking_order,
            'currentSpeaker': self.current_speaker,
            'roundNumber': self.round_number,
            'timeRemaining': self.time_remaining
        }


@dataclass
class LobbyData:
    """Represents a lobby's current state."""
    code: str
    host_user_id: int
    id: str = field(default_factory=new_id)
    settings: LobbySettings = field(default_factory=LobbySettings)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    players: List[PlayerData] = field(default_factory=list)
    game_state: GameStateData = field(default_factory=GameStateData)
    next_join_order: int = 0

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def active_players(self) -> List[PlayerData]:
        """Players not yet eliminated, in join order."""
        return [p for p in self.players if not p.is_eliminated]

    @property
    def active_imposters(self) -> List[PlayerData]:
        return [p for p in self.active_players if p.is_imposter]

    @property
    def host(self) -> Optional[PlayerData]:
        for player in self.players:
            if player.is_host:
                return player
        return None

    def get_player(self, player_id: str) -> Optional[PlayerData]:
        """Find player by player ID."""
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def get_player_by_user(self, user_id: int) -> Optional[PlayerData]:
        """Find player by account ID."""
        for player in self.players:
            if player.user_id == user_id:
                return player
        return None

    def is_host_user(self, user_id: int) -> bool:
        player = self.get_player_by_user(user_id)
        return bool(player and player.is_host)

    def to_summary_dict(self) -> Dict[str, Any]:
        """Lightweight info for pre-join checks."""
        return {
            'lobbyId': self.id,
            'code': self.code,
            'playerCount': self.player_count,
            'activePlayerCount': len(self.active_players),
            'phase': self.game_state.phase,
            'joinable': not self.game_state.in_game,
            'createdAt': self.created_at.isoformat()
        }
