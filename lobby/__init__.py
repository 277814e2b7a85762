"""
Lobby Module for Imposter.

Contains all lobby management logic and components.
Handles lobby storage, player rosters, connection tracking and broadcasting.
"""

from .models import LobbyData, PlayerData, LobbySettings, GameStateData
from .manager import LobbyManager
from .player_manager import PlayerManager
from .connection_manager import ConnectionManager, PlayerSession
from .broadcaster import LobbyBroadcaster, Outbox

__all__ = [
    # Data models
    'LobbyData',
    'PlayerData',
    'LobbySettings',
    'GameStateData',
    'PlayerSession',

    # Managers
    'LobbyManager',
    'PlayerManager',
    'ConnectionManager',
    'LobbyBroadcaster',
    'Outbox'
]
