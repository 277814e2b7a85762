"""
Database Package for Imposter.

Provides clean imports for all database functionality.
"""

# Models
from .models import (
    Base,
    User,
    LobbyRecord,
    PlayerRecord,
    GameStateRecord
)

# Configuration and session management
from .config import (
    create_db_engine,
    configure_database,
    get_db_session,
    init_database,
    clean_database
)

# Import getter functions
from .getters import (
    get_user_by_id,
    get_user_by_username,
    is_username_taken,
    get_lobby_record,
    get_lobby_record_by_code,
    get_player_records,
    get_game_state_record
)

# Import setter functions
from .setters import (
    create_user,
    increment_user_stats,
    save_lobby_record,
    delete_lobby_record
)

from .repository import SqlLobbyRepository

__all__ = [
    # Models
    "Base",
    "User",
    "LobbyRecord",
    "PlayerRecord",
    "GameStateRecord",

    # Configuration
    "create_db_engine",
    "configure_database",
    "get_db_session",
    "init_database",
    "clean_database",

    # Getters
    "get_user_by_id",
    "get_user_by_username",
    "is_username_taken",
    "get_lobby_record",
    "get_lobby_record_by_code",
    "get_player_records",
    "get_game_state_record",

    # Setters
    "create_user",
    "increment_user_stats",
    "save_lobby_record",
    "delete_lobby_record",

    # Repository
    "SqlLobbyRepository",
]
