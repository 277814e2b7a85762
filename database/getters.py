"""
Database Getters for Imposter.

Contains read operations. Callers pass in the session they opened with
get_db_session() so reads and writes share one transaction.
"""

import logging
from typing import List, Optional

from .models import User, LobbyRecord, PlayerRecord, GameStateRecord

logger = logging.getLogger(__name__)

# ==============================================================================
# USER GETTERS
# ==============================================================================

def get_user_by_id(session, user_id: int) -> Optional[User]:
    """Get a user by their ID."""
    return session.query(User).filter_by(id=user_id).first()

def get_user_by_username(session, username: str) -> Optional[User]:
    """Get a user by username."""
    return session.query(User).filter_by(username=username).first()

def is_username_taken(session, username: str) -> bool:
    """Check if a username is already registered."""
    return session.query(User.id).filter_by(username=username).first() is not None

# ==============================================================================
# LOBBY GETTERS
# ==============================================================================

def get_lobby_record(session, lobby_id: str) -> Optional[LobbyRecord]:
    """Get a mirrored lobby by its ID."""
    return session.query(LobbyRecord).filter_by(id=lobby_id).first()

def get_lobby_record_by_code(session, code: str) -> Optional[LobbyRecord]:
    """Get a mirrored lobby by its join code."""
    return session.query(LobbyRecord).filter_by(code=code).first()

def get_player_records(session, lobby_id: str) -> List[PlayerRecord]:
    """Get the mirrored players of a lobby in join order."""
    return session.query(PlayerRecord).filter_by(lobby_id=lobby_id)\
        .order_by(PlayerRecord.join_order).all()

def get_game_state_record(session, lobby_id: str) -> Optional[GameStateRecord]:
    """Get the mirrored game state of a lobby."""
    return session.query(GameStateRecord).filter_by(lobby_id=lobby_id).first()
