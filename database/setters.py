"""
Database Setters for Imposter.

Contains write operations. Callers pass in the session they opened with
get_db_session(); committing and rollback stay with that context manager.
"""

import logging

from .models import User, LobbyRecord, PlayerRecord, GameStateRecord

logger = logging.getLogger(__name__)

# ==============================================================================
# USER SETTERS
# ==============================================================================

def create_user(session, username: str, password_hash: str) -> User:
    """Create a new user account."""
    user = User(username=username, password_hash=password_hash)
    session.add(user)
    session.flush()  # Get the ID without committing
    logger.info(f"Created user '{username}' (id={user.id})")
    return user

def increment_user_stats(session, user_id: int, played: bool = False,
                         was_imposter: bool = False, won: bool = False) -> User:
    """Add one game's outcome to a user's counters."""
    user = session.query(User).filter_by(id=user_id).first()
    if not user:
        return None

    if played:
        user.games_played = (user.games_played or 0) + 1
    if was_imposter:
        user.times_imposter = (user.times_imposter or 0) + 1
    if won:
        user.imposter_wins = (user.imposter_wins or 0) + 1
    return user

# ==============================================================================
# LOBBY SETTERS
# ==============================================================================

def save_lobby_record(session, lobby) -> LobbyRecord:
    """
    Write the full state of an in-memory lobby.

    The lobby row is merged, its player rows are replaced and the game
    state row is merged, all in the caller's transaction.
    """
    session.query(PlayerRecord).filter_by(lobby_id=lobby.id).delete()

    record = session.merge(LobbyRecord(
        id=lobby.id,
        code=lobby.code,
        host_id=lobby.host_user_id,
        settings=lobby.settings.to_dict(),
        created_at=lobby.created_at
    ))

    for player in lobby.players:
        session.add(PlayerRecord(
            id=player.id,
            lobby_id=lobby.id,
            user_id=player.user_id,
            username=player.username,
            socket_id=player.socket_id,
            is_connected=player.is_connected,
            join_order=player.join_order,
            is_host=player.is_host,
            is_ready=player.is_ready,
            is_imposter=player.is_imposter,
            is_eliminated=player.is_eliminated,
            vote_target=player.vote_target,
            ready_for_voting=player.ready_for_voting,
            ready_for_next_round=player.ready_for_next_round
        ))

    state = lobby.game_state
    speaking_order = None
    if state.speaking_order is not None:
        speaking_order = {'order': list(state.speaking_order), 'roundNumber': state.round_number}

    session.merge(GameStateRecord(
        lobby_id=lobby.id,
        phase=state.phase,
        current_word=state.current_word,
        speaking_order=speaking_order,
        votes_revealed=state.votes_revealed
    ))
    return record

def delete_lobby_record(session, lobby_id: str) -> bool:
    """Delete a lobby and its players and game state."""
    session.query(GameStateRecord).filter_by(lobby_id=lobby_id).delete()
    session.query(PlayerRecord).filter_by(lobby_id=lobby_id).delete()
    deleted = session.query(LobbyRecord).filter_by(id=lobby_id).delete()
    if deleted:
        logger.info(f"Deleted lobby record {lobby_id}")
    return bool(deleted)
