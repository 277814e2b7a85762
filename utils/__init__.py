"""
Utilities module for Imposter.

This module contains constants, helper functions, and error types
used throughout the application.
"""

from .constants import PHASES, DEFAULT_SETTINGS, MAX_ACTIVE_PLAYERS, WORDS, TIMING_CONFIG
from .helpers import (
    generate_lobby_code, normalize_lobby_code, validate_username, validate_password,
    generate_imposter_hint, determine_imposter_count, min_players_required, shuffle_players
)
from .errors import (
    GameError, NotAuthenticated, NotFound, Forbidden, LobbyFull, InsufficientPlayers,
    InvalidPhase, Conflict, InvalidRequest, PersistenceError
)

__all__ = [
    'PHASES',
    'DEFAULT_SETTINGS',
    'MAX_ACTIVE_PLAYERS',
    'WORDS',
    'TIMING_CONFIG',
    'generate_lobby_code',
    'normalize_lobby_code',
    'validate_username',
    'validate_password',
    'generate_imposter_hint',
    'determine_imposter_count',
    'min_players_required',
    'shuffle_players',
    'GameError',
    'NotAuthenticated',
    'NotFound',
    'Forbidden',
    'LobbyFull',
    'InsufficientPlayers',
    'InvalidPhase',
    'Conflict',
    'InvalidRequest',
    'PersistenceError'
]
