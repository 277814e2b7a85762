"""
Game Module for Imposter.

Contains all game-specific logic and components.
Game operations happen within lobbies but are separate from lobby management.
"""

from .models import GamePhase, VoteResults, Resolution, ResolutionKind
from .turn_manager import TurnManager
from .vote_manager import VoteManager
from .words import WordProvider
from .manager import GameManager, RoundEffects

__all__ = [
    # Data models
    'GamePhase',
    'VoteResults',
    'Resolution',
    'ResolutionKind',
    'RoundEffects',

    # Managers
    'GameManager',
    'TurnManager',
    'VoteManager',
    'WordProvider'
]
