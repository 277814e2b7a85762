"""
Data models for game management.

These represent game-specific data structures that operate within lobbies.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Dict
from enum import Enum

from utils.constants import PHASES


class GamePhase(Enum):
    """Phases of a lobby's game. Values are what clients see."""
    LOBBY = PHASES['LOBBY']
    WORD_REVEAL = PHASES['WORD_REVEAL']
    DISCUSSION = PHASES['DISCUSSION']
    WORD_TIME_COUNTDOWN = PHASES['WORD_TIME_COUNTDOWN']
    WORD_TIME_SPEAKING = PHASES['WORD_TIME_SPEAKING']
    WORD_TIME_WAITING = PHASES['WORD_TIME_WAITING']
    VOTING = PHASES['VOTING']
    RESULTS = PHASES['RESULTS']


# Phases in which the imposter may try to guess the word
GUESSABLE_PHASES = (
    GamePhase.WORD_REVEAL.value,
    GamePhase.DISCUSSION.value,
    GamePhase.WORD_TIME_COUNTDOWN.value,
    GamePhase.WORD_TIME_SPEAKING.value,
    GamePhase.WORD_TIME_WAITING.value,
    GamePhase.VOTING.value
)

# Phases that end when everyone is ready for voting
PRE_VOTING_PHASES = (
    GamePhase.DISCUSSION.value,
    GamePhase.WORD_TIME_WAITING.value
)


class ResolutionKind(Enum):
    """How a completed vote ended."""
    TIE = "tie"
    ELIMINATED = "eliminated"
    SURVIVAL_CONTINUE = "survival-continue"
    SURVIVAL_END = "survival-end"


@dataclass
class VoteResults:
    """Results of a voting round."""
    vote_counts: Dict[str, int] = field(default_factory=dict)  # target player id -> count
    winner: Optional[str] = None
    tied_players: List[str] = field(default_factory=list)
    is_tie: bool = False
    total_votes: int = 0


@dataclass
class Resolution:
    """Outcome of resolving a vote, before the phase machine applies it."""
    kind: ResolutionKind
    results: VoteResults
    eliminated_id: Optional[str] = None
    eliminated_name: Optional[str] = None
    was_imposter: bool = False
