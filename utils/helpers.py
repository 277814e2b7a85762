"""
Helper utilities for Imposter.

This module contains utility functions used throughout the application
for validation, generation, and data manipulation.
"""

import math
import random
import string
from typing import List, Optional, Sequence, TypeVar

from .constants import (
    LOBBY_CODE_LENGTH, MIN_PLAYERS, USERNAME_MIN_LENGTH, USERNAME_MAX_LENGTH,
    PASSWORD_MIN_LENGTH, HINT_REVEAL_RATIO, HINT_SHORT_WORD_LENGTH, HINT_MASK_CHAR
)

T = TypeVar('T')

CODE_CHARACTERS = string.ascii_uppercase + string.digits


def generate_lobby_code(rng: Optional[random.Random] = None,
                        length: int = LOBBY_CODE_LENGTH) -> str:
    """Generate a random lobby code."""
    rng = rng or random
    return ''.join(rng.choices(CODE_CHARACTERS, k=length))


def normalize_lobby_code(code) -> str:
    """Lobby codes are case-insensitive on input and stored uppercase."""
    if not isinstance(code, str):
        return ''
    return code.strip().upper()


def validate_username(username) -> Optional[str]:
    """
    Validate and normalize a username.

    Args:
        username: Raw username from the client

    Returns:
        The trimmed username, or None if it is not acceptable
    """
    if not isinstance(username, str):
        return None

    username = username.strip()
    if len(username) < USERNAME_MIN_LENGTH or len(username) > USERNAME_MAX_LENGTH:
        return None

    return username


def validate_password(password) -> bool:
    return isinstance(password, str) and len(password) >= PASSWORD_MIN_LENGTH


def min_players_required(settings) -> int:
    """Minimum active players needed to start with the given settings."""
    if settings.three_imposters:
        return MIN_PLAYERS['THREE_IMPOSTERS']
    if settings.two_imposters:
        return MIN_PLAYERS['TWO_IMPOSTERS']
    return MIN_PLAYERS['DEFAULT']


def determine_imposter_count(settings, active_count: int) -> int:
    """
    Number of imposters for a round.

    Survival mode always plays with a single imposter. The count never
    exceeds ``active_count - 2`` so at least two players share the word.
    """
    if settings.survival_mode:
        count = 1
    elif settings.three_imposters and active_count >= MIN_PLAYERS['THREE_IMPOSTERS']:
        count = 3
    elif settings.two_imposters and active_count >= MIN_PLAYERS['TWO_IMPOSTERS']:
        count = 2
    else:
        count = 1

    return max(1, min(count, active_count - 2))


def generate_imposter_hint(word: str, rng: Optional[random.Random] = None) -> str:
    """
    Build a partially masked version of the word for imposters.

    The first letter is always shown. Short words show nothing else,
    longer ones reveal about 40% of their letters. Spaces stay visible.
    """
    rng = rng or random
    letter_positions = [i for i, char in enumerate(word) if not char.isspace()]
    if not letter_positions:
        return word

    first = letter_positions[0]
    visible = {first}

    if len(letter_positions) > HINT_SHORT_WORD_LENGTH:
        visible_count = max(1, math.floor(len(letter_positions) * HINT_REVEAL_RATIO))
        others = letter_positions[1:]
        visible.update(rng.sample(others, min(len(others), visible_count - 1)))

    return ''.join(
        char if i in visible or char.isspace() else HINT_MASK_CHAR
        for i, char in enumerate(word)
    )


def shuffle_players(players: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """Return a shuffled copy of the given sequence."""
    rng = rng or random
    shuffled = list(players)
    rng.shuffle(shuffled)
    return shuffled
