"""
Word Provider for Imposter.

Supplies the secret word for each round.
"""

import logging
import random
from typing import Iterable, Optional

from utils.constants import WORDS

logger = logging.getLogger(__name__)


class WordProvider:
    """Uniform random draws from a fixed word list."""

    def __init__(self, words: Optional[Iterable[str]] = None, rng: Optional[random.Random] = None):
        self.words = [w.strip() for w in (words if words is not None else WORDS) if w and w.strip()]
        if not self.words:
            raise ValueError("Word list is empty")
        self.rng = rng or random.Random()

    @classmethod
    def from_file(cls, path: str, rng: Optional[random.Random] = None) -> 'WordProvider':
        """
        Load words from a text file, one per line.

        Blank lines and lines starting with '#' are skipped.
        """
        with open(path, encoding='utf-8') as f:
            words = [line.strip() for line in f if line.strip() and not line.lstrip().startswith('#')]

        logger.info(f"Loaded {len(words)} words from {path}")
        return cls(words, rng=rng)

    def draw(self) -> str:
        return self.rng.choice(self.words)

    def __len__(self):
        return len(self.words)
