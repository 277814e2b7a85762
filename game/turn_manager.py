"""
Turn Manager for Imposter.

Builds the speaking order of a round and runs the timed speaking
sequence of word-time mode: a short countdown, then a fixed number of
seconds per speaker, then the waiting phase.
"""

import logging
import random
from typing import List, Optional, Callable, Tuple

from lobby.models import LobbyData
from utils.constants import TIMING_CONFIG
from utils.errors import NotFound, PersistenceError
from utils.helpers import shuffle_players
from .models import GamePhase

logger = logging.getLogger(__name__)


class TurnManager:
    """
    Manages speaking turns.

    Timers run as background tasks through the scheduler (the SocketIO
    instance in the server). Every tick is tagged with the lobby generation
    it was started for and does nothing once that generation or the
    expected phase is gone, so a restart or close silently ends it.
    """

    def __init__(self, lobby_manager, broadcaster, scheduler,
                 rng: Optional[random.Random] = None,
                 countdown_seconds: int = TIMING_CONFIG['COUNTDOWN_SECONDS'],
                 pause_seconds: int = TIMING_CONFIG['SPEAKER_PAUSE_SECONDS'],
                 tick_seconds: int = TIMING_CONFIG['TICK_SECONDS']):
        """
        Initialize turn manager.

        Args:
            lobby_manager: Lobby store
            broadcaster: Lobby broadcaster
            scheduler: Object exposing start_background_task() and sleep()
            rng: Randomness source for shuffled speaking orders
            countdown_seconds: Length of the pre-speaking countdown
            pause_seconds: Gap between two speakers
            tick_seconds: Interval between timer ticks
        """
        self.lobby_manager = lobby_manager
        self.broadcaster = broadcaster
        self.scheduler = scheduler
        self.rng = rng or random.Random()
        self.countdown_seconds = countdown_seconds
        self.pause_seconds = pause_seconds
        self.tick_seconds = tick_seconds
        logger.debug("Turn manager initialized")

    def build_speaking_order(self, lobby: LobbyData) -> List[str]:
        """
        Speaking order of the active players' display names.

        Shuffled when the lobby plays with random order, join order otherwise.
        """
        active = sorted(lobby.active_players, key=lambda p: p.join_order)
        names = [p.username for p in active]
        if lobby.settings.random_order:
            names = shuffle_players(names, self.rng)
        return names

    def start_word_time(self, lobby_id: str, generation: int):
        """Launch the timed speaking sequence for the current round."""
        logger.info(f"Starting word time for lobby {lobby_id} (generation {generation})")
        self.scheduler.start_background_task(self._run_word_time, lobby_id, generation)

    # ==========================================================================
    # TIMER LOOP
    # ==========================================================================

    def _run_word_time(self, lobby_id: str, generation: int):
        countdown = (GamePhase.WORD_TIME_COUNTDOWN.value,)
        speaking = (GamePhase.WORD_TIME_SPEAKING.value,)

        # Countdown: 3, 2, 1, 0
        for remaining in range(self.countdown_seconds, -1, -1):
            if self._step(lobby_id, generation, countdown,
                          lambda lobby, outbox, r=remaining: self._countdown_tick(lobby, outbox, r)) is None:
                return
            self.scheduler.sleep(self.tick_seconds)

        order = self._current_order(lobby_id, generation)
        if order is None:
            return

        expected = countdown + speaking
        for speaker in order:
            spoke = False
            for remaining in range(self._word_time_seconds(lobby_id), -1, -1):
                result = self._step(lobby_id, generation, expected,
                                    lambda lobby, outbox, s=speaker, r=remaining:
                                    self._speaking_tick(lobby, outbox, s, r),
                                    persist=expected != speaking)
                if result is None:
                    return
                if result is False:
                    # Speaker left the lobby
                    break
                spoke = True
                expected = speaking
                if remaining > 0:
                    self.scheduler.sleep(self.tick_seconds)

            if spoke:
                self.scheduler.sleep(self.pause_seconds)

        self._step(lobby_id, generation, expected, self._enter_waiting, persist=True)

    def _step(self, lobby_id: str, generation: int, expected_phases: Tuple[str, ...],
              update: Callable, persist: bool = False) -> Optional[bool]:
        """
        Apply one timer effect if the round it belongs to is still current.

        Returns:
            None when the timer is stale and should stop, otherwise the
            result of ``update``
        """
        outbox = self.broadcaster.outbox()
        try:
            with self.lobby_manager.mutate(lobby_id, persist=persist) as lobby:
                state = lobby.game_state
                if state.generation != generation or state.phase not in expected_phases:
                    logger.debug(f"Stale timer for lobby {lobby_id} stopped")
                    return None

                result = update(lobby, outbox)
                outbox.lobby_update(lobby)
        except NotFound:
            logger.debug(f"Timer for closed lobby {lobby_id} stopped")
            return None
        except PersistenceError:
            logger.error(f"Timer for lobby {lobby_id} stopped after a storage failure")
            return None

        outbox.flush()
        return result

    def _current_order(self, lobby_id: str, generation: int) -> Optional[List[str]]:
        lobby = self.lobby_manager.find_lobby(lobby_id)
        if lobby is None or lobby.game_state.generation != generation:
            return None
        return list(lobby.game_state.speaking_order or [])

    def _word_time_seconds(self, lobby_id: str) -> int:
        lobby = self.lobby_manager.find_lobby(lobby_id)
        if lobby is None:
            return 0
        return lobby.settings.word_time_seconds

    def _countdown_tick(self, lobby: LobbyData, outbox, remaining: int) -> bool:
        state = lobby.game_state
        state.time_remaining = remaining
        logger.debug(f"Countdown {remaining} in lobby {lobby.code}")
        outbox.to_lobby(lobby, 'word-time-countdown', {
            'phase': state.phase,
            'speakingOrder': state.speaking_order,
            'timeRemaining': remaining,
            'roundNumber': state.round_number
        })
        return True

    def _speaking_tick(self, lobby: LobbyData, outbox, speaker: str, remaining: int) -> bool:
        if speaker not in [p.username for p in lobby.active_players]:
            logger.info(f"Skipping departed speaker {speaker} in lobby {lobby.code}")
            return False

        state = lobby.game_state
        state.phase = GamePhase.WORD_TIME_SPEAKING.value
        state.current_speaker = speaker
        state.time_remaining = remaining
        logger.debug(f"{speaker} speaking, {remaining}s left in lobby {lobby.code}")
        outbox.to_lobby(lobby, 'word-time-speaking', {
            'phase': state.phase,
            'currentSpeaker': speaker,
            'timeRemaining': remaining,
            'roundNumber': state.round_number
        })
        return True

    def _enter_waiting(self, lobby: LobbyData, outbox) -> bool:
        state = lobby.game_state
        state.phase = GamePhase.WORD_TIME_WAITING.value
        state.current_speaker = None
        state.time_remaining = None
        logger.info(f"Lobby {lobby.code} waiting after round {state.round_number}")
        outbox.to_lobby(lobby, 'word-time-waiting', {
            'phase': state.phase,
            'roundNumber': state.round_number
        })
        return True
