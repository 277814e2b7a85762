"""
Game Manager - Coordinator for game operations.

Owns the phase machine of every lobby: starting games, readiness
thresholds, voting, guesses, survival rounds, restarts and the effect
of players leaving mid-game. Coordinates the lobby store, TurnManager,
VoteManager, the word provider and the account service.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, Tuple

from lobby.broadcaster import Outbox
from lobby.models import LobbyData, PlayerData, LobbySettings
from utils.errors import (
    GameError, Forbidden, InsufficientPlayers, InvalidPhase, InvalidRequest, NotFound
)
from utils.helpers import determine_imposter_count, generate_imposter_hint, min_players_required
from .models import GamePhase, GUESSABLE_PHASES, PRE_VOTING_PHASES, Resolution, ResolutionKind
from .turn_manager import TurnManager
from .vote_manager import VoteManager
from .words import WordProvider

logger = logging.getLogger(__name__)


@dataclass
class RoundEffects:
    """Work to do once a lobby change has committed."""
    outbox: Outbox
    stats: List[Tuple[int, bool, bool, bool]] = field(default_factory=list)  # user_id, played, imposter, won
    timers: List[Tuple[str, int]] = field(default_factory=list)  # lobby_id, generation


class GameManager:
    """Coordinates all game operations within lobbies."""

    def __init__(self, lobby_manager, broadcaster, turn_manager: TurnManager,
                 vote_manager: Optional[VoteManager] = None,
                 word_provider: Optional[WordProvider] = None,
                 account_service=None, rng: Optional[random.Random] = None):
        """
        Initialize game manager.

        Args:
            lobby_manager: Lobby store
            broadcaster: Lobby broadcaster
            turn_manager: Speaking order and word-time timers
            vote_manager: Vote counting and resolution
            word_provider: Source of secret words
            account_service: Receives game statistics (optional)
            rng: Randomness source for imposters and hints
        """
        self.lobby_manager = lobby_manager
        self.player_manager = lobby_manager.player_manager
        self.broadcaster = broadcaster
        self.turn_manager = turn_manager
        self.vote_manager = vote_manager or VoteManager()
        self.rng = rng or random.Random()
        self.word_provider = word_provider or WordProvider(rng=self.rng)
        self.account_service = account_service
        logger.info("Game manager initialized")

    # ==========================================================================
    # MEMBERSHIP
    # ==========================================================================

    def create_lobby(self, user_id: int, username: str, socket_id: Optional[str] = None) -> LobbyData:
        """
        Create a lobby hosted by the caller.

        Nothing is broadcast yet; the caller puts the host's connection in
        the lobby room first and then sends the update.
        """
        lobby, _ = self.lobby_manager.create_lobby(user_id, username, socket_id)
        return lobby

    def join_lobby(self, lobby_id: str, user_id: int, username: str,
                   socket_id: Optional[str] = None) -> Tuple[LobbyData, PlayerData, bool]:
        """
        Join a lobby, or reconnect to it.

        A reconnecting player in a running game gets their role again.

        Returns:
            Tuple of (lobby, player, reconnected)
        """
        effects = self._effects()
        with self.lobby_manager.mutate(lobby_id) as lobby:
            player, reconnected = self.player_manager.join(lobby, user_id, username, socket_id)
            if reconnected and lobby.game_state.in_game:
                effects.outbox.to_player(lobby, player, 'role-restored',
                                         self.broadcaster.private_payload(lobby, player))
            effects.outbox.lobby_update(lobby)

        self._commit(effects)
        return lobby, player, reconnected

    def leave_lobby(self, lobby_id: str, user_id: int) -> Tuple[PlayerData, bool]:
        """
        Remove the caller from a lobby.

        Hands the host role on when needed and re-checks the running game.

        Returns:
            Tuple of (removed_player, lobby_deleted)
        """
        effects = self._effects()
        with self.lobby_manager.mutate(lobby_id) as lobby:
            removed, new_host, deleted = self.lobby_manager.remove_member(lobby, user_id)
            if not deleted:
                if new_host:
                    effects.outbox.to_player(lobby, new_host, 'host-transferred', {'isHost': True})
                if lobby.game_state.in_game:
                    self._after_departure(lobby, removed, effects)
                effects.outbox.lobby_update(lobby)

        self._commit(effects)
        return removed, deleted

    def player_disconnected(self, lobby_id: str, user_id: int, socket_id: str) -> bool:
        """
        Mark a player unreachable after their connection dropped.

        Returns:
            True if the player was marked
        """
        effects = self._effects()
        with self.lobby_manager.mutate(lobby_id) as lobby:
            player = lobby.get_player_by_user(user_id)
            if not player or not self.player_manager.mark_unreachable(lobby, player.id, socket_id):
                return False
            effects.outbox.lobby_update(lobby)

        self._commit(effects)
        return True

    def update_settings(self, lobby_id: str, user_id: int, partial: Dict[str, Any]) -> LobbySettings:
        """Host-only settings change, broadcast on success."""
        settings = self.lobby_manager.update_settings(lobby_id, user_id, partial)
        self.broadcaster.send_lobby_update(lobby_id)
        return settings

    def close_lobby(self, lobby_id: str, user_id: int) -> LobbyData:
        """Host-only close. Members are told before the lobby goes away."""
        def notify(lobby):
            self.broadcaster.emit_to_lobby(lobby, 'lobby-closed', {
                'lobbyId': lobby.id,
                'message': 'The host closed the lobby'
            })

        return self.lobby_manager.close_lobby(lobby_id, user_id, notify=notify)

    # ==========================================================================
    # PHASE TRANSITIONS
    # ==========================================================================

    def start_game(self, lobby_id: str, user_id: int) -> LobbyData:
        """
        Start a game from the lobby phase.

        Raises:
            Forbidden: If the caller is not the host
            InvalidPhase: If a game is already running
            InsufficientPlayers: If too few players are present for the settings
        """
        effects = self._effects()
        with self.lobby_manager.mutate(lobby_id) as lobby:
            player = self._require_player(lobby, user_id)
            if not player.is_host:
                raise Forbidden("Only the host can start the game")
            if lobby.game_state.in_game:
                raise InvalidPhase("Game already in progress")

            self.player_manager.reset_game_flags(lobby)
            required = min_players_required(lobby.settings)
            if len(lobby.active_players) < required:
                raise InsufficientPlayers(f"Need at least {required} players to start")

            self._begin_round(lobby, 1, effects, 'game-started')
            for p in lobby.players:
                effects.stats.append((p.user_id, True, p.is_imposter, False))

        self._commit(effects)
        return lobby

    def player_ready(self, lobby_id: str, user_id: int):
        """Player has seen their word. Repeats are harmless."""
        effects = self._effects()
        with self.lobby_manager.mutate(lobby_id) as lobby:
            player = self._require_active_player(lobby, user_id, (GamePhase.WORD_REVEAL.value,))
            player.is_ready = True
            self._check_all_ready(lobby, effects)
            effects.outbox.lobby_update(lobby)

        self._commit(effects)

    def ready_for_voting(self, lobby_id: str, user_id: int):
        """Player wants to move on to voting."""
        effects = self._effects()
        with self.lobby_manager.mutate(lobby_id) as lobby:
            player = self._require_active_player(lobby, user_id, PRE_VOTING_PHASES)
            player.ready_for_voting = True
            self._check_ready_for_voting(lobby, effects)
            effects.outbox.lobby_update(lobby)

        self._commit(effects)

    def ready_for_next_round(self, lobby_id: str, user_id: int):
        """Player wants another speaking round instead of voting."""
        effects = self._effects()
        with self.lobby_manager.mutate(lobby_id) as lobby:
            player = self._require_active_player(lobby, user_id, (GamePhase.WORD_TIME_WAITING.value,))
            player.ready_for_next_round = True
            self._check_next_round(lobby, effects)
            effects.outbox.lobby_update(lobby)

        self._commit(effects)

    def cast_vote(self, lobby_id: str, user_id: int, target_player_id) -> Optional[Resolution]:
        """
        Cast or change a vote.

        Once every active player has voted the round is resolved.

        Returns:
            The resolution if this vote completed the round, else None
        """
        effects = self._effects()
        with self.lobby_manager.mutate(lobby_id) as lobby:
            voter = self._require_player(lobby, user_id)
            self._require_phase(lobby, (GamePhase.VOTING.value,))
            self.vote_manager.record_vote(lobby, voter, target_player_id)
            resolution = self._check_votes(lobby, effects)
            effects.outbox.lobby_update(lobby)

        self._commit(effects)
        return resolution

    def guess_word(self, lobby_id: str, user_id: int, guessed_word) -> bool:
        """
        Imposter guesses the secret word, ending the game.

        Returns:
            True if the guess was right

        Raises:
            InvalidPhase: If no round is running
            Forbidden: If the caller is not an active imposter
            InvalidRequest: If the guess is empty
        """
        effects = self._effects()
        with self.lobby_manager.mutate(lobby_id) as lobby:
            player = self._require_player(lobby, user_id)
            state = lobby.game_state
            if state.phase not in GUESSABLE_PHASES:
                raise InvalidPhase("You can only guess during a round")
            if not player.is_imposter or player.is_eliminated:
                raise Forbidden("Only the imposter can guess the word")
            if not isinstance(guessed_word, str) or not guessed_word.strip():
                raise InvalidRequest("Guess cannot be empty")

            guess = guessed_word.strip()
            correct_word = state.current_word or ''
            was_correct = guess.casefold() == correct_word.strip().casefold()

            state.phase = GamePhase.RESULTS.value
            state.current_speaker = None
            state.time_remaining = None
            result = {
                'phase': state.phase,
                'imposterName': player.username,
                'guessedWord': guess,
                'correctWord': correct_word,
                'wasCorrect': was_correct
            }
            state.last_result = result
            effects.outbox.to_lobby(lobby, 'word-guess-result', result)

            if was_correct:
                for imposter in lobby.active_imposters:
                    effects.stats.append((imposter.user_id, False, False, True))

            logger.info(f"{player.username} guessed '{guess}' in lobby {lobby.code} "
                        f"({'correct' if was_correct else 'wrong'})")
            effects.outbox.lobby_update(lobby)

        self._commit(effects)
        return was_correct

    def restart_game(self, lobby_id: str, user_id: int):
        """
        Return a lobby to the lobby phase.

        Raises:
            Forbidden: If the caller is not the host
            InvalidPhase: If no game is running
        """
        effects = self._effects()
        with self.lobby_manager.mutate(lobby_id) as lobby:
            player = self._require_player(lobby, user_id)
            if not player.is_host:
                raise Forbidden("Only the host can restart the game")
            if not lobby.game_state.in_game:
                raise InvalidPhase("No game to restart")

            self._reset_to_lobby(lobby)
            effects.outbox.to_lobby(lobby, 'game-restarted', {'phase': GamePhase.LOBBY.value})
            effects.outbox.lobby_update(lobby)
            logger.info(f"Restarted game in lobby {lobby.code}")

        self._commit(effects)

    # ==========================================================================
    # INTERNAL TRANSITIONS (caller holds the lobby lock)
    # ==========================================================================

    def _begin_round(self, lobby: LobbyData, round_number: int, effects: RoundEffects, event: str):
        """Draw a word, pick imposters among active players and reveal roles."""
        state = lobby.game_state
        active = lobby.active_players

        count = determine_imposter_count(lobby.settings, len(active))
        imposter_ids = self.player_manager.select_imposters(active, count, self.rng)
        word = self.word_provider.draw()

        self.player_manager.reset_round_flags(lobby)
        self.player_manager.assign_roles(lobby, imposter_ids)

        state.generation += 1
        state.phase = GamePhase.WORD_REVEAL.value
        state.current_word = word
        state.round_number = round_number
        state.speaking_order = None
        state.current_speaker = None
        state.time_remaining = None
        state.votes_revealed = False
        state.last_result = None
        state.imposter_hint = generate_imposter_hint(word, self.rng) if lobby.settings.imposter_hint else None

        for player in active:
            effects.outbox.to_player(lobby, player, event,
                                     self.broadcaster.private_payload(lobby, player))
        effects.outbox.lobby_update(lobby)

        logger.info(f"Round {round_number} started in lobby {lobby.code} with "
                    f"{len(active)} players and {count} imposter(s)")

    def _check_all_ready(self, lobby: LobbyData, effects: RoundEffects):
        active = lobby.active_players
        if not active or not all(p.is_ready for p in active):
            return

        state = lobby.game_state
        state.speaking_order = self.turn_manager.build_speaking_order(lobby)

        if lobby.settings.word_time_mode:
            state.phase = GamePhase.WORD_TIME_COUNTDOWN.value
            state.time_remaining = self.turn_manager.countdown_seconds
            effects.timers.append((lobby.id, state.generation))
        else:
            state.phase = GamePhase.DISCUSSION.value
            effects.outbox.to_lobby(lobby, 'discussion-phase', {
                'phase': state.phase,
                'speakingOrder': state.speaking_order,
                'roundNumber': state.round_number
            })

        logger.info(f"Lobby {lobby.code} moved to {state.phase}")

    def _check_ready_for_voting(self, lobby: LobbyData, effects: RoundEffects):
        active = lobby.active_players
        if not active or not all(p.ready_for_voting for p in active):
            return

        state = lobby.game_state
        self.vote_manager.clear_votes(lobby)
        state.phase = GamePhase.VOTING.value
        state.current_speaker = None
        state.time_remaining = None
        effects.outbox.to_lobby(lobby, 'voting-phase', {'phase': state.phase})
        logger.info(f"Lobby {lobby.code} moved to voting")

    def _check_next_round(self, lobby: LobbyData, effects: RoundEffects):
        active = lobby.active_players
        if not active or not all(p.ready_for_next_round for p in active):
            return

        self._begin_round(lobby, lobby.game_state.round_number + 1, effects, 'next-round')

    def _check_votes(self, lobby: LobbyData, effects: RoundEffects) -> Optional[Resolution]:
        if not self.vote_manager.all_voted(lobby):
            return None

        resolution = self.vote_manager.resolve(lobby)
        self._apply_resolution(lobby, resolution, effects)
        return resolution

    def _apply_resolution(self, lobby: LobbyData, resolution: Resolution, effects: RoundEffects):
        state = lobby.game_state
        outbox = effects.outbox
        vote_count = resolution.results.vote_counts

        if resolution.kind == ResolutionKind.TIE:
            self.vote_manager.clear_votes(lobby)
            for player in lobby.players:
                player.ready_for_voting = False
            state.phase = GamePhase.DISCUSSION.value
            outbox.to_lobby(lobby, 'voting-tied', {
                'phase': state.phase,
                'voteCount': vote_count,
                'tiedPlayers': [lobby.get_player(pid).username for pid in resolution.results.tied_players]
            })
            logger.info(f"Vote tied in lobby {lobby.code}, back to discussion")
            return

        if resolution.kind == ResolutionKind.ELIMINATED:
            # Only imposters who survived the vote are named
            imposters = lobby.active_imposters
            state.phase = GamePhase.RESULTS.value
            state.votes_revealed = True
            result = {
                'phase': state.phase,
                'eliminatedPlayer': resolution.eliminated_name,
                'wasImposter': resolution.was_imposter,
                'voteCount': vote_count,
                'word': state.current_word,
                'imposterName': ', '.join(p.username for p in imposters)
            }
            state.last_result = result
            outbox.to_lobby(lobby, 'voting-results', result)
            if not resolution.was_imposter:
                for imposter in imposters:
                    effects.stats.append((imposter.user_id, False, False, True))

        elif resolution.kind == ResolutionKind.SURVIVAL_CONTINUE:
            outbox.to_lobby(lobby, 'player-eliminated', {
                'eliminatedPlayer': resolution.eliminated_name,
                'wasImposter': resolution.was_imposter,
                'voteCount': vote_count,
                'roundNumber': state.round_number
            })
            self._begin_round(lobby, state.round_number + 1, effects, 'survival-next-round')

        elif resolution.kind == ResolutionKind.SURVIVAL_END:
            survivors = lobby.active_players
            state.phase = GamePhase.RESULTS.value
            state.votes_revealed = True
            result = {
                'phase': state.phase,
                'winners': [p.username for p in survivors],
                'lastWord': state.current_word or '',
                'eliminatedPlayer': resolution.eliminated_name,
                'voteCount': vote_count
            }
            state.last_result = result
            outbox.to_lobby(lobby, 'survival-game-ended', result)
            for survivor in survivors:
                if survivor.is_imposter:
                    effects.stats.append((survivor.user_id, False, False, True))

    def _after_departure(self, lobby: LobbyData, removed: PlayerData, effects: RoundEffects):
        """Re-check a running game after a player left it."""
        state = lobby.game_state
        if state.phase == GamePhase.RESULTS.value:
            return

        if len(lobby.active_players) < 2:
            self._abort(lobby, effects, "Not enough players left to continue")
            return
        if not lobby.active_imposters:
            self._abort(lobby, effects, "The imposter left the game")
            return

        phase = state.phase
        if phase == GamePhase.WORD_REVEAL.value:
            self._check_all_ready(lobby, effects)
        elif phase in PRE_VOTING_PHASES:
            self._check_ready_for_voting(lobby, effects)
            if lobby.game_state.phase == GamePhase.WORD_TIME_WAITING.value:
                self._check_next_round(lobby, effects)
        elif phase == GamePhase.VOTING.value:
            self.vote_manager.clear_votes(lobby, removed.id)
            self._check_votes(lobby, effects)

    def _abort(self, lobby: LobbyData, effects: RoundEffects, reason: str):
        self._reset_to_lobby(lobby)
        effects.outbox.to_lobby(lobby, 'game-aborted', {
            'phase': GamePhase.LOBBY.value,
            'reason': reason
        })
        logger.warning(f"Game in lobby {lobby.code} aborted: {reason}")

    def _reset_to_lobby(self, lobby: LobbyData):
        lobby.game_state.generation += 1
        lobby.game_state.clear()
        self.player_manager.reset_game_flags(lobby)

    # ==========================================================================
    # HELPERS
    # ==========================================================================

    def _effects(self) -> RoundEffects:
        return RoundEffects(outbox=self.broadcaster.outbox())

    def _commit(self, effects: RoundEffects):
        """
        Run deferred work after the lobby lock is released.

        Statistics go out first; the outbox then checks each lobby is still
        in the generation it was in before broadcasting.
        """
        self._record_stats(effects.stats)
        effects.outbox.flush()
        for lobby_id, generation in effects.timers:
            self.turn_manager.start_word_time(lobby_id, generation)

    def _record_stats(self, stats: List[Tuple[int, bool, bool, bool]]):
        if self.account_service is None:
            return

        for user_id, played, was_imposter, won in stats:
            try:
                user = self.account_service.record_game_stats(
                    user_id, played=played, was_imposter=was_imposter, won=won
                )
            except GameError as e:
                logger.error(f"Failed to record stats for user {user_id}: {e.message}")
                continue
            except Exception as e:
                logger.exception(f"Unexpected error recording stats for user {user_id}: {e}")
                continue
            self.broadcaster.emit_to_user(user_id, 'user-updated', {'user': user.to_dict()})

    def _require_player(self, lobby: LobbyData, user_id: int) -> PlayerData:
        player = lobby.get_player_by_user(user_id)
        if not player:
            raise NotFound("You are not in this lobby")
        return player

    def _require_phase(self, lobby: LobbyData, phases):
        if lobby.game_state.phase not in phases:
            raise InvalidPhase(f"Not accepted during {lobby.game_state.phase}", silent=True)

    def _require_active_player(self, lobby: LobbyData, user_id: int, phases) -> PlayerData:
        player = self._require_player(lobby, user_id)
        self._require_phase(lobby, phases)
        if player.is_eliminated:
            raise InvalidPhase("Eliminated players sit out", silent=True)
        return player
