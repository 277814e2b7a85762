"""
Vote Manager for Imposter.

Handles vote validation, vote counting, and round resolution.
Contains no phase logic - the game manager applies what this decides.
"""

import logging
from collections import Counter
from typing import Optional

from lobby.models import LobbyData, PlayerData
from utils.constants import SURVIVAL_FINAL_PLAYERS
from utils.errors import Forbidden, InvalidRequest, NotFound
from .models import VoteResults, Resolution, ResolutionKind

logger = logging.getLogger(__name__)


class VoteManager:
    """
    Manages vote collection and counting for a lobby's active players.

    Ties, and a vote with no valid targets, eliminate nobody.
    """

    def __init__(self, survival_final_players: int = SURVIVAL_FINAL_PLAYERS):
        """
        Initialize vote manager.

        Args:
            survival_final_players: Survival mode ends at this many players
        """
        self.survival_final_players = survival_final_players
        logger.debug("Vote manager initialized")

    def validate_vote(self, lobby: LobbyData, voter: PlayerData, target_id) -> PlayerData:
        """
        Check that a vote may be cast.

        Args:
            lobby: Lobby the vote is cast in
            voter: Player casting the vote
            target_id: Player ID being voted for

        Returns:
            The target player

        Raises:
            Forbidden: If the voter is eliminated
            NotFound: If the target is not in the lobby
            InvalidRequest: If the target is the voter or already eliminated
        """
        if voter.is_eliminated:
            raise Forbidden("Eliminated players cannot vote")

        target = lobby.get_player(target_id) if isinstance(target_id, str) else None
        if not target:
            raise NotFound("Player not found")

        if target.id == voter.id:
            raise InvalidRequest("Cannot vote for yourself")

        if target.is_eliminated:
            raise InvalidRequest("Cannot vote for an eliminated player")

        return target

    def record_vote(self, lobby: LobbyData, voter: PlayerData, target_id) -> PlayerData:
        """
        Record or change a vote.

        Returns:
            The target player
        """
        target = self.validate_vote(lobby, voter, target_id)
        previous = voter.vote_target
        voter.vote_target = target.id

        if previous and previous != target.id:
            logger.info(f"{voter.username} changed vote to {target.username} in lobby {lobby.code}")
        else:
            logger.info(f"{voter.username} voted for {target.username} in lobby {lobby.code}")
        return target

    def all_voted(self, lobby: LobbyData) -> bool:
        """Check if every active player has a vote in."""
        active = lobby.active_players
        return bool(active) and all(p.has_voted for p in active)

    def clear_votes(self, lobby: LobbyData, target_id: Optional[str] = None):
        """
        Drop votes, optionally only those cast for one player.

        Args:
            lobby: Lobby whose votes to clear
            target_id: Only clear votes for this player
        """
        for player in lobby.players:
            if target_id is None or player.vote_target == target_id:
                player.vote_target = None

    def calculate_results(self, lobby: LobbyData) -> VoteResults:
        """
        Count the votes of active players.

        Votes for players who are no longer active are ignored.

        Args:
            lobby: Lobby to count

        Returns:
            VoteResults object with calculated results
        """
        active_ids = {p.id for p in lobby.active_players}
        vote_counts = Counter()
        for player in lobby.active_players:
            if player.vote_target in active_ids:
                vote_counts[player.vote_target] += 1

        total_votes = sum(vote_counts.values())

        if not vote_counts:
            return VoteResults(total_votes=0)

        max_votes = max(vote_counts.values())
        top_players = [player_id for player_id, count in vote_counts.items() if count == max_votes]

        if len(top_players) > 1:
            results = VoteResults(
                vote_counts=dict(vote_counts),
                tied_players=top_players,
                is_tie=True,
                total_votes=total_votes
            )
        else:
            results = VoteResults(
                vote_counts=dict(vote_counts),
                winner=top_players[0],
                is_tie=False,
                total_votes=total_votes
            )

        logger.info(f"Calculated results in lobby {lobby.code}: {total_votes} votes, "
                    f"winner: {results.winner}, tie: {results.is_tie}")
        return results

    def resolve(self, lobby: LobbyData) -> Resolution:
        """
        Decide the outcome of a completed vote and eliminate the loser.

        Args:
            lobby: Lobby whose vote is complete

        Returns:
            Resolution describing what the phase machine should do next
        """
        results = self.calculate_results(lobby)

        if results.winner is None:
            return Resolution(kind=ResolutionKind.TIE, results=results)

        eliminated = lobby.get_player(results.winner)
        eliminated.is_eliminated = True
        remaining = lobby.active_players

        if not lobby.settings.survival_mode:
            kind = ResolutionKind.ELIMINATED
        elif len(remaining) > self.survival_final_players:
            kind = ResolutionKind.SURVIVAL_CONTINUE
        else:
            kind = ResolutionKind.SURVIVAL_END

        logger.info(f"Eliminated {eliminated.username} in lobby {lobby.code} "
                    f"(imposter: {eliminated.is_imposter}, outcome: {kind.value})")

        return Resolution(
            kind=kind,
            results=results,
            eliminated_id=eliminated.id,
            eliminated_name=eliminated.username,
            was_imposter=eliminated.is_imposter
        )
