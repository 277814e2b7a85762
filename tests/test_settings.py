"""
Tests for LobbySettings merging and the host-only settings flow.
"""
import pytest

from lobby.models import LobbySettings
from utils.errors import Forbidden, InvalidPhase, InvalidRequest


class TestSettingsMerge:

    def test_defaults(self):
        assert LobbySettings().to_dict() == {
            'randomOrder': True,
            'twoImposters': False,
            'threeImposters': False,
            'imposterHint': False,
            'wordTimeMode': False,
            'survivalMode': False,
            'wordTimeSeconds': 10
        }

    def test_unknown_keys_ignored(self):
        merged = LobbySettings().merge({'bogus': 1, 'imposterHint': True})
        assert merged.imposter_hint
        assert 'bogus' not in merged.to_dict()

    def test_merge_returns_new_instance(self):
        original = LobbySettings()
        merged = original.merge({'randomOrder': False})
        assert original.random_order
        assert not merged.random_order

    def test_two_and_three_imposters_exclusive(self):
        merged = LobbySettings().merge({'twoImposters': True}).merge({'threeImposters': True})
        assert merged.three_imposters
        assert not merged.two_imposters

    def test_survival_clears_word_time_and_imposters(self):
        start = LobbySettings(word_time_mode=True, two_imposters=False)
        merged = start.merge({'survivalMode': True})
        assert merged.survival_mode
        assert not merged.word_time_mode
        assert not merged.two_imposters

    def test_word_time_clears_survival_and_imposter_counts(self):
        start = LobbySettings(survival_mode=True)
        merged = start.merge({'wordTimeMode': True})
        assert merged.word_time_mode
        assert not merged.survival_mode

        merged = LobbySettings(three_imposters=True).merge({'wordTimeMode': True})
        assert not merged.three_imposters

    def test_later_key_wins_within_one_update(self):
        merged = LobbySettings().merge({'survivalMode': True, 'twoImposters': True})
        assert merged.two_imposters
        assert not merged.survival_mode

    def test_turning_off_clears_nothing(self):
        merged = LobbySettings(two_imposters=True).merge({'survivalMode': False})
        assert merged.two_imposters

    @pytest.mark.parametrize("partial", [
        {'wordTimeSeconds': 2},
        {'wordTimeSeconds': 31},
        {'wordTimeSeconds': '10'},
        {'wordTimeSeconds': True},
        {'randomOrder': 'yes'},
        {'survivalMode': 1},
    ])
    def test_invalid_values(self, partial):
        with pytest.raises(InvalidRequest):
            LobbySettings().merge(partial)

    def test_non_dict_rejected(self):
        with pytest.raises(InvalidRequest):
            LobbySettings().merge(['twoImposters'])

    def test_word_time_seconds_bounds_accepted(self):
        assert LobbySettings().merge({'wordTimeSeconds': 3}).word_time_seconds == 3
        assert LobbySettings().merge({'wordTimeSeconds': 30}).word_time_seconds == 30


class TestUpdateSettings:

    def test_host_update_is_broadcast(self, make_lobby, game, play, emitter):
        lobby_id, users = make_lobby(3)
        emitter.clear()

        game.update_settings(lobby_id, users[0].id, {'imposterHint': True})

        assert play.lobby(lobby_id).settings.imposter_hint
        updates = emitter.named('lobby-updated')
        assert updates[-1][0]['settings']['imposterHint'] is True

    def test_non_host_rejected(self, make_lobby, game, play):
        lobby_id, users = make_lobby(3)
        with pytest.raises(Forbidden):
            game.update_settings(lobby_id, users[1].id, {'imposterHint': True})
        assert not play.lobby(lobby_id).settings.imposter_hint

    def test_rejected_during_game(self, make_lobby, game):
        lobby_id, users = make_lobby(3)
        game.start_game(lobby_id, users[0].id)
        with pytest.raises(InvalidPhase):
            game.update_settings(lobby_id, users[0].id, {'imposterHint': True})

    def test_invalid_value_leaves_settings(self, make_lobby, game, play):
        lobby_id, users = make_lobby(3)
        with pytest.raises(InvalidRequest):
            game.update_settings(lobby_id, users[0].id, {'imposterHint': True, 'wordTimeSeconds': 99})
        assert not play.lobby(lobby_id).settings.imposter_hint
