"""
Tests for the timed speaking sequence of word-time mode.
"""
import pytest

from utils.errors import InvalidPhase


def crewmates_of(lobby):
    return [p for p in lobby.active_players if not p.is_imposter]


@pytest.fixture
def word_time_lobby(make_lobby, game, play):
    """Three players, fixed order, three seconds each, everyone ready."""
    lobby_id, users = make_lobby(3, wordTimeMode=True, wordTimeSeconds=3, randomOrder=False)
    game.start_game(lobby_id, users[0].id)
    play.all_ready(lobby_id)
    return lobby_id, users


class TestWordTimeSequence:

    def test_all_ready_starts_countdown(self, word_time_lobby, play, scheduler):
        lobby_id, users = word_time_lobby
        state = play.lobby(lobby_id).game_state
        assert state.phase == 'word-time-countdown'
        assert state.speaking_order == [u.username for u in users]
        assert len(scheduler.tasks) == 1

    def test_countdown_then_each_speaker_then_waiting(self, word_time_lobby, play, scheduler, emitter):
        lobby_id, users = word_time_lobby
        emitter.clear()

        scheduler.run_pending()

        countdown = [data['timeRemaining'] for data, _ in emitter.named('word-time-countdown')]
        assert countdown == [3, 2, 1, 0]

        speaking = [(data['currentSpeaker'], data['timeRemaining'])
                    for data, _ in emitter.named('word-time-speaking')]
        expected = [(u.username, r) for u in users for r in (3, 2, 1, 0)]
        assert speaking == expected

        assert len(emitter.named('word-time-waiting')) == 1
        names = [n for n in emitter.names() if n.startswith('word-time')]
        assert names[-1] == 'word-time-waiting'

        state = play.lobby(lobby_id).game_state
        assert state.phase == 'word-time-waiting'
        assert state.current_speaker is None

    def test_tick_and_pause_timing(self, word_time_lobby, scheduler):
        scheduler.run_pending()
        # four countdown ticks, then per speaker three ticks and a pause
        assert scheduler.sleeps == [1] * 4 + ([1, 1, 1] + [1]) * 3

    def test_events_go_to_lobby_room(self, word_time_lobby, play, scheduler, emitter):
        lobby_id, _ = word_time_lobby
        code = play.lobby(lobby_id).code
        emitter.clear()

        scheduler.run_pending()

        for name, _, to in emitter.events:
            assert to == code

    def test_restart_stops_old_timer(self, word_time_lobby, game, play, scheduler, emitter):
        lobby_id, users = word_time_lobby
        game.restart_game(lobby_id, users[0].id)
        emitter.clear()

        scheduler.run_pending()

        assert play.lobby(lobby_id).game_state.phase == 'lobby'
        assert not emitter.named('word-time-countdown')
        assert not emitter.named('word-time-speaking')

    def test_stale_timer_does_not_touch_new_game(self, word_time_lobby, game, play, scheduler, emitter):
        lobby_id, users = word_time_lobby
        game.restart_game(lobby_id, users[0].id)
        game.start_game(lobby_id, users[0].id)
        play.all_ready(lobby_id)
        assert len(scheduler.tasks) == 2
        emitter.clear()

        scheduler.run_pending()

        assert len(emitter.named('word-time-countdown')) == 4
        assert len(emitter.named('word-time-waiting')) == 1

    def test_closed_lobby_stops_timer(self, word_time_lobby, game, lobby_manager, scheduler, emitter):
        lobby_id, users = word_time_lobby
        game.close_lobby(lobby_id, users[0].id)
        emitter.clear()

        scheduler.run_pending()

        assert emitter.events == []
        assert lobby_manager.find_lobby(lobby_id) is None

    def test_departed_speaker_is_skipped(self, make_lobby, game, play, scheduler, emitter):
        lobby_id, users = make_lobby(4, wordTimeMode=True, wordTimeSeconds=3, randomOrder=False)
        game.start_game(lobby_id, users[0].id)
        play.all_ready(lobby_id)
        leaver = crewmates_of(play.lobby(lobby_id))[-1]

        original_sleep = scheduler.sleep

        def sleep_then_leave(seconds):
            if len(scheduler.sleeps) == 0:
                game.leave_lobby(lobby_id, leaver.user_id)
            original_sleep(seconds)

        scheduler.sleep = sleep_then_leave
        emitter.clear()

        scheduler.run_pending()

        speakers = {data['currentSpeaker'] for data, _ in emitter.named('word-time-speaking')}
        assert leaver.username not in speakers
        assert len(speakers) == 3
        assert play.lobby(lobby_id).game_state.phase == 'word-time-waiting'


class TestAfterWordTime:

    @pytest.fixture
    def waiting(self, word_time_lobby, scheduler):
        scheduler.run_pending()
        return word_time_lobby

    def test_everyone_ready_for_next_round(self, waiting, game, play, emitter):
        lobby_id, users = waiting
        for user in users:
            game.ready_for_next_round(lobby_id, user.id)

        state = play.lobby(lobby_id).game_state
        assert state.phase == 'word-reveal'
        assert state.round_number == 2
        assert len(emitter.named('next-round')) == 3
        assert not any(p.ready_for_next_round for p in play.lobby(lobby_id).players)

    def test_partial_next_round_waits(self, waiting, game, play):
        lobby_id, users = waiting
        game.ready_for_next_round(lobby_id, users[0].id)
        assert play.lobby(lobby_id).game_state.phase == 'word-time-waiting'

    def test_everyone_ready_for_voting(self, waiting, game, play):
        lobby_id, users = waiting
        for user in users:
            game.ready_for_voting(lobby_id, user.id)
        assert play.lobby(lobby_id).game_state.phase == 'voting'

    def test_next_round_only_while_waiting(self, word_time_lobby, game):
        lobby_id, users = word_time_lobby
        with pytest.raises(InvalidPhase) as exc:
            game.ready_for_next_round(lobby_id, users[0].id)
        assert exc.value.silent
