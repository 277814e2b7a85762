"""
Tests for AccountService and ConnectionManager.
"""
import pytest

from lobby import ConnectionManager
from utils.errors import Conflict, InvalidRequest, NotAuthenticated, NotFound


class TestAccountService:

    def test_register_and_login(self, accounts):
        user = accounts.register("alice", "secret123")
        assert user.id
        assert user.username == "alice"
        assert user.games_played == 0

        logged_in = accounts.login("alice", "secret123")
        assert logged_in.id == user.id

    def test_username_is_trimmed(self, accounts):
        assert accounts.register("  bob  ", "secret123").username == "bob"

    def test_duplicate_username(self, accounts):
        accounts.register("alice", "secret123")
        with pytest.raises(Conflict):
            accounts.register("alice", "another1")

    @pytest.mark.parametrize("username,password", [
        ("al", "secret123"),
        ("a" * 21, "secret123"),
        ("alice", "short"),
        (None, "secret123"),
    ])
    def test_invalid_registration(self, accounts, username, password):
        with pytest.raises(InvalidRequest):
            accounts.register(username, password)

    def test_wrong_password(self, accounts):
        accounts.register("alice", "secret123")
        with pytest.raises(NotAuthenticated):
            accounts.login("alice", "wrong-password")

    def test_unknown_user_login(self, accounts):
        with pytest.raises(NotAuthenticated):
            accounts.login("nobody", "secret123")

    def test_password_is_hashed(self, accounts, session_factory):
        from database import get_db_session, get_user_by_username

        accounts.register("alice", "secret123")
        with get_db_session(session_factory) as session:
            stored = get_user_by_username(session, "alice").password_hash
        assert stored != "secret123"

    def test_verify_identity_accepts_string_ids(self, accounts):
        user = accounts.register("alice", "secret123")
        assert accounts.verify_identity(str(user.id)).username == "alice"

    @pytest.mark.parametrize("claimed", [None, "abc", 99999])
    def test_verify_identity_rejects(self, accounts, claimed):
        with pytest.raises(NotFound):
            accounts.verify_identity(claimed)

    def test_record_game_stats(self, accounts):
        user = accounts.register("alice", "secret123")
        accounts.record_game_stats(user.id, played=True, was_imposter=True)
        updated = accounts.record_game_stats(user.id, won=True)

        assert updated.games_played == 1
        assert updated.times_imposter == 1
        assert updated.imposter_wins == 1
        assert updated.to_dict() == {
            'id': user.id,
            'username': 'alice',
            'gamesPlayed': 1,
            'timesImposter': 1,
            'imposterWins': 1
        }

    def test_stats_for_missing_user(self, accounts):
        with pytest.raises(NotFound):
            accounts.record_game_stats(424242, played=True)


class TestConnectionManager:

    @pytest.fixture
    def user(self, accounts):
        return accounts.register("alice", "secret123")

    def test_authenticate(self, connections, user):
        success, message = connections.authenticate("sid-1", user.id)
        assert success
        assert "alice" in message

        session = connections.get_session("sid-1")
        assert session.user_id == user.id
        assert connections.get_socket_for_user(user.id) == "sid-1"

    def test_unknown_account_rejected(self, connections):
        success, _ = connections.authenticate("sid-1", 31337)
        assert not success
        assert connections.get_session("sid-1") is None

    def test_require_session(self, connections):
        with pytest.raises(NotAuthenticated):
            connections.require_session("sid-unknown")

    def test_newer_socket_takes_over_lobby(self, connections, user):
        connections.authenticate("sid-1", user.id)
        connections.associate_with_lobby("sid-1", "lobby-1")

        connections.authenticate("sid-2", user.id)

        assert connections.get_session("sid-1") is None
        assert connections.get_session("sid-2").lobby_id == "lobby-1"
        assert connections.get_socket_for_user(user.id) == "sid-2"

    def test_old_socket_disconnect_keeps_new_mapping(self, connections, user):
        connections.authenticate("sid-1", user.id)
        connections.authenticate("sid-2", user.id)

        assert connections.unregister_connection("sid-1") is None
        assert connections.get_socket_for_user(user.id) == "sid-2"

    def test_unregister(self, connections, user):
        connections.authenticate("sid-1", user.id)
        session = connections.unregister_connection("sid-1")
        assert session.username == "alice"
        assert not connections.is_user_connected(user.id)

    def test_disassociate_lobby(self, connections, accounts, user):
        other = accounts.register("bobby", "secret123")
        connections.authenticate("sid-1", user.id)
        connections.authenticate("sid-2", other.id)
        connections.associate_with_lobby("sid-1", "lobby-1")
        connections.associate_with_lobby("sid-2", "lobby-1")

        assert sorted(connections.disassociate_lobby("lobby-1")) == ["sid-1", "sid-2"]
        assert connections.get_connection_stats() == {'connections': 2, 'in_lobby': 0}

    def test_stats_reach_connected_user(self, make_lobby, game, play, connections, emitter):
        lobby_id, users = make_lobby(3)
        connections.authenticate(f"sid-{users[0].id}", users[0].id)

        game.start_game(lobby_id, users[0].id)

        updates = emitter.named('user-updated')
        assert len(updates) == 1
        data, to = updates[0]
        assert to == f"sid-{users[0].id}"
        assert data['user']['gamesPlayed'] == 1

    def test_constructed_with_account_service(self, accounts):
        assert ConnectionManager(accounts).get_connection_stats() == {'connections': 0, 'in_lobby': 0}
