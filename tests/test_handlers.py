"""
Integration tests for the HTTP API and Socket.IO handlers using the
Flask and Flask-SocketIO test clients.
"""
import random

import pytest

from app import create_app


@pytest.fixture
def server():
    app, socketio = create_app(
        overrides={
            'DATABASE_URL': 'sqlite://',
            'SOCKETIO_ASYNC_MODE': 'threading',
            'PERSIST_LOBBIES': True,
            'WORDS_FILE': None
        },
        rng=random.Random(42)
    )
    app.config['TESTING'] = True
    return app, socketio


@pytest.fixture
def http(server):
    app, _ = server
    return app.test_client()


@pytest.fixture
def register(http):
    def _register(username, password="secret123"):
        response = http.post('/api/register', json={'username': username, 'password': password})
        assert response.status_code == 201
        return response.get_json()['user']
    return _register


@pytest.fixture
def connect(server, register):
    """Register an account and return an authenticated socket client."""
    app, socketio = server

    def _connect(username):
        user = register(username)
        client = socketio.test_client(app)
        client.emit('authenticate', {'id': user['id']})
        assert 'authenticated' in names(drain(client))
        return client, user

    return _connect


def drain(client):
    return [(message['name'], message['args'][0] if message['args'] else None)
            for message in client.get_received()]


def names(messages):
    return [name for name, _ in messages]


def payloads(messages, event):
    return [data for name, data in messages if name == event]


class TestApi:

    def test_health(self, http):
        response = http.get('/api/health')
        assert response.status_code == 200
        assert response.get_json()['status'] == 'healthy'

    def test_register_and_login(self, http, register):
        user = register("alice")
        assert user['username'] == "alice"
        assert user['gamesPlayed'] == 0

        response = http.post('/api/login', json={'username': 'alice', 'password': 'secret123'})
        assert response.status_code == 200
        assert response.get_json()['user']['id'] == user['id']

    def test_duplicate_registration(self, http, register):
        register("alice")
        response = http.post('/api/register', json={'username': 'alice', 'password': 'secret123'})
        assert response.status_code == 409
        assert response.get_json()['code'] == 'conflict'

    def test_invalid_registration(self, http):
        response = http.post('/api/register', json={'username': 'al', 'password': 'secret123'})
        assert response.status_code == 400

    def test_bad_login(self, http, register):
        register("alice")
        response = http.post('/api/login', json={'username': 'alice', 'password': 'nope-nope'})
        assert response.status_code == 401

    def test_verify_and_get_user(self, http, register):
        user = register("alice")
        assert http.post('/api/verify-user', json={'id': user['id']}).status_code == 200
        assert http.post('/api/verify-user', json={'id': 9999}).status_code == 404
        assert http.get(f"/api/user/{user['id']}").get_json()['user']['username'] == "alice"

    def test_lobby_lookup(self, http, connect):
        client, _ = connect("alice")
        client.emit('create-lobby')
        code = payloads(drain(client), 'lobby-created')[0]['code']

        response = http.get(f"/api/lobbies/{code.lower()}")
        assert response.status_code == 200
        assert response.get_json()['lobby']['playerCount'] == 1
        assert http.get("/api/lobbies/ZZZZZZ").status_code == 404

    def test_unknown_route(self, http):
        assert http.get('/api/nothing-here').status_code == 404


class TestSocketLobbyFlow:

    def test_actions_need_authentication(self, server):
        app, socketio = server
        client = socketio.test_client(app)
        drain(client)

        client.emit('create-lobby')

        errors = payloads(drain(client), 'error')
        assert errors and errors[0]['code'] == 'not_authenticated'

    def test_bad_identity_rejected(self, server):
        app, socketio = server
        client = socketio.test_client(app)
        drain(client)

        client.emit('authenticate', {'id': 12345})

        errors = payloads(drain(client), 'error')
        assert errors and errors[0]['code'] == 'not_authenticated'

    def test_create_lobby(self, connect):
        client, user = connect("alice")

        client.emit('create-lobby')

        messages = drain(client)
        created = payloads(messages, 'lobby-created')[0]
        assert len(created['code']) == 6
        update = payloads(messages, 'lobby-updated')[-1]
        assert update['players'][0]['username'] == "alice"
        assert update['players'][0]['isHost'] is True

    def test_join_by_lowercase_code(self, connect):
        host, _ = connect("alice")
        guest, _ = connect("bobby")
        host.emit('create-lobby')
        code = payloads(drain(host), 'lobby-created')[0]['code']

        guest.emit('join-lobby', {'lobbyCode': code.lower()})

        joined = payloads(drain(guest), 'lobby-joined')[0]
        assert joined['code'] == code
        assert joined['reconnected'] is False
        update = payloads(drain(host), 'lobby-updated')[-1]
        assert [p['username'] for p in update['players']] == ["alice", "bobby"]

    def test_join_unknown_code(self, connect):
        client, _ = connect("alice")
        client.emit('join-lobby', {'lobbyCode': 'NOPE00'})
        errors = payloads(drain(client), 'error')
        assert errors[0]['code'] == 'not_found'

    def test_leave_transfers_host(self, connect):
        host, _ = connect("alice")
        guest, _ = connect("bobby")
        host.emit('create-lobby')
        code = payloads(drain(host), 'lobby-created')[0]['code']
        guest.emit('join-lobby', {'lobbyCode': code})
        drain(guest)

        host.emit('leave-lobby')

        assert 'left-lobby' in names(drain(host))
        messages = drain(guest)
        assert payloads(messages, 'host-transferred') == [{'isHost': True}]
        update = payloads(messages, 'lobby-updated')[-1]
        assert update['players'][0]['username'] == "bobby"
        assert update['players'][0]['isHost'] is True

    def test_close_lobby_notifies_members(self, connect, server):
        app, _ = server
        host, _ = connect("alice")
        guest, _ = connect("bobby")
        host.emit('create-lobby')
        code = payloads(drain(host), 'lobby-created')[0]['code']
        guest.emit('join-lobby', {'lobbyCode': code})
        drain(guest)

        guest.emit('close-lobby')
        assert payloads(drain(guest), 'error')[0]['code'] == 'forbidden'

        host.emit('close-lobby')

        assert 'lobby-closed' in names(drain(guest))
        assert app.extensions['imposter']['lobbies'].lobby_count == 0

    def test_disconnect_marks_unreachable(self, connect):
        host, _ = connect("alice")
        guest, _ = connect("bobby")
        host.emit('create-lobby')
        code = payloads(drain(host), 'lobby-created')[0]['code']
        guest.emit('join-lobby', {'lobbyCode': code})
        drain(host)

        guest.disconnect()

        update = payloads(drain(host), 'lobby-updated')[-1]
        bobby = next(p for p in update['players'] if p['username'] == "bobby")
        assert bobby['isConnected'] is False


class TestSocketGameFlow:

    @pytest.fixture
    def table(self, connect):
        clients = [connect(name) for name in ("alice", "bobby", "carol")]
        host = clients[0][0]
        host.emit('create-lobby')
        code = payloads(drain(host), 'lobby-created')[0]['code']
        for client, _ in clients[1:]:
            client.emit('join-lobby', {'lobbyCode': code})
        for client, _ in clients:
            drain(client)
        return clients

    def test_start_game_sends_private_roles(self, table):
        host = table[0][0]
        host.emit('start-game')

        roles = []
        for client, _ in table:
            started = payloads(drain(client), 'game-started')
            assert len(started) == 1
            roles.append(started[0])

        assert [r['isImposter'] for r in roles].count(True) == 1
        assert [r['word'] for r in roles].count(None) == 1

    def test_non_host_start_rejected(self, table):
        guest = table[1][0]
        guest.emit('start-game')
        errors = payloads(drain(guest), 'error')
        assert errors[0]['code'] == 'forbidden'
        assert 'error' not in names(drain(table[0][0]))

    def test_out_of_phase_action_is_ignored(self, table):
        guest = table[1][0]
        guest.emit('player-ready')
        assert 'error' not in names(drain(guest))

    def test_ready_moves_to_discussion(self, table):
        table[0][0].emit('start-game')
        for client, _ in table:
            drain(client)

        for client, _ in table:
            client.emit('player-ready')

        messages = drain(table[0][0])
        discussion = payloads(messages, 'discussion-phase')
        assert discussion and discussion[0]['phase'] == 'discussion'

    def test_failed_join_keeps_current_lobby(self, table, connect, server):
        app, _ = server
        lobbies = app.extensions['imposter']['lobbies']
        table[0][0].emit('start-game')
        for client, _ in table:
            drain(client)

        dave, dave_user = connect("dave")
        dave.emit('create-lobby')
        own_code = payloads(drain(dave), 'lobby-created')[0]['code']
        running = next(lobby for lobby in lobbies.active_lobbies.values() if lobby.code != own_code)

        dave.emit('join-lobby', {'lobbyCode': running.code})

        errors = payloads(drain(dave), 'error')
        assert errors[0]['code'] == 'invalid_phase'
        own = lobbies.find_by_code(own_code)
        assert own.get_player_by_user(dave_user['id']) is not None
        assert lobbies.find_by_code(running.code).get_player_by_user(dave_user['id']) is None
        assert lobbies.lobby_count == 2


class TestAppFactory:

    def test_sql_debug_override_reaches_engine(self):
        import database.config as database_config

        create_app(
            overrides={
                'DATABASE_URL': 'sqlite://',
                'SOCKETIO_ASYNC_MODE': 'threading',
                'SQL_DEBUG': True,
                'WORDS_FILE': None
            },
            rng=random.Random(7)
        )

        assert database_config.engine.echo is True
