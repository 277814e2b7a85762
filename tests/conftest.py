"""
Shared fixtures: deterministic randomness, a recording emitter, a manual
timer scheduler and an in-memory SQLite account store.
"""
import itertools
import random

import pytest
from sqlalchemy.orm import sessionmaker

from accounts import AccountService
from database import create_db_engine, init_database
from game import GameManager, TurnManager, VoteManager, WordProvider
from lobby import LobbyManager, PlayerManager, ConnectionManager, LobbyBroadcaster


class RecordingEmitter:
    """Stands in for SocketIO.emit and keeps every event."""

    def __init__(self):
        self.events = []

    def emit(self, event, data, to=None):
        self.events.append((event, data, to))

    def named(self, event):
        return [(data, to) for name, data, to in self.events if name == event]

    def sent_to(self, target):
        return [(name, data) for name, data, to in self.events if to == target]

    def names(self):
        return [name for name, _, _ in self.events]

    def clear(self):
        self.events = []


class ManualScheduler:
    """Collects background tasks; tests run them explicitly."""

    def __init__(self):
        self.tasks = []
        self.sleeps = []

    def start_background_task(self, target, *args, **kwargs):
        self.tasks.append((target, args, kwargs))

    def sleep(self, seconds):
        self.sleeps.append(seconds)

    def run_pending(self):
        tasks, self.tasks = self.tasks, []
        for target, args, kwargs in tasks:
            target(*args, **kwargs)
        return len(tasks)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def session_factory():
    engine = create_db_engine('sqlite://')
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    init_database(factory)
    yield factory
    engine.dispose()


@pytest.fixture
def accounts(session_factory):
    return AccountService(session_factory)


@pytest.fixture
def emitter():
    return RecordingEmitter()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def lobby_manager(rng):
    return LobbyManager(PlayerManager(), rng=rng)


@pytest.fixture
def connections(accounts):
    return ConnectionManager(accounts)


@pytest.fixture
def broadcaster(lobby_manager, emitter, connections):
    return LobbyBroadcaster(lobby_manager, emitter, connections)


@pytest.fixture
def game(lobby_manager, broadcaster, scheduler, accounts, rng):
    turn_manager = TurnManager(lobby_manager, broadcaster, scheduler, rng=rng)
    words = WordProvider(['Apple', 'Castle', 'Rocket', 'Lighthouse'], rng=rng)
    return GameManager(lobby_manager, broadcaster, turn_manager, VoteManager(), words, accounts, rng)


@pytest.fixture
def make_users(accounts):
    counter = itertools.count(1)

    def _make(count):
        return [accounts.register(f"player{next(counter)}", "secret123") for _ in range(count)]

    return _make


@pytest.fixture
def make_lobby(game, make_users):
    """Create a lobby with ``count`` players; the first one hosts."""

    def _make(count, **settings):
        users = make_users(count)
        host = users[0]
        lobby = game.create_lobby(host.id, host.username, socket_id=f"sid-{host.id}")
        for user in users[1:]:
            game.join_lobby(lobby.id, user.id, user.username, socket_id=f"sid-{user.id}")
        if settings:
            game.update_settings(lobby.id, host.id, settings)
        return lobby.id, users

    return _make


@pytest.fixture
def play(game, lobby_manager):
    """Drive a lobby through common steps."""

    class Driver:
        def lobby(self, lobby_id):
            return lobby_manager.get_lobby(lobby_id)

        def active_users(self, lobby_id):
            return [p.user_id for p in self.lobby(lobby_id).active_players]

        def all_ready(self, lobby_id):
            for user_id in self.active_users(lobby_id):
                game.player_ready(lobby_id, user_id)

        def all_ready_for_voting(self, lobby_id):
            for user_id in self.active_users(lobby_id):
                game.ready_for_voting(lobby_id, user_id)

        def to_voting(self, lobby_id):
            self.all_ready(lobby_id)
            self.all_ready_for_voting(lobby_id)

        def eliminate(self, lobby_id, target_user_id):
            """Everyone votes for the target; the target votes for someone else."""
            lobby = self.lobby(lobby_id)
            target = lobby.get_player_by_user(target_user_id)
            other = next(p for p in lobby.active_players if p.id != target.id)
            resolution = None
            for player in list(lobby.active_players):
                choice = other.id if player.id == target.id else target.id
                resolution = game.cast_vote(lobby_id, player.user_id, choice) or resolution
            return resolution

    return Driver()
