"""
Imposter - A Social Deduction Party Game Backend

Flask-SocketIO server setup and handler registration. All game logic lives
in the lobby/, game/ and accounts/ packages; this module only wires them
together.
"""

import logging
import random
import sys
from flask import Flask
from flask_socketio import SocketIO
from flask_cors import CORS
from werkzeug.middleware.proxy_fix import ProxyFix

from config import settings
from accounts import AccountService
from database import configure_database, init_database, SqlLobbyRepository
from game import GameManager, TurnManager, VoteManager, WordProvider
from handlers import register_socket_handlers, register_api_handlers
from lobby import LobbyManager, PlayerManager, ConnectionManager, LobbyBroadcaster

logger = logging.getLogger(__name__)


def configure_logging(level: str = settings.LOG_LEVEL):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def create_app(overrides=None, rng=None):
    """
    Application factory that creates and configures the Flask app.

    Args:
        overrides: Settings to use instead of the environment's (see config.settings)
        rng: Randomness source shared by codes, imposters, words and hints

    Returns:
        Tuple of (app, socketio)
    """
    config = settings.as_dict()
    config.update(overrides or {})
    cors_origins = config['CORS_ORIGINS'].split(',')

    # Flask configuration
    app = Flask(__name__)
    app.config['SECRET_KEY'] = config['SECRET_KEY']

    # CORS configuration for the web client
    CORS(app, origins=cors_origins)

    # ProxyFix for deployment behind reverse proxy
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)

    # SocketIO configuration
    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=config['SOCKETIO_ASYNC_MODE'],
        ping_timeout=60,
        ping_interval=25
    )

    # Initialize database
    logger.info("Initializing database...")
    session_factory = configure_database(config['DATABASE_URL'], echo=config['SQL_DEBUG'])
    init_database(session_factory)

    # Initialize business logic managers
    logger.info("Initializing business logic managers...")
    rng = rng or random.Random()

    if config.get('WORDS_FILE'):
        word_provider = WordProvider.from_file(config['WORDS_FILE'], rng=rng)
    else:
        word_provider = WordProvider(rng=rng)

    account_service = AccountService(session_factory)
    connection_manager = ConnectionManager(account_service)

    # Lobby management system
    repository = SqlLobbyRepository(session_factory) if config['PERSIST_LOBBIES'] else None
    lobby_manager = LobbyManager(player_manager=PlayerManager(), repository=repository, rng=rng)
    broadcaster = LobbyBroadcaster(lobby_manager, socketio, connection_manager)

    # Game management system
    turn_manager = TurnManager(lobby_manager, broadcaster, socketio, rng=rng)
    game_manager = GameManager(
        lobby_manager=lobby_manager,
        broadcaster=broadcaster,
        turn_manager=turn_manager,
        vote_manager=VoteManager(),
        word_provider=word_provider,
        account_service=account_service,
        rng=rng
    )

    # Register handlers (pure routing layer)
    logger.info("Registering handlers...")
    register_socket_handlers(socketio, connection_manager, lobby_manager, game_manager)
    register_api_handlers(app, lobby_manager, account_service, connection_manager)

    app.extensions['imposter'] = {
        'accounts': account_service,
        'connections': connection_manager,
        'lobbies': lobby_manager,
        'games': game_manager
    }

    logger.info("Application initialization complete")
    return app, socketio


def main():
    """Main entry point for development server."""
    configure_logging()

    if settings.SOCKETIO_ASYNC_MODE == 'eventlet':
        import eventlet
        eventlet.monkey_patch()

    app, socketio = create_app()

    logger.info(f"Starting Imposter game server on port {settings.PORT}")
    logger.info(f"Debug mode: {settings.DEBUG}")
    logger.info(f"Async mode: {settings.SOCKETIO_ASYNC_MODE}")
    logger.info(f"CORS origins: {settings.CORS_ORIGINS}")

    run_kwargs = {'debug': settings.DEBUG, 'port': settings.PORT, 'host': '0.0.0.0'}
    if settings.SOCKETIO_ASYNC_MODE == 'threading':
        run_kwargs['allow_unsafe_werkzeug'] = True

    try:
        socketio.run(app, **run_kwargs)
    except KeyboardInterrupt:
        logger.info("Server stopped")
        sys.exit(0)


if __name__ == '__main__':
    main()
