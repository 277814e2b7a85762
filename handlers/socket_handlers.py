"""
Socket.IO Event Handlers for Imposter.

Pure routing layer that delegates to appropriate business logic modules.
Contains no business logic - only event routing, room membership and
turning rejections into 'error' events for the requesting client.
"""

import logging
from flask import request
from flask_socketio import emit, join_room, leave_room, close_room

from utils.errors import GameError, InvalidPhase, NotFound, PersistenceError

logger = logging.getLogger(__name__)


def register_socket_handlers(socketio, connection_manager, lobby_manager, game_manager):
    """
    Register all Socket.IO event handlers.

    Args:
        socketio: SocketIO instance
        connection_manager: Session registry
        lobby_manager: Lobby management instance
        game_manager: Game management instance
    """
    broadcaster = game_manager.broadcaster

    def run_action(description, action):
        """
        Run a client action, reporting any rejection to the caller only.

        Returns:
            The action's result, or None if it was rejected
        """
        try:
            return action()
        except InvalidPhase as e:
            if e.silent:
                logger.warning(f"Ignored {description} from {request.sid}: {e.message}")
                return None
            logger.warning(f"Rejected {description} from {request.sid}: {e.message}")
            emit('error', e.to_dict())
        except PersistenceError as e:
            logger.error(f"Storage error during {description}: {e.__cause__ or e}")
            emit('error', e.to_dict())
        except GameError as e:
            logger.warning(f"Rejected {description} from {request.sid}: {e.message}")
            emit('error', e.to_dict())
        except Exception as e:
            logger.exception(f"Error during {description}: {e}")
            emit('error', PersistenceError().to_dict())
        return None

    def payload_of(data):
        return data if isinstance(data, dict) else {}

    def resolve_lobby_id(session, data):
        lobby_id = payload_of(data).get('lobbyId') or session.lobby_id
        if not lobby_id:
            raise NotFound("You are not in a lobby")
        return lobby_id

    def leave_current_lobby(session):
        """Leave the lobby this connection is in, if it still exists."""
        lobby = lobby_manager.find_lobby(session.lobby_id)
        if lobby and lobby.get_player_by_user(session.user_id):
            game_manager.leave_lobby(lobby.id, session.user_id)
            leave_room(lobby.code)
        connection_manager.disassociate(request.sid)

    @socketio.on('connect')
    def handle_connect():
        """Handle client connection."""
        logger.info(f"Client connected: {request.sid}")
        emit('connected', {'message': 'Connected to server successfully'})

    @socketio.on('disconnect')
    def handle_disconnect(reason=None):
        """Handle client disconnection. The player stays in their lobby."""
        logger.info(f"Client disconnected: {request.sid} ({reason})")

        session = connection_manager.unregister_connection(request.sid)
        if not session or not session.lobby_id:
            return

        try:
            game_manager.player_disconnected(session.lobby_id, session.user_id, request.sid)
        except NotFound:
            logger.debug(f"Lobby of {session.username} is already gone")
        except GameError as e:
            logger.error(f"Error handling disconnect of {session.username}: {e.message}")

    @socketio.on('authenticate')
    def handle_authenticate(data):
        """Bind this connection to an account."""
        def action():
            success, message = connection_manager.authenticate(request.sid, payload_of(data).get('id'))
            if not success:
                emit('error', {'message': message, 'code': 'not_authenticated'})
                return

            session = connection_manager.get_session(request.sid)
            emit('authenticated', {'user': {'id': session.user_id, 'username': session.username},
                                   'message': message})

            # Connection replaced an older one that was in a lobby
            if session.lobby_id and lobby_manager.find_lobby(session.lobby_id):
                lobby = lobby_manager.get_lobby(session.lobby_id)
                join_room(lobby.code)
                game_manager.join_lobby(lobby.id, session.user_id, session.username, request.sid)

        run_action('authenticate', action)

    @socketio.on('create-lobby')
    def handle_create_lobby(data=None):
        """Handle lobby creation request."""
        def action():
            session = connection_manager.require_session(request.sid)
            if session.lobby_id:
                leave_current_lobby(session)

            lobby = game_manager.create_lobby(session.user_id, session.username, request.sid)
            join_room(lobby.code)
            connection_manager.associate_with_lobby(request.sid, lobby.id)

            emit('lobby-created', {'lobbyId': lobby.id, 'code': lobby.code})
            broadcaster.send_lobby_update(lobby.id)
            logger.info(f"Created lobby: {lobby.code}")

        run_action('create-lobby', action)

    @socketio.on('join-lobby')
    def handle_join_lobby(data):
        """Handle player joining a lobby by code."""
        def action():
            session = connection_manager.require_session(request.sid)
            lobby = lobby_manager.find_by_code(payload_of(data).get('lobbyCode'))

            if session.lobby_id and session.lobby_id != lobby.id:
                lobby_manager.check_join(lobby.id, session.user_id)
                leave_current_lobby(session)

            join_room(lobby.code)
            try:
                lobby, player, reconnected = game_manager.join_lobby(
                    lobby.id, session.user_id, session.username, request.sid
                )
            except GameError:
                leave_room(lobby.code)
                raise

            connection_manager.associate_with_lobby(request.sid, lobby.id)
            emit('lobby-joined', {
                'lobbyId': lobby.id,
                'code': lobby.code,
                'playerId': player.id,
                'reconnected': reconnected
            })
            logger.info(f"Player {session.username} joined lobby {lobby.code}")

        run_action('join-lobby', action)

    @socketio.on('leave-lobby')
    def handle_leave_lobby(data=None):
        """Handle player leaving a lobby."""
        def action():
            session = connection_manager.require_session(request.sid)
            lobby = lobby_manager.get_lobby(resolve_lobby_id(session, data))

            game_manager.leave_lobby(lobby.id, session.user_id)
            leave_room(lobby.code)
            connection_manager.disassociate(request.sid)
            emit('left-lobby', {'lobbyId': lobby.id, 'message': 'Left lobby'})

        run_action('leave-lobby', action)

    @socketio.on('close-lobby')
    def handle_close_lobby(data=None):
        """Handle the host closing a lobby."""
        def action():
            session = connection_manager.require_session(request.sid)
            lobby = game_manager.close_lobby(resolve_lobby_id(session, data), session.user_id)

            connection_manager.disassociate_lobby(lobby.id)
            close_room(lobby.code)

        run_action('close-lobby', action)

    @socketio.on('update-settings')
    def handle_update_settings(data):
        """Handle the host changing lobby settings."""
        def action():
            session = connection_manager.require_session(request.sid)
            game_manager.update_settings(resolve_lobby_id(session, data), session.user_id,
                                         payload_of(data).get('settings'))

        run_action('update-settings', action)

    @socketio.on('start-game')
    def handle_start_game(data=None):
        """Handle game start request."""
        def action():
            session = connection_manager.require_session(request.sid)
            game_manager.start_game(resolve_lobby_id(session, data), session.user_id)

        run_action('start-game', action)

    @socketio.on('player-ready')
    def handle_player_ready(data=None):
        """Player has seen their word."""
        def action():
            session = connection_manager.require_session(request.sid)
            game_manager.player_ready(resolve_lobby_id(session, data), session.user_id)

        run_action('player-ready', action)

    @socketio.on('ready-for-voting')
    def handle_ready_for_voting(data=None):
        """Player is ready to vote."""
        def action():
            session = connection_manager.require_session(request.sid)
            game_manager.ready_for_voting(resolve_lobby_id(session, data), session.user_id)

        run_action('ready-for-voting', action)

    @socketio.on('ready-for-next-round')
    def handle_ready_for_next_round(data=None):
        """Player wants another speaking round."""
        def action():
            session = connection_manager.require_session(request.sid)
            game_manager.ready_for_next_round(resolve_lobby_id(session, data), session.user_id)

        run_action('ready-for-next-round', action)

    @socketio.on('cast-vote')
    def handle_cast_vote(data):
        """Handle a vote."""
        def action():
            session = connection_manager.require_session(request.sid)
            game_manager.cast_vote(resolve_lobby_id(session, data), session.user_id,
                                   payload_of(data).get('targetPlayerId'))

        run_action('cast-vote', action)

    @socketio.on('guess-word')
    def handle_guess_word(data):
        """Handle the imposter guessing the word."""
        def action():
            session = connection_manager.require_session(request.sid)
            game_manager.guess_word(resolve_lobby_id(session, data), session.user_id,
                                    payload_of(data).get('guessedWord'))

        run_action('guess-word', action)

    @socketio.on('restart-game')
    def handle_restart_game(data=None):
        """Handle the host sending everyone back to the lobby."""
        def action():
            session = connection_manager.require_session(request.sid)
            game_manager.restart_game(resolve_lobby_id(session, data), session.user_id)

        run_action('restart-game', action)

    logger.info("Socket.IO handlers registered successfully")
