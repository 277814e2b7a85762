"""
API Route Handlers for Imposter.

Pure routing layer that delegates to appropriate business logic modules.
Contains no business logic - only request/response handling.
"""

import logging
from flask import jsonify, request

from utils.errors import GameError

logger = logging.getLogger(__name__)


def register_api_handlers(app, lobby_manager, account_service, connection_manager=None):
    """
    Register all API route handlers.

    Args:
        app: Flask application instance
        lobby_manager: Lobby management instance
        account_service: Account registration and lookup
        connection_manager: Session registry, for health stats
    """

    def error_response(error: GameError):
        return jsonify({'error': error.message, 'code': error.code}), error.status

    @app.route('/api/health')
    def health_check():
        """Health check endpoint."""
        payload = {
            'status': 'healthy',
            'message': 'Imposter game server is running',
            'lobbies': lobby_manager.lobby_count
        }
        if connection_manager is not None:
            payload.update(connection_manager.get_connection_stats())
        return jsonify(payload)

    @app.route('/api/register', methods=['POST'])
    def register():
        """Create an account."""
        data = request.get_json(silent=True) or {}
        try:
            user = account_service.register(data.get('username'), data.get('password'))
            return jsonify({'user': user.to_dict()}), 201
        except GameError as e:
            logger.warning(f"Registration rejected: {e.message}")
            return error_response(e)

    @app.route('/api/login', methods=['POST'])
    def login():
        """Check credentials and return the account."""
        data = request.get_json(silent=True) or {}
        try:
            user = account_service.login(data.get('username'), data.get('password'))
            return jsonify({'user': user.to_dict()})
        except GameError as e:
            return error_response(e)

    @app.route('/api/verify-user', methods=['POST'])
    def verify_user():
        """Confirm a stored account ID still exists."""
        data = request.get_json(silent=True) or {}
        try:
            user = account_service.verify_identity(data.get('id'))
            return jsonify({'user': user.to_dict()})
        except GameError as e:
            return error_response(e)

    @app.route('/api/user/<int:user_id>')
    def get_user(user_id):
        """Account details and statistics."""
        try:
            user = account_service.get_user(user_id)
            return jsonify({'user': user.to_dict()})
        except GameError as e:
            return error_response(e)

    @app.route('/api/lobbies/<code>')
    def get_lobby_info(code):
        """Summary of a lobby for pre-join checks."""
        try:
            lobby = lobby_manager.find_by_code(code)
            return jsonify({'lobby': lobby.to_summary_dict()})
        except GameError as e:
            return error_response(e)

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 errors."""
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        return jsonify({'error': 'Internal server error'}), 500

    logger.info("API handlers registered successfully")
