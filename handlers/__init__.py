"""
Web layer for Imposter.

Socket.IO events and REST routes. Each handler resolves who is asking,
calls into the lobby/game/account managers and turns their errors into
client responses.
"""

from .socket_handlers import register_socket_handlers
from .api_handlers import register_api_handlers

__all__ = ['register_socket_handlers', 'register_api_handlers']
