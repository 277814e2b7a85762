import os
import sys
from dotenv import load_dotenv

# Render Configuration
IS_RENDER = os.environ.get("RENDER", "") == "true"

# Only load the .env file if we're not on Render (i.e., we are in a local environment)
if not IS_RENDER:
    load_dotenv()

# Flask Configuration
SECRET_KEY = os.getenv('SECRET_KEY', 'a_very_secret_key_that_should_be_changed')
CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')

# Database Configuration
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///imposter.db')
if DATABASE_URL.startswith('postgres://'):
    DATABASE_URL = DATABASE_URL.replace('postgres://', 'postgresql://', 1)
SQL_DEBUG = os.getenv('SQL_DEBUG', 'false').lower() == 'true'

# Mirror lobby state to the database after every change
PERSIST_LOBBIES = os.getenv('PERSIST_LOBBIES', 'true').lower() == 'true'

# Game Configuration
WORDS_FILE = os.getenv('WORDS_FILE')

# Server Configuration
PORT = int(os.getenv('PORT', 5000))
DEBUG = not IS_RENDER and os.getenv('DEBUG', 'true').lower() == 'true'
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

# Socket.IO async mode: eventlet where it is supported, threading elsewhere
SOCKETIO_ASYNC_MODE = os.getenv('SOCKETIO_ASYNC_MODE', '').strip()
if not SOCKETIO_ASYNC_MODE:
    if sys.platform.startswith('win') or sys.version_info >= (3, 13):
        SOCKETIO_ASYNC_MODE = 'threading'
    else:
        SOCKETIO_ASYNC_MODE = 'eventlet'


def as_dict():
    """Settings as a plain dict, the shape create_app() accepts overrides for."""
    return {
        'SECRET_KEY': SECRET_KEY,
        'CORS_ORIGINS': CORS_ORIGINS,
        'DATABASE_URL': DATABASE_URL,
        'SQL_DEBUG': SQL_DEBUG,
        'PERSIST_LOBBIES': PERSIST_LOBBIES,
        'WORDS_FILE': WORDS_FILE,
        'PORT': PORT,
        'DEBUG': DEBUG,
        'LOG_LEVEL': LOG_LEVEL,
        'SOCKETIO_ASYNC_MODE': SOCKETIO_ASYNC_MODE,
    }
