"""
Account Service for Imposter.

Handles registration, login, identity checks and per-user game statistics.
The lobby and game managers only call verify_identity() and
record_game_stats(); credential handling stays in here.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.security import generate_password_hash, check_password_hash

from database.config import get_db_session
from database.getters import get_user_by_id, get_user_by_username, is_username_taken
from database.setters import create_user, increment_user_stats
from utils.errors import Conflict, InvalidRequest, NotAuthenticated, NotFound, PersistenceError
from utils.helpers import validate_username, validate_password
from utils.constants import USERNAME_MIN_LENGTH, USERNAME_MAX_LENGTH, PASSWORD_MIN_LENGTH

logger = logging.getLogger(__name__)


@dataclass
class UserData:
    """Account details safe to hand to other layers."""
    id: int
    username: str
    games_played: int = 0
    times_imposter: int = 0
    imposter_wins: int = 0

    @classmethod
    def from_record(cls, user) -> 'UserData':
        return cls(
            id=user.id,
            username=user.username,
            games_played=user.games_played or 0,
            times_imposter=user.times_imposter or 0,
            imposter_wins=user.imposter_wins or 0
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'username': self.username,
            'gamesPlayed': self.games_played,
            'timesImposter': self.times_imposter,
            'imposterWins': self.imposter_wins
        }


class AccountService:
    """
    Manages user accounts.

    Every call opens its own database session and returns plain UserData
    objects, so nothing outside this class touches ORM instances.
    """

    def __init__(self, session_factory=None):
        """
        Initialize account service.

        Args:
            session_factory: sessionmaker to use (module default when omitted)
        """
        self.session_factory = session_factory
        logger.debug("Account service initialized")

    def register(self, username, password) -> UserData:
        """
        Create a new account.

        Args:
            username: Desired username
            password: Plain-text password

        Returns:
            The created user

        Raises:
            InvalidRequest: If username or password fail validation
            Conflict: If the username is already taken
        """
        clean_username = validate_username(username)
        if not clean_username:
            raise InvalidRequest(
                f"Username must be {USERNAME_MIN_LENGTH}-{USERNAME_MAX_LENGTH} characters"
            )
        if not validate_password(password):
            raise InvalidRequest(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")

        user_data = None
        try:
            with get_db_session(self.session_factory) as session:
                if not is_username_taken(session, clean_username):
                    user = create_user(session, clean_username, generate_password_hash(password))
                    user_data = UserData.from_record(user)
        except IntegrityError as e:
            raise Conflict("Username already taken") from e
        except SQLAlchemyError as e:
            raise PersistenceError() from e

        if user_data is None:
            raise Conflict("Username already taken")

        logger.info(f"Registered user {user_data.username} (id={user_data.id})")
        return user_data

    def login(self, username, password) -> UserData:
        """
        Check credentials.

        Raises:
            NotAuthenticated: If the username is unknown or the password is wrong
        """
        if not isinstance(username, str) or not isinstance(password, str):
            raise NotAuthenticated("Invalid credentials")

        user_data = None
        try:
            with get_db_session(self.session_factory) as session:
                user = get_user_by_username(session, username.strip())
                if user and check_password_hash(user.password_hash, password):
                    user_data = UserData.from_record(user)
        except SQLAlchemyError as e:
            raise PersistenceError() from e

        if user_data is None:
            logger.warning(f"Failed login for '{username}'")
            raise NotAuthenticated("Invalid credentials")

        logger.info(f"User {user_data.username} logged in")
        return user_data

    def verify_identity(self, user_id) -> UserData:
        """
        Resolve an account ID sent by a client.

        Raises:
            NotFound: If no such user exists
        """
        try:
            user_id = int(user_id)
        except (TypeError, ValueError):
            raise NotFound("User not found")

        return self.get_user(user_id)

    def get_user(self, user_id: int) -> UserData:
        """Load a user by ID, raising NotFound when missing."""
        user_data = None
        try:
            with get_db_session(self.session_factory) as session:
                user = get_user_by_id(session, user_id)
                if user:
                    user_data = UserData.from_record(user)
        except SQLAlchemyError as e:
            raise PersistenceError() from e

        if user_data is None:
            raise NotFound("User not found")
        return user_data

    def record_game_stats(self, user_id: int, played: bool = False,
                          was_imposter: bool = False, won: bool = False) -> UserData:
        """
        Add the outcome of a game to a user's statistics.

        Args:
            user_id: Account ID
            played: Count one more game played
            was_imposter: Count one more game as imposter
            won: Count one more imposter win

        Returns:
            The updated user
        """
        user_data = None
        try:
            with get_db_session(self.session_factory) as session:
                user = increment_user_stats(session, user_id, played=played,
                                            was_imposter=was_imposter, won=won)
                if user:
                    session.flush()
                    user_data = UserData.from_record(user)
        except SQLAlchemyError as e:
            raise PersistenceError() from e

        if user_data is None:
            raise NotFound("User not found")

        logger.debug(f"Recorded stats for user {user_id}: played={played}, "
                     f"imposter={was_imposter}, won={won}")
        return user_data
