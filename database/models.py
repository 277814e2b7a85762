"""
Database Models for Imposter.

Contains all SQLAlchemy model definitions for the game.
Pure data models with no business logic.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, JSON, Index
from sqlalchemy.orm import relationship, declarative_base

# Create the base class for models
Base = declarative_base()


class User(Base):
    """A registered account with lifetime statistics."""

    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)

    # Statistics
    games_played = Column(Integer, default=0, nullable=False)
    times_imposter = Column(Integer, default=0, nullable=False)
    imposter_wins = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"


class LobbyRecord(Base):
    """Mirror of an in-memory lobby."""

    __tablename__ = 'lobbies'

    id = Column(String(32), primary_key=True)
    code = Column(String(6), unique=True, nullable=False, index=True)
    host_id = Column(Integer, nullable=False)
    settings = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    # Relationships
    players = relationship('PlayerRecord', back_populates='lobby', cascade='all, delete-orphan')
    game_state = relationship('GameStateRecord', back_populates='lobby', uselist=False,
                              cascade='all, delete-orphan')

    def __repr__(self):
        return f"<LobbyRecord(code='{self.code}', host_id={self.host_id})>"


class PlayerRecord(Base):
    """A lobby member and their round flags."""

    __tablename__ = 'players'

    id = Column(String(32), primary_key=True)
    lobby_id = Column(String(32), ForeignKey('lobbies.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(Integer, nullable=False)
    username = Column(String(50), nullable=False)
    socket_id = Column(String(100), nullable=True)
    is_connected = Column(Boolean, default=True, nullable=False)
    join_order = Column(Integer, default=0, nullable=False)

    # Role and round flags
    is_host = Column(Boolean, default=False, nullable=False)
    is_ready = Column(Boolean, default=False, nullable=False)
    is_imposter = Column(Boolean, default=False, nullable=False)
    is_eliminated = Column(Boolean, default=False, nullable=False)
    vote_target = Column(String(32), nullable=True)
    ready_for_voting = Column(Boolean, default=False, nullable=False)
    ready_for_next_round = Column(Boolean, default=False, nullable=False)

    # Relationships
    lobby = relationship('LobbyRecord', back_populates='players')

    # Indexes
    __table_args__ = (
        Index('idx_player_lobby_user', 'lobby_id', 'user_id', unique=True),
    )

    def __repr__(self):
        return f"<PlayerRecord(username='{self.username}', lobby_id='{self.lobby_id}')>"


class GameStateRecord(Base):
    """Phase, word and speaking order of a lobby."""

    __tablename__ = 'game_states'

    lobby_id = Column(String(32), ForeignKey('lobbies.id', ondelete='CASCADE'), primary_key=True)
    phase = Column(String(30), nullable=False, default='lobby')
    current_word = Column(String(100), nullable=True)
    speaking_order = Column(JSON, nullable=True)  # {"order": [...], "roundNumber": n}
    votes_revealed = Column(Boolean, default=False, nullable=False)

    # Relationships
    lobby = relationship('LobbyRecord', back_populates='game_state')

    def __repr__(self):
        return f"<GameStateRecord(lobby_id='{self.lobby_id}', phase='{self.phase}')>"
