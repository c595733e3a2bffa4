"""
Field agent (user directory entry) and online sessions.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from .base import BaseModel


class Agent(BaseModel):
    """A field agent; referenced everywhere by ``uuid``."""
    __tablename__ = 'agents'

    name = Column(String(255), nullable=False, index=True)

    pings = relationship("LocationPing", back_populates="agent", cascade="all, delete-orphan")
    destinations = relationship("Destination", back_populates="agent", cascade="all, delete-orphan")
    sessions = relationship("AgentSession", back_populates="agent", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Agent(uuid='{self.uuid}', name='{self.name}')>"


class AgentSession(BaseModel):
    """
    An online session reported by the agent's device.
    The agent is online while a session with no ``ended_at`` exists.
    """
    __tablename__ = 'agent_sessions'

    agent_id = Column(String(32), ForeignKey('agents.uuid'), nullable=False, index=True)
    started_at = Column(DateTime, nullable=False)  # naive UTC
    ended_at = Column(DateTime, nullable=True)

    agent = relationship("Agent", back_populates="sessions")

    __table_args__ = (
        Index('idx_session_agent_open', 'agent_id', 'ended_at'),
    )
