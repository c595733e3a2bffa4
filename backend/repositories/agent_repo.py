from typing import List, Optional
from sqlalchemy.orm import Session
from datetime import datetime

from models.agent import Agent, AgentSession
from core.exceptions import UnknownAgentError
from services.tracking_service import AgentRecord
from utils.date_utils import UTC_TZ, to_naive_utc
from config.logging import get_logger
from .base import CRUDBase

logger = get_logger("repositories.agents")


class AgentRepository(CRUDBase[Agent]):
    """User directory backed by the ``agents`` table"""

    def __init__(self, db: Session):
        super().__init__(Agent, db)

    def list(self) -> List[AgentRecord]:
        rows = self.db.query(self.model).order_by(self.model.name).all()
        return [AgentRecord(id=row.uuid, name=row.name) for row in rows]

    def create_agent(self, name: str) -> AgentRecord:
        row = self.create({"name": name.strip()})
        logger.info(f"Registered agent {row.uuid} ({row.name})")
        return AgentRecord(id=row.uuid, name=row.name)

    def require(self, agent_id: str) -> Agent:
        agent = self.get(agent_id)
        if agent is None:
            raise UnknownAgentError(agent_id)
        return agent

    def open_session(self, agent_id: str) -> Optional[AgentSession]:
        return (
            self.db.query(AgentSession)
            .filter(AgentSession.agent_id == agent_id, AgentSession.ended_at.is_(None))
            .order_by(AgentSession.started_at.desc())
            .first()
        )

    def start_session(self, agent_id: str, at: Optional[datetime] = None) -> AgentSession:
        """Mark the agent online; an already open session is kept"""
        self.require(agent_id)
        session = self.open_session(agent_id)
        if session is not None:
            return session

        session = AgentSession(agent_id=agent_id, started_at=to_naive_utc(at or datetime.now(UTC_TZ)))
        self.db.add(session)
        self.db.commit()
        self.db.refresh(session)
        logger.info(f"Agent {agent_id} went online")
        return session

    def end_session(self, agent_id: str, at: Optional[datetime] = None) -> None:
        """Close every open session of the agent"""
        self.require(agent_id)
        ended_at = to_naive_utc(at or datetime.now(UTC_TZ))
        closed = (
            self.db.query(AgentSession)
            .filter(AgentSession.agent_id == agent_id, AgentSession.ended_at.is_(None))
            .update({AgentSession.ended_at: ended_at}, synchronize_session=False)
        )
        self.db.commit()
        if closed:
            logger.info(f"Agent {agent_id} went offline")
