from typing import List, Optional, Sequence
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime

from models.agent import Agent
from models.destination import Destination as DestinationRow, DestinationArrival
from core.exceptions import SaveError, UnknownAgentError, ValidationError
from services.destination_service import Destination
from utils.date_utils import UTC_TZ, ensure_utc, to_naive_utc
from config.logging import get_logger
from .base import CRUDBase

logger = get_logger("repositories.destinations")


class DestinationRepository(CRUDBase[DestinationRow]):
    """Destination storage; the row ``uuid`` is the destination id seen by clients"""

    def __init__(self, db: Session):
        super().__init__(DestinationRow, db)

    @staticmethod
    def _to_destination(row: DestinationRow, agent_name: Optional[str] = None) -> Destination:
        return Destination(
            id=row.uuid,
            agent_id=row.agent_id,
            name=row.name,
            latitude=row.latitude,
            longitude=row.longitude,
            priority=row.priority,
            date=ensure_utc(row.date),
            reached=bool(row.reached),
            reached_at=ensure_utc(row.reached_at) if row.reached_at else None,
            agent_name=agent_name,
        )

    def _agent(self, agent_id: str) -> Agent:
        agent = self.db.query(Agent).filter(Agent.uuid == agent_id).first()
        if agent is None:
            raise UnknownAgentError(agent_id)
        return agent

    def list_for_agent(self, agent_id: str) -> List[Destination]:
        agent = self._agent(agent_id)
        rows = self.get_multi_by_field("agent_id", agent_id, sort_by="priority")
        return [self._to_destination(row, agent.name) for row in rows]

    def check_batch_ids(self, agent_id: str, destination_ids: Sequence[str]):
        """
        Reject resubmitted ids that cannot be replaced: repeated within the
        batch, owned by another agent, or already reached.
        """
        seen = set()
        for destination_id in destination_ids:
            if destination_id in seen:
                raise ValidationError(f"Destination {destination_id} appears more than once", field="destinations")
            seen.add(destination_id)
        if not seen:
            return

        rows = self.db.query(self.model).filter(self.model.uuid.in_(seen)).all()
        for row in rows:
            if row.agent_id != agent_id:
                raise ValidationError(
                    f"Destination {row.uuid} is not assigned to agent {agent_id}",
                    field="destinations"
                )
            if row.reached:
                raise ValidationError(
                    f"Destination {row.uuid} is completed and cannot be saved again",
                    field="destinations"
                )

    def save_batch(self, agent_id: str, destinations: Sequence[Destination]) -> int:
        """
        Replace the agent's Active destinations with ``destinations`` in one
        transaction. Completed rows are never touched.
        """
        self._agent(agent_id)
        try:
            active_rows = (
                self.db.query(self.model)
                .filter(self.model.agent_id == agent_id, self.model.reached.is_(False))
                .all()
            )
            for row in active_rows:
                self.db.delete(row)
            self.db.flush()

            for destination in destinations:
                self.db.add(self.model(
                    uuid=destination.id,
                    agent_id=agent_id,
                    name=destination.name,
                    latitude=destination.latitude,
                    longitude=destination.longitude,
                    priority=destination.priority,
                    date=to_naive_utc(destination.date),
                    reached=False,
                ))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Destination batch for agent {agent_id} rolled back: {e}")
            raise SaveError(str(e)) from e

        logger.info(f"Replaced active destinations of agent {agent_id} ({len(destinations)} rows)")
        return len(destinations)

    def mark_reached(self, destination_id: str, agent_id: str, timestamp: Optional[datetime] = None) -> Destination:
        """Record an arrival; the destination moves to the Completed subset"""
        row = self.get_or_404(destination_id, "Destination")
        if row.agent_id != agent_id:
            raise ValidationError(
                f"Destination {destination_id} is not assigned to agent {agent_id}",
                field="agent_id"
            )

        reached_at = to_naive_utc(timestamp or datetime.now(UTC_TZ))
        self.db.add(DestinationArrival(agent_id=agent_id, destination_id=row.id, timestamp=reached_at))
        if not row.reached:
            row.reached = True
            row.reached_at = reached_at
        self.db.commit()
        self.db.refresh(row)
        logger.info(f"Agent {agent_id} reached destination {destination_id}")
        return self._to_destination(row)
