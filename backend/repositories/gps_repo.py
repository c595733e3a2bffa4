from typing import Dict, List, Mapping, Optional, Sequence
from sqlalchemy.orm import Session
from datetime import date, datetime

from models.agent import AgentSession
from models.gps_data import LocationPing as LocationPingRow
from schemas.tracking import PingCreate
from services.visit_service import LocationPing
from utils.date_utils import UTC_TZ, day_bounds, ensure_utc, to_naive_utc
from config.logging import get_logger
from .base import CRUDBase

logger = get_logger("repositories.pings")


class LocationPingRepository(CRUDBase[LocationPingRow]):
    """Ping storage; timestamps are stored as naive UTC and returned aware"""

    def __init__(self, db: Session):
        super().__init__(LocationPingRow, db)

    def _query(self, day: Optional[date]):
        query = self.db.query(self.model)
        if day is not None:
            start, end = day_bounds(day)
            query = query.filter(
                self.model.timestamp >= to_naive_utc(start),
                self.model.timestamp <= to_naive_utc(end)
            )
        return query

    @staticmethod
    def _to_ping(row: LocationPingRow) -> LocationPing:
        return LocationPing(
            agent_id=row.agent_id,
            latitude=row.latitude,
            longitude=row.longitude,
            place_name=row.place_name,
            timestamp=ensure_utc(row.timestamp),
        )

    def list_for_agent(self, agent_id: str, day: Optional[date] = None) -> List[LocationPing]:
        """Pings of one agent, optionally limited to one local calendar day, oldest first"""
        rows = (
            self._query(day)
            .filter(self.model.agent_id == agent_id)
            .order_by(self.model.timestamp, self.model.id)
            .all()
        )
        return [self._to_ping(row) for row in rows]

    def list_for_all_agents(self, day: Optional[date] = None) -> List[LocationPing]:
        rows = self._query(day).order_by(self.model.timestamp, self.model.id).all()
        return [self._to_ping(row) for row in rows]

    def online_status(self, agent_ids: Sequence[str]) -> Mapping[str, bool]:
        """An agent is online while it has a session without an end time"""
        if not agent_ids:
            return {}
        open_ids = {
            agent_id for (agent_id,) in (
                self.db.query(AgentSession.agent_id)
                .filter(AgentSession.agent_id.in_(list(agent_ids)), AgentSession.ended_at.is_(None))
                .distinct()
                .all()
            )
        }
        status: Dict[str, bool] = {agent_id: agent_id in open_ids for agent_id in agent_ids}
        return status

    def record(self, ping_in: PingCreate) -> LocationPing:
        """Store one ping; a missing timestamp means now"""
        timestamp = ping_in.timestamp or datetime.now(UTC_TZ)
        row = self.create({
            "agent_id": ping_in.agent_id,
            "latitude": ping_in.latitude,
            "longitude": ping_in.longitude,
            "place_name": ping_in.place_name,
            "timestamp": to_naive_utc(timestamp),
        })
        logger.debug(f"Recorded ping for agent {row.agent_id} at {row.timestamp}")
        return self._to_ping(row)
