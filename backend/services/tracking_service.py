
# Location Tracking Service
# Serves live (latest ping) and history (visit intervals per day) views over agent pings


from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Union
from dataclasses import dataclass, field
from datetime import date, datetime
from collections import defaultdict

from core.exceptions import InvalidPingError, UnknownAgentError
from services.visit_service import (
    DaySummary, LocationPing, VisitInterval,
    reconstruct_visits, sort_pings, summarize_day, validate_ping,
)
from utils.geo_utils import total_distance_km
from utils.date_utils import parse_day
from config.logging import get_logger, log_performance

logger = get_logger("services.tracking")

ALL_AGENTS = "all"

AgentSelection = Union[str, Iterable[str]]


@dataclass(frozen=True)
class AgentRecord:
    """Agent as exposed by the user directory"""
    id: str
    name: str


class AgentDirectory(Protocol):
    def list(self) -> List[AgentRecord]: ...


class PingStore(Protocol):
    def list_for_agent(self, agent_id: str, day: Optional[date] = None) -> List[LocationPing]: ...

    def list_for_all_agents(self, day: Optional[date] = None) -> List[LocationPing]: ...

    def online_status(self, agent_ids: Sequence[str]) -> Mapping[str, bool]: ...


@dataclass
class LiveLocation:
    """Latest known ping of an agent plus the server-supplied online flag"""
    agent_id: str
    agent_name: str
    ping: Optional[LocationPing]
    is_online: bool = False


@dataclass
class AgentHistory:
    """Visit intervals and distance travelled by one agent on one day"""
    agent_id: str
    agent_name: str
    day: date
    intervals: List[VisitInterval] = field(default_factory=list)
    distance_km: float = 0.0
    ping_count: int = 0
    error: Optional[str] = None


class LocationAggregator:
    """Partitions pings by agent and builds live and history views"""

    def __init__(self, agent_directory: AgentDirectory, ping_store: PingStore):
        self.agent_directory = agent_directory
        self.ping_store = ping_store

    def resolve_agents(self, agent_ids: AgentSelection) -> Dict[str, AgentRecord]:
        """
        Expand a selection to known agents, keeping request order.
        ``"all"`` expands to every agent in the directory.
        """
        known = {agent.id: agent for agent in self.agent_directory.list()}
        if isinstance(agent_ids, str):
            if agent_ids == ALL_AGENTS:
                return dict(known)
            agent_ids = [agent_ids]

        resolved: Dict[str, AgentRecord] = {}
        for agent_id in agent_ids:
            if agent_id not in known:
                raise UnknownAgentError(agent_id)
            resolved[agent_id] = known[agent_id]
        return resolved

    def _fetch_grouped(
        self,
        agent_ids: AgentSelection,
        agents: Mapping[str, AgentRecord],
        day: Optional[date]
    ) -> Dict[str, List[LocationPing]]:
        grouped: Dict[str, List[LocationPing]] = defaultdict(list)
        if isinstance(agent_ids, str) and agent_ids == ALL_AGENTS:
            for ping in self.ping_store.list_for_all_agents(day):
                if ping.agent_id in agents:
                    grouped[ping.agent_id].append(ping)
        else:
            for agent_id in agents:
                grouped[agent_id].extend(self.ping_store.list_for_agent(agent_id, day))
        return grouped

    @log_performance("services.tracking")
    def get_live_view(self, agent_ids: AgentSelection = ALL_AGENTS) -> Dict[str, LiveLocation]:
        """Most recent ping per requested agent with the pass-through online flag"""
        agents = self.resolve_agents(agent_ids)
        grouped = self._fetch_grouped(agent_ids, agents, None)
        status = self.ping_store.online_status(list(agents))

        view: Dict[str, LiveLocation] = {}
        for agent_id, agent in agents.items():
            view[agent_id] = LiveLocation(
                agent_id=agent_id,
                agent_name=agent.name,
                ping=self._latest_valid(agent_id, grouped.get(agent_id, [])),
                is_online=bool(status.get(agent_id, False)),
            )
        return view

    def _latest_valid(self, agent_id: str, pings: Sequence[LocationPing]) -> Optional[LocationPing]:
        latest = None
        for ping in pings:
            try:
                validate_ping(ping)
            except InvalidPingError as e:
                logger.warning(f"Skipping ping in live view: {e}")
                continue
            if latest is None or ping.timestamp >= latest.timestamp:
                latest = ping
        return latest

    @log_performance("services.tracking")
    def get_history_view(
        self,
        agent_ids: AgentSelection,
        day: Union[str, date, datetime]
    ) -> Dict[str, AgentHistory]:
        """
        Visit intervals and distance per agent for one local calendar day.

        An agent without pings gets an empty entry. A malformed ping aborts only
        that agent's entry (``error`` is set); other agents are unaffected.
        """
        target_day = parse_day(day)
        agents = self.resolve_agents(agent_ids)
        grouped = self._fetch_grouped(agent_ids, agents, target_day)

        view: Dict[str, AgentHistory] = {}
        for agent_id, agent in agents.items():
            pings = grouped.get(agent_id, [])
            history = AgentHistory(agent_id=agent_id, agent_name=agent.name, day=target_day)
            try:
                ordered = sort_pings(pings)
                history.intervals = reconstruct_visits(ordered)
                history.distance_km = total_distance_km(ordered)
                history.ping_count = len(ordered)
            except InvalidPingError as e:
                logger.warning(f"History for agent {agent_id} on {target_day} aborted: {e}")
                history.error = str(e)
            view[agent_id] = history
        return view

    def get_day_summary(self, agent_id: str, day: Union[str, date, datetime]) -> DaySummary:
        """Distance, travel time and time per place for one agent's day"""
        target_day = parse_day(day)
        self.resolve_agents([agent_id])
        pings = self.ping_store.list_for_agent(agent_id, target_day)
        return summarize_day(pings, agent_id=agent_id)
