# api/v1/endpoints/tracking.py
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from datetime import date

from core.dependencies import get_agent_repository, get_location_aggregator, get_ping_repository
from repositories.agent_repo import AgentRepository
from repositories.gps_repo import LocationPingRepository
from schemas.tracking import (
    AgentHistoryOut, DaySummaryOut, LiveLocationOut, PingCreate, PingOut, SessionOut,
)
from services.tracking_service import ALL_AGENTS, AgentSelection, LocationAggregator
from utils.date_utils import now_local

router = APIRouter()


def _selection(agent: List[str]) -> AgentSelection:
    if not agent or ALL_AGENTS in agent:
        return ALL_AGENTS
    return agent


@router.post("/pings", response_model=PingOut, status_code=status.HTTP_201_CREATED)
def record_ping(
    ping_in: PingCreate,
    agents: AgentRepository = Depends(get_agent_repository),
    pings: LocationPingRepository = Depends(get_ping_repository)
):
    """Ingest one location reading from an agent's device"""
    agents.require(ping_in.agent_id)
    return PingOut.model_validate(pings.record(ping_in))


@router.get("/live", response_model=List[LiveLocationOut])
def get_live_locations(
    agent: List[str] = Query([ALL_AGENTS]),
    aggregator: LocationAggregator = Depends(get_location_aggregator)
):
    """Latest ping and online flag for each selected agent"""
    view = aggregator.get_live_view(_selection(agent))
    return [LiveLocationOut.model_validate(entry) for entry in view.values()]


@router.get("/history", response_model=List[AgentHistoryOut])
def get_history(
    agent: List[str] = Query([ALL_AGENTS]),
    day: Optional[date] = Query(None),
    aggregator: LocationAggregator = Depends(get_location_aggregator)
):
    """Visit intervals per agent for one local calendar day (default today)"""
    view = aggregator.get_history_view(_selection(agent), day or now_local().date())
    return [AgentHistoryOut.model_validate(entry) for entry in view.values()]


@router.get("/summary", response_model=DaySummaryOut)
def get_day_summary(
    agent: str = Query(..., min_length=1),
    day: Optional[date] = Query(None),
    aggregator: LocationAggregator = Depends(get_location_aggregator)
):
    summary = aggregator.get_day_summary(agent, day or now_local().date())
    return DaySummaryOut.model_validate(summary)


@router.post("/sessions/{agent_id}/online", response_model=SessionOut)
def go_online(agent_id: str, agents: AgentRepository = Depends(get_agent_repository)):
    agents.start_session(agent_id)
    return SessionOut(agent_id=agent_id, is_online=True)


@router.post("/sessions/{agent_id}/offline", response_model=SessionOut)
def go_offline(agent_id: str, agents: AgentRepository = Depends(get_agent_repository)):
    agents.end_session(agent_id)
    return SessionOut(agent_id=agent_id, is_online=False)
