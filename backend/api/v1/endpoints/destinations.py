# api/v1/endpoints/destinations.py
from typing import List
from fastapi import APIRouter, Depends

from core.dependencies import get_agent_repository, get_destination_repository
from core.exceptions import ValidationError
from repositories.agent_repo import AgentRepository
from repositories.destination_repo import DestinationRepository
from schemas.destination import (
    ArrivalRequest, DestinationFilterQuery, DestinationListResponse, DestinationOut,
    SaveDestinationsRequest, SaveDestinationsResponse,
)
from services.date_filter import filter_destinations
from services.destination_service import (
    Destination, DestinationListState, new_destination_id, save_destinations,
)
from services.tracking_service import ALL_AGENTS

router = APIRouter()


def _load_state(
    agent_id: str,
    agents: AgentRepository,
    destinations: DestinationRepository
) -> DestinationListState:
    if agent_id == ALL_AGENTS:
        return DestinationListState.merged(
            DestinationListState.load(agent.id, destinations.list_for_agent(agent.id))
            for agent in agents.list()
        )
    return DestinationListState.load(agent_id, destinations.list_for_agent(agent_id))


def _out(items: List[Destination]) -> List[DestinationOut]:
    return [DestinationOut.model_validate(d) for d in items]


@router.get("/agents/{agent_id}", response_model=DestinationListResponse)
def list_destinations(
    agent_id: str,
    filters: DestinationFilterQuery = Depends(),
    agents: AgentRepository = Depends(get_agent_repository),
    destinations: DestinationRepository = Depends(get_destination_repository)
):
    """
    Active destinations in priority order and the completed ones, filtered
    by scheduled date. ``all`` merges every agent's list.
    """
    state = _load_state(agent_id, agents, destinations)
    return DestinationListResponse(
        agent_id=agent_id,
        mode=filters.mode,
        active=_out(filter_destinations(state.active, filters.mode, filters.date_from, filters.date_to)),
        completed=_out(filter_destinations(state.completed, filters.mode, filters.date_from, filters.date_to))
    )


@router.post("/agents/{agent_id}", response_model=SaveDestinationsResponse)
def save_agent_destinations(
    agent_id: str,
    request: SaveDestinationsRequest,
    agents: AgentRepository = Depends(get_agent_repository),
    destinations: DestinationRepository = Depends(get_destination_repository)
):
    """Replace the agent's Active destinations with the submitted batch"""
    if agent_id == ALL_AGENTS:
        raise ValidationError("Select a single agent to save destinations", field="agent_id")
    agents.require(agent_id)
    destinations.check_batch_ids(agent_id, [item.id for item in request.destinations if item.id])

    state = DestinationListState.load(agent_id, [
        Destination(
            id=item.id or new_destination_id(),
            agent_id=agent_id,
            name=item.name,
            latitude=item.latitude,
            longitude=item.longitude,
            priority=item.priority,
            date=item.date,
        )
        for item in request.destinations
    ])
    save_destinations(state, destinations)
    return SaveDestinationsResponse(agent_id=agent_id, count=len(state.save_payload()))


@router.post("/{destination_id}/arrival", response_model=DestinationOut)
def record_arrival(
    destination_id: str,
    arrival: ArrivalRequest,
    agents: AgentRepository = Depends(get_agent_repository),
    destinations: DestinationRepository = Depends(get_destination_repository)
):
    """Mark a destination as reached; it leaves the Active list for good"""
    agent = agents.require(arrival.agent_id)
    reached = destinations.mark_reached(destination_id, arrival.agent_id, arrival.timestamp)
    return DestinationOut.model_validate(reached).model_copy(update={"agent_name": agent.name})
