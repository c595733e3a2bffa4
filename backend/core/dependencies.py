# backend/core/dependencies.py
from fastapi import Depends
from sqlalchemy.orm import Session
from functools import lru_cache

from core.database import get_db
from repositories.agent_repo import AgentRepository
from repositories.destination_repo import DestinationRepository
from repositories.gps_repo import LocationPingRepository
from services.place_service import PlaceLookup, PlaceService
from services.tracking_service import LocationAggregator


def get_agent_repository(db: Session = Depends(get_db)) -> AgentRepository:
    return AgentRepository(db)


def get_ping_repository(db: Session = Depends(get_db)) -> LocationPingRepository:
    return LocationPingRepository(db)


def get_destination_repository(db: Session = Depends(get_db)) -> DestinationRepository:
    return DestinationRepository(db)


def get_location_aggregator(
    agents: AgentRepository = Depends(get_agent_repository),
    pings: LocationPingRepository = Depends(get_ping_repository)
) -> LocationAggregator:
    """Aggregator over the request's session"""
    return LocationAggregator(agents, pings)


@lru_cache()
def get_place_service() -> PlaceLookup:
    """Shared instance so that place details survive between requests."""
    return PlaceService()
