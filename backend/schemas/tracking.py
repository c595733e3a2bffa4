from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict
from datetime import datetime, date
from enum import Enum

class TrackingMode(str, Enum):
    LIVE = "live"
    HISTORY = "history"

class AgentOut(BaseModel):
    id: str
    name: str

    class Config:
        from_attributes = True

class AgentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)

class PingCreate(BaseModel):
    agent_id: str = Field(..., min_length=1, max_length=32)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    place_name: Optional[str] = Field(None, max_length=255)
    timestamp: Optional[datetime] = None

    @validator('place_name')
    def empty_place_is_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v

class PingOut(BaseModel):
    agent_id: str
    latitude: float
    longitude: float
    place_name: Optional[str] = None
    timestamp: datetime

    class Config:
        from_attributes = True

class VisitIntervalOut(BaseModel):
    agent_id: str
    latitude: float
    longitude: float
    place_name: Optional[str] = None
    start_time: datetime
    end_time: datetime
    ping_count: int = 1

    class Config:
        from_attributes = True

class LiveLocationOut(BaseModel):
    agent_id: str
    agent_name: str
    ping: Optional[PingOut] = None
    is_online: bool = False

    class Config:
        from_attributes = True

class AgentHistoryOut(BaseModel):
    agent_id: str
    agent_name: str
    day: date
    intervals: List[VisitIntervalOut] = Field(default_factory=list)
    distance_km: float = Field(default=0.0, ge=0)
    ping_count: int = Field(default=0, ge=0)
    error: Optional[str] = None

    class Config:
        from_attributes = True

class DaySummaryOut(BaseModel):
    agent_id: Optional[str] = None
    total_distance_km: float = Field(default=0.0, ge=0)
    total_travel_seconds: float = Field(default=0.0, ge=0)
    time_by_place: Dict[str, float] = Field(default_factory=dict)
    ping_count: int = Field(default=0, ge=0)

    class Config:
        from_attributes = True

class SessionOut(BaseModel):
    agent_id: str
    is_online: bool
