from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import datetime, date
from enum import Enum

class DateFilterMode(str, Enum):
    ALL = "all"
    TODAY = "today"
    THIS_WEEK = "this_week"
    THIS_MONTH = "this_month"
    CUSTOM = "custom"

class DestinationBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=500)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    date: datetime

    @validator('name')
    def strip_name(cls, v):
        if not v.strip():
            raise ValueError('name must not be blank')
        return v.strip()

class DestinationIn(DestinationBase):
    id: Optional[str] = Field(None, max_length=32)
    priority: int = Field(..., ge=1)

class SaveDestinationsRequest(BaseModel):
    destinations: List[DestinationIn]

class SaveDestinationsResponse(BaseModel):
    agent_id: str
    count: int
    message: str = "Destinations saved"

class DestinationOut(DestinationBase):
    id: str
    agent_id: Optional[str] = None
    agent_name: Optional[str] = None
    priority: int
    reached: bool = False
    reached_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class DestinationListResponse(BaseModel):
    agent_id: str
    mode: DateFilterMode
    active: List[DestinationOut]
    completed: List[DestinationOut]

class ArrivalRequest(BaseModel):
    agent_id: str
    timestamp: Optional[datetime] = None

class DestinationFilterQuery(BaseModel):
    mode: DateFilterMode = DateFilterMode.ALL
    date_from: Optional[date] = None
    date_to: Optional[date] = None
