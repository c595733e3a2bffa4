from pydantic import BaseModel, Field
from typing import Optional, List

class PlaceSuggestion(BaseModel):
    place_id: str
    description: str
    types: List[str] = Field(default_factory=list)

class PlaceDetails(BaseModel):
    place_id: str
    name: str
    address: Optional[str] = None
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

class AutocompleteResponse(BaseModel):
    suggestions: List[PlaceSuggestion]
