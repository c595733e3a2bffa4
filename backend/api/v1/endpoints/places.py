# api/v1/endpoints/places.py
from fastapi import APIRouter, Depends, Query

from core.dependencies import get_place_service
from schemas.places import AutocompleteResponse, PlaceDetails
from services.place_service import PlaceLookup

router = APIRouter()


@router.get("/autocomplete", response_model=AutocompleteResponse)
def autocomplete(
    query: str = Query(""),
    places: PlaceLookup = Depends(get_place_service)
):
    """Place suggestions for a partial name"""
    return AutocompleteResponse(suggestions=places.autocomplete(query))


@router.get("/details", response_model=PlaceDetails)
def place_details(
    place_id: str = Query(""),
    places: PlaceLookup = Depends(get_place_service)
):
    """Coordinates of a place returned by a previous autocomplete"""
    return places.details(place_id)
