
# Place Lookup Service
# Autocomplete and coordinate lookup used to fill in new destinations


import threading
from typing import List, Optional, Protocol
from collections import OrderedDict
from geopy.geocoders import Nominatim
from geopy.exc import GeopyError

from core.exceptions import ExternalServiceError, NotFoundError, ValidationError
from config.settings import get_settings
from config.logging import get_logger
from schemas.places import PlaceDetails, PlaceSuggestion

logger = get_logger("services.places")

MIN_QUERY_LENGTH = 2
DETAILS_CACHE_SIZE = 1000


class PlaceLookup(Protocol):
    def autocomplete(self, query: str) -> List[PlaceSuggestion]: ...

    def details(self, place_id: str) -> PlaceDetails: ...


class PlaceService:
    """
    Place lookup through Nominatim.

    Nominatim has no separate details endpoint keyed by place id, so the
    results of ``autocomplete`` are cached and ``details`` answers from that
    cache.
    """

    def __init__(self, geolocator=None, limit: Optional[int] = None):
        settings = get_settings()
        self.geolocator = geolocator or Nominatim(
            user_agent=settings.GEOCODER_USER_AGENT,
            timeout=settings.GEOCODER_TIMEOUT
        )
        self.country_codes = settings.GEOCODER_COUNTRY_CODES
        self.limit = limit or settings.AUTOCOMPLETE_LIMIT
        self._details: "OrderedDict[str, PlaceDetails]" = OrderedDict()
        self._lock = threading.Lock()

    def autocomplete(self, query: str) -> List[PlaceSuggestion]:
        query = (query or "").strip()
        if len(query) < MIN_QUERY_LENGTH:
            if not query:
                raise ValidationError("query parameter required", field="query")
            return []

        try:
            results = self.geolocator.geocode(
                query,
                exactly_one=False,
                limit=self.limit,
                country_codes=self.country_codes
            ) or []
        except GeopyError as e:
            logger.error(f"Autocomplete for {query!r} failed: {e}")
            raise ExternalServiceError("Nominatim", "autocomplete") from e

        suggestions = []
        for location in results:
            raw = getattr(location, "raw", None) or {}
            place_id = str(raw.get("place_id") or f"{location.latitude},{location.longitude}")
            description = raw.get("display_name") or location.address
            self._remember(PlaceDetails(
                place_id=place_id,
                name=raw.get("name") or description.split(",")[0],
                address=location.address,
                latitude=location.latitude,
                longitude=location.longitude
            ))
            types = [t for t in (raw.get("class"), raw.get("type")) if t]
            suggestions.append(PlaceSuggestion(place_id=place_id, description=description, types=types))
        return suggestions

    def details(self, place_id: str) -> PlaceDetails:
        if not place_id:
            raise ValidationError("place_id parameter required", field="place_id")
        with self._lock:
            details = self._details.get(place_id)
        if details is None:
            raise NotFoundError("Place", place_id)
        return details

    def _remember(self, details: PlaceDetails):
        # Shared across the request threadpool
        with self._lock:
            self._details[details.place_id] = details
            self._details.move_to_end(details.place_id)
            while len(self._details) > DETAILS_CACHE_SIZE:
                self._details.popitem(last=False)
