
# Visit Reconstruction Service
# Collapses raw location pings into visit intervals and daily movement summaries


from typing import Dict, Iterable, List, Optional, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from core.exceptions import InvalidPingError
from utils.geo_utils import haversine_km, is_valid_coordinate
from config.logging import get_logger

logger = get_logger("services.visits")

UNKNOWN_PLACE = "Unknown"


@dataclass(frozen=True)
class LocationPing:
    """One timestamped location reading for an agent"""
    agent_id: str
    latitude: float
    longitude: float
    place_name: Optional[str]
    timestamp: datetime


@dataclass(frozen=True)
class VisitInterval:
    """A maximal run of consecutive pings at the same place"""
    agent_id: str
    latitude: float
    longitude: float
    place_name: Optional[str]
    start_time: datetime
    end_time: datetime
    ping_count: int = field(default=1, compare=False)

    @property
    def duration_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()


@dataclass
class DaySummary:
    """Distance and time spent per place over one day of pings"""
    agent_id: Optional[str]
    total_distance_km: float = 0.0
    total_travel_seconds: float = 0.0
    time_by_place: Dict[str, float] = field(default_factory=dict)
    ping_count: int = 0


def validate_ping(ping: LocationPing) -> None:
    """Raise InvalidPingError for missing or malformed coordinates/timestamp"""
    agent_id = getattr(ping, "agent_id", None) or "unknown"
    if not is_valid_coordinate(getattr(ping, "latitude", None), getattr(ping, "longitude", None)):
        raise InvalidPingError(
            agent_id,
            f"invalid coordinates ({getattr(ping, 'latitude', None)}, {getattr(ping, 'longitude', None)})"
        )
    if not isinstance(getattr(ping, "timestamp", None), datetime):
        raise InvalidPingError(agent_id, f"invalid timestamp {getattr(ping, 'timestamp', None)!r}")


def sort_pings(pings: Iterable[LocationPing]) -> List[LocationPing]:
    """Validate and return pings in chronological order (stable for equal timestamps)"""
    checked = list(pings)
    for ping in checked:
        validate_ping(ping)
    return sorted(checked, key=lambda p: p.timestamp)


def _visit_key(ping: LocationPing):
    # Exact float equality: GPS jitter never merges
    return (ping.agent_id, ping.latitude, ping.longitude, ping.place_name)


def reconstruct_visits(pings: Sequence[LocationPing]) -> List[VisitInterval]:
    """
    Collapse a ping stream into visit intervals.

    Input is re-sorted by timestamp before the scan, so callers may pass pings
    in any order. Consecutive pings sharing agent, latitude, longitude and place
    name extend the current interval; any difference closes it.

    Raises:
        InvalidPingError: if any ping has malformed coordinates or timestamp.
    """
    ordered = sort_pings(pings)
    if not ordered:
        return []

    intervals: List[VisitInterval] = []
    first = ordered[0]
    current_key = _visit_key(first)
    start_time = end_time = first.timestamp
    count = 1

    for ping in ordered[1:]:
        key = _visit_key(ping)
        if key == current_key:
            end_time = ping.timestamp
            count += 1
            continue
        intervals.append(_close_interval(current_key, start_time, end_time, count))
        current_key = key
        start_time = end_time = ping.timestamp
        count = 1

    intervals.append(_close_interval(current_key, start_time, end_time, count))
    return intervals


def _close_interval(key, start_time: datetime, end_time: datetime, count: int) -> VisitInterval:
    agent_id, latitude, longitude, place_name = key
    return VisitInterval(
        agent_id=agent_id,
        latitude=latitude,
        longitude=longitude,
        place_name=place_name,
        start_time=start_time,
        end_time=end_time,
        ping_count=count,
    )


def intervals_to_pings(intervals: Iterable[VisitInterval]) -> List[LocationPing]:
    """Re-derive boundary pings (start, and end when distinct) from intervals"""
    pings: List[LocationPing] = []
    for interval in intervals:
        times = [interval.start_time]
        if interval.end_time != interval.start_time:
            times.append(interval.end_time)
        for ts in times:
            pings.append(LocationPing(
                agent_id=interval.agent_id,
                latitude=interval.latitude,
                longitude=interval.longitude,
                place_name=interval.place_name,
                timestamp=ts,
            ))
    return pings


def summarize_day(pings: Sequence[LocationPing], agent_id: Optional[str] = None) -> DaySummary:
    """
    Movement summary for one agent's day.

    Each ping's place is credited with the time until the next ping; the last
    ping contributes nothing. Distance is summed over consecutive raw pings.
    """
    ordered = sort_pings(pings)
    summary = DaySummary(agent_id=agent_id, ping_count=len(ordered))
    if ordered and summary.agent_id is None:
        summary.agent_id = ordered[0].agent_id

    for current, following in zip(ordered, ordered[1:]):
        duration = (following.timestamp - current.timestamp).total_seconds()
        place = current.place_name or UNKNOWN_PLACE
        summary.time_by_place[place] = summary.time_by_place.get(place, 0.0) + duration
        summary.total_distance_km += haversine_km(current, following)
        summary.total_travel_seconds += duration

    if ordered:
        last_place = ordered[-1].place_name or UNKNOWN_PLACE
        summary.time_by_place.setdefault(last_place, 0.0)

    logger.debug(
        f"Summarized {summary.ping_count} pings for agent {summary.agent_id}: "
        f"{summary.total_distance_km:.2f} km"
    )
    return summary
