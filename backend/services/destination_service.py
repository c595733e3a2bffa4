
# Destination Priority Service
# Ordered, mutable destination lists per agent with reprioritization on reorder


from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple
from dataclasses import dataclass, replace
from datetime import date, datetime
import uuid

from core.exceptions import (
    CompletedDestinationError, InvalidCoordinatesError, InvalidPriorityError,
    NotFoundError, SaveError, ValidationError,
)
from config.settings import get_settings
from config.logging import get_logger
from utils.date_utils import day_bounds
from utils.geo_utils import is_valid_coordinate

logger = get_logger("services.destinations")

EDITABLE_FIELDS = ("name", "latitude", "longitude", "date")


@dataclass(frozen=True)
class Destination:
    """A place an agent should visit; ``id`` is a synthetic identifier assigned at creation"""
    id: str
    agent_id: Optional[str]
    name: str
    latitude: float
    longitude: float
    priority: int
    date: datetime
    reached: bool = False
    reached_at: Optional[datetime] = None
    agent_name: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return not self.reached


class DestinationStore(Protocol):
    def list_for_agent(self, agent_id: str) -> List[Destination]: ...

    def save_batch(self, agent_id: str, destinations: Sequence[Destination]) -> Any: ...


def new_destination_id() -> str:
    return uuid.uuid4().hex


def _normalize_date(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return day_bounds(value)[0]
    raise ValidationError(f"Invalid destination date: {value!r}", field="date")


def _validate_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    checked = dict(fields)
    if "name" in checked:
        name = checked["name"]
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Destination name is required", field="name")
        checked["name"] = name.strip()
    if "latitude" in checked or "longitude" in checked:
        lat, lon = checked.get("latitude"), checked.get("longitude")
        if not is_valid_coordinate(lat, lon):
            raise InvalidCoordinatesError(lat, lon)
    if "date" in checked:
        checked["date"] = _normalize_date(checked["date"])
    return checked


@dataclass(frozen=True)
class DestinationListState:
    """
    Immutable snapshot of one agent's destination list.

    Items are kept as the Active subset (in priority order) followed by the
    Completed subset. Every transition returns a new state. A state merged
    across agents (``agent_id`` is None) is read-only.
    """
    agent_id: Optional[str]
    items: Tuple[Destination, ...] = ()

    @classmethod
    def load(cls, agent_id: Optional[str], destinations: Iterable[Destination]) -> 'DestinationListState':
        items = list(destinations)
        active = sorted((d for d in items if d.is_active), key=lambda d: d.priority)
        completed = sorted((d for d in items if not d.is_active), key=lambda d: d.priority)
        return cls(agent_id=agent_id, items=tuple(active + completed))

    @classmethod
    def merged(cls, states: Iterable['DestinationListState']) -> 'DestinationListState':
        """Read-only view over several agents' lists"""
        active: List[Destination] = []
        completed: List[Destination] = []
        for state in states:
            active.extend(state.active)
            completed.extend(state.completed)
        return cls(agent_id=None, items=tuple(active + completed))

    @property
    def active(self) -> List[Destination]:
        return [d for d in self.items if d.is_active]

    @property
    def completed(self) -> List[Destination]:
        return [d for d in self.items if not d.is_active]

    @property
    def read_only(self) -> bool:
        return self.agent_id is None

    def get(self, destination_id: str) -> Destination:
        for destination in self.items:
            if destination.id == destination_id:
                return destination
        raise NotFoundError("Destination", destination_id)

    def _require_editable(self):
        if self.read_only:
            raise ValidationError("Select a single agent to edit destinations", field="agent_id")

    def _require_active(self, destination_id: str) -> Destination:
        destination = self.get(destination_id)
        if not destination.is_active:
            raise CompletedDestinationError(destination_id)
        return destination

    def _with_active(self, active: List[Destination]) -> 'DestinationListState':
        return replace(self, items=tuple(active + self.completed))

    def add(
        self,
        name: str,
        latitude: float,
        longitude: float,
        date: Any,
        priority: Optional[int] = None,
    ) -> 'DestinationListState':
        """
        Append a destination to the Active subset.

        Priority defaults to N+1. An explicit initial priority must be within
        1..MAX_INITIAL_PRIORITY; it holds until the next reorder.
        """
        self._require_editable()
        fields = _validate_fields({"name": name, "latitude": latitude, "longitude": longitude, "date": date})
        active = self.active
        if priority is None:
            priority = len(active) + 1
        else:
            max_priority = get_settings().MAX_INITIAL_PRIORITY
            if isinstance(priority, bool) or not isinstance(priority, int) or not 1 <= priority <= max_priority:
                raise InvalidPriorityError(priority, max_priority)

        destination = Destination(
            id=new_destination_id(),
            agent_id=self.agent_id,
            priority=priority,
            **fields,
        )
        return self._with_active(active + [destination])

    def remove(self, destination_id: str) -> 'DestinationListState':
        """Drop an Active destination; remaining priorities are left as they are"""
        self._require_editable()
        self._require_active(destination_id)
        return replace(self, items=tuple(d for d in self.items if d.id != destination_id))

    def edit(self, destination_id: str, **changes: Any) -> 'DestinationListState':
        """Update name, coordinates or date of an Active destination in place"""
        self._require_editable()
        current = self._require_active(destination_id)
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        merged = {"latitude": current.latitude, "longitude": current.longitude, **changes}
        updated = replace(current, **_validate_fields(merged))
        return replace(self, items=tuple(updated if d.id == destination_id else d for d in self.items))

    def reorder(self, from_index: int, to_index: int) -> 'DestinationListState':
        """
        Move an Active destination and renumber the whole Active subset 1..N.
        Indices refer to positions within the Active subset.
        """
        self._require_editable()
        active = self.active
        for index in (from_index, to_index):
            if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(active):
                raise ValidationError(f"Index {index} is out of range for {len(active)} active destinations")

        moved = active.pop(from_index)
        active.insert(to_index, moved)
        renumbered = [replace(d, priority=position) for position, d in enumerate(active, start=1)]
        return self._with_active(renumbered)

    def save_payload(self) -> List[Destination]:
        """Active destinations only; completed ones are never resubmitted"""
        return self.active


def save_destinations(state: DestinationListState, store: DestinationStore) -> DestinationListState:
    """
    Submit the Active subset as one batch.

    Raises:
        ValidationError: no single agent selected, or nothing active to save.
        SaveError: the store failed; nothing is retried.
    """
    if not state.agent_id:
        raise ValidationError("Select an agent before saving destinations", field="agent_id")
    payload = state.save_payload()
    if not payload:
        raise ValidationError("Add at least one destination before saving", field="destinations")

    try:
        store.save_batch(state.agent_id, payload)
    except SaveError:
        raise
    except Exception as e:
        logger.error(f"Saving {len(payload)} destinations for agent {state.agent_id} failed: {e}")
        raise SaveError(str(e)) from e

    logger.info(f"Saved {len(payload)} destinations for agent {state.agent_id}")
    return state
