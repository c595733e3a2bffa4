from dataclasses import replace
from datetime import date, datetime
from itertools import product

import pytest
import pytz

from core.exceptions import (
    CompletedDestinationError, InvalidCoordinatesError, InvalidPriorityError,
    NotFoundError, SaveError, ValidationError,
)
from services.destination_service import DestinationListState, save_destinations

WHEN = pytz.UTC.localize(datetime(2024, 3, 4, 6, 0, 0))


class RecordingStore:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def list_for_agent(self, agent_id):
        return []

    def save_batch(self, agent_id, destinations):
        self.calls.append((agent_id, list(destinations)))
        if self.error is not None:
            raise self.error


def build(agent_id="u1", names=("X", "Y", "Z")):
    state = DestinationListState(agent_id=agent_id)
    for offset, name in enumerate(names):
        state = state.add(name, 12.0 + offset, 77.0, WHEN)
    return state


def reached(state, name):
    target = next(d for d in state.items if d.name == name)
    items = [replace(d, reached=True, reached_at=WHEN) if d is target else d for d in state.items]
    return DestinationListState.load(state.agent_id, items)


def test_add_assigns_next_priority():
    state = build()
    assert [(d.name, d.priority) for d in state.active] == [("X", 1), ("Y", 2), ("Z", 3)]
    assert len({d.id for d in state.items}) == 3
    assert all(d.agent_id == "u1" for d in state.items)


def test_reorder_moves_last_to_front():
    state = build().reorder(2, 0)
    assert [(d.name, d.priority) for d in state.active] == [("Z", 1), ("X", 2), ("Y", 3)]


def test_reorder_always_yields_contiguous_priorities():
    names = ("A", "B", "C", "D", "E")
    base = build(names=names)
    for from_index, to_index in product(range(len(names)), repeat=2):
        state = base.reorder(from_index, to_index)
        assert [d.priority for d in state.active] == [1, 2, 3, 4, 5]
        assert sorted(d.name for d in state.active) == sorted(names)


def test_reorder_rejects_out_of_range_index():
    with pytest.raises(ValidationError):
        build().reorder(0, 3)
    with pytest.raises(ValidationError):
        build().reorder(-1, 0)


def test_transitions_do_not_mutate_previous_state():
    before = build()
    after = before.reorder(2, 0)
    assert [d.name for d in before.active] == ["X", "Y", "Z"]
    assert after is not before


def test_explicit_initial_priority_is_bounded():
    state = DestinationListState(agent_id="u1").add("X", 1.0, 1.0, WHEN, priority=6)
    assert state.active[0].priority == 6
    with pytest.raises(InvalidPriorityError):
        state.add("Y", 1.0, 1.0, WHEN, priority=7)
    with pytest.raises(InvalidPriorityError):
        state.add("Y", 1.0, 1.0, WHEN, priority=0)


def test_add_validates_fields():
    state = DestinationListState(agent_id="u1")
    with pytest.raises(ValidationError):
        state.add("   ", 1.0, 1.0, WHEN)
    with pytest.raises(InvalidCoordinatesError):
        state.add("X", 100.0, 1.0, WHEN)
    with pytest.raises(ValidationError):
        state.add("X", 1.0, 1.0, "tomorrow")


def test_add_accepts_plain_date_as_local_midnight():
    destination = DestinationListState(agent_id="u1").add("X", 1.0, 1.0, date(2024, 3, 4)).active[0]
    assert destination.date.tzinfo is not None
    assert (destination.date.hour, destination.date.minute) == (0, 0)


def test_remove_keeps_remaining_priorities():
    state = build()
    state = state.remove(state.active[1].id)
    assert [(d.name, d.priority) for d in state.active] == [("X", 1), ("Z", 3)]


def test_edit_updates_in_place():
    state = build()
    target = state.active[1]
    state = state.edit(target.id, name=" Depot ", latitude=13.5)

    edited = state.get(target.id)
    assert edited.name == "Depot"
    assert edited.latitude == 13.5
    assert edited.priority == target.priority
    assert [d.name for d in state.active] == ["X", "Depot", "Z"]


def test_edit_rejects_unknown_fields_and_ids():
    state = build()
    with pytest.raises(ValidationError):
        state.edit(state.active[0].id, priority=9)
    with pytest.raises(NotFoundError):
        state.edit("missing", name="Q")


def test_completed_destinations_are_locked():
    state = reached(build(), "Y")
    y = next(d for d in state.completed)

    assert [d.name for d in state.active] == ["X", "Z"]
    with pytest.raises(CompletedDestinationError):
        state.edit(y.id, name="Q")
    with pytest.raises(CompletedDestinationError):
        state.remove(y.id)
    assert state.save_payload() == state.active


def test_merged_state_is_read_only():
    merged = DestinationListState.merged([build("u1"), build("u2", names=("P",))])

    assert merged.read_only
    assert len(merged.active) == 4
    with pytest.raises(ValidationError):
        merged.add("Q", 1.0, 1.0, WHEN)
    with pytest.raises(ValidationError):
        merged.reorder(0, 1)


def test_save_submits_active_subset_once():
    store = RecordingStore()
    state = reached(build().reorder(2, 0), "X")

    assert save_destinations(state, store) is state
    assert len(store.calls) == 1
    agent_id, payload = store.calls[0]
    assert agent_id == "u1"
    assert [d.name for d in payload] == ["Z", "Y"]


def test_save_requires_agent_and_destinations():
    store = RecordingStore()
    with pytest.raises(ValidationError):
        save_destinations(DestinationListState(agent_id=None, items=build().items), store)
    with pytest.raises(ValidationError):
        save_destinations(DestinationListState(agent_id="u1"), store)
    assert store.calls == []


def test_store_failure_becomes_save_error():
    store = RecordingStore(error=RuntimeError("connection reset"))
    with pytest.raises(SaveError) as exc_info:
        save_destinations(build(), store)

    assert "connection reset" in str(exc_info.value)
    assert exc_info.value.status_code == 502
    assert len(store.calls) == 1
