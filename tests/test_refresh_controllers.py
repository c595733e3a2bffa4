import asyncio
from datetime import date, datetime, timedelta

import pytest
import pytz

from core.exceptions import OperationInProgressError, SaveError, ValidationError
from services.destination_editor import DestinationEditor
from services.destination_service import Destination, save_destinations
from services.refresh import SelectionGuard, SingleFlight
from services.tracking_service import AgentRecord, LocationAggregator
from services.tracking_view import TrackingViewController
from services.visit_service import LocationPing

from conftest import FakeDirectory, FakePingStore, GatedRunner, immediate

T0 = pytz.UTC.localize(datetime(2024, 3, 4, 4, 0, 0))
AGENTS = [AgentRecord("u1", "Asha"), AgentRecord("u2", "Ravi")]


class MemoryDestinationStore:
    def __init__(self, rows, error=None):
        self.rows = rows
        self.error = error
        self.calls = []

    def list_for_agent(self, agent_id):
        return [d for d in self.rows if d.agent_id == agent_id]

    def save_batch(self, agent_id, destinations):
        self.calls.append((agent_id, [d.name for d in destinations]))
        if self.error is not None:
            raise self.error


def destination(agent_id, name, priority, reached=False):
    return Destination(
        id=f"{agent_id}-{name}", agent_id=agent_id, name=name, latitude=12.0, longitude=77.0,
        priority=priority, date=T0, reached=reached, reached_at=T0 if reached else None,
    )


@pytest.fixture
def aggregator():
    pings = [
        LocationPing("u1", 10.0, 20.0, "Cafe", T0),
        LocationPing("u2", 12.0, 77.0, "Depot", T0 + timedelta(minutes=3)),
    ]
    return LocationAggregator(FakeDirectory(AGENTS), FakePingStore(pings, online={"u2": True}))


@pytest.fixture
def store():
    return MemoryDestinationStore([
        destination("u1", "Y", 2),
        destination("u1", "X", 1),
        destination("u1", "Done", 1, reached=True),
        destination("u2", "P", 1),
    ])


def test_single_flight_rejects_concurrent_runs_per_key():
    flight = SingleFlight("demo")

    async def scenario():
        gate = asyncio.Event()

        async def slow():
            await gate.wait()
            return "done"

        task = asyncio.create_task(flight.run("load", slow, key=1))
        await asyncio.sleep(0)
        assert flight.busy(1)
        with pytest.raises(OperationInProgressError):
            await flight.run("load", slow, key=1)
        assert not flight.busy(2)
        gate.set()
        assert await task == "done"
        assert not flight.busy()

    asyncio.run(scenario())


def test_selection_guard_tokens():
    guard = SelectionGuard()
    token = guard.advance()
    assert guard.is_current(token)
    guard.advance()
    assert not guard.is_current(token)


def test_tracking_refresh_is_single_flight(aggregator):
    runner = GatedRunner()
    controller = TrackingViewController(aggregator, runner=runner)

    async def scenario():
        first = asyncio.create_task(controller.refresh())
        await asyncio.sleep(0)
        assert controller.loading
        with pytest.raises(OperationInProgressError):
            await controller.refresh()
        runner.gates[0].set()
        return await first

    view = asyncio.run(scenario())

    assert set(view) == {"u1", "u2"}
    assert controller.view is view
    assert not controller.loading


def test_tracking_drops_response_for_old_selection(aggregator):
    runner = GatedRunner()
    controller = TrackingViewController(aggregator, runner=runner)

    async def scenario():
        old = asyncio.create_task(controller.refresh())
        await asyncio.sleep(0)
        controller.select(agent_ids=["u2"], mode="history", day=date(2024, 3, 4))
        new = asyncio.create_task(controller.refresh())
        await asyncio.sleep(0)
        runner.gates[1].set()
        new_view = await new
        runner.gates[0].set()
        old_view = await old
        return old_view, new_view

    old_view, new_view = asyncio.run(scenario())

    assert old_view is None
    assert list(new_view) == ["u2"]
    assert controller.view is new_view
    assert [i.place_name for i in controller.view["u2"].intervals] == ["Depot"]


def test_tracking_failure_keeps_last_good_view(aggregator):
    controller = TrackingViewController(aggregator, runner=immediate)

    good = asyncio.run(controller.refresh())
    controller.select(agent_ids=["ghost"])
    assert asyncio.run(controller.refresh()) is None

    assert controller.view is good
    assert "ghost" in controller.error

    controller.select(agent_ids="all")
    asyncio.run(controller.refresh())
    assert controller.error is None


def test_tracking_rejects_unknown_mode(aggregator):
    with pytest.raises(ValidationError):
        TrackingViewController(aggregator, runner=immediate).select(mode="replay")


def test_editor_loads_agent_list(store):
    editor = DestinationEditor(store, FakeDirectory(AGENTS), runner=immediate)

    state = asyncio.run(editor.select_agent("u1"))

    assert [d.name for d in state.active] == ["X", "Y"]
    assert [d.name for d in state.completed] == ["Done"]
    assert all(d.agent_name == "Asha" for d in state.items)
    assert editor.error is None


def test_editor_all_agents_is_read_only(store):
    editor = DestinationEditor(store, FakeDirectory(AGENTS), runner=immediate)

    state = asyncio.run(editor.select_agent("all"))

    assert state.read_only
    assert sorted(d.name for d in state.active) == ["P", "X", "Y"]
    with pytest.raises(ValidationError):
        editor.reorder(0, 1)


def test_editor_rejects_edits_while_loading(store):
    runner = GatedRunner(only=store.list_for_agent)
    editor = DestinationEditor(store, FakeDirectory(AGENTS), runner=runner)

    async def scenario():
        task = asyncio.create_task(editor.select_agent("u1"))
        await asyncio.sleep(0)
        assert editor.loading
        with pytest.raises(OperationInProgressError):
            editor.add("Z", 1.0, 1.0, T0)
        with pytest.raises(OperationInProgressError):
            await editor.load()
        runner.gates[0].set()
        await task

    asyncio.run(scenario())
    assert [d.name for d in editor.add("Z", 1.0, 1.0, T0).active] == ["X", "Y", "Z"]


def test_editor_discards_stale_agent_list(store):
    runner = GatedRunner(only=store.list_for_agent)
    editor = DestinationEditor(store, FakeDirectory(AGENTS), runner=runner)

    async def scenario():
        first = asyncio.create_task(editor.select_agent("u1"))
        await asyncio.sleep(0)
        second = asyncio.create_task(editor.select_agent("u2"))
        await asyncio.sleep(0)
        runner.gates[1].set()
        await second
        runner.gates[0].set()
        return await first

    assert asyncio.run(scenario()) is None
    assert editor.agent_id == "u2"
    assert [d.name for d in editor.state.active] == ["P"]


def test_editor_saves_reordered_list_once(store):
    editor = DestinationEditor(store, FakeDirectory(AGENTS), runner=immediate)
    asyncio.run(editor.select_agent("u1"))

    editor.reorder(1, 0)
    asyncio.run(editor.save())

    assert store.calls == [("u1", ["Y", "X"])]
    assert [d.priority for d in editor.state.active] == [1, 2]


def test_editor_rejects_second_save_while_first_in_flight(store):
    runner = GatedRunner(only=save_destinations)
    editor = DestinationEditor(store, FakeDirectory(AGENTS), runner=runner)

    async def scenario():
        await editor.select_agent("u1")
        first = asyncio.create_task(editor.save())
        await asyncio.sleep(0)
        assert editor.saving
        with pytest.raises(OperationInProgressError):
            await editor.save()
        with pytest.raises(OperationInProgressError):
            editor.remove("u1-X")
        runner.gates[0].set()
        await first

    asyncio.run(scenario())
    assert len(store.calls) == 1


def test_editor_save_failure_keeps_local_list(store):
    store.error = RuntimeError("timeout")
    editor = DestinationEditor(store, FakeDirectory(AGENTS), runner=immediate)
    asyncio.run(editor.select_agent("u1"))
    editor.remove("u1-Y")

    with pytest.raises(SaveError):
        asyncio.run(editor.save())

    assert "timeout" in editor.error
    assert [d.name for d in editor.state.active] == ["X"]
