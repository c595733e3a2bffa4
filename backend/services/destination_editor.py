
# Destination Editor Controller
# Holds the selected agent's destination list and serializes loads, edits and saves


from typing import Any, List, Optional
from dataclasses import replace

from core.exceptions import BaseCustomException, OperationInProgressError
from services.destination_service import (
    Destination, DestinationListState, DestinationStore, save_destinations,
)
from services.refresh import Runner, SelectionGuard, SingleFlight, run_in_thread
from services.tracking_service import ALL_AGENTS, AgentDirectory
from config.logging import get_logger

logger = get_logger("services.destination_editor")

SAVE_KEY = "save"


class DestinationEditor:
    """
    Destination list screen state.

    Selecting ``"all"`` loads a merged, read-only list. Edits are applied to
    the local state only and are rejected while a load or save is running;
    ``save`` submits the Active subset as one batch. After a successful save
    the list is not reloaded automatically.
    """

    def __init__(
        self,
        store: DestinationStore,
        agent_directory: AgentDirectory,
        runner: Optional[Runner] = None,
    ):
        self.store = store
        self.agent_directory = agent_directory
        self.runner = runner or run_in_thread
        self.agent_id: Optional[str] = None
        self.state = DestinationListState(agent_id=None)
        self.error: Optional[str] = None
        self._flight = SingleFlight("destinations")
        self._guard = SelectionGuard()

    @property
    def loading(self) -> bool:
        return self._flight.busy(self._guard.generation)

    @property
    def saving(self) -> bool:
        return self._flight.busy(SAVE_KEY)

    @property
    def busy(self) -> bool:
        return self.loading or self.saving

    async def select_agent(self, agent_id: str) -> Optional[DestinationListState]:
        """Switch the selection and load its list; an older load still in flight is dropped"""
        self._flight.ensure_idle(SAVE_KEY)
        self.agent_id = agent_id
        self._guard.advance()
        return await self.load()

    async def load(self) -> Optional[DestinationListState]:
        token = self._guard.generation
        agent_id = self.agent_id
        if agent_id is None:
            return self.state

        try:
            state = await self._flight.run("load", lambda: self._fetch(agent_id), key=token)
        except OperationInProgressError:
            raise
        except BaseCustomException as e:
            return self._fail(token, str(e))
        except Exception as e:
            logger.exception(f"Loading destinations for {agent_id} failed")
            return self._fail(token, str(e) or e.__class__.__name__)

        if not self._guard.is_current(token):
            logger.info(f"Dropping stale destination list for {agent_id}")
            return None
        self.state = state
        self.error = None
        return state

    async def _fetch(self, agent_id: str) -> DestinationListState:
        agents = await self.runner(self.agent_directory.list)
        names = {agent.id: agent.name for agent in agents}
        if agent_id == ALL_AGENTS:
            states = []
            for other_id, name in names.items():
                rows = await self.runner(self.store.list_for_agent, other_id)
                states.append(DestinationListState.load(other_id, self._named(rows, name)))
            return DestinationListState.merged(states)

        rows = await self.runner(self.store.list_for_agent, agent_id)
        return DestinationListState.load(agent_id, self._named(rows, names.get(agent_id)))

    @staticmethod
    def _named(rows: List[Destination], name: Optional[str]) -> List[Destination]:
        return [replace(row, agent_name=name) if name and row.agent_name is None else row for row in rows]

    def _fail(self, token: int, message: str) -> None:
        if self._guard.is_current(token):
            logger.warning(f"Destination list error: {message}")
            self.error = message
        return None

    def _apply(self, transition: str, *args: Any, **kwargs: Any) -> DestinationListState:
        if self.busy:
            raise OperationInProgressError("destination load or save")
        self.state = getattr(self.state, transition)(*args, **kwargs)
        return self.state

    def add(self, name: str, latitude: float, longitude: float, date: Any, priority: Optional[int] = None):
        return self._apply("add", name, latitude, longitude, date, priority=priority)

    def remove(self, destination_id: str):
        return self._apply("remove", destination_id)

    def edit(self, destination_id: str, **changes: Any):
        return self._apply("edit", destination_id, **changes)

    def reorder(self, from_index: int, to_index: int):
        return self._apply("reorder", from_index, to_index)

    async def save(self) -> DestinationListState:
        """
        Submit the current list. Validation and save failures are recorded in
        ``error`` and re-raised; the local list is left untouched.
        """
        if self.loading:
            raise OperationInProgressError("destination load")
        state = self.state

        async def submit():
            return await self.runner(save_destinations, state, self.store)

        try:
            saved = await self._flight.run("save", submit, key=SAVE_KEY)
        except OperationInProgressError:
            raise
        except BaseCustomException as e:
            self.error = str(e)
            raise
        self.error = None
        return saved
