
# Tracking Screen Controller
# Selection state and refresh discipline for the live and history map views


from typing import Dict, Optional, Union
from datetime import date, datetime

from core.exceptions import BaseCustomException, OperationInProgressError, ValidationError
from schemas.tracking import TrackingMode
from services.refresh import Runner, SelectionGuard, SingleFlight, run_in_thread
from services.tracking_service import ALL_AGENTS, AgentSelection, LocationAggregator
from utils.date_utils import now_local, parse_day
from config.logging import get_logger

logger = get_logger("services.tracking_view")


class TrackingViewController:
    """
    Keeps the current agent selection, mode and day, and the last good view.

    Only one refresh per selection runs at a time. Changing the selection
    while a refresh is in flight is allowed; the older response is dropped
    when it arrives. A failed refresh keeps the previous view and records the
    error message.
    """

    def __init__(self, aggregator: LocationAggregator, runner: Optional[Runner] = None):
        self.aggregator = aggregator
        self.runner = runner or run_in_thread
        self.agent_ids: AgentSelection = ALL_AGENTS
        self.mode = TrackingMode.LIVE
        self.day: date = now_local().date()
        self.view: Dict[str, object] = {}
        self.error: Optional[str] = None
        self._flight = SingleFlight("tracking refresh")
        self._guard = SelectionGuard()

    @property
    def loading(self) -> bool:
        return self._flight.busy(self._guard.generation)

    def select(
        self,
        agent_ids: Optional[AgentSelection] = None,
        mode: Optional[Union[str, TrackingMode]] = None,
        day: Optional[Union[str, date, datetime]] = None,
    ) -> int:
        """Change any part of the selection; returns the new generation token"""
        if mode is not None:
            try:
                self.mode = TrackingMode(mode)
            except ValueError:
                raise ValidationError(f"Unknown tracking mode: {mode}", field="mode")
        if day is not None:
            self.day = parse_day(day)
        if agent_ids is not None:
            self.agent_ids = agent_ids if isinstance(agent_ids, str) else tuple(agent_ids)
        return self._guard.advance()

    async def refresh(self) -> Optional[Dict[str, object]]:
        """
        Fetch the view for the current selection.

        Returns the new view, or None when the response was stale or the
        fetch failed. Raises OperationInProgressError if a refresh for the
        same selection is still running.
        """
        token = self._guard.generation
        agent_ids, mode, day = self.agent_ids, self.mode, self.day

        async def fetch():
            if mode == TrackingMode.LIVE:
                return await self.runner(self.aggregator.get_live_view, agent_ids)
            return await self.runner(self.aggregator.get_history_view, agent_ids, day)

        try:
            result = await self._flight.run(f"{mode.value} fetch", fetch, key=token)
        except OperationInProgressError:
            raise
        except BaseCustomException as e:
            return self._fail(token, str(e))
        except Exception as e:
            logger.exception(f"Tracking refresh failed for {agent_ids}")
            return self._fail(token, str(e) or e.__class__.__name__)

        if not self._guard.is_current(token):
            logger.info(f"Dropping stale {mode.value} response for {agent_ids}")
            return None
        self.view = result
        self.error = None
        return result

    def _fail(self, token: int, message: str) -> None:
        if self._guard.is_current(token):
            logger.warning(f"Tracking refresh failed: {message}")
            self.error = message
        return None
