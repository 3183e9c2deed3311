"""Best-effort session liveness tracking for an in-progress response.

A SessionTracker is mounted when a respondent opens a form and unmounted
when the fill session ends. While mounted it runs two asyncio tasks:

- a heartbeat loop that writes ``last_active_at`` every heartbeat interval;
- an inactivity timer that marks the response abandoned if it ever runs out.

Only ``heartbeat()`` calls (respondent activity) restart the inactivity
window. The loop never does, so a silent respondent is marked abandoned
exactly once.

Every store failure is logged and swallowed. Nothing here can block or fail
the render/validate/submit path, and the tracker only knows the two ids it
was given at mount.
"""

import abc
import asyncio
import logging
from enum import Enum

logger = logging.getLogger(__name__)

DEFAULT_HEARTBEAT_SECONDS = 30.0
DEFAULT_INACTIVITY_SECONDS = 5 * 60.0


class LivenessStore(abc.ABC):
    """Persistence the tracker writes to."""

    @abc.abstractmethod
    async def upsert_session(self, response_id: str) -> str:
        """Create or refresh the session record for a response. Returns its id."""

    @abc.abstractmethod
    async def touch_session(self, session_id: str) -> None:
        """Set the session's last-activity timestamp to now."""

    @abc.abstractmethod
    async def mark_abandoned(self, response_id: str) -> None:
        """Stamp the response as abandoned."""


class TrackerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    TRACKED = "tracked"
    ABANDONED = "abandoned"
    CLOSED = "closed"


class SessionTracker:
    """Liveness tracker for one (form, response) pair.

    Usage::

        tracker = SessionTracker(store, form_id, response_id)
        tracker.mount()
        ...
        await tracker.unmount()

    ``heartbeat_interval=None`` disables the built-in loop; heartbeats then
    only happen through explicit ``heartbeat()`` calls.
    """

    def __init__(
        self,
        store: LivenessStore,
        form_id: str,
        response_id: str,
        *,
        heartbeat_interval: float | None = DEFAULT_HEARTBEAT_SECONDS,
        inactivity_timeout: float = DEFAULT_INACTIVITY_SECONDS,
    ) -> None:
        self._store = store
        self._form_id = form_id
        self._response_id = response_id
        self._heartbeat_interval = heartbeat_interval
        self._inactivity_timeout = inactivity_timeout
        self._state = TrackerState.UNINITIALIZED
        self._session_id: str | None = None
        self._register_task: asyncio.Task | None = None
        self._heartbeat_task: asyncio.Task | None = None
        self._inactivity_task: asyncio.Task | None = None
        self._abandon_writes = 0

    @property
    def form_id(self) -> str:
        return self._form_id

    @property
    def response_id(self) -> str:
        return self._response_id

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def state(self) -> TrackerState:
        return self._state

    @property
    def abandon_writes(self) -> int:
        """How many times the abandoned mark was written."""
        return self._abandon_writes

    @property
    def mounted(self) -> bool:
        return self._state in (TrackerState.TRACKED, TrackerState.ABANDONED)

    def mount(self) -> None:
        """Start tracking. Must be called from a running event loop.

        The session upsert runs in the background; the timers start at once.
        """
        if self._state is not TrackerState.UNINITIALIZED:
            logger.warning("Tracker for response %s already mounted (%s)", self._response_id, self._state.value)
            return

        self._state = TrackerState.TRACKED
        self._register_task = asyncio.create_task(self._register())
        if self._heartbeat_interval is not None:
            self._heartbeat_task = asyncio.create_task(self._heartbeat_loop(self._heartbeat_interval))
        self._arm_inactivity()
        logger.info("Tracking session for form %s response %s", self._form_id, self._response_id)

    async def heartbeat(self) -> None:
        """Record respondent activity and restart the inactivity window.

        Ignored until the session is registered. An abandoned response stays
        abandoned: its session is still touched but no new timer is armed.
        """
        if not self.mounted:
            return
        if not await self._touch():
            logger.debug("Heartbeat before session registration for response %s", self._response_id)
            return
        if self._state is TrackerState.TRACKED:
            self._arm_inactivity()

    async def unmount(self) -> None:
        """Cancel every timer. No new writes start after this returns."""
        if self._state is TrackerState.CLOSED:
            return
        self._state = TrackerState.CLOSED

        tasks = [t for t in (self._register_task, self._heartbeat_task, self._inactivity_task) if t is not None]
        self._register_task = self._heartbeat_task = self._inactivity_task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Stopped tracking response %s", self._response_id)

    # -- internals ---------------------------------------------------------

    async def _register(self) -> None:
        try:
            self._session_id = await self._store.upsert_session(self._response_id)
        except Exception:
            logger.exception("Error tracking session for response %s", self._response_id)

    async def _heartbeat_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            await self._touch()

    async def _touch(self) -> bool:
        """Write last_active_at. False when there is no session to touch yet."""
        if self._session_id is None:
            return False
        try:
            await self._store.touch_session(self._session_id)
        except Exception:
            logger.exception("Error updating activity for session %s", self._session_id)
        return True

    def _arm_inactivity(self) -> None:
        if self._inactivity_task is not None and not self._inactivity_task.done():
            self._inactivity_task.cancel()
        self._inactivity_task = asyncio.create_task(self._inactivity_timer(self._inactivity_timeout))

    async def _inactivity_timer(self, timeout: float) -> None:
        try:
            await asyncio.sleep(timeout)
        except asyncio.CancelledError:
            return

        # Past this point a rearm starts a fresh timer instead of cancelling the write
        self._inactivity_task = None
        if self._state is not TrackerState.TRACKED:
            return

        self._state = TrackerState.ABANDONED
        self._abandon_writes += 1
        logger.info("Response %s inactive for %ss, marking abandoned", self._response_id, timeout)
        try:
            await self._store.mark_abandoned(self._response_id)
        except Exception:
            logger.exception("Error marking response %s as abandoned", self._response_id)
