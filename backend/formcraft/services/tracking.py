"""SQL-backed liveness store and the app-wide registry of mounted trackers."""

import asyncio
import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone

from fastapi import Request
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from formcraft.engine.liveness import LivenessStore, SessionTracker
from formcraft.models.form_session import FormSession
from formcraft.models.response import Response

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


def upsert_session(db: Session, response_id: uuid.UUID) -> FormSession:
    now = datetime.now(timezone.utc)
    session = db.execute(select(FormSession).where(FormSession.response_id == response_id)).scalar_one_or_none()
    if session is None:
        session = FormSession(response_id=response_id, turns_json=[], last_active_at=now)
        db.add(session)
    else:
        session.last_active_at = now
    db.commit()
    db.refresh(session)
    return session


def touch_session(db: Session, session_id: uuid.UUID) -> None:
    db.execute(
        update(FormSession)
        .where(FormSession.id == session_id)
        .values(last_active_at=datetime.now(timezone.utc))
    )
    db.commit()


def mark_abandoned(db: Session, response_id: uuid.UUID) -> None:
    db.execute(
        update(Response)
        .where(Response.id == response_id)
        .values(abandoned_at=datetime.now(timezone.utc))
    )
    db.commit()


class SqlLivenessStore(LivenessStore):
    """LivenessStore over the ``sessions`` and ``responses`` tables.

    Each call opens its own DB session from ``session_factory`` and runs in a
    worker thread so the event loop is never blocked on the database.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def _run(self, fn, *args):
        db = self._session_factory()
        try:
            return fn(db, *args)
        finally:
            db.close()

    async def upsert_session(self, response_id: str) -> str:
        session = await asyncio.to_thread(self._run, upsert_session, uuid.UUID(response_id))
        return str(session.id)

    async def touch_session(self, session_id: str) -> None:
        await asyncio.to_thread(self._run, touch_session, uuid.UUID(session_id))

    async def mark_abandoned(self, response_id: str) -> None:
        await asyncio.to_thread(self._run, mark_abandoned, uuid.UUID(response_id))


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TrackerRegistry:
    """All trackers mounted by the running app, keyed by response id.

    Usage::

        registry = TrackerRegistry(store, heartbeat_interval=30, inactivity_timeout=300)
        await registry.mount(form_id, response_id)
        await registry.heartbeat(response_id)
        await registry.release(response_id)

        # Shutdown
        await registry.teardown_all()
    """

    def __init__(
        self,
        store: LivenessStore,
        heartbeat_interval: float | None = 30.0,
        inactivity_timeout: float = 300.0,
    ) -> None:
        self._store = store
        self._heartbeat_interval = heartbeat_interval
        self._inactivity_timeout = inactivity_timeout
        self._trackers: dict[str, SessionTracker] = {}
        self._lock = asyncio.Lock()

    @property
    def active_count(self) -> int:
        return len(self._trackers)

    def get(self, response_id: str) -> SessionTracker | None:
        return self._trackers.get(response_id)

    async def mount(self, form_id: str, response_id: str) -> SessionTracker:
        """Mount a tracker for the response, replacing any earlier one."""
        tracker = SessionTracker(
            self._store,
            form_id,
            response_id,
            heartbeat_interval=self._heartbeat_interval,
            inactivity_timeout=self._inactivity_timeout,
        )
        async with self._lock:
            previous = self._trackers.pop(response_id, None)
            self._trackers[response_id] = tracker

        if previous is not None:
            await previous.unmount()
        tracker.mount()
        logger.info("Registry mounted tracker for response %s (%d active)", response_id, self.active_count)
        return tracker

    async def heartbeat(self, response_id: str) -> bool:
        """Forward a client activity ping. Returns False if nothing is mounted."""
        tracker = self._trackers.get(response_id)
        if tracker is None:
            return False
        await tracker.heartbeat()
        return True

    async def release(self, response_id: str) -> None:
        """Unmount and forget a tracker. Safe to call for unknown ids."""
        async with self._lock:
            tracker = self._trackers.pop(response_id, None)

        if tracker is None:
            logger.debug("Registry release: no tracker for response %s", response_id)
            return

        try:
            await tracker.unmount()
        except Exception as exc:
            logger.warning("Error releasing tracker for response %s: %s", response_id, exc)

    async def teardown_all(self) -> None:
        """Unmount every tracker. Used during app shutdown."""
        async with self._lock:
            trackers = list(self._trackers.values())
            self._trackers.clear()

        if not trackers:
            logger.info("Registry teardown: no active trackers")
            return

        logger.info("Registry teardown: stopping %d tracker(s)", len(trackers))
        await asyncio.gather(*(t.unmount() for t in trackers), return_exceptions=True)


def get_trackers(request: Request) -> TrackerRegistry:
    """FastAPI dependency: the registry created in the app lifespan."""
    return request.app.state.trackers
