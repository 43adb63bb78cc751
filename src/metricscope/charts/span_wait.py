"""Wait for an exemplar's span to be ingested before navigating to it.

When a user selects an exemplar whose span is not in the store yet, a prompt is
shown and the store is polled until the span shows up. Three parties can end the
wait: the poll loop (span found), the user (prompt cancelled) and the owning
view (disposed). Each session has a single-assignment outcome cell; whoever
writes it first decides the outcome and every later write is ignored. The
session's cancellation event stops the poll loop and wakes the waiter.
"""

from __future__ import annotations

import asyncio
import logging
from enum import StrEnum

from metricscope.contracts.error import LifecycleError
from metricscope.telemetry.models import Span
from metricscope.telemetry.titles import shorten_id

from .protocols import Navigator, PromptHandle, PromptResult, PromptService, SpanLookup

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.5


class WaitState(StrEnum):
    IDLE = "idle"
    WAITING = "waiting"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"
    SUPERSEDED = "superseded"


TERMINAL_STATES = frozenset({WaitState.RESOLVED, WaitState.CANCELLED, WaitState.SUPERSEDED})


class OutcomeCell:
    """Holds the first terminal state written to it."""

    __slots__ = ("_value",)

    def __init__(self) -> None:
        self._value: WaitState | None = None

    @property
    def decided(self) -> bool:
        return self._value is not None

    @property
    def value(self) -> WaitState | None:
        return self._value

    def set(self, outcome: WaitState) -> bool:
        """Record ``outcome`` unless one is already decided; return whether it won."""

        if outcome not in TERMINAL_STATES:
            raise ValueError(f"{outcome} is not a terminal state")
        if self._value is not None:
            return False
        self._value = outcome
        return True


class WaitSession:
    """State for one click on an exemplar whose span is still missing."""

    def __init__(self, trace_id: str, span_id: str) -> None:
        self.trace_id = trace_id
        self.span_id = span_id
        self.cancel_event = asyncio.Event()
        self.outcome = OutcomeCell()
        self.prompt: PromptHandle | None = None
        self.polls = 0

    @property
    def state(self) -> WaitState:
        return self.outcome.value or WaitState.WAITING

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def resolve(self) -> bool:
        return self.outcome.set(WaitState.RESOLVED)

    def cancel(self) -> bool:
        won = self.outcome.set(WaitState.CANCELLED)
        self.cancel_event.set()
        return won

    def supersede(self) -> bool:
        won = self.outcome.set(WaitState.SUPERSEDED)
        self.cancel_event.set()
        return won

    def __repr__(self) -> str:
        return f"WaitSession(trace_id={self.trace_id!r}, span_id={self.span_id!r}, state={self.state})"


class SpanWaitCoordinator:
    """Navigates to an exemplar's span, waiting for it to load if necessary.

    The coordinator owns at most one outstanding session. ``dispose`` must be
    called when the owning view goes away; it supersedes the outstanding session
    and makes further ``view_span`` calls fail fast.
    """

    def __init__(
        self,
        lookup: SpanLookup,
        prompt: PromptService,
        navigator: Navigator,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")
        self._lookup = lookup
        self._prompt = prompt
        self._navigator = navigator
        self._poll_interval = poll_interval
        self._session: WaitSession | None = None
        self._disposed = False

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    @property
    def session(self) -> WaitSession | None:
        return self._session

    @property
    def state(self) -> WaitState:
        return WaitState.IDLE if self._session is None else self._session.state

    @property
    def disposed(self) -> bool:
        return self._disposed

    async def view_span(self, trace_id: str, span_id: str) -> WaitState:
        """Navigate to the span, prompting and polling while it is unavailable."""

        if self._disposed:
            raise LifecycleError("Span wait coordinator has been disposed")

        self._supersede_outstanding()
        if self._get_span(trace_id, span_id) is not None:
            self._navigator.go_to(trace_id, span_id)
            return WaitState.RESOLVED

        session = WaitSession(trace_id, span_id)
        self._session = session
        logger.debug("Waiting for span %s of trace %s", span_id, trace_id)
        try:
            outcome = await self._wait(session)
        finally:
            if self._session is session:
                self._session = None

        logger.info(
            "Wait for trace %s ended: %s after %d poll(s)", trace_id, outcome, session.polls
        )
        if outcome is WaitState.RESOLVED and not self._disposed:
            self._navigator.go_to(trace_id, span_id)
        return outcome

    def dispose(self) -> None:
        """Supersede the outstanding session; the prompt is not touched."""

        if self._disposed:
            return
        self._disposed = True
        session = self._session
        if session is not None and session.supersede():
            logger.debug("Disposed while waiting for trace %s", session.trace_id)

    def _supersede_outstanding(self) -> None:
        previous = self._session
        if previous is None:
            return
        self._session = None
        if previous.supersede():
            logger.info("Superseded wait for trace %s by a new selection", previous.trace_id)
            if previous.prompt is not None:
                self._prompt.dismiss(previous.prompt, PromptResult.CANCELLED)

    async def _wait(self, session: WaitSession) -> WaitState:
        handle = self._prompt.show(f"Waiting for trace {shorten_id(session.trace_id)} to load...")
        session.prompt = handle
        poller = asyncio.create_task(self._poll(session, handle))
        cancelled = asyncio.create_task(session.cancel_event.wait())
        try:
            await asyncio.wait(
                {handle.result, poller, cancelled}, return_when=asyncio.FIRST_COMPLETED
            )
            if handle.result.done():
                if handle.result.cancelled() or handle.result.result() is PromptResult.CANCELLED:
                    session.cancel()
                else:
                    session.resolve()
        finally:
            session.supersede()
            cancelled.cancel()
            await poller
        return session.state

    async def _poll(self, session: WaitSession, handle: PromptHandle) -> None:
        while not session.cancelled:
            session.polls += 1
            if self._get_span(session.trace_id, session.span_id) is not None:
                if session.resolve():
                    self._prompt.dismiss(handle, PromptResult.CONFIRMED)
                return
            try:
                await asyncio.wait_for(session.cancel_event.wait(), timeout=self._poll_interval)
            except TimeoutError:
                continue

    def _get_span(self, trace_id: str, span_id: str) -> Span | None:
        try:
            return self._lookup.get_span(trace_id, span_id)
        except Exception:  # noqa: BLE001 - treated as not loaded yet
            logger.warning("Span lookup failed for trace %s span %s", trace_id, span_id, exc_info=True)
            return None


__all__ = [
    "DEFAULT_POLL_INTERVAL",
    "OutcomeCell",
    "SpanWaitCoordinator",
    "WaitSession",
    "WaitState",
]
