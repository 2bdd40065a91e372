"""
Auto-Save Scheduler

Decides when a session is written back to the document store.

- Soft changes (adding a judge or project) schedule a debounced save; rapid
  successive changes collapse into one write.
- Critical changes (a project's judge results or the final ranking) save
  immediately.
- A periodic loop saves while local changes are pending.

At most one save runs at a time. Triggers that arrive while a save is in
flight coalesce into a single follow-up run of the same task.
"""

import asyncio
import json
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import structlog

from ..models.session_models import SessionState

logger = structlog.get_logger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 2.0
DEFAULT_INTERVAL_SECONDS = 30.0


def state_fingerprint(session: SessionState) -> str:
    """
    Change-detection fingerprint.

    Order-sensitive on purpose: reordering logically equal lists registers as
    a change and causes one extra write.
    """
    state_data = {
        "projects": [{"name": p.name, "fileCount": len(p.files)} for p in session.projects],
        "judges": [{"id": j.id, "name": j.name} for j in session.judges],
        "evaluations": [
            {"projectName": e.project_name, "judgeCount": len(e.judge_results)}
            for e in session.evaluations
        ],
    }
    return json.dumps(state_data)


@dataclass
class SaveResult:
    saved: bool
    reason: str = ""
    error: Optional[BaseException] = None


class AutoSaveScheduler:
    """
    Explicit, cancellable save scheduler for one session.

    ``save_func`` performs the actual write (normally the merge-update path);
    the scheduler only decides whether and when to call it.
    """

    def __init__(
        self,
        session_provider: Callable[[], SessionState],
        save_func: Callable[[], Awaitable[object]],
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS
    ):
        """
        Args:
            session_provider: Returns the current local session state
            save_func: Coroutine function that writes the session
            debounce_seconds: Delay used to coalesce soft changes
            interval_seconds: Period of the background save loop
        """
        self.session_provider = session_provider
        self.save_func = save_func
        self.debounce_seconds = debounce_seconds
        self.interval_seconds = interval_seconds

        self.has_local_changes = False
        self.session_loaded = False
        self.last_saved_fingerprint: Optional[str] = None
        self.enabled = False
        self.save_count = 0
        self.last_error: Optional[BaseException] = None

        self._change_counter = 0
        self._debounce_task: Optional[asyncio.Task] = None
        self._periodic_task: Optional[asyncio.Task] = None
        self._in_flight: Optional[asyncio.Task] = None
        self._rerun_requested = False
        self._rerun_immediate = False

        self.logger = logger.bind(component="AutoSaveScheduler")

    # Lifecycle

    def start(self) -> None:
        """Enable triggers and start the periodic loop."""
        self.enabled = True
        if self._periodic_task is None or self._periodic_task.done():
            self._periodic_task = asyncio.create_task(self._periodic_loop())
        self.logger.info("Auto-save enabled", interval_seconds=self.interval_seconds)

    async def stop(self, flush: bool = False) -> None:
        """Cancel pending timers; optionally write outstanding changes first."""
        self.enabled = False
        for task in (self._debounce_task, self._periodic_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._debounce_task = None
        self._periodic_task = None

        if self._in_flight is not None:
            await self._in_flight

        if flush and self.has_local_changes:
            await self._launch(immediate=True)

        self.logger.info("Auto-save stopped")

    def mark_loaded(self) -> None:
        """Record that real session data has been loaded or created."""
        self.session_loaded = True
        self.last_saved_fingerprint = state_fingerprint(self.session_provider())
        self.has_local_changes = False

    # Triggers

    def mark_changed(self) -> None:
        self.has_local_changes = True
        self._change_counter += 1
        self.logger.debug("Local changes detected")

    def notify_change(self, critical: bool = False) -> None:
        """Mark a mutation and trigger the matching save."""
        self.mark_changed()
        self.request_save(immediate=critical)

    def request_save(self, immediate: bool = False) -> None:
        """Schedule a save: now for critical changes, debounced otherwise."""
        if not self.enabled:
            self.logger.debug("Auto-save disabled, save request ignored", immediate=immediate)
            return

        if immediate:
            self._cancel_debounce()
            self._launch(immediate=True)
            return

        self._cancel_debounce()
        self._debounce_task = asyncio.create_task(self._debounced_save())

    async def flush(self) -> bool:
        """
        Save now and wait for the result.

        Raises:
            Exception: Whatever the save function raised
        """
        self._cancel_debounce()
        result = await self._launch(immediate=True)
        if result.error is not None:
            raise result.error
        return result.saved

    # Internals

    def _cancel_debounce(self) -> None:
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = None

    async def _debounced_save(self) -> None:
        await asyncio.sleep(self.debounce_seconds)
        self._debounce_task = None
        self._launch(immediate=False)

    async def _periodic_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            if self.has_local_changes:
                self._launch(immediate=False)

    def _launch(self, immediate: bool) -> "asyncio.Task[SaveResult]":
        """Start a save task, or fold this trigger into the one in flight."""
        if self._in_flight is not None and not self._in_flight.done():
            self._rerun_requested = True
            self._rerun_immediate = self._rerun_immediate or immediate
            return self._in_flight

        self._in_flight = asyncio.create_task(self._run(immediate))
        return self._in_flight

    async def _run(self, immediate: bool) -> SaveResult:
        result = await self._attempt(immediate)
        while self._rerun_requested:
            immediate = self._rerun_immediate
            self._rerun_requested = False
            self._rerun_immediate = False
            rerun = await self._attempt(immediate)
            # A follow-up that found nothing to do does not mask the earlier write
            if rerun.saved or rerun.error is not None:
                result = rerun
        return result

    async def _attempt(self, immediate: bool) -> SaveResult:
        session = self.session_provider()

        if not self.has_local_changes:
            return SaveResult(saved=False, reason="no_local_changes")

        if not self.session_loaded and session.is_empty():
            self.logger.info("Skipping auto-save of empty session before initial load")
            return SaveResult(saved=False, reason="empty_unloaded_session")

        fingerprint = state_fingerprint(session)
        if not immediate and fingerprint == self.last_saved_fingerprint:
            self.logger.debug("Skipping auto-save, state unchanged")
            return SaveResult(saved=False, reason="unchanged")

        counter_at_start = self._change_counter
        try:
            await self.save_func()
        except Exception as e:
            self.last_error = e
            self.logger.error(
                "Auto-save failed",
                error=str(e),
                error_type=type(e).__name__
            )
            return SaveResult(saved=False, reason="error", error=e)

        self.save_count += 1
        self.last_error = None
        # The save may have replaced projects with the merged set
        self.last_saved_fingerprint = state_fingerprint(self.session_provider())
        if self._change_counter == counter_at_start:
            self.has_local_changes = False

        self.logger.info("Session auto-saved", save_count=self.save_count, immediate=immediate)
        return SaveResult(saved=True)
