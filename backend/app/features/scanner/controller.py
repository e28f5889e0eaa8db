# backend/app/features/scanner/controller.py
"""Scan Controller - sequential, pausable scan loop.

The ScanController is the single owner of a scan surface's run state:
- the worklist cursor and fractional progress
- the idle/running/paused/stopped state machine
- the one asyncio task executing the run loop
- persisting every step through the ResultSink and SessionBridge

Items are processed strictly one at a time. Pause, resume and stop are
cooperative: they write a ScanSignal which the loop reads before each item
and while waiting out a pause. An in-flight probe is only interrupted by
``cancel``, which is reserved for shutdown.
"""

import asyncio
import threading
from typing import Any, Callable, Iterable, List, Optional

from backend.app.core import ConfigurationError, ScanInProgressError, logs, settings
from .models import ScanProgress, ScanState, ScanSummary, SessionSnapshot
from .session import SessionBridge
from .sink import ResultSink
from .surfaces import ScanSurface

ProgressCallback = Callable[[ScanProgress], None]


class ScanSignal:
    """Lock-protected state cell shared between the run loop and its callers."""

    def __init__(self, state: ScanState = ScanState.IDLE) -> None:
        self._lock = threading.Lock()
        self._state = state

    def get(self) -> ScanState:
        with self._lock:
            return self._state

    def set(self, state: ScanState) -> None:
        with self._lock:
            self._state = state

    def transition(self, allowed: Iterable[ScanState], new_state: ScanState) -> bool:
        """Move to ``new_state`` only from one of ``allowed``."""
        with self._lock:
            if self._state not in allowed:
                return False
            self._state = new_state
            return True


def percent(done: int, total: int) -> int:
    """Whole-number percentage, rounding halves up."""
    if total <= 0:
        return 0
    return (200 * done + total) // (2 * total)


class ScanController:
    """Runs one scan surface's worklist through probe, classifier and sink.

    Thread-safe state transitions: ``pause``, ``resume`` and ``stop`` may be
    called from anywhere while the loop runs on the event loop.

    Example:
        controller = ScanController(PortScanSurface(), sink, session)
        controller.start(PortScanConfig(target="10.0.0.5"))
        ...
        controller.pause()
        controller.resume()
        summary = await controller.wait()
    """

    def __init__(
        self,
        surface: ScanSurface,
        sink: ResultSink,
        session: SessionBridge,
        poll_interval: Optional[float] = None,
        settle_delay: Optional[float] = None,
    ) -> None:
        self.surface = surface
        self.sink = sink
        self.session = session
        self.poll_interval = (
            poll_interval if poll_interval is not None else settings.PAUSE_POLL_INTERVAL
        )
        self.settle_delay = (
            settle_delay if settle_delay is not None else settings.STOP_SETTLE_DELAY
        )

        self._signal = ScanSignal()
        self._task: Optional[asyncio.Task] = None
        self._subscribers: List[ProgressCallback] = []

        # Run state
        self._cursor = 0
        self._total = 0
        self._progress = 0
        self._current_item_id: Optional[str] = None
        self._run_results: List[Any] = []
        self._context: dict = {}
        self._last_summary: Optional[ScanSummary] = None

        self._restore()

    def _restore(self) -> None:
        snapshot = self.session.init()
        if snapshot is None:
            return
        self._cursor = snapshot.cursor_index
        self._total = snapshot.total
        self._progress = snapshot.progress
        self._context = dict(snapshot.context)
        for raw in snapshot.results:
            try:
                self._run_results.append(self.surface.result_model.model_validate(raw))
            except ValueError as e:
                logs.warning("Dropping unreadable session result", "controller", {"error": str(e)})

    # ========== Properties ==========

    @property
    def state(self) -> ScanState:
        return self._signal.get()

    @property
    def progress(self) -> int:
        return self._progress

    @property
    def cursor_index(self) -> int:
        return self._cursor

    @property
    def total(self) -> int:
        return self._total

    @property
    def current_item_id(self) -> Optional[str]:
        return self._current_item_id

    @property
    def results(self) -> List[Any]:
        """Results produced by the current (or last) run."""
        return list(self._run_results)

    @property
    def context(self) -> dict:
        return dict(self._context)

    @property
    def last_summary(self) -> Optional[ScanSummary]:
        return self._last_summary

    @property
    def is_active(self) -> bool:
        """True while a run loop task exists and has not finished."""
        return self._task is not None and not self._task.done()

    def snapshot(self) -> ScanProgress:
        return ScanProgress(
            surface=self.surface.surface,
            state=self.state,
            progress=self._progress,
            cursor_index=self._cursor,
            total=self._total,
            current_item_id=self._current_item_id,
        )

    def subscribe(self, callback: ProgressCallback) -> Callable[[], None]:
        """Call ``callback`` after every state or progress change.

        Returns:
            A function that removes the subscription
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # ========== Transitions ==========

    def start(self, config: Any) -> asyncio.Task:
        """Validate ``config``, build the worklist and launch the run loop.

        Must be called from a running event loop.

        Raises:
            ScanInProgressError: If this surface already has an active run
            ConfigurationError: If required settings are missing or the
                worklist is empty
        """
        surface_name = self.surface.surface.value
        if self.state is not ScanState.IDLE or self.is_active:
            raise ScanInProgressError(
                f"A {surface_name} scan is already running",
                {"surface": surface_name, "state": self.state.value},
            )

        self.surface.validate(config)
        worklist = self.surface.build_worklist(config)
        if not worklist:
            raise ConfigurationError(self.surface.empty_worklist_message, {"surface": surface_name})

        loop = asyncio.get_running_loop()

        self._run_results = []
        self._cursor = 0
        self._total = len(worklist)
        self._progress = 0
        self._current_item_id = None
        self._context = self.surface.session_context(config)
        self._last_summary = None
        self._signal.set(ScanState.RUNNING)
        self._changed()

        logs.info(
            "Scan started",
            "controller",
            {"surface": surface_name, "items": self._total},
        )
        self._task = loop.create_task(
            self._run(list(worklist), config, self._signal),
            name=f"{surface_name}-scan",
        )
        return self._task

    def pause(self) -> bool:
        """Pause before the next item. The in-flight probe finishes first."""
        if not self._signal.transition({ScanState.RUNNING}, ScanState.PAUSED):
            return False
        logs.info("Scan paused", "controller", {"surface": self.surface.surface.value, "cursor": self._cursor})
        self._changed()
        return True

    def resume(self) -> bool:
        if not self._signal.transition({ScanState.PAUSED}, ScanState.RUNNING):
            return False
        logs.info("Scan resumed", "controller", {"surface": self.surface.surface.value, "cursor": self._cursor})
        self._changed()
        return True

    def stop(self) -> bool:
        """Stop before the next item. Results produced so far are kept."""
        if not self._signal.transition({ScanState.RUNNING, ScanState.PAUSED}, ScanState.STOPPED):
            return False
        logs.info("Scan stop requested", "controller", {"surface": self.surface.surface.value, "cursor": self._cursor})
        self._changed()
        return True

    def clear_results(self) -> None:
        """Empty the persisted result log and reset run progress.

        Raises:
            ScanInProgressError: If a run is active
        """
        if self.state is not ScanState.IDLE or self.is_active:
            raise ScanInProgressError("Cannot clear results while a scan is running")
        self.sink.clear()
        self._run_results = []
        self._cursor = 0
        self._total = 0
        self._progress = 0
        self._current_item_id = None
        self._changed()

    async def wait(self) -> Optional[ScanSummary]:
        """Wait for the active run (if any) and return its summary."""
        if self._task is not None:
            await self._task
        return self._last_summary

    async def cancel(self) -> None:
        """Cancel the run task, including an in-flight probe, and wait for it.

        Used at shutdown, where waiting for the current item is not wanted.
        Results recorded so far stay in the sink.
        """
        task = self._task
        if task is None or task.done():
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        # A task cancelled while settling after a stop never reaches idle itself
        if self.state is not ScanState.IDLE:
            self._signal.set(ScanState.IDLE)
            self._changed()

    async def run(self, config: Any) -> Optional[ScanSummary]:
        """Start a run and wait for it to finish."""
        await self.start(config)
        return self._last_summary

    # ========== Run loop ==========

    async def _run(self, worklist: List[Any], config: Any, signal: ScanSignal) -> None:
        total = len(worklist)
        surface_name = self.surface.surface.value
        was_stopped = False

        try:
            async with self.surface.probe:
                for index, item in enumerate(worklist):
                    if signal.get() is ScanState.STOPPED:
                        was_stopped = True
                        break

                    while signal.get() is ScanState.PAUSED:
                        await asyncio.sleep(self.poll_interval)

                    if signal.get() is ScanState.STOPPED:
                        was_stopped = True
                        break

                    self._current_item_id = self.surface.item_id(item)
                    self._changed()

                    result = await self._execute(item, config)
                    self._run_results.append(result)
                    self.sink.append(result)

                    self._cursor = index + 1
                    self._progress = percent(self._cursor, total)
                    self._changed()
        except asyncio.CancelledError:
            logs.warning("Scan task cancelled", "controller", {"surface": surface_name, "cursor": self._cursor})
            self._finish(stopped=True)
            raise
        except Exception as e:
            logs.error("Scan loop aborted", "controller", {"surface": surface_name}, exception=e)
            signal.set(ScanState.STOPPED)
            was_stopped = True

        if was_stopped:
            self._finish(stopped=True, settle=False)
            # Stopped is transient: hold it briefly so observers can see it
            await asyncio.sleep(self.settle_delay)
            signal.set(ScanState.IDLE)
            self._changed()
            return

        self._cursor = total
        self._progress = 100
        self._finish(stopped=False)

    async def _execute(self, item: Any, config: Any) -> Any:
        try:
            return await self.surface.execute(item, config)
        except Exception as e:
            logs.error(
                "Probe raised, recording error result",
                "controller",
                {"surface": self.surface.surface.value, "item": self.surface.item_id(item)},
                exception=e,
            )
            return self.surface.error_result(item, config, e)

    def _finish(self, stopped: bool, settle: bool = True) -> None:
        self._current_item_id = None
        self._last_summary = self.surface.summarize(self._run_results, stopped)
        if settle:
            self._signal.set(ScanState.IDLE)
        logs.info(
            self._last_summary.message,
            "controller",
            {
                "surface": self.surface.surface.value,
                "total": self._last_summary.total,
                "passed": self._last_summary.passed,
                "issues": self._last_summary.issues,
                "stopped": stopped,
            },
        )
        self._changed()

    # ========== Persistence & notification ==========

    def _changed(self) -> None:
        self.session.save(
            SessionSnapshot(
                state=self.state,
                cursor_index=self._cursor,
                total=self._total,
                progress=self._progress,
                current_item_id=self._current_item_id,
                results=[r.model_dump(mode="json") for r in self._run_results],
                context=self._context,
            )
        )
        snapshot = self.snapshot()
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception as e:
                logs.error("Progress subscriber failed", "controller", exception=e)
