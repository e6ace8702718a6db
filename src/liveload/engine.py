"""Reload engine.

Handles:
- Serializing manual and timer-driven reloads on one coordination thread
- Refreshing every code unit referenced by an entry point
- Re-resolving and committing entry-point values
- Running reload hooks
- Backing off after failed automatic reloads

The coordination thread runs its own asyncio event loop. Callers send
requests through an asyncio.Queue (via call_soon_threadsafe); each request
carries a concurrent.futures.Future that receives the outcome. Every
request waiting when a pass starts is answered by that pass.
"""

import asyncio
import logging
import threading
from collections import deque
from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

from liveload.config import ReloadConfig
from liveload.errors import EngineStopped, LoadError, SymbolNotFound, SymbolUnresolved
from liveload.hooks import HookRegistry
from liveload.loader import Loader, ModuleLoader
from liveload.registry import EntryPoint, EntryPointRegistry, EntryValue

logger = logging.getLogger(__name__)


class ReloadStatus(str, Enum):
    """Status of a reload pass."""

    SUCCESS = "success"
    FAILED_LOAD = "failed_load"
    FAILED_SYMBOL = "failed_symbol"


class ReloadTrigger(str, Enum):
    """What started a reload pass."""

    MANUAL = "manual"
    POLL = "poll"


@dataclass
class ReloadOutcome:
    """Result of one reload pass."""

    status: ReloadStatus
    trigger: ReloadTrigger
    changes: dict[str, frozenset[Path]] = field(default_factory=dict)
    error_message: str | None = None
    generation: int = 0
    hook_failures: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def succeeded(self) -> bool:
        return self.status == ReloadStatus.SUCCESS

    @property
    def changed_files(self) -> set[Path]:
        """Every source file reloaded by the pass, across all units."""
        return set().union(*self.changes.values()) if self.changes else set()

    def __bool__(self) -> bool:
        return self.succeeded


class _MessageKind(Enum):
    RELOAD = "reload"
    CONFIGURE = "configure"
    STOP = "stop"


@dataclass
class _Message:
    kind: _MessageKind
    reply: Future | None = None


class ReloadEngine:
    """Owns the coordination thread and every write to entry-point values.

    Flow of a pass:
    1. Collect the distinct locators of all registered entry points
    2. Refresh each unit through the loader
    3. On a load failure, stop; nothing is committed
    4. Resolve every entry point; a missing symbol without fallback fails
       the pass the same way
    5. Commit all new values at once
    6. Run reload hooks if any unit changed
    7. Answer every caller waiting on the pass
    """

    def __init__(
        self,
        registry: EntryPointRegistry,
        hooks: HookRegistry | None = None,
        loader: Loader | None = None,
        config: ReloadConfig | None = None,
    ):
        self.registry = registry
        self.hooks = hooks or HookRegistry()
        self.config = (config or ReloadConfig()).model_copy(deep=True)
        self.loader = loader or ModuleLoader(self.config.protected_modules)

        self._thread: threading.Thread | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: asyncio.Queue[_Message] | None = None
        self._ready = threading.Event()
        self._lock = threading.Lock()
        self._stopped = False

        # Changes seen by failed passes, reported by the next successful one
        self._pending_changes: dict[str, set[Path]] = {}
        # Last automatic pass failed; the timer waits failure_retry_delay
        self._backing_off = False

        self._history: deque[ReloadOutcome] = deque(maxlen=self.config.history_size)

    # Lifecycle

    def start(self) -> None:
        """Start the coordination thread. Calling it again does nothing.

        Raises:
            EngineStopped: If the engine was stopped.
        """
        with self._lock:
            if self._stopped:
                raise EngineStopped()
            if self._thread is not None:
                return
            self._thread = threading.Thread(
                target=self._thread_main, name="liveload-reload", daemon=True
            )
            self._thread.start()
        self._ready.wait()

    def stop(self, timeout: float | None = None) -> None:
        """Stop the coordination thread after any in-flight pass finishes."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            thread = self._thread
            if thread is not None:
                self._post(_Message(_MessageKind.STOP))

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        logger.debug("Reload engine stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stopped

    def __enter__(self) -> "ReloadEngine":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    # Requests

    def reload(self) -> ReloadOutcome:
        """Reload now and block until the pass completes.

        Returns:
            Outcome of a pass that started no earlier than this call.

        Raises:
            EngineStopped: If the engine was stopped.
        """
        if threading.current_thread() is self._thread:
            raise RuntimeError("reload() cannot be called from the reload thread")
        return self._request().result()

    async def areload(self) -> ReloadOutcome:
        """Awaitable version of reload() for asyncio callers."""
        if threading.current_thread() is self._thread:
            raise RuntimeError("areload() cannot be awaited on the reload thread")
        return await asyncio.wrap_future(self._request())

    def _request(self) -> Future:
        self.start()
        reply: Future = Future()
        with self._lock:
            if self._stopped:
                raise EngineStopped()
            self._post(_Message(_MessageKind.RELOAD, reply))
        return reply

    def _post(self, message: _Message) -> None:
        self._ready.wait()
        assert self._loop is not None and self._queue is not None
        self._loop.call_soon_threadsafe(self._queue.put_nowait, message)

    def set_poll_interval(self, seconds: float | None) -> None:
        """Set the automatic reload interval; None disables automatic reloads.

        A pass that is already running is not interrupted.
        """
        self.config.poll_interval = seconds
        self._reconfigure()
        logger.info(
            "Automatic reload disabled" if seconds is None else f"Automatic reload every {seconds}s"
        )

    def set_failure_retry_delay(self, seconds: float) -> None:
        """Set how long automatic reloading waits after a failed automatic pass."""
        self.config.failure_retry_delay = seconds
        self._reconfigure()

    def _reconfigure(self) -> None:
        with self._lock:
            if self._thread is not None and not self._stopped:
                self._post(_Message(_MessageKind.CONFIGURE))

    # History

    def history(self, limit: int = 10) -> list[ReloadOutcome]:
        """Most recent outcomes, oldest first."""
        with self._lock:
            return list(self._history)[-limit:]

    @property
    def last_outcome(self) -> ReloadOutcome | None:
        with self._lock:
            return self._history[-1] if self._history else None

    # Coordination thread

    def _thread_main(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            loop.run_until_complete(self._coordinate())
        except Exception:
            logger.exception("Reload engine stopped unexpectedly")
        finally:
            loop.close()

    def _schedule(self, delay: float | None) -> float | None:
        assert self._loop is not None
        return None if delay is None else self._loop.time() + delay

    def _next_poll(self) -> float | None:
        """Deadline of the next automatic pass, honoring a pending retry delay."""
        if self.config.poll_interval is None:
            return None
        if self._backing_off:
            return self._schedule(self.config.failure_retry_delay)
        return self._schedule(self.config.poll_interval)

    async def _coordinate(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._ready.set()

        next_poll = self._next_poll()
        replies: list[Future] = []

        try:
            while True:
                timeout = None if next_poll is None else max(0.0, next_poll - self._loop.time())
                try:
                    message = await asyncio.wait_for(self._queue.get(), timeout=timeout)
                except TimeoutError:
                    outcome = await self._run_pass(ReloadTrigger.POLL)
                    self._backing_off = not outcome.succeeded
                    if self._backing_off and self.config.poll_interval is not None:
                        logger.warning(
                            "Automatic reload failed, "
                            f"retrying in {self.config.failure_retry_delay}s"
                        )
                    next_poll = self._next_poll()
                    continue

                batch = [message]
                while not self._queue.empty():
                    batch.append(self._queue.get_nowait())

                replies = [
                    m.reply
                    for m in batch
                    if m.reply is not None and m.reply.set_running_or_notify_cancel()
                ]
                if any(m.kind is _MessageKind.RELOAD for m in batch):
                    outcome = await self._run_pass(ReloadTrigger.MANUAL)
                    if outcome.succeeded:
                        self._backing_off = False
                    for reply in replies:
                        reply.set_result(outcome)
                replies = []

                if any(m.kind is _MessageKind.STOP for m in batch):
                    break
                if any(m.kind is _MessageKind.CONFIGURE for m in batch):
                    next_poll = self._next_poll()
        finally:
            await self._release_waiters(replies)

    async def _release_waiters(self, replies: list[Future]) -> None:
        """Fail every reply still waiting once the coordination loop ends."""
        with self._lock:
            self._stopped = True
        # Run callbacks from posts that raced with the flag above
        await asyncio.sleep(0)
        assert self._queue is not None
        while not self._queue.empty():
            reply = self._queue.get_nowait().reply
            if reply is not None:
                replies.append(reply)
        for reply in replies:
            if not reply.done():
                reply.set_exception(EngineStopped())

    async def _run_pass(self, trigger: ReloadTrigger) -> ReloadOutcome:
        outcome = await self._reload_pass(trigger)
        with self._lock:
            self._history.append(outcome)
        return outcome

    def _fail(
        self, trigger: ReloadTrigger, status: ReloadStatus, error: Exception
    ) -> ReloadOutcome:
        logger.error(f"Reload failed: {error}", exc_info=error)
        return ReloadOutcome(
            status=status,
            trigger=trigger,
            error_message=str(error),
            generation=self.registry.generation,
        )

    async def _reload_pass(self, trigger: ReloadTrigger) -> ReloadOutcome:
        entries = self.registry.entries()
        locators = list(dict.fromkeys(entry.locator for entry in entries))

        # Steps 1-3: refresh every unit once
        for locator in locators:
            try:
                files = self.loader.refresh(locator)
            except LoadError as e:
                return self._fail(trigger, ReloadStatus.FAILED_LOAD, e)
            except BaseException as e:
                error = LoadError(locator, f"{type(e).__name__}: {e}")
                error.__cause__ = e
                return self._fail(trigger, ReloadStatus.FAILED_LOAD, error)
            if files:
                self._pending_changes.setdefault(locator, set()).update(files)

        # Step 4: resolve everything before committing anything
        values: dict[EntryPoint, EntryValue] = {}
        for entry in entries:
            try:
                raw = self.loader.resolve(entry.locator, entry.symbol)
            except SymbolNotFound as e:
                if not entry.has_fallback:
                    error = SymbolUnresolved(entry)
                    error.__cause__ = e
                    return self._fail(trigger, ReloadStatus.FAILED_SYMBOL, error)
                logger.debug(f"Using fallback for entry point {entry.name!r}")
                raw = entry.fallback
            except BaseException as e:
                error = LoadError(
                    entry.locator, f"resolving {entry.symbol!r} raised {type(e).__name__}: {e}"
                )
                error.__cause__ = e
                return self._fail(trigger, ReloadStatus.FAILED_SYMBOL, error)
            values[entry] = EntryValue.of(raw)

        generation = self.registry.commit(values)

        # Step 5: change mapping
        changes = {
            locator: frozenset(files)
            for locator, files in self._pending_changes.items()
            if files
        }
        self._pending_changes = {}

        outcome = ReloadOutcome(
            status=ReloadStatus.SUCCESS,
            trigger=trigger,
            changes=changes,
            generation=generation,
        )

        # Step 6: hooks
        if changes:
            logger.info(
                f"Reloaded {len(changes)} code units "
                f"({len(outcome.changed_files)} files, generation {generation})"
            )
            outcome.hook_failures = await self.hooks.fire(changes)
        else:
            logger.debug(f"Reload pass ({trigger.value}): no changes")

        return outcome
