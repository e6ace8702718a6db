"""The process-wide reload context.

A Runtime bundles one entry-point registry, one persistent state store,
one hook registry and the engine that drives them. It is meant to be
created once, in permanent code, and to live as long as the process;
tests build their own isolated instances.
"""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from liveload.adapter import LiveCallable
from liveload.config import ReloadConfig
from liveload.engine import ReloadEngine, ReloadOutcome
from liveload.hooks import HookHandle, HookRegistry, ReloadHook
from liveload.loader import Loader
from liveload.registry import FAIL, EntryPoint, EntryPointRegistry
from liveload.state import Cell, StateStore

logger = logging.getLogger(__name__)


class Runtime:
    """Entry points, persistent state, hooks and the reload engine."""

    def __init__(self, loader: Loader | None = None, config: ReloadConfig | None = None):
        self.entry_points = EntryPointRegistry()
        self.state_store = StateStore()
        self.hooks = HookRegistry()
        self.engine = ReloadEngine(self.entry_points, self.hooks, loader=loader, config=config)

    def entry_point(
        self,
        name: str,
        locator: str | Path,
        symbol: str | None = None,
        fallback: Any = FAIL,
    ) -> EntryPoint:
        """Register (or look up) an entry point. No code is loaded."""
        return self.entry_points.register(name, locator, symbol=symbol, fallback=fallback)

    def procedure(
        self,
        name: str,
        locator: str | Path,
        symbol: str | None = None,
        fallback: Any = FAIL,
    ) -> LiveCallable:
        """Register an entry point and return a call handle for it."""
        return self.entry_point(name, locator, symbol=symbol, fallback=fallback).as_callable()

    def lookup(self, name: str, locator: str | Path) -> EntryPoint:
        return self.entry_points.lookup(name, locator)

    def state(self, name: str, initializer: Callable[[], Any]) -> Cell:
        return self.state_store.state(name, initializer)

    def reload(self) -> ReloadOutcome:
        return self.engine.reload()

    async def areload(self) -> ReloadOutcome:
        return await self.engine.areload()

    def set_poll_interval(self, seconds: float | None) -> None:
        self.engine.set_poll_interval(seconds)

    def set_failure_retry_delay(self, seconds: float) -> None:
        self.engine.set_failure_retry_delay(seconds)

    def add_hook(self, callback: ReloadHook) -> HookHandle:
        return self.hooks.add_hook(callback)

    def remove_hook(self, handle: HookHandle) -> None:
        self.hooks.remove_hook(handle)

    def start(self) -> None:
        self.engine.start()

    def stop(self, timeout: float | None = None) -> None:
        self.engine.stop(timeout)

    def __enter__(self) -> "Runtime":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()


# Global runtime instance
default_runtime = Runtime()
