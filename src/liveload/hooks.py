"""Callbacks run after a reload pass that changed code."""

import asyncio
import inspect
import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

ChangeMap = Mapping[str, frozenset[Path]]
ReloadHook = Callable[[ChangeMap], Any]


class HookHandle:
    """Registration token returned by HookRegistry.add_hook."""

    __slots__ = ("callback",)

    def __init__(self, callback: ReloadHook):
        self.callback = callback

    def __repr__(self) -> str:
        name = getattr(self.callback, "__qualname__", repr(self.callback))
        return f"<HookHandle {name}>"


class HookRegistry:
    """Ordered list of reload hooks.

    Hooks receive the change mapping of a pass: locator -> source files
    reloaded for it. They run on the engine's coordination thread, in
    registration order, and only when the mapping is non-empty. A hook may
    return an awaitable, which is awaited before the next hook runs.
    """

    def __init__(self) -> None:
        self._handles: list[HookHandle] = []

    def add_hook(self, callback: ReloadHook) -> HookHandle:
        """Register a hook and return the handle used to remove it."""
        handle = HookHandle(callback)
        self._handles = [*self._handles, handle]
        return handle

    def remove_hook(self, handle: HookHandle) -> None:
        """Remove a hook. Removing an unknown handle does nothing."""
        if handle in self._handles:
            self._handles = [h for h in self._handles if h is not handle]

    async def fire(self, changes: ChangeMap) -> int:
        """Run every hook with changes, isolating failures.

        Returns:
            Number of hooks that raised.
        """
        if not changes:
            return 0

        failures = 0
        for handle in self._handles:
            try:
                result = handle.callback(changes)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except BaseException:
                failures += 1
                logger.exception(f"Reload hook {handle!r} failed")
        return failures

    def __len__(self) -> int:
        return len(self._handles)
