"""Exception taxonomy for liveload.

Registry misuse and value access errors are raised synchronously at the
call site. Errors that happen during a reload pass never escape the
coordination thread; they are recorded on the failed ReloadOutcome.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from liveload.registry import EntryPoint


class LiveloadError(Exception):
    """Base class for every error raised by liveload."""


class LoadError(LiveloadError):
    """Raised by a loader when a code unit cannot be refreshed."""

    def __init__(self, locator: str, reason: str):
        self.locator = locator
        self.reason = reason
        super().__init__(f"Failed to load {locator}: {reason}")


class SymbolNotFound(LiveloadError):
    """Raised by a loader when a unit does not export a symbol."""

    def __init__(self, locator: str, symbol: str):
        self.locator = locator
        self.symbol = symbol
        super().__init__(f"{locator} has no attribute {symbol!r}")


class SymbolUnresolved(LiveloadError):
    """An entry point's symbol is missing after a reload and it has no fallback."""

    def __init__(self, entry: EntryPoint):
        self.entry = entry
        super().__init__(
            f"Entry point {entry.name!r}: {entry.locator} does not define "
            f"{entry.symbol!r} and no fallback was given"
        )


class EntryPointNotFound(LiveloadError):
    """Raised by lookup when no entry point was registered for the pair."""

    def __init__(self, name: str, locator: str):
        self.name = name
        self.locator = locator
        super().__init__(f"No entry point {name!r} registered for {locator}")


class DuplicateRegistration(LiveloadError):
    """Raised when a pair is registered again with a different binding."""

    def __init__(self, name: str, locator: str, detail: str):
        self.name = name
        self.locator = locator
        super().__init__(
            f"Entry point {name!r} for {locator} is already registered: {detail}"
        )


class Unresolved(LiveloadError):
    """Raised when an entry point is read before any successful reload."""

    def __init__(self, entry: EntryPoint):
        self.entry = entry
        super().__init__(
            f"Entry point {entry.name!r} ({entry.locator}) has no value yet; "
            "call reload() at least once before using it"
        )


class NotCallable(LiveloadError):
    """Raised when a LiveCallable's current value cannot be invoked."""

    def __init__(self, entry: EntryPoint):
        self.entry = entry
        super().__init__(
            f"Entry point {entry.name!r} ({entry.locator}) is bound to a "
            "non-callable value"
        )


class EngineStopped(LiveloadError):
    """Raised when a reload is requested from an engine that was stopped."""

    def __init__(self) -> None:
        super().__init__("Reload engine has been stopped")
