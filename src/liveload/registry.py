"""Entry-point registry.

An entry point names a symbol inside a reloadable code unit. Permanent code
holds on to the EntryPoint (or a LiveCallable built from it) and always sees
the value bound by the most recent successful reload.
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from liveload.errors import DuplicateRegistration, EntryPointNotFound, Unresolved
from liveload.loader import normalize_locator

if TYPE_CHECKING:
    from liveload.adapter import LiveCallable

logger = logging.getLogger(__name__)


class _Fail:
    """Fallback policy: a missing symbol fails the whole reload pass."""

    _instance: "_Fail | None" = None

    def __new__(cls) -> "_Fail":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "FAIL"


FAIL: Any = _Fail()


class ValueKind(str, Enum):
    """How a resolved entry-point value may be used."""

    CALLABLE = "callable"
    OPAQUE = "opaque"


@dataclass(frozen=True)
class EntryValue:
    """A resolved entry-point value tagged with its kind."""

    kind: ValueKind
    value: Any

    @classmethod
    def of(cls, value: Any) -> "EntryValue":
        kind = ValueKind.CALLABLE if callable(value) else ValueKind.OPAQUE
        return cls(kind=kind, value=value)


@dataclass(eq=False)
class EntryPoint:
    """A named binding to a symbol in a reloadable code unit.

    Only the reload engine writes the current value, and only after a
    fully successful pass.
    """

    name: str
    locator: str
    symbol: str
    fallback: Any = FAIL
    _current: EntryValue | None = field(default=None, repr=False)

    @property
    def key(self) -> tuple[str, str]:
        return (self.locator, self.name)

    @property
    def has_fallback(self) -> bool:
        return self.fallback is not FAIL

    @property
    def resolved(self) -> bool:
        return self._current is not None

    @property
    def current(self) -> EntryValue:
        """The tagged current value.

        Raises:
            Unresolved: If no reload has succeeded since registration.
        """
        current = self._current
        if current is None:
            raise Unresolved(self)
        return current

    @property
    def value(self) -> Any:
        """The raw current value. Raises Unresolved before the first reload."""
        return self.current.value

    def as_callable(self) -> "LiveCallable":
        from liveload.adapter import LiveCallable

        return LiveCallable(self)


class EntryPointRegistry:
    """Process-wide map of (locator, name) to EntryPoint.

    Registering a pair that already exists with the same symbol and fallback
    returns the existing entry. Registering it with a different symbol or
    fallback raises DuplicateRegistration.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], EntryPoint] = {}
        self._lock = threading.Lock()
        self._generation = 0

    def register(
        self,
        name: str,
        locator: str | Path,
        symbol: str | None = None,
        fallback: Any = FAIL,
    ) -> EntryPoint:
        """Look up or create an entry point. Never loads any code.

        Args:
            name: Logical name of the entry point.
            locator: Dotted module name or path to a .py file.
            symbol: Attribute to resolve in the unit (defaults to name).
            fallback: Value used when the symbol is missing after a reload;
                FAIL makes a missing symbol fail the pass.

        Returns:
            The entry point for (locator, name).

        Raises:
            DuplicateRegistration: If the pair exists with a different binding.
        """
        locator = normalize_locator(locator)
        symbol = symbol or name
        key = (locator, name)

        with self._lock:
            existing = self._entries.get(key)
            if existing is None:
                entry = EntryPoint(name=name, locator=locator, symbol=symbol, fallback=fallback)
                self._entries[key] = entry
                logger.debug(f"Registered entry point {name!r} -> {locator}:{symbol}")
                return entry

        if existing.symbol != symbol:
            raise DuplicateRegistration(
                name, locator, f"bound to symbol {existing.symbol!r}, not {symbol!r}"
            )
        if not (existing.fallback is fallback or existing.fallback == fallback):
            raise DuplicateRegistration(
                name, locator, f"fallback is {existing.fallback!r}, not {fallback!r}"
            )
        return existing

    def lookup(self, name: str, locator: str | Path) -> EntryPoint:
        """Return a registered entry point.

        Raises:
            EntryPointNotFound: If (locator, name) was never registered.
        """
        locator = normalize_locator(locator)
        with self._lock:
            entry = self._entries.get((locator, name))
        if entry is None:
            raise EntryPointNotFound(name, locator)
        return entry

    def current_value(self, entry: EntryPoint) -> Any:
        """Return the entry's current value. Raises Unresolved before the first reload."""
        return entry.value

    def entries(self) -> list[EntryPoint]:
        with self._lock:
            return list(self._entries.values())

    def locators(self) -> list[str]:
        """Distinct locators referenced by entry points, in registration order."""
        with self._lock:
            return list(dict.fromkeys(locator for locator, _ in self._entries))

    def commit(self, values: dict[EntryPoint, EntryValue]) -> int:
        """Install the values of one reload pass in a single step.

        Returns:
            The new registry generation.
        """
        with self._lock:
            for entry, value in values.items():
                entry._current = value
            self._generation += 1
            return self._generation

    @property
    def generation(self) -> int:
        """Number of successful commits so far."""
        with self._lock:
            return self._generation

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
