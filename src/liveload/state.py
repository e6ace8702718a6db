"""Persistent state that survives reloads.

Reloading a module re-executes it, which resets every module-level
variable. Code that needs a value to outlive reloads asks the StateStore
for a named cell instead. The store lives in the permanent layer, so a
cell's identity and value are kept across any number of reloads.
"""

import logging
import threading
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class Cell:
    """A named mutable value. Safe to use from any thread."""

    def __init__(self, name: str, value: Any):
        self.name = name
        self._value = value
        self._lock = threading.RLock()

    def get(self) -> Any:
        with self._lock:
            return self._value

    def set(self, value: Any) -> None:
        with self._lock:
            self._value = value

    def update(self, fn: Callable[[Any], Any]) -> Any:
        """Replace the value with fn(value) atomically and return the new value."""
        with self._lock:
            self._value = fn(self._value)
            return self._value

    def __repr__(self) -> str:
        return f"Cell({self.name!r}, {self.get()!r})"


class StateStore:
    """Keyed registry of persistent cells.

    A cell is created on first access by running its initializer. The
    initializer runs at most once per name for the lifetime of the store,
    even when several threads race on the first access.
    """

    def __init__(self) -> None:
        self._cells: dict[str, Cell] = {}
        self._init_locks: dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def state(self, name: str, initializer: Callable[[], Any]) -> Cell:
        """Get the cell called name, creating it with initializer() if needed.

        Args:
            name: Globally unique cell name.
            initializer: Zero-argument function producing the initial value.

        Returns:
            The cell. Later calls with the same name return the same cell
            and ignore their initializer.
        """
        with self._lock:
            cell = self._cells.get(name)
            if cell is not None:
                return cell
            init_lock = self._init_locks.setdefault(name, threading.Lock())

        # The initializer runs outside the store lock so that it may itself
        # create other cells.
        with init_lock:
            with self._lock:
                cell = self._cells.get(name)
            if cell is not None:
                return cell

            value = initializer()
            cell = Cell(name, value)
            with self._lock:
                self._cells[name] = cell
                del self._init_locks[name]

        logger.debug(f"Initialized persistent state {name!r}")
        return cell

    def names(self) -> list[str]:
        with self._lock:
            return list(self._cells)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._cells

    def __len__(self) -> int:
        with self._lock:
            return len(self._cells)
