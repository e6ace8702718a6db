"""Stable call handles for reloadable procedures."""

from typing import Any

from liveload.errors import NotCallable
from liveload.registry import EntryPoint, ValueKind


class LiveCallable:
    """Calls whatever procedure an entry point is bound to right now.

    The target is looked up on every call, not when the handle is created,
    so a LiveCallable held by permanent code keeps working across reloads.
    Calls already running when a reload commits finish on the old code.
    """

    __slots__ = ("entry",)

    def __init__(self, entry: EntryPoint):
        self.entry = entry

    @property
    def target(self) -> Any:
        """The procedure a call would invoke right now.

        Raises:
            Unresolved: If no reload has succeeded yet.
            NotCallable: If the current value is not callable.
        """
        current = self.entry.current
        if current.kind is not ValueKind.CALLABLE:
            raise NotCallable(self.entry)
        return current.value

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.target(*args, **kwargs)

    def __repr__(self) -> str:
        return f"<LiveCallable {self.entry.name!r} from {self.entry.locator}>"
