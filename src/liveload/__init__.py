"""liveload - replace code in a running process without restarting it.

Permanent code registers entry points into reloadable modules and calls
through them; the reload engine refreshes those modules on demand or on a
timer, and persistent state cells carry values across reloads.

The module-level functions below use the process-wide default runtime.
"""

from liveload.adapter import LiveCallable
from liveload.config import ReloadConfig
from liveload.engine import ReloadEngine, ReloadOutcome, ReloadStatus, ReloadTrigger
from liveload.errors import (
    DuplicateRegistration,
    EngineStopped,
    EntryPointNotFound,
    LiveloadError,
    LoadError,
    NotCallable,
    SymbolNotFound,
    SymbolUnresolved,
    Unresolved,
)
from liveload.hooks import HookHandle, HookRegistry
from liveload.loader import Loader, ModuleLoader
from liveload.records import Record
from liveload.registry import FAIL, EntryPoint, EntryPointRegistry, EntryValue, ValueKind
from liveload.runtime import Runtime, default_runtime
from liveload.state import Cell, StateStore

__version__ = "0.1.0"

entry_point = default_runtime.entry_point
procedure = default_runtime.procedure
lookup = default_runtime.lookup
state = default_runtime.state
reload = default_runtime.reload
areload = default_runtime.areload
set_poll_interval = default_runtime.set_poll_interval
set_failure_retry_delay = default_runtime.set_failure_retry_delay
add_hook = default_runtime.add_hook
remove_hook = default_runtime.remove_hook

__all__ = [
    "FAIL",
    "Cell",
    "DuplicateRegistration",
    "EngineStopped",
    "EntryPoint",
    "EntryPointNotFound",
    "EntryPointRegistry",
    "EntryValue",
    "HookHandle",
    "HookRegistry",
    "LiveCallable",
    "LiveloadError",
    "LoadError",
    "Loader",
    "ModuleLoader",
    "NotCallable",
    "Record",
    "ReloadConfig",
    "ReloadEngine",
    "ReloadOutcome",
    "ReloadStatus",
    "ReloadTrigger",
    "Runtime",
    "StateStore",
    "SymbolNotFound",
    "SymbolUnresolved",
    "Unresolved",
    "ValueKind",
    "add_hook",
    "areload",
    "default_runtime",
    "entry_point",
    "lookup",
    "procedure",
    "reload",
    "remove_hook",
    "set_failure_retry_delay",
    "set_poll_interval",
    "state",
]
