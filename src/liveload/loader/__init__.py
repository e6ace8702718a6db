"""Code loading for reloadable units.

The reload engine only talks to the Loader interface. ModuleLoader is the
implementation backed by Python's import system.
"""

from liveload.loader.interface import Loader
from liveload.loader.locators import is_file_locator, normalize_locator
from liveload.loader.modules import ModuleLoader
from liveload.loader.safety import ModuleGuard
from liveload.loader.tracker import Fingerprint, SourceTracker

__all__ = [
    "Fingerprint",
    "Loader",
    "ModuleGuard",
    "ModuleLoader",
    "SourceTracker",
    "is_file_locator",
    "normalize_locator",
]
