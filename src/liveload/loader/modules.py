"""Loader backed by Python's import system.

A code unit is either a dotted module name or the path of a .py file.
A module unit that is a package also covers every loaded submodule.

Reloads are transactional. The unit's modules are taken out of sys.modules
and imported again as new module objects; if anything raises, the previous
module objects are put back, so the old code stays in effect.
"""

import contextlib
import hashlib
import importlib
import importlib.util
import logging
import sys
from collections.abc import Iterable
from pathlib import Path
from types import ModuleType
from typing import Any

from liveload.errors import LoadError, SymbolNotFound
from liveload.loader.interface import Loader
from liveload.loader.locators import is_file_locator, normalize_locator
from liveload.loader.safety import ModuleGuard
from liveload.loader.tracker import SourceTracker

logger = logging.getLogger(__name__)

_MISSING = object()


def _source_path(module: ModuleType) -> Path | None:
    """Path of a module's .py source, or None for builtins and extensions."""
    file = getattr(module, "__file__", None)
    if not file or not file.endswith(".py"):
        return None
    return Path(file).resolve()


def _discard_bytecode(path: Path) -> None:
    """Remove cached bytecode so an edit within the same second is not missed."""
    with contextlib.suppress(NotImplementedError, OSError):
        Path(importlib.util.cache_from_source(str(path))).unlink(missing_ok=True)


class ModuleLoader(Loader):
    """Loads and reloads modules and source files.

    A unit that is already imported when first refreshed is only
    fingerprinted; it is re-executed once one of its files changes.
    """

    def __init__(self, protected_modules: Iterable[str] = ("liveload",)):
        self.guard = ModuleGuard(protected_modules)
        self.tracker = SourceTracker()
        self._seen: set[str] = set()

    def refresh(self, locator: str) -> set[Path]:
        locator = normalize_locator(locator)
        if is_file_locator(locator):
            return self._refresh_file(Path(locator))
        return self._refresh_module(locator)

    def resolve(self, locator: str, symbol: str) -> Any:
        """Return symbol from a loaded unit. Dotted symbols walk attributes."""
        value: Any = self.module_for(locator)
        for part in symbol.split("."):
            try:
                value = getattr(value, part)
            except AttributeError:
                raise SymbolNotFound(locator, symbol) from None
        return value

    def module_for(self, locator: str) -> ModuleType:
        """Return the module object currently loaded for a unit.

        Raises:
            LoadError: If the unit has not been loaded.
        """
        locator = normalize_locator(locator)
        name = self.file_module_name(Path(locator)) if is_file_locator(locator) else locator
        module = sys.modules.get(name)
        if module is None:
            raise LoadError(locator, "unit has not been loaded")
        return module

    def imported_elsewhere(self, locator: str) -> bool:
        """True for a module unit imported before this loader first saw it.

        Refreshing such a unit only fingerprints it; it is not re-executed.
        """
        locator = normalize_locator(locator)
        if is_file_locator(locator) or locator in self._seen:
            return False
        return locator in sys.modules

    @staticmethod
    def file_module_name(path: Path) -> str:
        """Name under which a source file unit is kept in sys.modules."""
        digest = hashlib.sha1(str(path).encode()).hexdigest()[:10]
        stem = "".join(c if c.isalnum() else "_" for c in path.stem)
        return f"liveload_unit_{stem}_{digest}"

    # Module units

    def _unit_names(self, name: str) -> list[str]:
        prefix = f"{name}."
        return [n for n in list(sys.modules) if n == name or n.startswith(prefix)]

    def _unit_sources(self, names: Iterable[str]) -> dict[str, Path]:
        sources: dict[str, Path] = {}
        for name in names:
            module = sys.modules.get(name)
            path = _source_path(module) if module is not None else None
            if path is not None:
                sources[name] = path
        return sources

    def _refresh_module(self, name: str) -> set[Path]:
        self.guard.check(name)

        if name in sys.modules and name not in self._seen:
            # Imported by someone else before we saw it: take it as current
            sources = self._unit_sources(self._unit_names(name))
            self.tracker.record(sources.values())
            self._seen.add(name)
            logger.debug(f"Tracking {name} ({len(sources)} source files)")
            return set()

        if name in sys.modules:
            sources = self._unit_sources(self._unit_names(name))
            changed = self.tracker.changed(sources.values())
            if not changed:
                return set()
            logger.info(f"Source changed in {name}: {', '.join(sorted(p.name for p in changed))}")

        files = self._reimport(name)
        self._seen.add(name)
        return files

    def _reimport(self, name: str) -> set[Path]:
        """Import a module unit afresh, restoring the old modules on failure."""
        previous = {n: sys.modules[n] for n in self._unit_names(name)}
        old_sources = self._unit_sources(previous)

        parent_name, _, child = name.rpartition(".")
        parent = sys.modules.get(parent_name) if parent_name else None
        parent_attr = getattr(parent, child, _MISSING) if parent is not None else _MISSING

        for path in old_sources.values():
            _discard_bytecode(path)
        for n in previous:
            del sys.modules[n]
        importlib.invalidate_caches()

        try:
            importlib.import_module(name)
            # Submodules the package did not import itself
            for n in sorted(previous, key=lambda n: n.count(".")):
                if n in sys.modules:
                    continue
                path = old_sources.get(n)
                if path is not None and not path.exists():
                    logger.debug(f"Not re-importing {n}: {path} was removed")
                    continue
                importlib.import_module(n)
        except BaseException as e:
            # SystemExit from module code is a failed load, not a process exit
            for n in self._unit_names(name):
                del sys.modules[n]
            sys.modules.update(previous)
            if parent is not None:
                if parent_attr is _MISSING:
                    with contextlib.suppress(AttributeError):
                        delattr(parent, child)
                else:
                    setattr(parent, child, parent_attr)
            if isinstance(e, KeyboardInterrupt):
                raise
            raise LoadError(name, f"{type(e).__name__}: {e}") from e

        sources = self._unit_sources(self._unit_names(name))
        self.tracker.forget(set(old_sources.values()) - set(sources.values()))
        self.tracker.record(sources.values())
        logger.debug(f"Loaded {name} ({len(sources)} source files)")
        return set(sources.values())

    # File units

    def _refresh_file(self, path: Path) -> set[Path]:
        module_name = self.file_module_name(path)
        locator = str(path)

        if module_name in sys.modules and self.tracker.is_known(path):
            if not self.tracker.changed([path]):
                return set()
            logger.info(f"Source changed: {path}")

        if not path.is_file():
            raise LoadError(locator, "file not found")

        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise LoadError(locator, "could not create a module spec")

        previous = sys.modules.get(module_name)
        _discard_bytecode(path)
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module

        try:
            spec.loader.exec_module(module)
        except BaseException as e:
            if previous is None:
                del sys.modules[module_name]
            else:
                sys.modules[module_name] = previous
            if isinstance(e, KeyboardInterrupt):
                raise
            raise LoadError(locator, f"{type(e).__name__}: {e}") from e

        self.tracker.record([path])
        self._seen.add(locator)
        logger.debug(f"Loaded {path}")
        return {path}
