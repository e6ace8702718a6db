"""Pytest configuration and fixtures."""

import os
import sys
import threading
import time
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any
from uuid import uuid4

import pytest

from liveload.config import ReloadConfig
from liveload.errors import LoadError, SymbolNotFound
from liveload.loader import Loader
from liveload.runtime import Runtime


class SourceTree:
    """A throwaway importable package under tmp_path."""

    def __init__(self, root: Path, package: str):
        self.root = root
        self.package = package
        self.package_dir = root / package
        self.package_dir.mkdir(parents=True)
        (self.package_dir / "__init__.py").write_text("")

    def module(self, name: str) -> str:
        """Dotted name of a module inside the package."""
        return f"{self.package}.{name}" if name else self.package

    def write(self, relpath: str, text: str) -> Path:
        """Write a source file, making sure its mtime moves forward."""
        path = self.package_dir / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        old_mtime = path.stat().st_mtime_ns if path.exists() else None
        path.write_text(text)
        if old_mtime is not None:
            # Filesystem timestamps can be coarser than back-to-back writes
            new_mtime = max(path.stat().st_mtime_ns, old_mtime + 1_000_000_000)
            os.utime(path, ns=(new_mtime, new_mtime))
        return path.resolve()


@pytest.fixture
def source_tree(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[SourceTree]:
    """Create a uniquely named package and put it on sys.path."""
    root = tmp_path / "src"
    tree = SourceTree(root, f"livetest_{uuid4().hex[:8]}")
    monkeypatch.syspath_prepend(str(root))

    yield tree

    for name in [n for n in sys.modules if n == tree.package or n.startswith(f"{tree.package}.")]:
        del sys.modules[name]


@pytest.fixture
def runtime() -> Iterator[Runtime]:
    """An isolated runtime with automatic reloading disabled."""
    rt = Runtime(config=ReloadConfig(poll_interval=None, history_size=1000))
    yield rt
    rt.stop(timeout=5)


class FakeLoader(Loader):
    """In-memory loader whose units, failures and timing tests control.

    define() stages new symbols for a unit; they take effect on the next
    refresh, which reports the staged files as changed.
    """

    def __init__(self) -> None:
        self.units: dict[str, dict[str, Any]] = {}
        self.staged: dict[str, tuple[dict[str, Any], set[Path]]] = {}
        self.broken: dict[str, BaseException] = {}
        self.delay = 0.0
        self.refresh_calls: list[str] = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def define(self, locator: str, files: tuple[str, ...] = ("unit.py",), **symbols: Any) -> None:
        self.staged[locator] = (symbols, {Path(f"/src/{locator}/{f}") for f in files})

    def break_unit(self, locator: str, error: BaseException | None = None) -> None:
        self.broken[locator] = error or LoadError(locator, "SyntaxError: invalid syntax")

    def fix_unit(self, locator: str) -> None:
        self.broken.pop(locator, None)

    def refresh(self, locator: str) -> set[Path]:
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.refresh_calls.append(locator)
        try:
            if self.delay:
                time.sleep(self.delay)
            if locator in self.broken:
                raise self.broken[locator]
            if locator not in self.staged:
                return set()
            symbols, files = self.staged.pop(locator)
            self.units[locator] = dict(symbols)
            return files
        finally:
            with self._lock:
                self.active -= 1

    def resolve(self, locator: str, symbol: str) -> Any:
        try:
            return self.units[locator][symbol]
        except KeyError:
            raise SymbolNotFound(locator, symbol) from None


@pytest.fixture
def fake_loader() -> FakeLoader:
    return FakeLoader()


@pytest.fixture
def fake_runtime(fake_loader: FakeLoader) -> Iterator[Runtime]:
    """A runtime driven by the in-memory loader, polling disabled."""
    rt = Runtime(loader=fake_loader, config=ReloadConfig(poll_interval=None, history_size=1000))
    yield rt
    rt.stop(timeout=5)


def _wait_until(
    predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.01
) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def wait_until() -> Callable[..., bool]:
    """Poll a predicate until it holds or the timeout expires."""
    return _wait_until
