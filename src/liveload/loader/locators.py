"""Code-unit locators: dotted module names or .py file paths."""

import os
from pathlib import Path


def is_file_locator(locator: str | Path) -> bool:
    """Check if a locator names a source file rather than a module."""
    if isinstance(locator, Path):
        return True
    return locator.endswith(".py") or "/" in locator or os.sep in locator


def normalize_locator(locator: str | Path) -> str:
    """Canonical form of a locator: absolute path for files, name for modules."""
    if is_file_locator(locator):
        return str(Path(locator).expanduser().resolve())
    return str(locator)
