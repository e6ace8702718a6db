"""Code-loading interface consumed by the reload engine."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any


class Loader(ABC):
    """Refreshes code units and resolves symbols inside them.

    The reload engine calls both methods from its coordination thread only.
    """

    @abstractmethod
    def refresh(self, locator: str) -> set[Path]:
        """Bring a code unit up to date with its source.

        Must be cheap and return an empty set when nothing changed.

        Returns:
            Source files that were (re)loaded.

        Raises:
            LoadError: If the unit cannot be read, compiled or executed.
                The previously loaded version must stay in effect.
        """

    @abstractmethod
    def resolve(self, locator: str, symbol: str) -> Any:
        """Return the value of symbol in a loaded unit.

        Raises:
            SymbolNotFound: If the unit does not define symbol.
        """
