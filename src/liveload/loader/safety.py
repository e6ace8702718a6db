"""Guards against reloading the permanent layer.

Reloading liveload itself (or any module the embedder marks as permanent)
would discard the registries and persistent state that must outlive
reloads, so such modules are never reloaded.
"""

from collections.abc import Iterable

from liveload.errors import LoadError


class ModuleGuard:
    """Refuses to reload protected modules and their submodules."""

    def __init__(self, protected_modules: Iterable[str] = ("liveload",)):
        self.protected_modules = list(protected_modules)

    def is_protected(self, module_name: str) -> bool:
        """Check if a module belongs to a protected package.

        Args:
            module_name: Dotted module name.

        Returns:
            True if the module is, or is inside, a protected module.
        """
        return any(
            module_name == protected or module_name.startswith(f"{protected}.")
            for protected in self.protected_modules
        )

    def check(self, module_name: str) -> None:
        """Raise LoadError if module_name is protected."""
        if self.is_protected(module_name):
            raise LoadError(module_name, "module is part of the permanent layer")
