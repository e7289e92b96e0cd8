"""Per-run registry of loaded test and required modules."""

from __future__ import annotations

import hashlib
import importlib
import importlib.machinery
import importlib.util
import logging
import sys
from collections.abc import Callable, Sequence
from pathlib import Path
from types import CodeType, ModuleType

from bmocha.errors import ResolutionError

Loader = Callable[[], ModuleType]

logger = logging.getLogger(__name__)


class _SourceOnlyLoader(importlib.machinery.SourceFileLoader):
    """Source file loader that never reads or writes the bytecode cache."""

    def get_code(self, fullname: str) -> CodeType:
        source_path = self.get_filename(fullname)
        return self.source_to_code(self.get_data(source_path), source_path)


class ModuleRegistry:
    """Modules loaded from files during one run, keyed by resolved path."""

    def __init__(self) -> None:
        self._modules: dict[Path, ModuleType] = {}

    def invalidate(self, path: Path) -> None:
        """Forget any previously loaded state for `path`."""
        resolved = path.resolve()
        module = self._modules.pop(resolved, None)
        sys.modules.pop(module_name_for(resolved), None)
        if module is not None:
            logger.debug("invalidated %s", resolved)

    def load(self, path: Path) -> ModuleType:
        """Execute the file at `path` as a fresh module and register it."""
        resolved = path.resolve()
        name = module_name_for(resolved)
        spec = importlib.util.spec_from_file_location(
            name, resolved, loader=_SourceOnlyLoader(name, str(resolved))
        )
        if spec is None or spec.loader is None:
            raise ResolutionError(f"Could not find {resolved}.")
        module = importlib.util.module_from_spec(spec)
        sys.modules[name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(name, None)
            raise
        self._modules[resolved] = module
        logger.debug("loaded %s", resolved)
        return module

    def loader_for(self, path: Path) -> Loader:
        """Return a thunk that reloads `path` from disk on every call."""

        def _load_test_file() -> ModuleType:
            self.invalidate(path)
            try:
                return self.load(path)
            except FileNotFoundError as exc:
                raise ResolutionError(f"Could not find {path}.") from exc
            except ModuleNotFoundError as exc:
                raise ResolutionError(
                    f"Could not load {path}: module '{exc.name}' not found."
                ) from exc

        return _load_test_file


def module_name_for(path: Path) -> str:
    """Build a stable, unique module name for a test file path."""
    digest = hashlib.sha1(str(path).encode("utf-8")).hexdigest()[:12]
    return f"_bmocha_{path.stem}_{digest}"


def require_modules(entries: Sequence[str], registry: ModuleRegistry) -> list[ModuleType]:
    """Load required modules in command-line order.

    Absolute paths are executed through the registry (a directory runs its
    `__init__.py`); anything else is imported by module name. An entry that
    cannot be found raises `ResolutionError` naming it.
    """
    modules = []
    for entry in entries:
        try:
            modules.append(_require(entry, registry))
        except FileNotFoundError as exc:
            raise ResolutionError(f"Could not find required module {entry}.") from exc
        except ModuleNotFoundError as exc:
            if exc.name != entry:
                raise
            raise ResolutionError(f"Could not find required module {entry}.") from exc
    return modules


def _require(entry: str, registry: ModuleRegistry) -> ModuleType:
    candidate = Path(entry)
    if not candidate.is_absolute():
        return importlib.import_module(entry)
    if candidate.is_dir():
        candidate = candidate / "__init__.py"
    return registry.load(candidate)


def extend_module_search_path(cwd: Path) -> None:
    """Make modules under the working directory importable by bare name."""
    for entry in (cwd / "src", cwd):
        text = str(entry)
        if text not in sys.path:
            sys.path.insert(0, text)
