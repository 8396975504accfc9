"""Resolve transformation names to callables."""

from __future__ import annotations

import importlib
import logging
import threading
from typing import Any, Callable

from fieldsafe.escaping import TRANSFORMATIONS

logger = logging.getLogger("fieldsafe.lookup")


def _split_import_path(raw: str) -> tuple[str, str] | None:
    if ":" in raw:
        module_name, attr = raw.split(":", 1)
    elif "." in raw:
        module_name, attr = raw.rsplit(".", 1)
    else:
        return None
    module_name, attr = module_name.strip(), attr.strip()
    if not module_name or not attr:
        return None
    return module_name, attr


class TransformationLookup:
    """Named transformations, falling back to ``module:function`` import paths.

    ``resolve`` reports failure by returning ``None``; deciding whether a
    missing transformation is fatal is left to the caller.

    The import fallback resolves *any* importable callable, ``os.system``
    included, and importing a module runs its top-level code. Names reach
    ``resolve`` from type descriptors and filter callbacks, so only pass
    references you control. Construct with ``allow_imports=False`` to limit
    resolution to registered names.
    """

    def __init__(
        self,
        transformations: dict[str, Callable[[Any], Any]] | None = None,
        allow_imports: bool = True,
    ) -> None:
        self._transformations: dict[str, Callable[[Any], Any]] = dict(transformations or {})
        self.allow_imports = allow_imports
        self._lock = threading.Lock()

    def register(self, name: str, fn: Callable[[Any], Any]) -> None:
        if not callable(fn):
            raise TypeError(f"Transformation '{name}' must be callable, got {type(fn).__name__}.")
        with self._lock:
            self._transformations[name] = fn

    def unregister(self, name: str) -> bool:
        with self._lock:
            return self._transformations.pop(name, None) is not None

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._transformations)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.resolve(name) is not None

    def resolve(self, name: str) -> Callable[[Any], Any] | None:
        with self._lock:
            fn = self._transformations.get(name)
        if fn is not None:
            return fn

        if not self.allow_imports:
            logger.debug("No transformation registered as %r", name)
            return None

        target = _split_import_path(name)
        if target is None:
            logger.debug("No transformation registered as %r", name)
            return None

        module_name, attr = target
        try:
            module = importlib.import_module(module_name)
        except (ImportError, TypeError, ValueError) as e:
            logger.debug("Could not import %r for transformation %r: %s", module_name, name, e)
            return None
        fn = getattr(module, attr, None)
        if not callable(fn):
            logger.debug("Module %r has no callable %r", module_name, attr)
            return None
        return fn


def default_lookup(allow_imports: bool = True) -> TransformationLookup:
    return TransformationLookup(TRANSFORMATIONS, allow_imports=allow_imports)
