"""Merge defaults with caller values and run every field through the registry."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from fieldsafe.errors import ConfigurationError
from fieldsafe.registry import SanitizationRegistry
from fieldsafe.types import TypeDescriptor

MergeFn = Callable[[Mapping[str, Any], Mapping[str, Any] | None], dict[str, Any]]


def merge_defaults(defaults: Mapping[str, Any], overrides: Mapping[str, Any] | None) -> dict[str, Any]:
    """Overlay ``overrides`` on ``defaults``.

    The result has exactly the keys of ``defaults``, in their order. Override
    keys that are not declared in ``defaults`` are dropped.
    """

    overrides = overrides or {}
    return {key: overrides[key] if key in overrides else value for key, value in defaults.items()}


class BatchProcessor:
    """Sanitizes (and optionally escapes) a whole set of attributes at once."""

    def __init__(self, registry: SanitizationRegistry | None = None, merge: MergeFn = merge_defaults) -> None:
        self.registry = registry if registry is not None else SanitizationRegistry()
        self.merge = merge

    def merge_and_sanitize(
        self,
        defaults: Mapping[str, Any],
        overrides: Mapping[str, Any] | None,
        types_by_key: Mapping[str, TypeDescriptor],
    ) -> dict[str, Any]:
        merged = self.merge(defaults, overrides)
        for key, value in merged.items():
            merged[key] = self.registry.sanitize_input(value, key, _descriptor_for(types_by_key, key))
        return merged

    def merge_sanitize_and_escape(
        self,
        defaults: Mapping[str, Any],
        overrides: Mapping[str, Any] | None,
        types_by_key: Mapping[str, TypeDescriptor],
    ) -> dict[str, Any]:
        sanitized = self.merge_and_sanitize(defaults, overrides, types_by_key)
        for key, value in sanitized.items():
            sanitized[key] = self.registry.escape_output(value, key, _descriptor_for(types_by_key, key))
        return sanitized


def _descriptor_for(types_by_key: Mapping[str, TypeDescriptor], key: str) -> TypeDescriptor:
    if key not in types_by_key or types_by_key[key] is None:
        raise ConfigurationError(
            f"no type declared for key {key}",
            code="E1005",
            key=key,
            details={"declared": sorted(types_by_key)},
        )
    return types_by_key[key]
