"""Type-driven sanitize/escape registry with filter hooks at every stage."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from fieldsafe import escaping
from fieldsafe.config import FieldsafeConfig
from fieldsafe.errors import ConfigurationError, InvalidTypeError, Suggestion
from fieldsafe.filters import FilterChain
from fieldsafe.lookup import TransformationLookup, default_lookup
from fieldsafe.types import (
    Stage,
    TransformRef,
    TypeDescriptor,
    TypeEntry,
    TypeMapping,
    build_type_mapping,
    is_custom,
    is_explicit_pair,
    type_name,
)

logger = logging.getLogger("fieldsafe.registry")

MODIFY_TYPE_MAPPING = "modify_type_mapping"

# Registry methods that input-stage dispatch may reach by name.
BUILTIN_TRANSFORMATIONS = frozenset({"sanitize_js", "decode_js"})


class SanitizationRegistry:
    """Resolves and runs the sanitize (input) and escape (output) pipelines.

    Each pipeline fires, for a field ``key``:

    * ``sanitize_before_{stage}_{key}`` on the raw value,
    * ``custom_function_mapping_for_{stage}_{key}`` on the resolved
      transformation, so subscribers can swap it,
    * ``sanitize_custom_{stage}_{key}`` instead of a transformation when the
      field is declared ``"custom"``,
    * ``sanitize_after_{stage}_{key}`` on the result.

    Type names are looked up in the table returned by the
    ``modify_type_mapping`` filter, which receives a copy of the registry's
    table on every resolution.
    """

    def __init__(
        self,
        filters: FilterChain | None = None,
        type_mapping: Mapping[str, TypeEntry] | None = None,
        lookup: TransformationLookup | None = None,
        config: FieldsafeConfig | None = None,
    ) -> None:
        self.config = config or FieldsafeConfig()
        self.filters = filters if filters is not None else FilterChain()
        self.lookup = lookup if lookup is not None else default_lookup()
        if type_mapping is None:
            type_mapping = build_type_mapping(self.config)
        self._type_mapping: TypeMapping = {
            name: _coerce_entry(entry, name) for name, entry in type_mapping.items()
        }

    @property
    def type_mapping(self) -> TypeMapping:
        return dict(self._type_mapping)

    def effective_type_mapping(self) -> Mapping[str, Any]:
        mapping = self.filters.apply(MODIFY_TYPE_MAPPING, dict(self._type_mapping))
        if not isinstance(mapping, Mapping):
            raise ConfigurationError(
                f"{MODIFY_TYPE_MAPPING} filters must return a mapping, got {type(mapping).__name__}",
                code="E1002",
            )
        return mapping

    def resolve(self, key: str, descriptor: TypeDescriptor | None, stage: Stage | str) -> TransformRef | None:
        """Return the transformation for ``key`` at ``stage``, or None if unknown."""

        stage = Stage.coerce(stage)

        if is_explicit_pair(descriptor):
            entry = _coerce_entry(descriptor, key)
            if not entry.complete:
                raise ConfigurationError(
                    "type mapping missing input or output",
                    code="E1001",
                    key=key,
                    suggestion=Suggestion(
                        action="complete the type mapping",
                        fix="Provide both an 'input' and an 'output' transformation.",
                        example="{'input': sanitize_text_field, 'output': escape_html}",
                    ),
                )
            return entry.for_stage(stage)

        name = type_name(descriptor)
        if name is None:
            raise ConfigurationError(
                f"missing or unsupported type descriptor for key {key}",
                code="E1000",
                key=key,
                details={"descriptor": repr(descriptor)},
            )

        entry = self.effective_type_mapping().get(name)
        if entry is None:
            logger.debug("No %s transformation for type %r (key %r)", stage.value, name, key)
            return None
        return _coerce_entry(entry, name).for_stage(stage)

    def sanitize_input(self, data: Any, key: str, descriptor: TypeDescriptor | None) -> Any:
        data = self.filters.apply(f"sanitize_before_input_{key}", data)

        fn = self.resolve(key, descriptor, Stage.INPUT)
        fn = self.filters.apply(f"custom_function_mapping_for_input_{key}", fn)

        if is_custom(descriptor):
            data = self.filters.apply(f"sanitize_custom_input_{key}", data)
        elif callable(fn):
            data = fn(data)
        elif isinstance(fn, str) and fn in BUILTIN_TRANSFORMATIONS:
            data = getattr(self, fn)(data)
        elif isinstance(fn, str) and (resolved := self.lookup.resolve(fn)) is not None:
            data = resolved(data)
        else:
            raise InvalidTypeError(f"invalid input type for key {key}", key=key, details={"stage": "input"})

        return self.filters.apply(f"sanitize_after_input_{key}", data)

    def escape_output(self, data: Any, key: str, descriptor: TypeDescriptor | None) -> Any:
        # Unlike input, output never dispatches to the registry's own built-ins by name.
        data = self.filters.apply(f"sanitize_before_output_{key}", data)

        fn = self.resolve(key, descriptor, Stage.OUTPUT)
        fn = self.filters.apply(f"custom_function_mapping_for_output_{key}", fn)

        if is_custom(descriptor):
            data = self.filters.apply(f"sanitize_custom_output_{key}", data)
        elif callable(fn):
            data = fn(data)
        elif isinstance(fn, str) and (resolved := self.lookup.resolve(fn)) is not None:
            data = resolved(data)
        else:
            raise InvalidTypeError(f"invalid output type for key {key}", key=key, details={"stage": "output"})

        return self.filters.apply(f"sanitize_after_output_{key}", data)

    @staticmethod
    def sanitize_js(data: Any) -> Any:
        """Entity-encode ``& < > " '`` to neutralize script injection."""
        return escaping.escape_html(data)

    @staticmethod
    def decode_js(encoded: Any) -> Any:
        """Reverse ``sanitize_js``."""
        return escaping.decode_entities(encoded)


def _coerce_entry(entry: Any, name: str) -> TypeEntry:
    if isinstance(entry, TypeEntry):
        return entry
    if isinstance(entry, Mapping):
        return TypeEntry.from_mapping(entry)
    raise ConfigurationError(
        f"type mapping for {name!r} must be a TypeEntry or a mapping with 'input' and 'output'",
        code="E1002",
        key=name,
        details={"entry": repr(entry)},
    )

