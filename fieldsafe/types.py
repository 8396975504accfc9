"""Field type descriptors and the default type table."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Union

from fieldsafe import escaping
from fieldsafe.config import FieldsafeConfig
from fieldsafe.errors import ConfigurationError

# A callable, or the name of one resolved at dispatch time.
TransformRef = Union[Callable[[Any], Any], str]


class Stage(str, Enum):
    INPUT = "input"
    OUTPUT = "output"

    @classmethod
    def coerce(cls, value: Stage | str) -> Stage:
        try:
            return cls(value)
        except ValueError:
            raise ConfigurationError(
                f"unknown stage {value!r}; expected 'input' or 'output'",
                code="E1004",
            ) from None


class TypeKind(str, Enum):
    """Named field types known to the default table, plus the custom marker."""

    TEXT = "text"
    TEXTAREA = "textarea"
    EMAIL = "email"
    URL = "url"
    KEY = "key"
    FILENAME = "filename"
    HTML = "html"
    JS = "js"
    ATTRIBUTE = "attribute"
    CUSTOM = "custom"


@dataclass(frozen=True)
class TypeEntry:
    """An input (sanitize) and output (escape) transformation pair."""

    input: TransformRef | None
    output: TransformRef | None

    def for_stage(self, stage: Stage | str) -> TransformRef | None:
        return self.input if Stage.coerce(stage) is Stage.INPUT else self.output

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> TypeEntry:
        return cls(input=mapping.get("input"), output=mapping.get("output"))

    @property
    def complete(self) -> bool:
        return self.input is not None and self.output is not None


TypeMapping = dict[str, TypeEntry]

# A type name, the custom marker, or an explicit per-field pair.
TypeDescriptor = Union[str, TypeKind, TypeEntry, Mapping[str, Any]]


def is_custom(descriptor: Any) -> bool:
    return isinstance(descriptor, str) and descriptor == TypeKind.CUSTOM.value


def is_explicit_pair(descriptor: Any) -> bool:
    return isinstance(descriptor, (TypeEntry, Mapping))


def type_name(descriptor: Any) -> str | None:
    if isinstance(descriptor, TypeKind):
        return descriptor.value
    if isinstance(descriptor, str):
        return descriptor
    return None


def build_type_mapping(config: FieldsafeConfig | None = None) -> TypeMapping:
    """Return a fresh default table with URL and HTML policies from ``config``."""

    config = config or FieldsafeConfig()
    schemes = tuple(config.url_allowed_schemes)
    sanitize_url = functools.partial(escaping.sanitize_url, protocols=schemes)
    escape_url = functools.partial(escaping.escape_url, protocols=schemes)
    filter_html = functools.partial(
        escaping.filter_html,
        tags=tuple(config.html_allowed_tags),
        attributes=config.html_allowed_attributes,
        protocols=schemes,
    )

    return {
        TypeKind.TEXT.value: TypeEntry(escaping.sanitize_text_field, escaping.escape_html),
        TypeKind.TEXTAREA.value: TypeEntry(escaping.sanitize_textarea_field, escaping.escape_textarea),
        TypeKind.EMAIL.value: TypeEntry(escaping.sanitize_email, escaping.escape_html),
        TypeKind.URL.value: TypeEntry(sanitize_url, escape_url),
        TypeKind.KEY.value: TypeEntry(escaping.sanitize_key, escaping.escape_html),
        TypeKind.FILENAME.value: TypeEntry(escaping.sanitize_file_name, escaping.escape_attr),
        TypeKind.HTML.value: TypeEntry(filter_html, escaping.escape_html),
        # Resolved by name against the registry's own built-ins.
        TypeKind.JS.value: TypeEntry("sanitize_js", escaping.escape_js),
        TypeKind.ATTRIBUTE.value: TypeEntry(escaping.sanitize_text_field, escaping.escape_attr),
    }
