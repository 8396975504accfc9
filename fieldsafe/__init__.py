"""fieldsafe: type-driven input sanitization and output escaping with filter hooks."""

from __future__ import annotations

from fieldsafe.batch import BatchProcessor, merge_defaults
from fieldsafe.config import FieldsafeConfig
from fieldsafe.errors import ConfigurationError, FieldsafeError, InvalidTypeError
from fieldsafe.filters import FilterChain
from fieldsafe.lookup import TransformationLookup, default_lookup
from fieldsafe.registry import SanitizationRegistry
from fieldsafe.types import Stage, TypeEntry, TypeKind, build_type_mapping

__version__ = "1.0.0"
__all__ = [
    "BatchProcessor",
    "ConfigurationError",
    "FieldsafeConfig",
    "FieldsafeError",
    "FilterChain",
    "InvalidTypeError",
    "SanitizationRegistry",
    "Stage",
    "TransformationLookup",
    "TypeEntry",
    "TypeKind",
    "build_type_mapping",
    "default_lookup",
    "merge_defaults",
]
