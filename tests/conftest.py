"""Shared test fixtures for fieldsafe tests."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from fieldsafe import BatchProcessor, FieldsafeConfig, FilterChain, SanitizationRegistry


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep FIELDSAFE_* variables from the host out of every test."""
    for key in list(os.environ):
        if key.startswith("FIELDSAFE_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def config(tmp_path: Path) -> FieldsafeConfig:
    """Provide a configuration built from defaults only."""
    return FieldsafeConfig(project_file=tmp_path / "pyproject.toml")


@pytest.fixture
def filters() -> FilterChain:
    return FilterChain()


@pytest.fixture
def registry(filters: FilterChain, config: FieldsafeConfig) -> SanitizationRegistry:
    """Provide a fresh registry with its own filter chain."""
    return SanitizationRegistry(filters=filters, config=config)


@pytest.fixture
def processor(registry: SanitizationRegistry) -> BatchProcessor:
    return BatchProcessor(registry)
