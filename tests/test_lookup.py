"""Tests for named transformation lookup."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from fieldsafe import InvalidTypeError, SanitizationRegistry, TransformationLookup, default_lookup
from fieldsafe.escaping import TRANSFORMATIONS, escape_html


def test_default_lookup_contains_default_transformations() -> None:
    lookup = default_lookup()

    assert lookup.names() == sorted(TRANSFORMATIONS)
    assert lookup.resolve("escape_html") is escape_html


def test_default_lookup_excludes_registry_builtins() -> None:
    lookup = default_lookup()

    assert lookup.resolve("sanitize_js") is None
    assert lookup.resolve("decode_js") is None


def test_register_and_unregister() -> None:
    lookup = TransformationLookup()
    lookup.register("shout", str.upper)

    assert "shout" in lookup
    assert lookup.resolve("shout") is str.upper
    assert lookup.unregister("shout") is True
    assert lookup.unregister("shout") is False
    assert "shout" not in lookup


def test_register_rejects_non_callables() -> None:
    with pytest.raises(TypeError):
        TransformationLookup().register("nope", 3)  # type: ignore[arg-type]


@pytest.mark.parametrize("path", ["textwrap:dedent", "textwrap.dedent"])
def test_import_paths(path: str) -> None:
    import textwrap

    assert TransformationLookup().resolve(path) is textwrap.dedent


@pytest.mark.parametrize(
    "path",
    ["", "nothing", "missing_module_xyz:fn", "textwrap:not_there", "textwrap:__doc__", ":fn", "..rel.fn"],
)
def test_unresolvable_names_return_none(path: str, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.DEBUG, logger="fieldsafe.lookup"):
        assert TransformationLookup().resolve(path) is None


def test_registered_names_shadow_import_paths() -> None:
    lookup = TransformationLookup({"textwrap:dedent": str.upper})

    assert lookup.resolve("textwrap:dedent") is str.upper


class TestImportFallbackOptOut:

    def test_import_paths_are_not_resolved(self) -> None:
        lookup = TransformationLookup(allow_imports=False)

        assert lookup.resolve("os.system") is None
        assert lookup.resolve("os:system") is None
        assert "textwrap:dedent" not in lookup

    def test_registered_names_still_resolve(self) -> None:
        lookup = default_lookup(allow_imports=False)

        assert lookup.resolve("escape_html") is escape_html
        lookup.register("pkg.shout", str.upper)
        assert lookup.resolve("pkg.shout") is str.upper

    def test_registry_rejects_import_paths(self) -> None:
        registry = SanitizationRegistry(lookup=default_lookup(allow_imports=False))
        pair = {"input": "os.system", "output": "escape_html"}

        with pytest.raises(InvalidTypeError):
            registry.sanitize_input("echo hi", "cmd", pair)
        assert registry.escape_output("<b>", "cmd", pair) == "&lt;b&gt;"


def test_concurrent_register_and_resolve() -> None:
    lookup = default_lookup()
    start = threading.Barrier(8)

    def worker(n: int) -> list[bool]:
        start.wait()
        seen = []
        for i in range(100):
            name = f"t{n}_{i}"
            lookup.register(name, str.upper)
            seen.append(lookup.resolve(name) is str.upper)
            seen.append(lookup.resolve("escape_html") is escape_html)
            if i % 2:
                assert lookup.unregister(name) is True
        return seen

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(worker, range(8)))

    assert all(all(seen) for seen in results)
    assert len(lookup.names()) == len(TRANSFORMATIONS) + 8 * 50
