"""Tests for the filter chain."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

import pytest

from fieldsafe import FilterChain


def test_empty_chain_is_identity(filters: FilterChain) -> None:
    value = {"a": "1"}
    assert filters.apply("nothing_registered", value) is value


def test_callbacks_run_in_registration_order(filters: FilterChain) -> None:
    filters.add_filter("evt", lambda v: v + "a")
    filters.add_filter("evt", lambda v: v + "b")
    filters.add_filter("evt", lambda v: v + "c")

    assert filters.apply("evt", "") == "abc"


def test_priority_orders_before_registration(filters: FilterChain) -> None:
    filters.add_filter("evt", lambda v: v + "late", priority=20)
    filters.add_filter("evt", lambda v: v + "-default")
    filters.add_filter("evt", lambda v: v + "early", priority=5)

    assert filters.apply("evt", "") == "early-defaultlate"


def test_events_are_independent(filters: FilterChain) -> None:
    filters.add_filter("one", str.upper)

    assert filters.apply("one", "x") == "X"
    assert filters.apply("two", "x") == "x"


def test_decorator_registers_and_returns_function(filters: FilterChain) -> None:
    @filters.filter("evt")
    def double(value: int) -> int:
        return value * 2

    assert double(2) == 4
    assert filters.apply("evt", 3) == 6
    assert filters.callbacks("evt") == [double]


def test_remove_filter(filters: FilterChain) -> None:
    def upper(value: str) -> str:
        return value.upper()

    filters.add_filter("evt", upper)
    assert filters.has_filters("evt")

    assert filters.remove_filter("evt", upper) is True
    assert filters.remove_filter("evt", upper) is False
    assert not filters.has_filters("evt")
    assert filters.apply("evt", "x") == "x"


def test_clear_single_event_and_all(filters: FilterChain) -> None:
    filters.add_filter("a", str.upper)
    filters.add_filter("b", str.upper)

    filters.clear("a")
    assert not filters.has_filters("a")
    assert filters.has_filters("b")

    filters.clear()
    assert not filters.has_filters("b")


def test_registration_during_apply_affects_next_pass_only(filters: FilterChain) -> None:
    def register_more(value: str) -> str:
        filters.add_filter("evt", lambda v: v + "!")
        return value + "first"

    filters.add_filter("evt", register_more)

    assert filters.apply("evt", "") == "first"
    assert filters.apply("evt", "") == "first!"


def test_callback_errors_propagate(filters: FilterChain) -> None:
    def boom(value: str) -> str:
        raise RuntimeError("subscriber failed")

    filters.add_filter("evt", boom)

    with pytest.raises(RuntimeError, match="subscriber failed"):
        filters.apply("evt", "x")


def test_non_callable_is_rejected(filters: FilterChain) -> None:
    with pytest.raises(TypeError):
        filters.add_filter("evt", "not a function")  # type: ignore[arg-type]


def test_concurrent_registration_keeps_every_callback_in_order(filters: FilterChain) -> None:
    start = threading.Barrier(12)

    def tagger(n: int, i: int) -> Callable[[list], list]:
        return lambda v: v + [(n, i)]

    def register(n: int) -> None:
        start.wait()
        for i in range(50):
            filters.add_filter("evt", tagger(n, i))

    def apply_repeatedly(_: int) -> list[int]:
        start.wait()
        return [len(filters.apply("evt", [])) for _ in range(50)]

    with ThreadPoolExecutor(max_workers=12) as pool:
        registrations = [pool.submit(register, n) for n in range(8)]
        applications = [pool.submit(apply_repeatedly, n) for n in range(4)]
        for future in registrations:
            future.result()
        lengths = [length for future in applications for length in future.result()]

    assert all(0 <= length <= 400 for length in lengths)
    tags = filters.apply("evt", [])
    assert len(tags) == 400
    for n in range(8):
        assert [i for owner, i in tags if owner == n] == list(range(50))


def test_concurrent_removal(filters: FilterChain) -> None:
    callbacks = [lambda v, i=i: v + 1 for i in range(200)]
    for callback in callbacks:
        filters.add_filter("evt", callback)

    with ThreadPoolExecutor(max_workers=8) as pool:
        removed = list(pool.map(lambda cb: filters.remove_filter("evt", cb), callbacks[::2]))

    assert all(removed)
    assert filters.apply("evt", 0) == 100
