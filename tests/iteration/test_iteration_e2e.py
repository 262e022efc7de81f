"""End-to-end tests for the iteration protocol.

These tests drive realistic user-defined collections through the whole
stack: registration, dispatch, adaptation, and the loop driver, mixing
pure, stateful and foreign subjects in the same loops.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional

import pytest

from iterproto import (
    EXHAUSTED,
    START,
    BreakLoop,
    ContinueLoop,
    LoopConfig,
    LoopDriver,
    NotIterableError,
    Stepper,
    collect,
    for_each,
    for_loop,
    iterate,
    register_foreign,
)
from tests.iteration.conftest import (
    CounterBox,
    ForeignList,
    Squares,
    counter_box_stepper,
)

# ---------------------------------------------------------------------------
# User-defined collections
# ---------------------------------------------------------------------------


class Node:
    """Binary tree node; iterated in order by ``InOrder``."""

    def __init__(
        self, value: Any, left: Optional[Node] = None, right: Optional[Node] = None
    ) -> None:
        self.value = value
        self.left = left
        self.right = right


class InOrder(Stepper):
    def __init__(self, root: Node) -> None:
        self.stack: list[Node] = []
        self.node: Optional[Node] = root

    def advance(self) -> Any:
        while self.node is not None:
            self.stack.append(self.node)
            self.node = self.node.left
        if not self.stack:
            return EXHAUSTED
        node = self.stack.pop()
        self.node = node.right
        return node.value


class Cell:
    """Singly linked list cell, dispatched by its ``linked`` tag."""

    __iter_tags__ = ("linked",)

    def __init__(self, value: Any, next: Optional[Cell] = None) -> None:
        self.value = value
        self.next = next


def linked_step(subject: Cell, state: Any) -> Any:
    node = subject if state is START else state
    if node is None:
        return EXHAUSTED
    return (node.value, node.next)


def build_tree() -> Node:
    #       4
    #     2   6
    #    1 3 5 7
    return Node(
        4,
        Node(2, Node(1), Node(3)),
        Node(6, Node(5), Node(7)),
    )


def build_cells(*values: Any) -> Optional[Cell]:
    head = None
    for value in reversed(values):
        head = Cell(value, head)
    return head


@pytest.fixture
def full_registry(registry, runtime):
    registry.register_stepper(Node, InOrder)
    registry.register_step("linked", linked_step)
    register_foreign(ForeignList, runtime, registry=registry)
    return registry


# ---------------------------------------------------------------------------
# E2E: user collections behave like native ones
# ---------------------------------------------------------------------------


@pytest.mark.integration
class TestUserCollections:
    def test_tree_in_order(self, full_registry):
        assert collect(build_tree(), registry=full_registry) == [1, 2, 3, 4, 5, 6, 7]

    def test_linked_list_with_none_elements(self, full_registry):
        cells = build_cells("a", None, "c")
        assert collect(cells, registry=full_registry) == ["a", None, "c"]

    def test_unregistered_tag_and_type_is_not_iterable(self, registry):
        with pytest.raises(NotIterableError):
            collect(build_cells(1, 2), registry=registry)

    def test_native_for_over_user_collection(self, full_registry):
        total = 0
        for value in iterate(build_tree(), registry=full_registry):
            total += value
        assert total == 28

    def test_for_loop_binds_into_shared_scope(self, full_registry):
        scope = {"total": 0}

        def body(env):
            env["total"] += env["v"]

        for_loop("v", build_tree(), body, scope, registry=full_registry)
        assert scope == {"total": 28, "v": 7}


# ---------------------------------------------------------------------------
# E2E: nesting across subject kinds
# ---------------------------------------------------------------------------


@pytest.mark.integration
class TestMixedNesting:
    def test_foreign_outer_tree_inner(self, full_registry, runtime):
        pairs = []

        def inner(value, outer):
            if value % 2:
                raise ContinueLoop
            if value > 4:
                raise BreakLoop
            pairs.append((outer, value))

        for_each(
            ForeignList(["x", "y"]),
            lambda outer: for_each(
                build_tree(), lambda v: inner(v, outer), registry=full_registry
            ),
            registry=full_registry,
        )
        assert pairs == [("x", 2), ("x", 4), ("y", 2), ("y", 4)]
        assert runtime.acquired == 1
        assert len(runtime.released) == 1

    def test_break_out_of_foreign_loop_releases_only_once(self, full_registry, runtime):
        def body(value):
            if value == "b":
                raise BreakLoop

        for_each(ForeignList(["a", "b", "c"]), body, registry=full_registry)
        assert runtime.next_calls == 2
        assert len(runtime.released) == 1

    def test_outcomes_record_each_kind(self, full_registry):
        full_registry.register_stepper(CounterBox, counter_box_stepper)
        driver = LoopDriver(registry=full_registry)
        kinds = {}
        for name, subject in [
            ("list", [1]),
            ("tree", build_tree()),
            ("cells", build_cells(1)),
            ("squares", Squares(1, 2)),
            ("box", CounterBox(1)),
        ]:
            driver.each(subject, lambda value: None)
            kinds[name] = driver.last_outcome.dispatch
        assert kinds == {
            "list": "fast_path",
            "tree": "stepper",
            "cells": "step",
            "squares": "step",
            "box": "stepper",
        }


# ---------------------------------------------------------------------------
# E2E: configuration
# ---------------------------------------------------------------------------


@pytest.mark.integration
class TestConfiguredDriver:
    def test_env_config_drives_the_loop(self, full_registry, runtime):
        cfg = LoopConfig.from_env(
            {"ITERPROTO_FAST_PATH": "no", "ITERPROTO_RELEASE_ON_EXIT": "false"}
        )
        driver = LoopDriver(registry=full_registry, config=cfg)

        driver.each([1, 2], lambda value: None)
        assert driver.last_outcome.dispatch == "default"

        driver.each(ForeignList([1]), lambda value: None)
        assert runtime.released == []


# ---------------------------------------------------------------------------
# E2E: concurrency
# ---------------------------------------------------------------------------


@pytest.mark.integration
class TestConcurrentLoops:
    def test_threads_share_a_pure_subject(self):
        subject = Squares(1, 200)
        expected = [n * n for n in range(1, 201)]
        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(lambda _: collect(subject), range(8)))
        assert all(result == expected for result in results)

    def test_threads_share_a_registry(self, full_registry):
        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(
                pool.map(
                    lambda _: collect(build_tree(), registry=full_registry), range(8)
                )
            )
        assert all(result == [1, 2, 3, 4, 5, 6, 7] for result in results)
