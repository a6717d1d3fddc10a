"""Tests for DAG construction, cycle detection and the unblocked set."""

import pytest

from conftest import at, item
from kitq.dag import (
    build_dag,
    check_new_edge,
    detect_cycle,
    find_cycle,
    poisoned_specs,
    unblocked,
    unsatisfied_dependencies,
)
from kitq.errors import CycleDetectedError, NotFoundError
from kitq.models import WorkStatus

DONE = WorkStatus.DONE


# --- Graph construction ---

def test_build_dag_keys():
    graph = build_dag([item("1"), item("2", deps=["1", "ghost"])])
    assert graph == {("s", "1"): [], ("s", "2"): [("s", "1"), ("s", "ghost")]}


# --- Cycle detection ---

def test_cycle_three_nodes():
    """A → B → C → A is reported as a path."""
    graph = {("s", "A"): [("s", "C")], ("s", "B"): [("s", "A")], ("s", "C"): [("s", "B")]}
    cycle = find_cycle(graph)
    assert cycle[0] == cycle[-1]
    assert set(cycle) == {("s", "A"), ("s", "B"), ("s", "C")}


def test_self_cycle():
    assert find_cycle({("s", "A"): [("s", "A")]}) == [("s", "A"), ("s", "A")]


def test_no_cycle_passes():
    graph = {("s", "A"): [], ("s", "B"): [("s", "A")], ("s", "C"): [("s", "A"), ("s", "B")]}
    assert find_cycle(graph) is None


def test_unknown_dependency_is_not_a_cycle():
    assert find_cycle({("s", "B"): [("s", "nonexistent")]}) is None


def test_detect_cycle_on_items():
    assert detect_cycle([item("1", deps=["2"]), item("2", deps=["1"])])
    assert not detect_cycle([item("1"), item("2", deps=["1"])])


def test_long_chain_no_recursion_limit():
    """Iterative search handles chains deeper than the recursion limit."""
    items = [item(str(i), deps=[str(i - 1)] if i else []) for i in range(3000)]
    assert not detect_cycle(items)


def test_poisoned_specs_only_cyclic_spec():
    items = [
        item("1", deps=["2"], spec_id="a"),
        item("2", deps=["1"], spec_id="a"),
        item("1", spec_id="b"),
    ]
    poisoned = poisoned_specs(items)
    assert list(poisoned) == ["a"]


# --- Unblocked set ---

def test_unblocked_no_deps():
    items = [item("1"), item("2")]
    assert {i.id for i in unblocked(items)} == {"1", "2"}


def test_unblocked_waits_for_deps():
    """Status(1)=pending → 2 is not unblocked; once 1 is done, 2 is."""
    items = [item("1"), item("2", deps=["1"])]
    assert [i.id for i in unblocked(items)] == ["1"]
    items[0].status = DONE
    assert [i.id for i in unblocked(items)] == ["2"]


def test_unblocked_only_pending():
    items = [
        item("1", status=WorkStatus.IN_PROGRESS),
        item("2", status=DONE),
        item("3", status=WorkStatus.BLOCKED),
    ]
    assert unblocked(items) == []


def test_unknown_dependency_never_satisfied():
    assert unblocked([item("1", deps=["ghost"])]) == []


def test_cycle_blocks_whole_spec():
    items = [
        item("1", deps=["2"]),
        item("2", deps=["1"]),
        item("3"),
        item("1", spec_id="other"),
    ]
    assert [i.key for i in unblocked(items)] == [("other", "1")]


def test_same_id_in_other_spec_does_not_satisfy():
    items = [item("1", spec_id="a", status=DONE), item("2", deps=["1"], spec_id="b")]
    assert unblocked(items) == []


def test_retry_backoff_defers_item():
    items = [item("1", retry_after=at(10))]
    assert unblocked(items, now=at(5)) == []
    assert [i.id for i in unblocked(items, now=at(10))] == ["1"]
    # Without a clock the deadline is ignored
    assert [i.id for i in unblocked(items)] == ["1"]


def test_unsatisfied_dependencies():
    items = [
        item("1", status=WorkStatus.IN_PROGRESS),
        item("2", deps=["1", "ghost"]),
        item("3", deps=["2"], status=DONE),
    ]
    assert unsatisfied_dependencies(items) == [("s", "1"), ("s", "ghost")]


# --- New edges ---

def test_check_new_edge_accepts():
    check_new_edge([item("1"), item("2")], "2", "1")


def test_check_new_edge_rejects_cycle():
    """1 → 2 exists; adding 2 → 1 closes a cycle."""
    items = [item("1", deps=["2"]), item("2")]
    with pytest.raises(CycleDetectedError) as exc:
        check_new_edge(items, "2", "1")
    assert exc.value.cycle == ["2", "1", "2"]


def test_check_new_edge_rejects_self():
    with pytest.raises(CycleDetectedError, match="[Cc]ycle"):
        check_new_edge([item("1")], "1", "1")


def test_check_new_edge_unknown():
    with pytest.raises(NotFoundError):
        check_new_edge([item("1")], "1", "ghost")
