"""Dependency graph construction, cycle detection and the unblocked set."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime

from .errors import CycleDetectedError, NotFoundError
from .models import WorkItem, WorkStatus

Key = tuple[str, str]


def build_dag(items: list[WorkItem]) -> dict[Key, list[Key]]:
    """Adjacency map: item key → keys of its dependencies (unknown ids included)."""
    graph: dict[Key, list[Key]] = {}
    for item in items:
        graph[item.key] = item.dep_keys()
    return graph


def find_cycle(graph: dict[Key, list[Key]]) -> list[Key] | None:
    """Depth-first search with an explicit recursion stack.

    Returns the cycle as a key path (first node repeated at the end), or
    None. Edges to unknown nodes are ignored.
    """
    WHITE, GREY, BLACK = 0, 1, 2
    color: dict[Key, int] = {node: WHITE for node in graph}

    for start in sorted(graph):
        if color[start] != WHITE:
            continue
        path: list[Key] = [start]
        color[start] = GREY
        stack = [iter(graph[start])]
        while stack:
            dep = next(stack[-1], None)
            if dep is None:
                stack.pop()
                color[path.pop()] = BLACK
                continue
            if dep not in color:
                continue
            if color[dep] == GREY:
                return path[path.index(dep):] + [dep]
            if color[dep] == WHITE:
                color[dep] = GREY
                path.append(dep)
                stack.append(iter(graph[dep]))
    return None


def detect_cycle(items: list[WorkItem]) -> bool:
    return find_cycle(build_dag(items)) is not None


def poisoned_specs(items: list[WorkItem]) -> dict[str, list[Key]]:
    """Spec id → cycle path, for every spec whose recorded edges contain a cycle."""
    by_spec: dict[str, list[WorkItem]] = defaultdict(list)
    for item in items:
        by_spec[item.spec_id].append(item)
    poisoned = {}
    for spec_id in sorted(by_spec):
        cycle = find_cycle(build_dag(by_spec[spec_id]))
        if cycle:
            poisoned[spec_id] = cycle
    return poisoned


def all_done(items: list[WorkItem]) -> bool:
    return all(item.status == WorkStatus.DONE for item in items)


def _done_keys(items: list[WorkItem]) -> set[Key]:
    return {item.key for item in items if item.status == WorkStatus.DONE}


def is_deferred(item: WorkItem, now: datetime | None) -> bool:
    """True while a retry backoff deadline is still in the future."""
    return now is not None and item.retry_after is not None and item.retry_after > now


def unblocked(items: list[WorkItem], now: datetime | None = None) -> list[WorkItem]:
    """Pending items whose every dependency is done.

    Unknown dependency ids never count as done. Every item of a spec with
    a dependency cycle stays blocked. With `now`, items still inside their
    retry backoff window are held back too.
    """
    done = _done_keys(items)
    poisoned = poisoned_specs(items)
    return [
        item
        for item in items
        if item.status == WorkStatus.PENDING
        and item.spec_id not in poisoned
        and all(dep in done for dep in item.dep_keys())
        and not is_deferred(item, now)
    ]


def deferred(items: list[WorkItem], now: datetime | None) -> list[WorkItem]:
    """Items that would be unblocked but are still inside their retry backoff window."""
    if now is None:
        return []
    return [item for item in unblocked(items) if is_deferred(item, now)]


def unsatisfied_dependencies(items: list[WorkItem]) -> list[Key]:
    """Union of dependencies of pending items that are not done (unknown ids included)."""
    done = _done_keys(items)
    missing: set[Key] = set()
    for item in items:
        if item.status != WorkStatus.PENDING:
            continue
        missing.update(dep for dep in item.dep_keys() if dep not in done)
    return sorted(missing)


def check_new_edge(items: list[WorkItem], item_id: str, dep_id: str) -> None:
    """Validate a new `item_id depends_on dep_id` edge within one spec's items.

    Raises NotFoundError for unknown ids and CycleDetectedError when the
    edge would close a cycle.
    """
    ids = {i.id for i in items}
    for ref in (item_id, dep_id):
        if ref not in ids:
            raise NotFoundError(f"Work item '{ref}' not found")
    if item_id == dep_id:
        raise CycleDetectedError([item_id, item_id])

    graph = {i.id: list(i.depends_on) for i in items}
    # Search for an existing path dep_id → ... → item_id.
    parents: dict[str, str | None] = {dep_id: None}
    stack = [dep_id]
    while stack:
        node = stack.pop()
        if node == item_id:
            path = [node]
            while parents[path[-1]] is not None:
                path.append(parents[path[-1]])
            path.reverse()
            raise CycleDetectedError([item_id] + path)
        for nxt in graph.get(node, []):
            if nxt not in parents:
                parents[nxt] = node
                stack.append(nxt)
