"""Scheduler: pick the next unblocked WorkItem(s) and drive status transitions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum

from .dag import (
    Key,
    all_done,
    check_new_edge,
    deferred,
    poisoned_specs,
    unblocked,
    unsatisfied_dependencies,
)
from .errors import InvalidTransitionError, KitqError, NotFoundError
from .ids import next_item_id
from .models import (
    DEFAULT_PRIORITY,
    MAX_PRIORITY,
    MIN_PRIORITY,
    ItemKind,
    Skipped,
    WorkItem,
    WorkStatus,
)
from .store import DocumentStore

logger = logging.getLogger(__name__)


class Reason(str, Enum):
    SELECTED = "selected"
    ALL_DONE = "all_done"
    BLOCKED = "blocked"


@dataclass
class Selection:
    """Outcome of a selection: the chosen item(s) or why nothing is runnable."""

    reason: Reason
    items: list[WorkItem] = field(default_factory=list)
    blocking: list[Key] = field(default_factory=list)
    poisoned: dict[str, list[Key]] = field(default_factory=dict)
    deferred: dict[Key, datetime] = field(default_factory=dict)

    @property
    def item(self) -> WorkItem | None:
        return self.items[0] if self.items else None


@dataclass
class Snapshot:
    items: list[WorkItem] = field(default_factory=list)
    skipped: list[Skipped] = field(default_factory=list)


@dataclass
class FailOutcome:
    item: WorkItem
    final: bool


def _sort_key(item: WorkItem) -> tuple[int, str, str]:
    return (item.priority, item.spec_id, item.id)


def _nothing_runnable(items: list[WorkItem], now: datetime | None) -> Selection:
    if all_done(items):
        return Selection(reason=Reason.ALL_DONE)
    return Selection(
        reason=Reason.BLOCKED,
        blocking=unsatisfied_dependencies(items),
        poisoned=poisoned_specs(items),
        deferred={i.key: i.retry_after for i in sorted(deferred(items, now), key=_sort_key)},
    )


def select_next(items: list[WorkItem], now: datetime | None = None) -> Selection:
    """Lowest (priority, spec_id, id) among unblocked items.

    A pure function of `items`: the same snapshot always yields the same item.
    """
    ready = unblocked(items, now)
    if not ready:
        return _nothing_runnable(items, now)
    ready.sort(key=_sort_key)
    return Selection(reason=Reason.SELECTED, items=[ready[0]])


def select_wave(items: list[WorkItem], now: datetime | None = None) -> Selection:
    """Every unblocked item sharing the lowest priority value.

    Members are mutually independent: an item is unblocked only once all
    of its dependencies are done, so no member can depend on another.
    """
    ready = unblocked(items, now)
    if not ready:
        return _nothing_runnable(items, now)
    min_priority = min(i.priority for i in ready)
    wave = sorted((i for i in ready if i.priority == min_priority), key=_sort_key)
    return Selection(reason=Reason.SELECTED, items=wave)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _find(items: list[WorkItem], item_id: str, spec_id: str) -> WorkItem:
    for item in items:
        if item.id == item_id:
            return item
    raise NotFoundError(f"Work item '{item_id}' not found in spec '{spec_id}'")


class Scheduler:
    """Store-backed scheduling operations.

    Every call re-reads the store; nothing is cached between calls, so
    hand edits are always picked up.
    """

    def __init__(
        self,
        store: DocumentStore,
        max_retries: int = 3,
        retry_backoff_sec: int = 0,
        clock=_now,
    ):
        self.store = store
        self.max_retries = max_retries
        self.retry_backoff_sec = retry_backoff_sec
        self.clock = clock

    # ---------------------------------------------------------------
    # Reading
    # ---------------------------------------------------------------

    def snapshot(self, scope: str | None = None) -> Snapshot:
        """Load items of one spec, or of every spec when unscoped.

        Unscoped, unreadable task documents are skipped and reported.
        """
        if scope:
            return Snapshot(items=self.store.load_items(scope))

        snap = Snapshot()
        for spec_id in self.store.list_task_spec_ids():
            try:
                snap.items.extend(self.store.load_items(spec_id))
            except KitqError as e:
                logger.warning(f"Skipping task document for {spec_id}: {e}")
                snap.skipped.append(Skipped(ref=spec_id, reason=str(e)))
        return snap

    def next(self, scope: str | None = None) -> tuple[Selection, Snapshot]:
        snap = self.snapshot(scope)
        return select_next(snap.items, self.clock()), snap

    def wave(self, scope: str | None = None) -> tuple[Selection, Snapshot]:
        snap = self.snapshot(scope)
        return select_wave(snap.items, self.clock()), snap

    # ---------------------------------------------------------------
    # Transitions
    # ---------------------------------------------------------------

    def begin(self, spec_id: str, item_id: str) -> WorkItem:
        """pending → in_progress, recorded before any execution starts."""
        items = self.store.load_items(spec_id)
        item = _find(items, item_id, spec_id)
        if item.status != WorkStatus.PENDING:
            raise InvalidTransitionError(
                f"Cannot begin '{item_id}': status is {item.status.value}, not pending"
            )
        if item.key not in {i.key for i in unblocked(items)}:
            raise InvalidTransitionError(
                f"Cannot begin '{item_id}': dependencies are not all done"
            )

        item.status = WorkStatus.IN_PROGRESS
        item.retry_after = None
        for parent in self._ancestors(items, item):
            if parent.status != WorkStatus.PENDING:
                break
            parent.status = WorkStatus.IN_PROGRESS
            logger.info(f"Session {spec_id}/{parent.id} started with {item_id}")

        self.store.save_items(spec_id, items)
        logger.info(f"Began {spec_id}/{item_id}")
        return item

    def complete(self, spec_id: str, item_id: str) -> list[WorkItem]:
        """in_progress → done, then cascade to parent sessions whose children are all done.

        Returns every item marked done, the completed item first.
        """
        items = self.store.load_items(spec_id)
        item = _find(items, item_id, spec_id)
        if item.status != WorkStatus.IN_PROGRESS:
            raise InvalidTransitionError(
                f"Cannot complete '{item_id}': status is {item.status.value}, not in_progress"
            )
        children = self._children(items, item)
        unfinished = [c.id for c in children if c.status != WorkStatus.DONE]
        if unfinished:
            raise InvalidTransitionError(
                f"Cannot complete session '{item_id}': children not done: {', '.join(unfinished)}"
            )

        item.status = WorkStatus.DONE
        item.error_message = ""
        finished = [item]

        for parent in self._ancestors(items, item):
            # done is only reachable from in_progress; a blocked session waits for retry.
            if parent.status != WorkStatus.IN_PROGRESS:
                break
            if any(c.status != WorkStatus.DONE for c in self._children(items, parent)):
                break
            parent.status = WorkStatus.DONE
            finished.append(parent)
            logger.info(f"Session {spec_id}/{parent.id} done: all children complete")

        self.store.save_items(spec_id, items)
        logger.info(f"Completed {spec_id}/{item_id}")
        return finished

    def fail(
        self, spec_id: str, item_id: str, retriable: bool = True, reason: str = ""
    ) -> FailOutcome:
        """in_progress → pending (retriable, under budget) or → blocked (final)."""
        items = self.store.load_items(spec_id)
        item = _find(items, item_id, spec_id)
        if item.status != WorkStatus.IN_PROGRESS:
            raise InvalidTransitionError(
                f"Cannot fail '{item_id}': status is {item.status.value}, not in_progress"
            )

        item.error_message = reason
        if retriable and item.retry_count < self.max_retries:
            item.retry_count += 1
            item.status = WorkStatus.PENDING
            if self.retry_backoff_sec:
                delay = self.retry_backoff_sec * 2 ** (item.retry_count - 1)
                item.retry_after = self.clock() + timedelta(seconds=delay)
            final = False
            logger.info(
                f"{spec_id}/{item_id} failed, retry {item.retry_count}/{self.max_retries}"
            )
        else:
            item.status = WorkStatus.BLOCKED
            item.retry_after = None
            final = True
            logger.warning(f"{spec_id}/{item_id} blocked: {reason or 'retry budget exhausted'}")

        self.store.save_items(spec_id, items)
        return FailOutcome(item=item, final=final)

    def retry(self, spec_id: str, item_id: str) -> WorkItem:
        """blocked → pending with a fresh retry budget."""
        items = self.store.load_items(spec_id)
        item = _find(items, item_id, spec_id)
        if item.status != WorkStatus.BLOCKED:
            raise InvalidTransitionError(
                f"Cannot retry '{item_id}': status is {item.status.value}, not blocked"
            )
        item.status = WorkStatus.PENDING
        item.retry_count = 0
        item.retry_after = None
        item.error_message = ""
        self.store.save_items(spec_id, items)
        logger.info(f"{spec_id}/{item_id} reset to pending")
        return item

    # ---------------------------------------------------------------
    # Graph edits
    # ---------------------------------------------------------------

    def add_item(
        self,
        spec_id: str,
        title: str,
        description: str = "",
        priority: int = DEFAULT_PRIORITY,
        depends_on: list[str] | None = None,
        parent_id: str | None = None,
        kind: ItemKind = ItemKind.TASK,
        type: str = "",
    ) -> WorkItem:
        """Append a pending item; its dependency edges are cycle-checked one by one."""
        if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
            raise ValueError(f"priority must be within {MIN_PRIORITY}..{MAX_PRIORITY}")
        items = self.store.load_items(spec_id)
        if parent_id is not None:
            _find(items, parent_id, spec_id)

        item = WorkItem(
            id=next_item_id(items),
            title=title,
            description=description,
            spec_id=spec_id,
            kind=kind,
            type=type,
            priority=priority,
            parent_id=parent_id,
        )
        items.append(item)
        for dep in depends_on or []:
            check_new_edge(items, item.id, dep)
            item.depends_on.append(dep)

        self.store.save_items(spec_id, items)
        logger.info(f"Added {kind.value} {spec_id}/{item.id}")
        return item

    def add_dependency(self, spec_id: str, item_id: str, dep_id: str) -> WorkItem:
        """Record `item_id depends_on dep_id`, rejecting edges that close a cycle."""
        items = self.store.load_items(spec_id)
        item = _find(items, item_id, spec_id)
        check_new_edge(items, item_id, dep_id)
        if dep_id not in item.depends_on:
            item.depends_on.append(dep_id)
            self.store.save_items(spec_id, items)
        return item

    # ---------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------

    @staticmethod
    def _ancestors(items: list[WorkItem], item: WorkItem) -> list[WorkItem]:
        """Parent chain, nearest first; stops at unknown parents or a parent loop."""
        by_id = {i.id: i for i in items}
        chain: list[WorkItem] = []
        seen = {item.id}
        parent = by_id.get(item.parent_id) if item.parent_id else None
        while parent is not None and parent.id not in seen:
            chain.append(parent)
            seen.add(parent.id)
            parent = by_id.get(parent.parent_id) if parent.parent_id else None
        return chain

    @staticmethod
    def _children(items: list[WorkItem], item: WorkItem) -> list[WorkItem]:
        return [i for i in items if i.parent_id == item.id]
