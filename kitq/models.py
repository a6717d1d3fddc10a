"""Core data models for kitq."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class SpecStatus(str, Enum):
    DRAFT = "draft"
    IN_REVIEW = "in-review"
    APPROVED = "approved"
    IMPLEMENTED = "implemented"
    DEPRECATED = "deprecated"


class WorkStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    BLOCKED = "blocked"


class Freshness(str, Enum):
    FRESH = "fresh"
    STALE = "stale"
    ORPHANED = "orphaned"
    UNKNOWN = "unknown"


class ItemKind(str, Enum):
    TASK = "task"
    SESSION = "session"


MIN_PRIORITY = 0
MAX_PRIORITY = 4
DEFAULT_PRIORITY = 2


@dataclass
class Spec:
    """Human-readable metadata of a spec document."""

    id: str
    title: str
    status: SpecStatus = SpecStatus.DRAFT
    created: str = ""
    updated: str = ""
    body: str = ""


@dataclass
class WorkItem:
    """A task or session belonging to one spec."""

    # Identity
    id: str
    title: str
    description: str = ""
    spec_id: str = ""
    kind: ItemKind = ItemKind.TASK
    type: str = ""

    # Dependencies & scheduling
    status: WorkStatus = WorkStatus.PENDING
    priority: int = DEFAULT_PRIORITY
    depends_on: list[str] = field(default_factory=list)
    parent_id: str | None = None

    # Runtime
    retry_count: int = 0
    retry_after: datetime | None = None
    error_message: str = ""

    @property
    def key(self) -> tuple[str, str]:
        """Graph node key; ids are only unique within their spec."""
        return (self.spec_id, self.id)

    def dep_keys(self) -> list[tuple[str, str]]:
        return [(self.spec_id, dep) for dep in self.depends_on]


@dataclass
class LogEntry:
    """A unit of knowledge anchored to source files."""

    id: str
    content: str
    anchors: list[str] = field(default_factory=list)
    path: str = ""
    verified: datetime | None = None


@dataclass
class Skipped:
    """A document left out of an aggregate operation."""

    ref: str
    reason: str


@dataclass
class AnchorRef:
    """An anchor path with its resolved state (never persisted)."""

    path: str
    exists: bool
    timestamp: datetime | None = None
    stale: bool = False


def format_key(key: tuple[str, str]) -> str:
    spec_id, item_id = key
    return f"{spec_id}/{item_id}" if spec_id else item_id
