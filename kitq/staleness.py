"""Staleness tracking for log entries anchored to source files.

An entry is trusted only as long as none of its anchors changed after the
entry was last written or verified:

* orphaned -- at least one anchor no longer exists
* stale    -- an anchor was modified after the entry time
* fresh    -- every anchor is older than (or as old as) the entry
* unknown  -- some timestamp could not be resolved; never treat as fresh

Timestamps come from a TimestampOracle (git last-commit time, falling back
to filesystem mtime). The entry time is the later of the entry file's own
timestamp and its `verified` stamp.
"""

from __future__ import annotations

import logging
import posixpath
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .errors import KitqError, NotFoundError, TimestampUnresolvableError
from .git_ops import TimestampOracle
from .ids import generate_id
from .models import AnchorRef, Freshness, LogEntry, Skipped
from .scanner import describe
from .store import DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class EntryReport:
    entry: LogEntry
    state: Freshness
    entry_time: datetime | None = None
    anchors: list[AnchorRef] = field(default_factory=list)
    error: str = ""


@dataclass
class SearchHit:
    report: EntryReport
    snippet: str = ""


@dataclass
class RebuildReport:
    valid: list[str] = field(default_factory=list)
    pruned: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    skipped: list[Skipped] = field(default_factory=list)
    index_path: str = ""

    def counts(self) -> dict[str, int]:
        return {
            "valid": len(self.valid),
            "pruned": len(self.pruned),
            "deleted": len(self.deleted),
            "skipped": len(self.skipped),
        }


def _now() -> datetime:
    return datetime.now(timezone.utc)


class StalenessTracker:
    def __init__(self, store: DocumentStore, oracle: TimestampOracle, clock=_now):
        self.store = store
        self.oracle = oracle
        self.clock = clock

    # ---------------------------------------------------------------
    # Loading
    # ---------------------------------------------------------------

    def load_entries(self, scope: str | None = None) -> tuple[list[LogEntry], list[Skipped]]:
        entries: list[LogEntry] = []
        skipped: list[Skipped] = []
        for path in self.store.list_log_paths(scope):
            try:
                entries.append(self.store.load_log_entry(path))
            except KitqError as e:
                logger.warning(f"Skipping log entry {path}: {e}")
                skipped.append(Skipped(ref=path, reason=str(e)))
        return entries, skipped

    def find(self, entry_id: str) -> LogEntry:
        entries, _ = self.load_entries()
        for entry in entries:
            if entry.id == entry_id:
                return entry
        raise NotFoundError(f"Log entry '{entry_id}' not found")

    # ---------------------------------------------------------------
    # Classification
    # ---------------------------------------------------------------

    def entry_time(self, entry: LogEntry) -> datetime:
        file_time = self.oracle.last_modified(entry.path) if entry.path else None
        candidates = [t for t in (file_time, entry.verified) if t is not None]
        if not candidates:
            raise TimestampUnresolvableError(f"No timestamp for log entry '{entry.id}'")
        return max(candidates)

    def inspect(self, entry: LogEntry) -> EntryReport:
        """Classify an entry and resolve every anchor."""
        report = EntryReport(entry=entry, state=Freshness.FRESH)
        unresolved: list[str] = []

        for path in entry.anchors:
            try:
                ts = self.oracle.last_modified(path)
            except TimestampUnresolvableError as e:
                report.anchors.append(AnchorRef(path=path, exists=True))
                unresolved.append(str(e))
                continue
            report.anchors.append(AnchorRef(path=path, exists=ts is not None, timestamp=ts))

        try:
            report.entry_time = self.entry_time(entry)
        except TimestampUnresolvableError as e:
            unresolved.append(str(e))

        if report.entry_time is not None:
            for anchor in report.anchors:
                if anchor.timestamp is not None and anchor.timestamp > report.entry_time:
                    anchor.stale = True

        if any(not a.exists for a in report.anchors):
            report.state = Freshness.ORPHANED
        elif unresolved:
            report.state = Freshness.UNKNOWN
            report.error = "; ".join(unresolved)
        elif any(a.stale for a in report.anchors):
            report.state = Freshness.STALE
        return report

    def classify(self, entry: LogEntry) -> Freshness:
        return self.inspect(entry).state

    # ---------------------------------------------------------------
    # Mutations
    # ---------------------------------------------------------------

    def verify(self, entry: LogEntry) -> LogEntry:
        """Re-stamp the entry time to now; the content is left untouched."""
        entry.verified = self.clock()
        self.store.save_log_entry(entry)
        logger.info(f"Verified log entry {entry.id}")
        return entry

    def record(
        self, title: str, content: str, anchors: list[str], scope: str | None = None
    ) -> LogEntry:
        """Create a new entry; every anchor must currently exist."""
        if not anchors:
            raise ValueError("a log entry needs at least one anchor")
        for path in anchors:
            if self.oracle.last_modified(path) is None:
                raise NotFoundError(f"Anchor '{path}' does not exist")

        existing, _ = self.load_entries()
        entry_id = generate_id(title, taken={e.id for e in existing})
        body = content if content.lstrip().startswith("#") else f"# {title}\n\n{content}"
        entry = LogEntry(
            id=entry_id,
            content=body.rstrip("\n") + "\n",
            anchors=list(anchors),
            path=self.store.log_path_for(entry_id, scope),
        )
        self.store.save_log_entry(entry)
        logger.info(f"Recorded log entry {entry_id}")
        return entry

    def rebuild(self, scope: str | None = None) -> RebuildReport:
        """Garbage-collect entries whose anchors vanished, then regenerate the index.

        All anchors missing: the entry is deleted. Some missing: the entry is
        rewritten with only the surviving anchors. Unreadable documents are
        skipped and reported.
        """
        entries, skipped = self.load_entries(scope)
        report = RebuildReport(skipped=skipped)

        for entry in entries:
            existing = [a for a in entry.anchors if self._exists(a)]
            try:
                if not existing:
                    self.store.delete_log_entry(entry)
                    report.deleted.append(entry.path)
                    logger.info(f"Deleted orphaned log entry {entry.path}")
                elif len(existing) < len(entry.anchors):
                    entry.anchors = existing
                    self.store.save_log_entry(entry)
                    report.pruned.append(entry.path)
                    logger.info(f"Pruned missing anchors from {entry.path}")
                else:
                    report.valid.append(entry.path)
            except NotFoundError as e:
                logger.warning(f"Skipping log entry {entry.path}: {e}")
                report.skipped.append(Skipped(ref=entry.path, reason=str(e)))

        report.index_path = self.reindex()
        return report

    def search(self, term: str, scope: str | None = None) -> tuple[list[SearchHit], list[Skipped]]:
        """Entries whose body mentions `term`, case-insensitively, with the first matching line."""
        needle = term.strip().lower()
        if not needle:
            raise ValueError("search term must not be empty")
        entries, skipped = self.load_entries(scope)
        hits = []
        for entry in entries:
            line = next((text for text in entry.content.splitlines() if needle in text.lower()), None)
            if line is None:
                continue
            hits.append(SearchHit(report=self.inspect(entry), snippet=snippet(line)))
        return hits, skipped

    def _exists(self, path: str) -> bool:
        try:
            return self.oracle.last_modified(path) is not None
        except TimestampUnresolvableError:
            return True

    # ---------------------------------------------------------------
    # Index
    # ---------------------------------------------------------------

    def reindex(self) -> str:
        entries, _ = self.load_entries()
        return self.store.write_index(build_index(entries))


def anchor_dir(entry: LogEntry) -> str:
    first = entry.anchors[0] if entry.anchors else ""
    return posixpath.dirname(first) or "."


def build_index(entries: list[LogEntry]) -> str:
    """Markdown index: anchor directory → entry id → one-line description."""
    groups: dict[str, list[LogEntry]] = defaultdict(list)
    for entry in entries:
        groups[anchor_dir(entry)].append(entry)

    lines = ["# Log Index", "", "Generated by `kitq log index`. Do not edit by hand.", ""]
    if not groups:
        lines.append("_No entries._")
    for directory in sorted(groups):
        lines.append(f"## {directory}")
        lines.append("")
        for entry in sorted(groups[directory], key=lambda e: e.id):
            summary = describe(entry.content)
            lines.append(f"- `{entry.id}`: {summary}" if summary else f"- `{entry.id}`")
        lines.append("")
    return "\n".join(lines).rstrip("\n") + "\n"


def snippet(line: str, limit: int = 60) -> str:
    line = line.strip()
    return line if len(line) <= limit else line[:limit] + "..."
