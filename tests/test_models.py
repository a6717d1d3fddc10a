"""Tests for data models."""

from kitq.models import (
    DEFAULT_PRIORITY,
    Freshness,
    ItemKind,
    LogEntry,
    SpecStatus,
    WorkItem,
    WorkStatus,
    format_key,
)


def test_status_values():
    """Enum values match the on-disk strings."""
    assert SpecStatus("in-review") == SpecStatus.IN_REVIEW
    assert WorkStatus("in_progress") == WorkStatus.IN_PROGRESS
    assert Freshness.ORPHANED.value == "orphaned"
    assert ItemKind.SESSION.value == "session"


def test_work_item_defaults():
    wi = WorkItem(id="1", title="Do it")
    assert wi.status == WorkStatus.PENDING
    assert wi.priority == DEFAULT_PRIORITY
    assert wi.kind == ItemKind.TASK
    assert wi.depends_on == []
    assert wi.retry_count == 0
    assert wi.retry_after is None


def test_work_item_lists_not_shared():
    """Mutable defaults are per instance."""
    a = WorkItem(id="1", title="a")
    b = WorkItem(id="2", title="b")
    a.depends_on.append("2")
    assert b.depends_on == []


def test_key_is_scoped_by_spec():
    """Item ids repeat across specs; keys do not."""
    a = WorkItem(id="1", title="a", spec_id="auth")
    b = WorkItem(id="1", title="b", spec_id="billing")
    assert a.key != b.key
    assert a.key == ("auth", "1")


def test_dep_keys_stay_in_spec():
    wi = WorkItem(id="3", title="c", spec_id="auth", depends_on=["1", "2"])
    assert wi.dep_keys() == [("auth", "1"), ("auth", "2")]


def test_format_key():
    assert format_key(("auth", "3")) == "auth/3"
    assert format_key(("", "3")) == "3"


def test_log_entry_defaults():
    entry = LogEntry(id="x", content="# X\n")
    assert entry.anchors == []
    assert entry.verified is None
