"""Tests for scanner: frontmatter, spec, task document and log entry parsing."""

import json
from datetime import datetime, timezone

import pytest

from kitq.errors import MalformedDocumentError
from kitq.models import ItemKind, LogEntry, Spec, SpecStatus, WorkItem, WorkStatus
from kitq.scanner import (
    describe,
    parse_frontmatter,
    parse_log_entry,
    parse_spec,
    parse_task_document,
    render_log_entry,
    render_spec,
    render_task_document,
)


# --- Frontmatter ---

def test_parse_frontmatter():
    meta, body = parse_frontmatter("---\nid: a\nanchors: [x.py]\n---\n# Title\n")
    assert meta == {"id": "a", "anchors": ["x.py"]}
    assert body == "# Title\n"


def test_parse_frontmatter_missing():
    """No frontmatter → empty meta, full body."""
    meta, body = parse_frontmatter("# Just a heading\n")
    assert meta == {}
    assert body == "# Just a heading\n"


def test_parse_frontmatter_empty_block():
    meta, body = parse_frontmatter("---\n---\nbody\n")
    assert meta == {}
    assert body == "body\n"


def test_parse_frontmatter_dashes_inside_line():
    """A `---` inside a value line is not a delimiter."""
    meta, _ = parse_frontmatter("---\ntitle: a --- b\n---\nbody\n")
    assert meta["title"] == "a --- b"


# --- Specs ---

SPEC_DOC = """\
---
id: auth-x1y2
title: Add authentication
status: in-review
created: 2025-01-01
updated: 2025-01-03
---
# Add authentication

Body text.
"""


def test_parse_spec():
    spec = parse_spec(SPEC_DOC, ".kit/specs/auth-x1y2.md")
    assert spec.id == "auth-x1y2"
    assert spec.title == "Add authentication"
    assert spec.status == SpecStatus.IN_REVIEW
    assert spec.created == "2025-01-01"
    assert "Body text." in spec.body


def test_parse_spec_name_alias():
    spec = parse_spec("---\nid: a\nname: Old style\n---\n", "a.md")
    assert spec.title == "Old style"
    assert spec.status == SpecStatus.DRAFT


def test_parse_spec_invalid_status():
    with pytest.raises(MalformedDocumentError, match="status"):
        parse_spec("---\nid: a\ntitle: A\nstatus: shipped\n---\n", "a.md")


def test_parse_spec_without_frontmatter():
    with pytest.raises(MalformedDocumentError, match="frontmatter"):
        parse_spec("# A\n", "a.md")


def test_parse_spec_missing_id():
    with pytest.raises(MalformedDocumentError, match="'id'"):
        parse_spec("---\ntitle: A\n---\n", "a.md")


def test_parse_spec_invalid_yaml():
    with pytest.raises(MalformedDocumentError, match="YAML"):
        parse_spec("---\nid: [unclosed\n---\n", "a.md")


def test_render_spec_parses_back():
    spec = Spec(id="a", title="A: colon", status=SpecStatus.APPROVED,
                created="2025-01-01", updated="2025-01-02", body="# A\n")
    loaded = parse_spec(render_spec(spec), "a.md")
    assert loaded == spec


# --- Task documents ---

def _doc(**overrides):
    data = {
        "spec_id": "auth",
        "sessions": [{"id": "1", "title": "Backend", "status": "in_progress", "priority": 1}],
        "tasks": [
            {"id": "2", "title": "JWT", "status": "pending", "priority": 0,
             "depends_on": ["1"], "parent_id": "1", "type": "backend"},
        ],
    }
    data.update(overrides)
    return json.dumps(data)


def test_parse_task_document():
    spec_id, items = parse_task_document(_doc(), "auth.json")
    assert spec_id == "auth"
    assert [i.id for i in items] == ["1", "2"]
    session, task = items
    assert session.kind == ItemKind.SESSION
    assert session.status == WorkStatus.IN_PROGRESS
    assert task.kind == ItemKind.TASK
    assert task.parent_id == "1"
    assert task.depends_on == ["1"]
    assert task.type == "backend"
    assert task.spec_id == "auth"


def test_parse_task_document_spec_mismatch():
    with pytest.raises(MalformedDocumentError, match="does not match"):
        parse_task_document(_doc(), "billing.json", spec_id="billing")


def test_parse_task_document_duplicate_ids():
    with pytest.raises(MalformedDocumentError, match="duplicate"):
        parse_task_document(_doc(tasks=[{"id": "1", "title": "dup"}]), "auth.json")


@pytest.mark.parametrize("priority", [-1, 5, "high", True])
def test_parse_task_document_bad_priority(priority):
    doc = _doc(tasks=[{"id": "2", "title": "x", "priority": priority}])
    with pytest.raises(MalformedDocumentError, match="priority"):
        parse_task_document(doc, "auth.json")


def test_parse_task_document_bad_status():
    doc = _doc(tasks=[{"id": "2", "title": "x", "status": "ready"}])
    with pytest.raises(MalformedDocumentError, match="status"):
        parse_task_document(doc, "auth.json")


def test_parse_task_document_invalid_json():
    with pytest.raises(MalformedDocumentError, match="JSON"):
        parse_task_document("{not json", "auth.json")


def test_parse_task_document_defaults():
    doc = json.dumps({"spec_id": "s", "tasks": [{"id": "7", "title": "t"}]})
    _, items = parse_task_document(doc, "s.json")
    assert items[0].status == WorkStatus.PENDING
    assert items[0].priority == 2
    assert items[0].depends_on == []


def test_render_task_document_keeps_runtime_fields():
    retry_after = datetime(2025, 1, 1, 12, tzinfo=timezone.utc)
    items = [
        WorkItem(id="1", title="S", spec_id="s", kind=ItemKind.SESSION),
        WorkItem(id="2", title="T", spec_id="s", parent_id="1", retry_count=1,
                 retry_after=retry_after, error_message="boom"),
    ]
    _, loaded = parse_task_document(render_task_document("s", items), "s.json")
    assert loaded == items


# --- Log entries ---

def test_parse_log_entry():
    content = "---\nid: cache-ab12\nanchors:\n  - src/cache.py\n---\n# Cache\n"
    entry = parse_log_entry(content, ".kit/logs/cache-ab12.md")
    assert entry.id == "cache-ab12"
    assert entry.anchors == ["src/cache.py"]
    assert entry.path == ".kit/logs/cache-ab12.md"
    assert entry.verified is None


def test_parse_log_entry_single_anchor_string():
    entry = parse_log_entry("---\nid: a\nanchors: src/a.py\n---\n", "a.md")
    assert entry.anchors == ["src/a.py"]


def test_parse_log_entry_requires_anchor():
    with pytest.raises(MalformedDocumentError, match="anchor"):
        parse_log_entry("---\nid: a\nanchors: []\n---\n", "a.md")


def test_parse_log_entry_naive_verified_is_utc():
    entry = parse_log_entry("---\nid: a\nanchors: [x]\nverified: 2025-01-01T10:00:00\n---\n", "a.md")
    assert entry.verified == datetime(2025, 1, 1, 10, tzinfo=timezone.utc)


def test_parse_log_entry_impossible_date():
    with pytest.raises(MalformedDocumentError, match="frontmatter") as exc:
        parse_log_entry("---\nid: a\nanchors: [x]\nverified: 2024-13-01\n---\n", "a.md")
    assert exc.value.path == "a.md"


def test_render_log_entry_parses_back():
    entry = LogEntry(id="a", content="# A\n", anchors=["x.py", "y.py"], path="a.md",
                     verified=datetime(2025, 1, 1, tzinfo=timezone.utc))
    assert parse_log_entry(render_log_entry(entry), "a.md") == entry


# --- describe ---

def test_describe_first_line():
    assert describe("\n# Cache layer\n\nDetails") == "Cache layer"


def test_describe_truncates():
    assert describe("x" * 100, limit=10) == "xxxxxxx..."


def test_describe_empty():
    assert describe("") == ""
