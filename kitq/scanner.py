"""Parse and render kitq documents: frontmatter markdown and task JSON."""

from __future__ import annotations

import json
import re
from datetime import date, datetime, timezone

import yaml

from .errors import MalformedDocumentError
from .models import (
    MAX_PRIORITY,
    MIN_PRIORITY,
    DEFAULT_PRIORITY,
    ItemKind,
    LogEntry,
    Spec,
    SpecStatus,
    WorkItem,
    WorkStatus,
)


# -------------------------------------------------------------------
# Frontmatter parsing
# -------------------------------------------------------------------

_FM_RE = re.compile(r"\A---[ \t]*\n(.*?)^---[ \t]*(?:\n|\Z)(.*)", re.DOTALL | re.MULTILINE)


def parse_frontmatter(content: str) -> tuple[dict, str]:
    """Parse YAML frontmatter from markdown content.

    Returns (metadata_dict, body_text).
    """
    match = _FM_RE.match(content)
    if match:
        raw_yaml = match.group(1)
        body = match.group(2)
        meta = yaml.safe_load(raw_yaml)
        if meta is None:
            meta = {}
        if not isinstance(meta, dict):
            meta = {}
        return meta, body
    return {}, content


def render_frontmatter(meta: dict, body: str) -> str:
    raw = yaml.safe_dump(meta, sort_keys=False, allow_unicode=True, default_flow_style=False)
    return f"---\n{raw}---\n{body}"


def _strict_frontmatter(content: str, path: str) -> tuple[dict, str]:
    if not _FM_RE.match(content):
        raise MalformedDocumentError(path, "missing YAML frontmatter")
    try:
        return parse_frontmatter(content)
    # PyYAML raises a bare ValueError for impossible dates such as 2024-13-01.
    except (yaml.YAMLError, ValueError) as e:
        raise MalformedDocumentError(path, f"invalid YAML frontmatter: {e}") from e


# -------------------------------------------------------------------
# Field coercion
# -------------------------------------------------------------------

def _require_str(meta: dict, name: str, path: str) -> str:
    value = meta.get(name)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MalformedDocumentError(path, f"missing required field '{name}'")
    if isinstance(value, (dict, list)):
        raise MalformedDocumentError(path, f"field '{name}' must be a scalar")
    return str(value)


def _date_str(value) -> str:
    if value is None:
        return ""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def parse_timestamp(value, path: str, name: str) -> datetime | None:
    """Accept YAML/JSON timestamps as datetime or ISO strings; naive means UTC."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, date):
        ts = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            ts = datetime.fromisoformat(value)
        except ValueError as e:
            raise MalformedDocumentError(path, f"field '{name}' is not a timestamp: {value!r}") from e
    else:
        raise MalformedDocumentError(path, f"field '{name}' is not a timestamp: {value!r}")
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def format_timestamp(ts: datetime | None) -> str:
    return ts.isoformat() if ts else ""


def _enum(enum_cls, value, path: str, name: str):
    try:
        return enum_cls(value)
    except ValueError as e:
        allowed = ", ".join(m.value for m in enum_cls)
        raise MalformedDocumentError(
            path, f"invalid {name} {value!r} (expected one of: {allowed})"
        ) from e


# -------------------------------------------------------------------
# Specs
# -------------------------------------------------------------------

def parse_spec(content: str, path: str) -> Spec:
    meta, body = _strict_frontmatter(content, path)
    # Older spec files carry `name:` instead of `title:`.
    if "title" not in meta and "name" in meta:
        meta["title"] = meta["name"]
    return Spec(
        id=_require_str(meta, "id", path),
        title=_require_str(meta, "title", path),
        status=_enum(SpecStatus, meta.get("status", SpecStatus.DRAFT.value), path, "status"),
        created=_date_str(meta.get("created")),
        updated=_date_str(meta.get("updated")),
        body=body,
    )


def render_spec(spec: Spec) -> str:
    meta = {
        "id": spec.id,
        "title": spec.title,
        "status": spec.status.value,
        "created": spec.created,
        "updated": spec.updated,
    }
    return render_frontmatter(meta, spec.body)


# -------------------------------------------------------------------
# Task documents
# -------------------------------------------------------------------

def _parse_item(raw, spec_id: str, kind: ItemKind, path: str) -> WorkItem:
    if not isinstance(raw, dict):
        raise MalformedDocumentError(path, f"{kind.value} entry must be an object")
    item_id = _require_str(raw, "id", path)
    where = f"{kind.value} '{item_id}'"

    priority = raw.get("priority", DEFAULT_PRIORITY)
    if isinstance(priority, bool) or not isinstance(priority, int):
        raise MalformedDocumentError(path, f"{where}: priority must be an integer")
    if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
        raise MalformedDocumentError(
            path, f"{where}: priority {priority} outside {MIN_PRIORITY}..{MAX_PRIORITY}"
        )

    deps = raw.get("depends_on") or []
    if not isinstance(deps, list):
        raise MalformedDocumentError(path, f"{where}: depends_on must be a list")

    parent = raw.get("parent_id")
    retry_count = raw.get("retry_count", 0)
    if isinstance(retry_count, bool) or not isinstance(retry_count, int) or retry_count < 0:
        raise MalformedDocumentError(path, f"{where}: retry_count must be a non-negative integer")

    return WorkItem(
        id=item_id,
        title=str(raw.get("title", "")),
        description=str(raw.get("description", "") or ""),
        spec_id=spec_id,
        kind=kind,
        type=str(raw.get("type", "") or ""),
        status=_enum(WorkStatus, raw.get("status", WorkStatus.PENDING.value), path, f"{where} status"),
        priority=priority,
        depends_on=[str(d) for d in deps],
        parent_id=str(parent) if parent not in (None, "") else None,
        retry_count=retry_count,
        retry_after=parse_timestamp(raw.get("retry_after"), path, "retry_after"),
        error_message=str(raw.get("error_message", "") or ""),
    )


def parse_task_document(content: str, path: str, spec_id: str = "") -> tuple[str, list[WorkItem]]:
    """Parse a `{spec_id, sessions, tasks}` JSON document.

    Returns (spec_id, items) with sessions listed before tasks.
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise MalformedDocumentError(path, f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedDocumentError(path, "task document must be a JSON object")

    doc_spec_id = str(data.get("spec_id") or spec_id)
    if not doc_spec_id:
        raise MalformedDocumentError(path, "missing required field 'spec_id'")
    if spec_id and doc_spec_id != spec_id:
        raise MalformedDocumentError(
            path, f"spec_id '{doc_spec_id}' does not match file name '{spec_id}'"
        )

    items: list[WorkItem] = []
    for field_name, kind in (("sessions", ItemKind.SESSION), ("tasks", ItemKind.TASK)):
        raw_list = data.get(field_name) or []
        if not isinstance(raw_list, list):
            raise MalformedDocumentError(path, f"'{field_name}' must be a list")
        items.extend(_parse_item(raw, doc_spec_id, kind, path) for raw in raw_list)

    seen: set[str] = set()
    for item in items:
        if item.id in seen:
            raise MalformedDocumentError(path, f"duplicate item id '{item.id}'")
        seen.add(item.id)

    return doc_spec_id, items


def _render_item(item: WorkItem) -> dict:
    out: dict = {
        "id": item.id,
        "title": item.title,
        "status": item.status.value,
        "priority": item.priority,
        "depends_on": list(item.depends_on),
        "description": item.description,
    }
    if item.parent_id:
        out["parent_id"] = item.parent_id
    if item.type:
        out["type"] = item.type
    if item.retry_count:
        out["retry_count"] = item.retry_count
    if item.retry_after:
        out["retry_after"] = format_timestamp(item.retry_after)
    if item.error_message:
        out["error_message"] = item.error_message
    return out


def render_task_document(spec_id: str, items: list[WorkItem]) -> str:
    data = {
        "spec_id": spec_id,
        "sessions": [_render_item(i) for i in items if i.kind == ItemKind.SESSION],
        "tasks": [_render_item(i) for i in items if i.kind == ItemKind.TASK],
    }
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


# -------------------------------------------------------------------
# Log entries
# -------------------------------------------------------------------

def parse_log_entry(content: str, path: str) -> LogEntry:
    meta, body = _strict_frontmatter(content, path)
    anchors = meta.get("anchors")
    if isinstance(anchors, str):
        anchors = [anchors]
    if not isinstance(anchors, list) or not anchors:
        raise MalformedDocumentError(path, "an entry needs at least one anchor")
    return LogEntry(
        id=_require_str(meta, "id", path),
        content=body,
        anchors=[str(a) for a in anchors],
        path=path,
        verified=parse_timestamp(meta.get("verified"), path, "verified"),
    )


def render_log_entry(entry: LogEntry) -> str:
    meta: dict = {"id": entry.id, "anchors": list(entry.anchors)}
    if entry.verified:
        meta["verified"] = format_timestamp(entry.verified)
    return render_frontmatter(meta, entry.content)


def describe(content: str, limit: int = 80) -> str:
    """One-line description: first non-empty body line without heading marks."""
    for line in content.splitlines():
        line = line.strip().lstrip("#").strip()
        if line:
            return line if len(line) <= limit else line[: limit - 3] + "..."
    return ""
