"""Document store: the only place that touches spec, task and log files."""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Protocol

from .config import Config
from .errors import MalformedDocumentError, NotFoundError
from .git_ops import stage_files
from .models import LogEntry, Spec, WorkItem
from .scanner import (
    parse_log_entry,
    parse_spec,
    parse_task_document,
    render_log_entry,
    render_spec,
    render_task_document,
)

logger = logging.getLogger(__name__)

INDEX_NAME = "INDEX.md"
_LOG_EXCLUDE_DIRS = {"tasks"}


class DocumentStore(Protocol):
    """Read/write/list access to specs, work items and log entries.

    Loaders raise NotFoundError or MalformedDocumentError for a single
    document; callers aggregating many documents skip and report those.
    """

    def list_spec_ids(self) -> list[str]: ...
    def load_spec(self, spec_id: str) -> Spec: ...
    def save_spec(self, spec: Spec) -> None: ...

    def list_task_spec_ids(self) -> list[str]: ...
    def has_items(self, spec_id: str) -> bool: ...
    def load_items(self, spec_id: str) -> list[WorkItem]: ...
    def save_items(self, spec_id: str, items: list[WorkItem]) -> None: ...

    def list_log_paths(self, scope: str | None = None) -> list[str]: ...
    def log_path_for(self, entry_id: str, scope: str | None = None) -> str: ...
    def load_log_entry(self, path: str) -> LogEntry: ...
    def save_log_entry(self, entry: LogEntry) -> None: ...
    def delete_log_entry(self, entry: LogEntry) -> None: ...
    def write_index(self, content: str) -> str: ...


# ---------------------------------------------------------------------------
# On-disk store
# ---------------------------------------------------------------------------

class FileStore:
    """`.kit/` directory layout. All returned log paths are relative to the project root."""

    def __init__(self, config: Config, stage: bool = False):
        self.config = config
        self.root = Path(config.project_root)
        self.stage = stage

    def _rel(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    def _read(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise MalformedDocumentError(self._rel(path), f"not valid UTF-8: {e}") from e

    def _stage(self, rel_path: str) -> None:
        if self.stage:
            stage_files([rel_path], self.root)

    # -- specs ---------------------------------------------------------

    def _spec_file(self, spec_id: str) -> Path:
        return self.config.specs_path / f"{spec_id}.md"

    def list_spec_ids(self) -> list[str]:
        specs_dir = self.config.specs_path
        if not specs_dir.is_dir():
            return []
        return sorted(p.stem for p in specs_dir.glob("*.md") if p.is_file())

    def load_spec(self, spec_id: str) -> Spec:
        path = self._spec_file(spec_id)
        if not path.is_file():
            raise NotFoundError(f"Spec '{spec_id}' not found")
        return parse_spec(self._read(path), self._rel(path))

    def save_spec(self, spec: Spec) -> None:
        path = self._spec_file(spec.id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_spec(spec), encoding="utf-8")

    # -- work items ----------------------------------------------------

    def _task_file(self, spec_id: str) -> Path:
        return self.config.tasks_path / f"{spec_id}.json"

    def list_task_spec_ids(self) -> list[str]:
        tasks_dir = self.config.tasks_path
        if not tasks_dir.is_dir():
            return []
        return sorted(p.stem for p in tasks_dir.glob("*.json") if p.is_file())

    def has_items(self, spec_id: str) -> bool:
        return self._task_file(spec_id).is_file()

    def load_items(self, spec_id: str) -> list[WorkItem]:
        path = self._task_file(spec_id)
        if not path.is_file():
            raise NotFoundError(f"No task document for spec '{spec_id}'")
        _, items = parse_task_document(
            self._read(path), self._rel(path), spec_id=spec_id
        )
        return items

    def save_items(self, spec_id: str, items: list[WorkItem]) -> None:
        path = self._task_file(spec_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(render_task_document(spec_id, items), encoding="utf-8")
        tmp.replace(path)

    # -- log entries ---------------------------------------------------

    def list_log_paths(self, scope: str | None = None) -> list[str]:
        logs_dir = self.config.logs_path
        base = logs_dir / scope if scope else logs_dir
        if not base.is_dir():
            return []
        paths = []
        for p in sorted(base.rglob("*.md")):
            rel_to_logs = p.relative_to(logs_dir)
            if rel_to_logs.as_posix() == INDEX_NAME:
                continue
            if _LOG_EXCLUDE_DIRS.intersection(rel_to_logs.parts[:-1]):
                continue
            if p.is_file():
                paths.append(self._rel(p))
        return paths

    def log_path_for(self, entry_id: str, scope: str | None = None) -> str:
        base = self.config.logs_path / scope if scope else self.config.logs_path
        return self._rel(base / f"{entry_id}.md")

    def load_log_entry(self, path: str) -> LogEntry:
        full = self.root / path
        if not full.is_file():
            raise NotFoundError(f"Log entry '{path}' not found")
        return parse_log_entry(self._read(full), path)

    def save_log_entry(self, entry: LogEntry) -> None:
        if not entry.path:
            entry.path = self.log_path_for(entry.id)
        full = self.root / entry.path
        full.parent.mkdir(parents=True, exist_ok=True)
        full.write_text(render_log_entry(entry), encoding="utf-8")
        self._stage(entry.path)

    def delete_log_entry(self, entry: LogEntry) -> None:
        full = self.root / entry.path
        if not full.is_file():
            raise NotFoundError(f"Log entry '{entry.path}' not found")
        full.unlink()
        self._stage(entry.path)

    def write_index(self, content: str) -> str:
        path = self.config.logs_path / INDEX_NAME
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return self._rel(path)


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------

class MemoryStore:
    """Dictionary-backed store; copies on every read and write like a real store would."""

    def __init__(self, logs_dir: str = ".kit/logs"):
        self.logs_dir = logs_dir
        self.specs: dict[str, Spec] = {}
        self.items: dict[str, list[WorkItem]] = {}
        self.logs: dict[str, LogEntry] = {}
        self.index: str = ""

    def list_spec_ids(self) -> list[str]:
        return sorted(self.specs)

    def load_spec(self, spec_id: str) -> Spec:
        if spec_id not in self.specs:
            raise NotFoundError(f"Spec '{spec_id}' not found")
        return copy.deepcopy(self.specs[spec_id])

    def save_spec(self, spec: Spec) -> None:
        self.specs[spec.id] = copy.deepcopy(spec)

    def list_task_spec_ids(self) -> list[str]:
        return sorted(self.items)

    def has_items(self, spec_id: str) -> bool:
        return spec_id in self.items

    def load_items(self, spec_id: str) -> list[WorkItem]:
        if spec_id not in self.items:
            raise NotFoundError(f"No task document for spec '{spec_id}'")
        return copy.deepcopy(self.items[spec_id])

    def save_items(self, spec_id: str, items: list[WorkItem]) -> None:
        stored = copy.deepcopy(items)
        for item in stored:
            item.spec_id = spec_id
        self.items[spec_id] = stored

    def list_log_paths(self, scope: str | None = None) -> list[str]:
        prefix = f"{self.logs_dir}/{scope}/" if scope else f"{self.logs_dir}/"
        return sorted(p for p in self.logs if p.startswith(prefix))

    def log_path_for(self, entry_id: str, scope: str | None = None) -> str:
        base = f"{self.logs_dir}/{scope}" if scope else self.logs_dir
        return f"{base}/{entry_id}.md"

    def load_log_entry(self, path: str) -> LogEntry:
        if path not in self.logs:
            raise NotFoundError(f"Log entry '{path}' not found")
        return copy.deepcopy(self.logs[path])

    def save_log_entry(self, entry: LogEntry) -> None:
        if not entry.path:
            entry.path = self.log_path_for(entry.id)
        self.logs[entry.path] = copy.deepcopy(entry)

    def delete_log_entry(self, entry: LogEntry) -> None:
        if entry.path not in self.logs:
            raise NotFoundError(f"Log entry '{entry.path}' not found")
        del self.logs[entry.path]

    def write_index(self, content: str) -> str:
        self.index = content
        return f"{self.logs_dir}/{INDEX_NAME}"
