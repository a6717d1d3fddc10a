"""Shared fixtures for kitq tests."""

import json
import subprocess
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from kitq.errors import TimestampUnresolvableError
from kitq.models import WorkItem, WorkStatus
from kitq.store import MemoryStore

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    """A fixed point in time, `minutes` after T0."""
    return T0 + timedelta(minutes=minutes)


def item(item_id, deps=(), priority=2, status=WorkStatus.PENDING, spec_id="s", **kw):
    return WorkItem(
        id=item_id,
        title=f"Item {item_id}",
        spec_id=spec_id,
        priority=priority,
        depends_on=list(deps),
        status=status,
        **kw,
    )


class FakeOracle:
    """Dict-backed timestamp oracle: missing key = missing path, "error" = unresolvable."""

    def __init__(self, times=None):
        self.times = dict(times or {})

    def last_modified(self, path):
        value = self.times.get(path)
        if value == "error":
            raise TimestampUnresolvableError(f"Cannot resolve timestamp for {path}")
        return value


class FakeClock:
    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tmp_kit(tmp_path):
    """A project with .kit/ and a config that keeps git out of the way."""
    kit = tmp_path / ".kit"
    for sub in ("specs", "tasks", "logs"):
        (kit / sub).mkdir(parents=True)
    (kit / "config.yaml").write_text("""\
kit_dir: .kit
scheduler:
  max_retries: 2
  retry_backoff_sec: 0
staleness:
  use_git: false
logging:
  level: WARNING
""")
    return tmp_path


@pytest.fixture
def approved_spec(tmp_kit):
    """Approved spec `auth-x1y2` with a session and three tasks:

    1 (session) ← parent of 2, 3
    2 → 3 → 4
    """
    (tmp_kit / ".kit" / "specs" / "auth-x1y2.md").write_text("""\
---
id: auth-x1y2
title: Add authentication
status: approved
created: '2025-01-01'
updated: '2025-01-02'
---
# Add authentication
""")
    doc = {
        "spec_id": "auth-x1y2",
        "sessions": [
            {"id": "1", "title": "Backend", "status": "pending", "priority": 1, "depends_on": []},
        ],
        "tasks": [
            {"id": "2", "title": "JWT service", "status": "pending", "priority": 1,
             "depends_on": [], "parent_id": "1"},
            {"id": "3", "title": "Middleware", "status": "pending", "priority": 1,
             "depends_on": ["2"], "parent_id": "1"},
            {"id": "4", "title": "Docs", "status": "pending", "priority": 3,
             "depends_on": ["3"]},
        ],
    }
    (tmp_kit / ".kit" / "tasks" / "auth-x1y2.json").write_text(json.dumps(doc, indent=2))
    return tmp_kit


@pytest.fixture
def git_repo(tmp_path):
    """Initialize a real git repo with initial branch 'main'."""
    subprocess.run(["git", "init", "-b", "main"], cwd=tmp_path, check=True, capture_output=True)
    subprocess.run(["git", "config", "user.email", "test@test.com"],
                   cwd=tmp_path, check=True, capture_output=True)
    subprocess.run(["git", "config", "user.name", "test"],
                   cwd=tmp_path, check=True, capture_output=True)
    # Disable commit signing for tests
    subprocess.run(["git", "config", "commit.gpgsign", "false"],
                   cwd=tmp_path, check=True, capture_output=True)
    (tmp_path / "README.md").write_text("# Test")
    subprocess.run(["git", "add", "."], cwd=tmp_path, check=True, capture_output=True)
    subprocess.run(["git", "commit", "--no-gpg-sign", "-m", "init"],
                   cwd=tmp_path, check=True, capture_output=True)
    return tmp_path


@pytest_asyncio.fixture
async def journal(tmp_path):
    """Real SQLite file journal (WAL mode)."""
    from kitq.db import Journal
    j = Journal(str(tmp_path / "journal.db"))
    await j.init()
    yield j
    await j.close()


@pytest_asyncio.fixture
async def memory_journal():
    """In-memory journal for fast unit tests."""
    from kitq.db import Journal
    j = Journal(":memory:")
    await j.init()
    yield j
    await j.close()
