"""Tests for the SQLite event journal."""

import pytest

from kitq.db import Journal


@pytest.mark.asyncio
async def test_log_and_read_events(memory_journal):
    """Events come back in insertion order with their detail decoded."""
    await memory_journal.log_event("1", "begin", spec_id="auth")
    await memory_journal.log_event("1", "fail", {"final": False, "retry_count": 1}, spec_id="auth")
    events = await memory_journal.get_events()
    assert [e["event"] for e in events] == ["begin", "fail"]
    assert events[0]["detail"] is None
    assert events[1]["detail"] == {"final": False, "retry_count": 1}
    assert events[1]["spec_id"] == "auth"
    assert events[1]["created_at"]


@pytest.mark.asyncio
async def test_filter_by_subject_and_spec(memory_journal):
    """Item ids repeat across specs; filtering by both narrows to one item."""
    await memory_journal.log_event("1", "begin", spec_id="auth")
    await memory_journal.log_event("1", "begin", spec_id="billing")
    await memory_journal.log_event("2", "begin", spec_id="auth")
    await memory_journal.log_event("cache-ab12", "log.verify")

    assert len(await memory_journal.get_events(spec_id="auth")) == 2
    assert len(await memory_journal.get_events(subject="1")) == 2
    only = await memory_journal.get_events(subject="1", spec_id="billing")
    assert [(e["spec_id"], e["subject"]) for e in only] == [("billing", "1")]
    log_events = await memory_journal.get_events(spec_id="")
    assert [e["subject"] for e in log_events] == ["cache-ab12"]


@pytest.mark.asyncio
async def test_empty_journal(memory_journal):
    assert await memory_journal.get_events() == []


@pytest.mark.asyncio
async def test_wal_mode(journal):
    """File journal runs in WAL mode."""
    cursor = await journal._conn.execute("PRAGMA journal_mode")
    row = await cursor.fetchone()
    assert row[0] == "wal"


@pytest.mark.asyncio
async def test_events_persist_across_connections(tmp_path):
    path = str(tmp_path / "journal.db")
    async with Journal(path) as j:
        await j.log_event("1", "complete", {"cascade": False}, spec_id="auth")
    async with Journal(path) as j:
        events = await j.get_events(spec_id="auth")
    assert events[0]["event"] == "complete"
    assert events[0]["detail"] == {"cascade": False}
