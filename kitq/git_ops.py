"""Git operations and the file timestamp oracle."""

from __future__ import annotations

import logging
import os
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from .errors import TimestampUnresolvableError

logger = logging.getLogger(__name__)


def _run_git(args: list[str], cwd: Path) -> str:
    """Run a git command and return stdout."""
    result = subprocess.run(
        ["git"] + args,
        cwd=str(cwd),
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def is_git_repo(cwd: Path) -> bool:
    try:
        _run_git(["rev-parse", "--git-dir"], cwd)
    except (subprocess.CalledProcessError, FileNotFoundError):
        return False
    return True


def get_last_commit_time(path: str, cwd: Path) -> datetime | None:
    """Time of the last commit touching `path`, or None if it has no history."""
    try:
        out = _run_git(["log", "-1", "--format=%ct", "--", path], cwd)
    except FileNotFoundError:
        logger.warning("git executable not found; falling back to file mtime")
        return None
    except subprocess.CalledProcessError:
        return None
    if not out:
        return None
    return datetime.fromtimestamp(int(out), tz=timezone.utc)


def stage_files(paths: list[str], cwd: Path) -> bool:
    """Stage paths (additions, modifications and deletions). Returns False outside a repo."""
    if not paths:
        return True
    try:
        _run_git(["add", "-A", "--"] + paths, cwd)
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        logger.warning(f"Failed to stage {', '.join(paths)}: {e}")
        return False
    return True


# ---------------------------------------------------------------------------
# Timestamp oracle
# ---------------------------------------------------------------------------

class TimestampOracle(Protocol):
    def last_modified(self, path: str) -> datetime | None:
        """Last modification time of `path`, None when it does not exist.

        Raises TimestampUnresolvableError when the path exists but no
        timestamp can be obtained.
        """
        ...


class FileTimestampOracle:
    """Git last-commit time, falling back to filesystem mtime."""

    def __init__(self, root: str | Path, use_git: bool = True):
        self.root = Path(root)
        self.use_git = use_git and is_git_repo(self.root)

    def last_modified(self, path: str) -> datetime | None:
        full = self.root / path
        if not os.path.lexists(full):
            return None

        if self.use_git:
            committed = get_last_commit_time(path, self.root)
            if committed is not None:
                return committed

        try:
            mtime = os.stat(full).st_mtime
        except FileNotFoundError:
            return None
        except OSError as e:
            raise TimestampUnresolvableError(f"Cannot resolve timestamp for {path}: {e}") from e
        return datetime.fromtimestamp(mtime, tz=timezone.utc)
