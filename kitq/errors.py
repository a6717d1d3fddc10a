"""Error taxonomy shared by the scheduler, tracker and stores."""

from __future__ import annotations


class KitqError(Exception):
    """Base class for all kitq errors."""


class NotFoundError(KitqError):
    """A referenced id or path does not exist."""


class InvalidTransitionError(KitqError):
    """A status change is not allowed by the state machine."""


class CycleDetectedError(KitqError):
    """Recording a dependency edge would close a cycle."""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__(f"Dependency cycle detected: {' -> '.join(cycle)}")


class MalformedDocumentError(KitqError):
    """A document's frontmatter or JSON cannot be parsed or validated."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class TimestampUnresolvableError(KitqError):
    """Neither version control nor the filesystem yields a timestamp."""
