"""Spec lifecycle: creation, status transitions, task document setup."""

from __future__ import annotations

import logging
from datetime import date

from .errors import InvalidTransitionError, KitqError
from .ids import generate_id
from .models import Spec, SpecStatus
from .store import DocumentStore

logger = logging.getLogger(__name__)

TRANSITIONS: dict[SpecStatus, set[SpecStatus]] = {
    SpecStatus.DRAFT: {SpecStatus.IN_REVIEW, SpecStatus.DEPRECATED},
    SpecStatus.IN_REVIEW: {SpecStatus.DRAFT, SpecStatus.APPROVED, SpecStatus.DEPRECATED},
    SpecStatus.APPROVED: {SpecStatus.IMPLEMENTED, SpecStatus.DEPRECATED},
    SpecStatus.IMPLEMENTED: {SpecStatus.DEPRECATED},
    SpecStatus.DEPRECATED: set(),
}


def _today() -> str:
    return date.today().isoformat()


def create_spec(store: DocumentStore, title: str, body: str = "") -> Spec:
    spec_id = generate_id(title, taken=set(store.list_spec_ids()))
    today = _today()
    spec = Spec(
        id=spec_id,
        title=title,
        status=SpecStatus.DRAFT,
        created=today,
        updated=today,
        body=body or f"# {title}\n",
    )
    store.save_spec(spec)
    logger.info(f"Created spec {spec_id}")
    return spec


def transition(store: DocumentStore, spec_id: str, status: SpecStatus) -> Spec:
    spec = store.load_spec(spec_id)
    if status not in TRANSITIONS[spec.status]:
        raise InvalidTransitionError(
            f"Spec '{spec_id}' cannot move from {spec.status.value} to {status.value}"
        )
    spec.status = status
    spec.updated = _today()
    store.save_spec(spec)
    logger.info(f"Spec {spec_id} is now {status.value}")
    return spec


def init_tasks(store: DocumentStore, spec_id: str) -> bool:
    """Create an empty task document for an approved spec.

    Returns False when the document already exists.
    """
    spec = store.load_spec(spec_id)
    if spec.status != SpecStatus.APPROVED:
        raise KitqError(
            f"Spec '{spec_id}' is {spec.status.value}; tasks are created once it is approved"
        )
    if store.has_items(spec_id):
        return False
    store.save_items(spec_id, [])
    return True
