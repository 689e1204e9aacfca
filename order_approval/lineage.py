"""Parent-link helpers over one order's audit trail.

Records are addressed by id through a flat ``{id: record}`` map, so moving a
record is a single ``parent_id`` assignment.
"""
from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional

from .models import AuditRecord, StepResult

RecordMap = Dict[int, AuditRecord]


def index_records(records: Iterable[AuditRecord]) -> RecordMap:
    return {record.id: record for record in records if record.id is not None}


def iter_ancestors(record: AuditRecord, by_id: RecordMap) -> Iterator[AuditRecord]:
    """Yield parent, grandparent, ... stopping at a missing link or a loop."""
    seen = {record.id}
    parent_id = record.parent_id
    while parent_id is not None and parent_id not in seen:
        parent = by_id.get(parent_id)
        if parent is None:
            return
        yield parent
        seen.add(parent_id)
        parent_id = parent.parent_id


def find_rejecting_ancestor(
    record: AuditRecord,
    recipient_name: str,
    by_id: RecordMap,
) -> Optional[int]:
    for ancestor in iter_ancestors(record, by_id):
        if ancestor.recipient_name == recipient_name and ancestor.result == StepResult.rejected:
            return ancestor.id
    return None


def is_ancestor(candidate: AuditRecord, record: AuditRecord, by_id: RecordMap) -> bool:
    return any(ancestor.id == candidate.id for ancestor in iter_ancestors(record, by_id))


def reparent(child: AuditRecord, new_parent: AuditRecord, by_id: RecordMap) -> List[AuditRecord]:
    """Move ``child`` under ``new_parent`` and return the records that changed.

    If ``child`` is already an ancestor of ``new_parent`` the two swap places:
    ``new_parent`` takes over the child's former parent link and ``child``
    hangs under it.
    """
    if is_ancestor(child, new_parent, by_id):
        new_parent.parent_id = child.parent_id
        child.parent_id = new_parent.id
        return [new_parent, child]

    child.parent_id = new_parent.id
    return [child]


def has_cycle(records: Iterable[AuditRecord]) -> bool:
    records = list(records)
    by_id = index_records(records)
    for record in records:
        seen = set()
        current: Optional[AuditRecord] = record
        while current is not None and current.parent_id is not None:
            if current.id in seen:
                return True
            seen.add(current.id)
            current = by_id.get(current.parent_id)
    return False
