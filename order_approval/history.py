"""Rebuilds the rework tree of one order from its flat audit trail.

Every record becomes exactly one node. Parent links come from ``parent_id``
only; a link that is missing, points outside the trail, points at the record
itself or would close a loop leaves the record at the root level. Nothing
here raises on bad data and nothing is cached between calls.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional

from .models import ROLE_LABELS, AuditRecord, StepResult

BRANCH = "├─ "
LAST_BRANCH = "└─ "
PIPE = "│  "
BLANK = "   "


@dataclass
class HistoryNode:
    record: AuditRecord
    children: List["HistoryNode"] = field(default_factory=list)

    level: int = 0
    effective_result: Optional[StepResult] = None
    effective_completion_date: Optional[datetime] = None
    is_last_child: bool = False
    prefix: str = ""

    @property
    def id(self) -> Optional[int]:
        return self.record.id

    @property
    def has_children(self) -> bool:
        return bool(self.children)


def build_tree(records: Iterable[AuditRecord]) -> List[HistoryNode]:
    ordered = sorted(records, key=lambda record: record.sort_key())
    nodes = [HistoryNode(record) for record in ordered]

    position_of: Dict[int, int] = {}
    for pos, record in enumerate(ordered):
        if record.id is not None:
            position_of.setdefault(record.id, pos)

    parent_pos: List[Optional[int]] = [None] * len(nodes)
    for pos, record in enumerate(ordered):
        if record.parent_id is None:
            continue
        target = position_of.get(record.parent_id)
        if target is not None and not _closes_loop(pos, target, parent_pos):
            parent_pos[pos] = target

    roots: List[HistoryNode] = []
    for pos, node in enumerate(nodes):
        if parent_pos[pos] is None:
            roots.append(node)
        else:
            nodes[parent_pos[pos]].children.append(node)

    preorder = list(iter_nodes(roots))
    _assign_levels(roots)
    _roll_up(preorder, roots)
    _assign_prefixes(roots)
    return roots


def _closes_loop(pos: int, target: int, parent_pos: List[Optional[int]]) -> bool:
    current: Optional[int] = target
    while current is not None:
        if current == pos:
            return True
        current = parent_pos[current]
    return False


def _assign_levels(roots: List[HistoryNode]) -> None:
    stack = [(root, 0) for root in roots]
    while stack:
        node, level = stack.pop()
        node.level = level
        stack.extend((child, level + 1) for child in node.children)


def _roll_up(preorder: List[HistoryNode], roots: List[HistoryNode]) -> None:
    # Reversed pre-order visits every child before its parent.
    root_ids = {id(root): index for index, root in enumerate(roots)}
    last_root_index = len(roots) - 1

    for node in reversed(preorder):
        completion = node.record.completion_date
        for child in node.children:
            child_date = child.effective_completion_date
            if child_date is not None and (completion is None or child_date > completion):
                completion = child_date
        node.effective_completion_date = completion

        if not node.children:
            node.effective_result = node.record.result
        elif id(node) in root_ids:
            moved_on = root_ids[id(node)] < last_root_index
            node.effective_result = StepResult.approved if moved_on else StepResult.rejected
        else:
            node.effective_result = StepResult.rejected


def _assign_prefixes(roots: List[HistoryNode]) -> None:
    _mark_last(roots)
    # (node, continuation markers inherited from non-root ancestors)
    stack = [(root, "") for root in roots]
    while stack:
        node, inherited = stack.pop()
        if node.level == 0:
            node.prefix = ""
            passed_down = ""
        else:
            node.prefix = inherited + (LAST_BRANCH if node.is_last_child else BRANCH)
            passed_down = inherited + (BLANK if node.is_last_child else PIPE)

        _mark_last(node.children)
        stack.extend((child, passed_down) for child in node.children)


def _mark_last(siblings: List[HistoryNode]) -> None:
    for index, sibling in enumerate(siblings):
        sibling.is_last_child = index == len(siblings) - 1


def iter_nodes(forest: Iterable[HistoryNode]) -> Iterator[HistoryNode]:
    """Pre-order walk, siblings in chronological order."""
    stack = list(reversed(list(forest)))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def count_nodes(forest: Iterable[HistoryNode]) -> int:
    return sum(1 for _ in iter_nodes(forest))


def format_node(node: HistoryNode) -> str:
    record = node.record
    outcome = node.effective_result.value if node.effective_result else record.status.value
    label = ROLE_LABELS.get(record.recipient_role, str(record.recipient_role))
    marker = " [rework]" if record.is_rework else ""
    return f"{node.prefix}{label} {record.recipient_name}: {outcome}{marker}"


def render_lines(forest: Iterable[HistoryNode]) -> List[str]:
    return [format_node(node) for node in iter_nodes(forest)]
