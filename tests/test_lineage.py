from datetime import datetime

from order_approval.lineage import (
    find_rejecting_ancestor,
    has_cycle,
    index_records,
    is_ancestor,
    iter_ancestors,
    reparent,
)
from order_approval.models import AuditRecord, Role, StepResult, StepStatus


def rec(record_id, parent_id=None, name="tech", result=None):
    return AuditRecord(
        id=record_id,
        order_id=1,
        parent_id=parent_id,
        receipt_date=datetime(2024, 3, 4, 9, record_id),
        recipient_role=Role.technologist,
        recipient_name=name,
        status=StepStatus.done if result else StepStatus.in_progress,
        result=result,
    )


class TestAncestors:
    def test_walks_up_to_root(self):
        records = [rec(1), rec(2, parent_id=1), rec(3, parent_id=2)]
        by_id = index_records(records)
        assert [r.id for r in iter_ancestors(records[2], by_id)] == [2, 1]

    def test_stops_at_missing_parent(self):
        records = [rec(2, parent_id=1), rec(3, parent_id=2)]
        by_id = index_records(records)
        assert [r.id for r in iter_ancestors(records[1], by_id)] == [2]

    def test_stops_on_loop(self):
        records = [rec(1, parent_id=2), rec(2, parent_id=1)]
        by_id = index_records(records)
        assert [r.id for r in iter_ancestors(records[0], by_id)] == [2]

    def test_is_ancestor(self):
        records = [rec(1), rec(2, parent_id=1), rec(3)]
        by_id = index_records(records)
        assert is_ancestor(records[0], records[1], by_id)
        assert not is_ancestor(records[2], records[1], by_id)


class TestFindRejectingAncestor:
    def test_finds_nearest_rejection_by_name(self):
        records = [
            rec(1, name="head", result=StepResult.rejected),
            rec(2, parent_id=1, name="tech", result=StepResult.rejected),
            rec(3, parent_id=2, name="manager"),
        ]
        by_id = index_records(records)
        assert find_rejecting_ancestor(records[2], "head", by_id) == 1
        assert find_rejecting_ancestor(records[2], "tech", by_id) == 2

    def test_ignores_approved_steps(self):
        records = [rec(1, name="head", result=StepResult.approved), rec(2, parent_id=1)]
        by_id = index_records(records)
        assert find_rejecting_ancestor(records[1], "head", by_id) is None

    def test_root_has_no_rejecting_ancestor(self):
        record = rec(1)
        assert find_rejecting_ancestor(record, "tech", index_records([record])) is None


class TestReparent:
    def test_moves_child_under_new_parent(self):
        records = [rec(1), rec(2, parent_id=1), rec(3, parent_id=1)]
        by_id = index_records(records)

        changed = reparent(records[1], records[2], by_id)

        assert changed == [records[1]]
        assert records[1].parent_id == 3
        assert not has_cycle(records)

    def test_swaps_when_child_is_ancestor_of_new_parent(self):
        records = [rec(1), rec(2, parent_id=1), rec(3, parent_id=2)]
        by_id = index_records(records)

        changed = reparent(records[1], records[2], by_id)

        assert changed == [records[2], records[1]]
        assert records[2].parent_id == 1
        assert records[1].parent_id == 3
        assert not has_cycle(records)


class TestHasCycle:
    def test_tree_has_no_cycle(self):
        assert not has_cycle([rec(1), rec(2, parent_id=1), rec(3, parent_id=2)])

    def test_detects_loop(self):
        assert has_cycle([rec(1, parent_id=2), rec(2, parent_id=1)])

    def test_detects_self_reference(self):
        assert has_cycle([rec(1, parent_id=1)])
