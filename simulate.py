from __future__ import annotations

import logging
from datetime import date, timedelta

from order_approval.config import get_settings
from order_approval.db import init_db, session_scope
from order_approval.decisions import ApproveDecision, RejectDecision
from order_approval.history import render_lines
from order_approval.models import Role
from order_approval.providers import StaticRoleDirectory, WeekdayCalendar
from order_approval.roles import ActingUser, default_holder
from order_approval.store import AuditStore
from order_approval.workflow import ApprovalWorkflow

ORDER_ID = 1001


def directory(settings) -> StaticRoleDirectory:
    roles = StaticRoleDirectory()
    for role in Role:
        roles.register(default_holder(role, settings).name, role)
    return roles


def main() -> None:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")
    init_db()

    tech = ActingUser(settings.technologist_name, Role.technologist)
    head = ActingUser(settings.head_order_department_name, Role.head_order_department)
    manager = ActingUser(settings.order_manager_name, Role.order_manager)
    term = date.today() + timedelta(days=14)

    with session_scope() as session:
        store = AuditStore(session)
        workflow = ApprovalWorkflow(store, WeekdayCalendar(), directory(settings), settings)

        if store.query_by_order(ORDER_ID):
            print(f"Order {ORDER_ID} already routed, history:")
        else:
            steps = [
                lambda: workflow.open_order(ORDER_ID, manager, default_holder(Role.technologist, settings)),
                lambda: workflow.reject(tech, ORDER_ID, RejectDecision(
                    recipient_name=head.name,
                    recipient_role=Role.head_order_department,
                    comment="Drawing revision is missing",
                )),
                lambda: workflow.approve(head, ORDER_ID, ApproveDecision(comment="Revision attached")),
                lambda: workflow.approve(tech, ORDER_ID, ApproveDecision(manufacturing_term=term)),
                lambda: workflow.approve(head, ORDER_ID, ApproveDecision()),
                lambda: workflow.reject(manager, ORDER_ID, RejectDecision(comment="Check the quantity")),
                lambda: workflow.approve(head, ORDER_ID, ApproveDecision(comment="Quantity fixed")),
                lambda: workflow.approve(manager, ORDER_ID, ApproveDecision()),
            ]
            for step in steps:
                result = step()
                print("SUCCESS:" if result.success else "FAILED:", result.message)

        for line in render_lines(workflow.history(ORDER_ID)):
            print(line)


if __name__ == "__main__":
    main()
