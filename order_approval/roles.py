from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .config import Settings
from .models import ROLE_LABELS, Role


@dataclass(frozen=True)
class ActingUser:
    name: str
    role: Role

    @property
    def label(self) -> str:
        return f"{ROLE_LABELS[self.role]} {self.name}"


@dataclass(frozen=True)
class Recipient:
    role: Role
    name: str


@dataclass(frozen=True)
class RolePolicy:
    default_successor: Callable[[Settings], Optional[Recipient]]
    deadline_days: Callable[[Settings], int]

    reject_requires_role: bool = False
    reject_falls_back_to_sender: bool = False
    approve_requires_manufacturing_term: bool = False


def _to_head_order_department(settings: Settings) -> Optional[Recipient]:
    return Recipient(Role.head_order_department, settings.head_order_department_name)


def _to_order_manager(settings: Settings) -> Optional[Recipient]:
    return Recipient(Role.order_manager, settings.order_manager_name)


def _final_sign_off(settings: Settings) -> Optional[Recipient]:
    return None


ROLE_POLICIES: Dict[Role, RolePolicy] = {
    Role.technologist: RolePolicy(
        default_successor=_to_head_order_department,
        deadline_days=lambda s: s.technologist_deadline_days,
        reject_requires_role=True,
        approve_requires_manufacturing_term=True,
    ),
    Role.head_order_department: RolePolicy(
        default_successor=_to_order_manager,
        deadline_days=lambda s: s.head_order_department_deadline_days,
    ),
    Role.order_manager: RolePolicy(
        default_successor=_final_sign_off,
        deadline_days=lambda s: s.order_manager_deadline_days,
        reject_falls_back_to_sender=True,
    ),
}


def get_policy(role: Role) -> RolePolicy:
    return ROLE_POLICIES[role]


def default_successor(role: Role, settings: Settings) -> Optional[Recipient]:
    return ROLE_POLICIES[role].default_successor(settings)


def default_holder(role: Role, settings: Settings) -> Recipient:
    names = {
        Role.technologist: settings.technologist_name,
        Role.head_order_department: settings.head_order_department_name,
        Role.order_manager: settings.order_manager_name,
    }
    return Recipient(role, names[role])
