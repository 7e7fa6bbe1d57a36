# lg_core/iam/authz.py
"""
Centralized authorization for clinic memberships.

    Role = Owner | Staff(PermissionSet) | Physician

Every call site asks `can(membership, action)` instead of comparing role
strings ad hoc.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Union

PERMISSION_KEYS = ("leads", "content", "payments", "team")


@dataclass(frozen=True)
class PermissionSet:
    leads: bool = False
    content: bool = False
    payments: bool = False
    team: bool = False

    @classmethod
    def from_json(cls, data: Optional[Mapping[str, Any]]) -> "PermissionSet":
        data = data or {}
        return cls(**{k: bool(data.get(k, False)) for k in PERMISSION_KEYS})

    @classmethod
    def full(cls) -> "PermissionSet":
        return cls(leads=True, content=True, payments=True, team=True)

    def to_json(self) -> dict[str, bool]:
        return {k: getattr(self, k) for k in PERMISSION_KEYS}


@dataclass(frozen=True)
class Owner:
    name = "owner"


@dataclass(frozen=True)
class Staff:
    permissions: PermissionSet
    name = "staff"


@dataclass(frozen=True)
class Physician:
    name = "physician"


Role = Union[Owner, Staff, Physician]


class Action(str, Enum):
    INVITE = "invite"
    UPDATE_ROLE = "update_role"
    REMOVE_MEMBER = "remove_member"
    GRANT_TEAM = "grant_team"
    MANAGE_ACCESS = "manage_access"
    VIEW_LEADS = "view_leads"
    MANAGE_CONTENT = "manage_content"
    MANAGE_PAYMENTS = "manage_payments"
    MANAGE_CLINIC = "manage_clinic"


_STAFF_FLAG_FOR_ACTION = {
    Action.VIEW_LEADS: "leads",
    Action.MANAGE_CONTENT: "content",
    Action.MANAGE_PAYMENTS: "payments",
    Action.INVITE: "team",
}


def role_of(membership) -> Role:
    role = getattr(membership, "role", None)
    if role == Owner.name:
        return Owner()
    if role == Physician.name:
        return Physician()
    return Staff(PermissionSet.from_json(getattr(membership, "permissions", None)))


def can(membership, action: Action | str) -> bool:
    if membership is None:
        return False
    # only accepted memberships act
    if getattr(membership, "status", None) != "accepted":
        return False

    action = Action(action)
    role = role_of(membership)

    if isinstance(role, Owner):
        return True
    if isinstance(role, Staff):
        flag = _STAFF_FLAG_FOR_ACTION.get(action)
        return bool(flag and getattr(role.permissions, flag))
    return False
