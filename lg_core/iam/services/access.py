# lg_core/iam/services/access.py
"""
AccessGate: may this authenticated principal use the portal?

Granted iff ANY DoctorProfile row for the principal has access_control=True.
A principal with zero rows is provisioned exactly once and re-evaluated;
nothing else in this path writes DoctorProfile rows.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from django.db import DatabaseError, IntegrityError, transaction

from lg_core.iam.models import DoctorProfile
from lg_core.iam.selectors import profiles_for_principal

logger = logging.getLogger(__name__)


class AccessState(str, Enum):
    UNCHECKED = "unchecked"
    CHECKING = "checking"
    GRANTED = "granted"
    DENIED = "denied"


class DenyReason(str, Enum):
    # explicit branch: rows exist, none grant access
    ACCESS_REVOKED = "access_revoked"
    # first-time provisioning failed
    SETUP_FAILED = "setup_failed"
    # transient store error while checking
    CHECK_FAILED = "check_failed"


@dataclass(frozen=True)
class ProfileFlags:
    profile_id: str
    clinic_id: Optional[str]
    access_control: bool
    is_staff: bool
    is_manager: bool
    is_admin: bool

    @classmethod
    def of(cls, p: DoctorProfile) -> "ProfileFlags":
        return cls(
            profile_id=str(p.id),
            clinic_id=str(p.clinic_id) if p.clinic_id else None,
            access_control=p.access_control is True,
            is_staff=bool(p.is_staff),
            is_manager=bool(p.is_manager),
            is_admin=bool(p.is_admin),
        )


@dataclass(frozen=True)
class AccessDecision:
    state: AccessState
    reason: Optional[DenyReason] = None
    provisioned: bool = False
    profiles: tuple[ProfileFlags, ...] = field(default_factory=tuple)

    @property
    def granted(self) -> bool:
        return self.state == AccessState.GRANTED

    @property
    def sticky(self) -> bool:
        """Explicit revocation stays denied until a fresh login or explicit re-check."""
        return self.state == AccessState.DENIED and self.reason == DenyReason.ACCESS_REVOKED

    @property
    def role(self) -> str:
        granted = [p for p in self.profiles if p.access_control]
        if not granted:
            return "none"
        first = granted[0]
        if first.is_admin:
            return "admin"
        if first.is_manager:
            return "manager"
        if first.is_staff:
            return "staff"
        return "doctor"

    def as_dict(self, *, include_flags: bool = False) -> dict:
        data = {
            "state": self.state.value,
            "granted": self.granted,
            "reason": self.reason.value if self.reason else None,
            "provisioned": self.provisioned,
            "role": self.role,
        }
        if include_flags:
            data["profiles"] = [p.__dict__.copy() for p in self.profiles]
        return data


def _decide(profiles: list[DoctorProfile], *, provisioned: bool = False) -> AccessDecision:
    flags = tuple(ProfileFlags.of(p) for p in profiles)
    if any(f.access_control for f in flags):
        return AccessDecision(state=AccessState.GRANTED, provisioned=provisioned, profiles=flags)
    return AccessDecision(
        state=AccessState.DENIED,
        reason=DenyReason.ACCESS_REVOKED,
        provisioned=provisioned,
        profiles=flags,
    )


class AccessGate:
    @staticmethod
    def provision(*, user) -> tuple[DoctorProfile, bool]:
        """
        Idempotent get-or-create of the principal's unlinked profile.
        Concurrent callers converge on one row via the (user) unique
        constraint for clinic-less profiles.
        """
        first_name = (getattr(user, "first_name", "") or "").strip() or "User"
        last_name = (getattr(user, "last_name", "") or "").strip() or "Name"

        try:
            with transaction.atomic():
                return DoctorProfile.objects.get_or_create(
                    user=user,
                    clinic=None,
                    defaults={
                        "first_name": first_name,
                        "last_name": last_name,
                        "email": getattr(user, "email", "") or "",
                        "clinic_name": "My Clinic",
                        "access_control": True,
                    },
                )
        except IntegrityError:
            # lost the race and the winner is not visible yet in our snapshot
            return DoctorProfile.objects.get(user=user, clinic=None), False

    @staticmethod
    def check(*, user) -> AccessDecision:
        try:
            profiles = profiles_for_principal(user_id=user.id)
        except DatabaseError:
            logger.warning("Access check failed for user_id=%s", user.id, exc_info=True)
            return AccessDecision(state=AccessState.DENIED, reason=DenyReason.CHECK_FAILED)

        if profiles:
            return _decide(profiles)

        try:
            _, created = AccessGate.provision(user=user)
        except DatabaseError:
            logger.warning("Profile provisioning failed for user_id=%s", user.id, exc_info=True)
            return AccessDecision(state=AccessState.DENIED, reason=DenyReason.SETUP_FAILED)

        if created:
            logger.info("Provisioned doctor profile for user_id=%s", user.id)

        try:
            profiles = profiles_for_principal(user_id=user.id)
        except DatabaseError:
            logger.warning("Access re-check failed for user_id=%s", user.id, exc_info=True)
            return AccessDecision(state=AccessState.DENIED, reason=DenyReason.CHECK_FAILED)

        return _decide(profiles, provisioned=created)
