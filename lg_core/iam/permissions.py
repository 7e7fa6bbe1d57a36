# lg_core/iam/permissions.py
from __future__ import annotations

from rest_framework.permissions import BasePermission

from lg_core.iam.services.access import AccessDecision, AccessGate


def access_decision(request) -> AccessDecision:
    """
    One AccessGate evaluation per request; views and permissions share it.
    """
    decision = getattr(request, "_access_decision", None)
    if decision is None:
        decision = AccessGate.check(user=request.user)
        setattr(request, "_access_decision", decision)
    return decision


class HasPortalAccess(BasePermission):
    """
    Authenticated AND the AccessGate grants portal access.
    """

    message = "Portal access has not been granted for this account."

    def has_permission(self, request, view) -> bool:
        user = getattr(request, "user", None)
        if not user or not getattr(user, "is_authenticated", False):
            return False

        decision = access_decision(request)
        if not decision.granted:
            self.message = {
                "detail": "Portal access has not been granted for this account.",
                "reason": decision.reason.value if decision.reason else None,
            }
            return False
        return True
