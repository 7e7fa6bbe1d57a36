# lg_core/iam/api/access.py
from __future__ import annotations

from uuid import UUID

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from lg_core.iam.api.serializers import AccessDecisionSerializer, DoctorProfileAccessSerializer
from lg_core.iam.permissions import access_decision
from lg_core.iam.services.access import AccessGate
from lg_core.iam.services.team import TeamService


class AccessView(APIView):
    """
    Current AccessGate decision for the caller.
    Provisions a first profile for never-seen principals.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(responses={200: AccessDecisionSerializer}, tags=["Access"])
    def get(self, request):
        return Response(access_decision(request).as_dict(), status=status.HTTP_200_OK)


class AccessCheckView(APIView):
    """
    Explicit status check. Always re-evaluates and reports the resolved
    per-profile flags for support diagnostics.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(request=None, responses={200: AccessDecisionSerializer}, tags=["Access"])
    def post(self, request):
        decision = AccessGate.check(user=request.user)
        return Response(decision.as_dict(include_flags=True), status=status.HTTP_200_OK)


class ProfileAccessView(APIView):
    """
    POST /access/profiles/<id>/grant/ | /revoke/
    Clinic owners (for their clinic's profiles) and platform admins.
    """

    permission_classes = [IsAuthenticated]
    grant: bool = True

    @extend_schema(request=None, responses={200: DoctorProfileAccessSerializer}, tags=["Access"])
    def post(self, request, profile_id: UUID):
        if self.grant:
            profile = TeamService.grant_access(actor=request.user, doctor_profile_id=profile_id)
        else:
            profile = TeamService.revoke_access(actor=request.user, doctor_profile_id=profile_id)
        return Response(DoctorProfileAccessSerializer(profile).data, status=status.HTTP_200_OK)
