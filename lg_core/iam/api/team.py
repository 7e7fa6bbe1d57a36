# lg_core/iam/api/team.py
from __future__ import annotations

from uuid import UUID

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from lg_core.iam.api.serializers import (
    AcceptInviteSerializer,
    ClinicMembershipSerializer,
    InvitationSerializer,
    InviteSerializer,
    PermissionSetSerializer,
    UpdateRoleSerializer,
)
from lg_core.iam.permissions import HasPortalAccess
from lg_core.iam.selectors import accepted_membership, memberships_for_clinic
from lg_core.iam.services.team import TeamService


class TeamListInviteView(APIView):
    """
    GET  /clinics/<clinic_id>/team/  -> non-revoked memberships
    POST /clinics/<clinic_id>/team/  -> invite
    """

    permission_classes = [HasPortalAccess]

    @extend_schema(responses={200: ClinicMembershipSerializer(many=True)}, tags=["Team"])
    def get(self, request, clinic_id: UUID):
        if accepted_membership(user_id=request.user.id, clinic_id=clinic_id) is None:
            raise PermissionDenied("You are not a member of this clinic.")
        qs = memberships_for_clinic(clinic_id=clinic_id)
        return Response(ClinicMembershipSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(request=InviteSerializer, responses={201: InvitationSerializer}, tags=["Team"])
    def post(self, request, clinic_id: UUID):
        ser = InviteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        m = TeamService.invite(
            clinic_id=clinic_id,
            actor=request.user,
            email=data["email"],
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            role=data.get("role"),
            permissions=data.get("permissions") or {},
            location_ids=data.get("location_ids") or [],
        )
        return Response(InvitationSerializer(m).data, status=status.HTTP_201_CREATED)


class TeamMemberView(APIView):
    """
    DELETE /clinics/<clinic_id>/team/<membership_id>/ -> remove (staff rows only)
    """

    permission_classes = [HasPortalAccess]

    @extend_schema(request=None, responses={200: ClinicMembershipSerializer}, tags=["Team"])
    def delete(self, request, clinic_id: UUID, membership_id: UUID):
        m = TeamService.remove(clinic_id=clinic_id, actor=request.user, membership_id=membership_id)
        return Response(ClinicMembershipSerializer(m).data, status=status.HTTP_200_OK)


class TeamRoleView(APIView):
    permission_classes = [HasPortalAccess]

    @extend_schema(request=UpdateRoleSerializer, responses={200: ClinicMembershipSerializer}, tags=["Team"])
    def patch(self, request, clinic_id: UUID, membership_id: UUID):
        ser = UpdateRoleSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        m = TeamService.update_role(
            clinic_id=clinic_id,
            actor=request.user,
            membership_id=membership_id,
            role=ser.validated_data["role"],
        )
        return Response(ClinicMembershipSerializer(m).data, status=status.HTTP_200_OK)


class TeamPermissionsView(APIView):
    permission_classes = [HasPortalAccess]

    @extend_schema(request=PermissionSetSerializer, responses={200: ClinicMembershipSerializer}, tags=["Team"])
    def patch(self, request, clinic_id: UUID, membership_id: UUID):
        ser = PermissionSetSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        m = TeamService.update_permissions(
            clinic_id=clinic_id,
            actor=request.user,
            membership_id=membership_id,
            permissions=dict(ser.validated_data),
        )
        return Response(ClinicMembershipSerializer(m).data, status=status.HTTP_200_OK)


class TeamMemberActionView(APIView):
    """
    POST /clinics/<clinic_id>/team/<membership_id>/<suspend|reactivate|revoke-invite>/
    """

    permission_classes = [HasPortalAccess]
    operation: str = ""

    @extend_schema(request=None, responses={200: ClinicMembershipSerializer}, tags=["Team"])
    def post(self, request, clinic_id: UUID, membership_id: UUID):
        handler = {
            "suspend": TeamService.suspend,
            "reactivate": TeamService.reactivate,
            "revoke_invite": TeamService.revoke_invite,
        }[self.operation]

        m = handler(clinic_id=clinic_id, actor=request.user, membership_id=membership_id)
        return Response(ClinicMembershipSerializer(m).data, status=status.HTTP_200_OK)


class AcceptInviteView(APIView):
    """
    Invitees have no portal access yet; authentication is enough.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(request=AcceptInviteSerializer, responses={200: ClinicMembershipSerializer}, tags=["Team"])
    def post(self, request):
        ser = AcceptInviteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        m = TeamService.accept_invite(token=ser.validated_data["token"], user=request.user)
        return Response(ClinicMembershipSerializer(m).data, status=status.HTTP_200_OK)
