# lg_core/clinics/api/views.py
from __future__ import annotations

from uuid import UUID

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.response import Response

from lg_core.audit.api.serializers import AuditEventSerializer
from lg_core.audit.selectors import list_audit_events
from lg_core.clinics.api.serializers import (
    ClinicBrandingSerializer,
    ClinicCreateSerializer,
    ClinicMemberSerializer,
    ClinicSerializer,
    PhysicianSerializer,
    PhysicianWriteSerializer,
)
from lg_core.clinics.models import Clinic
from lg_core.clinics.selectors import clinic_physicians, get_clinic_or_none
from lg_core.clinics.services import ClinicService, PhysicianService
from lg_core.common.api.exceptions import NotFoundError
from lg_core.common.api.pagination import paginate
from lg_core.iam.authz import Action, can
from lg_core.iam.permissions import HasPortalAccess
from lg_core.iam.selectors import accepted_membership, accepted_memberships_for_principal, clinic_member_view


def _member_clinic_or_404(request, pk) -> Clinic:
    try:
        clinic_id = UUID(str(pk))
    except ValueError:
        raise NotFoundError("Clinic not found.")

    clinic = get_clinic_or_none(clinic_id=clinic_id)
    if clinic is None:
        raise NotFoundError("Clinic not found.")
    if accepted_membership(user_id=request.user.id, clinic_id=clinic.id) is None:
        raise PermissionDenied("You are not a member of this clinic.")
    return clinic


@extend_schema_view(
    list=extend_schema(tags=["Clinics"], operation_id="v1_clinics_list", responses={200: ClinicSerializer(many=True)}),
    retrieve=extend_schema(tags=["Clinics"], operation_id="v1_clinics_retrieve", responses={200: ClinicSerializer}),
    create=extend_schema(tags=["Clinics"], operation_id="v1_clinics_create", request=ClinicCreateSerializer, responses={201: ClinicSerializer}),
    branding=extend_schema(tags=["Clinics"], operation_id="v1_clinics_branding", request=ClinicBrandingSerializer, responses={200: ClinicSerializer}),
    members=extend_schema(tags=["Clinics"], operation_id="v1_clinics_members", responses={200: ClinicMemberSerializer(many=True)}),
    physicians=extend_schema(tags=["Clinics"], operation_id="v1_clinics_physicians", request=PhysicianWriteSerializer, responses={200: PhysicianSerializer(many=True), 201: PhysicianSerializer}),
    audit=extend_schema(
        tags=["Clinics"],
        operation_id="v1_clinics_audit",
        responses={200: AuditEventSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="event_code", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="entity_type", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
        ],
    ),
)
class ClinicViewSet(viewsets.ViewSet):
    """
    Clinics the caller belongs to.
    Routing is centralized in lg_core/api/urls.py.
    """

    permission_classes = [HasPortalAccess]

    serializer_class = ClinicSerializer
    queryset = Clinic.objects.none()

    def list(self, request):
        clinics = [m.clinic for m in accepted_memberships_for_principal(user_id=request.user.id)]
        return Response(ClinicSerializer(clinics, many=True).data, status=status.HTTP_200_OK)

    def retrieve(self, request, pk=None):
        clinic = _member_clinic_or_404(request, pk)
        return Response(ClinicSerializer(clinic).data, status=status.HTTP_200_OK)

    def create(self, request):
        ser = ClinicCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        data = dict(ser.validated_data)
        clinic = ClinicService.create(
            name=data.pop("name"),
            slug=data.pop("slug", None),
            owner=request.user,
            **data,
        )
        return Response(ClinicSerializer(clinic).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["patch"], url_path="branding")
    def branding(self, request, pk=None):
        clinic = _member_clinic_or_404(request, pk)

        ser = ClinicBrandingSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        if not ser.validated_data:
            raise ValidationError({"non_field_errors": ["No fields to update."]})

        clinic = ClinicService.update_branding(clinic_id=clinic.id, actor=request.user, fields=dict(ser.validated_data))
        return Response(ClinicSerializer(clinic).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["get"], url_path="members")
    def members(self, request, pk=None):
        clinic = _member_clinic_or_404(request, pk)
        items = clinic_member_view(clinic_id=clinic.id)
        return Response(ClinicMemberSerializer(items, many=True).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["get", "post"], url_path="physicians")
    def physicians(self, request, pk=None):
        clinic = _member_clinic_or_404(request, pk)

        if request.method == "GET":
            qs = clinic_physicians(clinic_id=clinic.id, active_only=request.query_params.get("active") == "true")
            return Response(PhysicianSerializer(qs, many=True).data, status=status.HTTP_200_OK)

        ser = PhysicianWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = dict(ser.validated_data)
        p = PhysicianService.create(
            clinic_id=clinic.id,
            actor=request.user,
            first_name=data.pop("first_name", ""),
            last_name=data.pop("last_name", ""),
            **data,
        )
        return Response(PhysicianSerializer(p).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["patch", "delete"], url_path=r"physicians/(?P<physician_id>[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})")
    def physician_detail(self, request, pk=None, physician_id=None):
        clinic = _member_clinic_or_404(request, pk)

        if request.method == "DELETE":
            p = PhysicianService.deactivate(clinic_id=clinic.id, actor=request.user, physician_id=UUID(physician_id))
            return Response(PhysicianSerializer(p).data, status=status.HTTP_200_OK)

        ser = PhysicianWriteSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        p = PhysicianService.update(
            clinic_id=clinic.id,
            actor=request.user,
            physician_id=UUID(physician_id),
            fields=dict(ser.validated_data),
        )
        return Response(PhysicianSerializer(p).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["get"], url_path="audit")
    def audit(self, request, pk=None):
        clinic = _member_clinic_or_404(request, pk)
        if not can(accepted_membership(user_id=request.user.id, clinic_id=clinic.id), Action.MANAGE_CLINIC):
            raise PermissionDenied("Only the clinic owner can read the audit trail.")

        qs = list_audit_events(
            clinic_id=clinic.id,
            event_code=request.query_params.get("event_code") or None,
            entity_type=request.query_params.get("entity_type") or None,
        )
        return paginate(request, qs, AuditEventSerializer)
