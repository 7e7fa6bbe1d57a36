# lg_core/leads/api/views.py
from __future__ import annotations

import logging

from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import APIException, PermissionDenied
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from lg_core.common.api.exceptions import NotFoundError
from lg_core.iam.permissions import HasPortalAccess
from lg_core.leads.api.serializers import (
    LeadIntakeErrorSerializer,
    LeadIntakeRequestSerializer,
    LeadIntakeResponseSerializer,
    LeadStatusUpdateSerializer,
    QuizLeadSerializer,
)
from lg_core.leads.filters import QuizLeadFilter
from lg_core.leads.models import QuizLead
from lg_core.leads.selectors import lead_scope_for_user, leads_in_scope
from lg_core.leads.services import LeadIntakeService

logger = logging.getLogger(__name__)


def _first_message(detail) -> str:
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
        return "Invalid submission."
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else "Invalid submission."
    return str(detail)


class LeadIntakeView(APIView):
    """
    Public endpoint for the assessment UI and external automation.

    200: {success: true, data: <webhook envelope>, message, webhook_id, n8n_triggered}
    400: {success: false, error, details}
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        request=LeadIntakeRequestSerializer,
        responses={200: LeadIntakeResponseSerializer, 400: LeadIntakeErrorSerializer},
        tags=["Leads"],
        operation_id="v1_leads_intake",
    )
    def post(self, request):
        try:
            result = LeadIntakeService.submit(request.data)
        except APIException as e:
            # validation, malformed body, storage failure
            message = _first_message(e.detail)
            logger.info("Lead intake rejected: %s", message)
            return Response(
                {
                    "success": False,
                    "error": message,
                    "details": "Failed to process lead webhook",
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(
            {
                "success": True,
                "data": result.envelope,
                "message": "Lead webhook processed successfully",
                "webhook_id": str(result.lead.id),
                "n8n_triggered": result.n8n_triggered,
            },
            status=status.HTTP_200_OK,
        )


@extend_schema_view(
    list=extend_schema(tags=["Leads"], operation_id="v1_leads_list", responses={200: QuizLeadSerializer(many=True)}),
    set_status=extend_schema(tags=["Leads"], operation_id="v1_leads_set_status", request=LeadStatusUpdateSerializer, responses={200: QuizLeadSerializer}),
)
class LeadViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    Leads attributed to the caller's own practice or to clinics where the
    caller holds `view_leads`.
    """

    permission_classes = [HasPortalAccess]
    serializer_class = QuizLeadSerializer
    queryset = QuizLead.objects.none()
    filter_backends = [DjangoFilterBackend]
    filterset_class = QuizLeadFilter
    lookup_value_regex = r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return QuizLead.objects.none()

        doctor_ids, clinic_ids = lead_scope_for_user(user_id=self.request.user.id)
        if not doctor_ids and not clinic_ids:
            raise PermissionDenied("You do not have permission to view leads.")

        return leads_in_scope(doctor_ids=doctor_ids, clinic_ids=clinic_ids)

    @action(detail=True, methods=["patch"], url_path="status")
    def set_status(self, request, pk=None):
        if not self.get_queryset().filter(id=pk).exists():
            raise NotFoundError("Lead not found.")

        ser = LeadStatusUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        lead = LeadIntakeService.update_status(
            lead_id=pk,
            lead_status=data.get("lead_status"),
            scheduled_date=data.get("scheduled_date"),
            clear_scheduled_date="scheduled_date" in data and data["scheduled_date"] is None,
        )
        return Response(QuizLeadSerializer(lead).data, status=status.HTTP_200_OK)
