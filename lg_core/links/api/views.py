# lg_core/links/api/views.py
from __future__ import annotations

from dataclasses import asdict

from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from lg_core.common.api.pagination import paginate
from lg_core.iam.permissions import HasPortalAccess
from lg_core.links.api.serializers import LinkCreateSerializer, LinkMappingSerializer, RedirectTargetSerializer
from lg_core.links.models import LinkMapping
from lg_core.links.selectors import links_for_user
from lg_core.links.services import LinkService, ShortLinkResolver


@extend_schema_view(
    list=extend_schema(tags=["Links"], operation_id="v1_links_list", responses={200: LinkMappingSerializer(many=True)}),
    create=extend_schema(tags=["Links"], operation_id="v1_links_create", request=LinkCreateSerializer, responses={201: LinkMappingSerializer}),
    resolve=extend_schema(tags=["Links"], operation_id="v1_links_resolve", responses={200: RedirectTargetSerializer}),
)
class LinkViewSet(viewsets.ViewSet):
    """
    Short-link management for the caller's doctor profiles,
    plus a public JSON resolve for client-side routers.
    """

    permission_classes = [HasPortalAccess]
    lookup_field = "short_code"

    serializer_class = LinkMappingSerializer
    queryset = LinkMapping.objects.none()

    def get_permissions(self):
        if self.action == "resolve":
            return [AllowAny()]
        return super().get_permissions()

    def list(self, request):
        return paginate(request, links_for_user(user_id=request.user.id), LinkMappingSerializer)

    def create(self, request):
        ser = LinkCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        link = LinkService.create(
            actor=request.user,
            doctor_profile_id=ser.validated_data["doctor_profile_id"],
            quiz_type=ser.validated_data.get("quiz_type", ""),
            custom_quiz_id=ser.validated_data.get("custom_quiz_id", ""),
            lead_source=ser.validated_data.get("lead_source", ""),
        )
        return Response(LinkMappingSerializer(link).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["get"], url_path="resolve", authentication_classes=[])
    def resolve(self, request, short_code=None):
        target = ShortLinkResolver.resolve(short_code)
        return Response(RedirectTargetSerializer(asdict(target)).data, status=status.HTTP_200_OK)
