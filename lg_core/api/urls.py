# lg_core/api/urls.py
from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from lg_core.clinics.api.views import ClinicViewSet
from lg_core.iam.api.access import AccessCheckView, AccessView, ProfileAccessView
from lg_core.iam.api.auth import LoginView, LogoutView, RefreshView
from lg_core.iam.api.team import (
    AcceptInviteView,
    TeamListInviteView,
    TeamMemberActionView,
    TeamMemberView,
    TeamPermissionsView,
    TeamRoleView,
)
from lg_core.leads.api.views import LeadIntakeView, LeadViewSet
from lg_core.links.api.views import LinkViewSet

router = DefaultRouter()

router.register(r"clinics", ClinicViewSet, basename="clinics")
router.register(r"links", LinkViewSet, basename="links")
router.register(r"leads", LeadViewSet, basename="leads")

urlpatterns = [
    # Auth
    path("auth/login/", LoginView.as_view(), name="login"),
    path("auth/refresh/", RefreshView.as_view(), name="refresh"),
    path("auth/logout/", LogoutView.as_view(), name="logout"),

    # Access gate
    path("access/", AccessView.as_view(), name="access"),
    path("access/check/", AccessCheckView.as_view(), name="access-check"),
    path("access/profiles/<uuid:profile_id>/grant/", ProfileAccessView.as_view(grant=True), name="access-grant"),
    path("access/profiles/<uuid:profile_id>/revoke/", ProfileAccessView.as_view(grant=False), name="access-revoke"),

    # Team
    path("team/accept/", AcceptInviteView.as_view(), name="team-accept"),
    path("clinics/<uuid:clinic_id>/team/", TeamListInviteView.as_view(), name="team"),
    path("clinics/<uuid:clinic_id>/team/<uuid:membership_id>/", TeamMemberView.as_view(), name="team-member"),
    path("clinics/<uuid:clinic_id>/team/<uuid:membership_id>/role/", TeamRoleView.as_view(), name="team-role"),
    path(
        "clinics/<uuid:clinic_id>/team/<uuid:membership_id>/permissions/",
        TeamPermissionsView.as_view(),
        name="team-permissions",
    ),
    path(
        "clinics/<uuid:clinic_id>/team/<uuid:membership_id>/suspend/",
        TeamMemberActionView.as_view(operation="suspend"),
        name="team-suspend",
    ),
    path(
        "clinics/<uuid:clinic_id>/team/<uuid:membership_id>/reactivate/",
        TeamMemberActionView.as_view(operation="reactivate"),
        name="team-reactivate",
    ),
    path(
        "clinics/<uuid:clinic_id>/team/<uuid:membership_id>/revoke-invite/",
        TeamMemberActionView.as_view(operation="revoke_invite"),
        name="team-revoke-invite",
    ),

    # Public lead intake
    path("leads/intake/", LeadIntakeView.as_view(), name="lead-intake"),

    # Router URLs last (so explicit paths win if ever overlapping)
    *router.urls,
]
