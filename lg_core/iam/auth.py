# lg_core/iam/auth.py
from __future__ import annotations

from django.conf import settings
from drf_spectacular.extensions import OpenApiAuthenticationExtension
from rest_framework_simplejwt.authentication import JWTAuthentication


def access_cookie_name() -> str:
    return settings.SIMPLE_JWT.get("AUTH_COOKIE", "lg_access")


def refresh_cookie_name() -> str:
    return settings.SIMPLE_JWT.get("AUTH_COOKIE_REFRESH", "lg_refresh")


class CookieOrHeaderJWTAuthentication(JWTAuthentication):
    """
    Portal principals authenticate with either
      1) Authorization: Bearer <access>   (automation, API clients)
      2) the HttpOnly access cookie set at login   (browser portal)

    The header wins when both are present. Authentication only proves who
    the caller is; portal access is decided separately by AccessGate.
    """

    def authenticate(self, request):
        if self.get_header(request):
            return super().authenticate(request)

        raw_token = request.COOKIES.get(access_cookie_name())
        if not raw_token:
            return None

        validated_token = self.get_validated_token(raw_token)
        return self.get_user(validated_token), validated_token


class CookieOrHeaderJWTAuthenticationScheme(OpenApiAuthenticationExtension):
    target_class = "lg_core.iam.auth.CookieOrHeaderJWTAuthentication"
    name = "BearerOrCookieJWT"

    def get_security_definition(self, auto_schema):
        return {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": f"Access token via `Authorization: Bearer <token>` or the `{access_cookie_name()}` cookie.",
        }
