# lg_core/iam/api/auth.py
from __future__ import annotations

from datetime import timedelta
from typing import Any

from django.conf import settings
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer

from lg_core.iam.api.serializers import DetailResponseSerializer, LoginRequestSerializer, LoginResponseSerializer
from lg_core.iam.auth import access_cookie_name, refresh_cookie_name
from lg_core.iam.services.access import AccessGate


def _seconds(value: Any) -> int:
    """
    JWT lifetime setting -> seconds. Accepts timedelta or a number of seconds.
    """
    if isinstance(value, timedelta):
        return int(value.total_seconds())
    return int(value)


def _jwt_cfg() -> dict:
    return getattr(settings, "SIMPLE_JWT", {}) or {}


def _set_auth_cookies(response: Response, *, access: str, refresh: str) -> None:
    cfg = _jwt_cfg()
    secure = bool(cfg.get("AUTH_COOKIE_SECURE", False))
    samesite = cfg.get("AUTH_COOKIE_SAMESITE", "Lax")

    for name, value, lifetime in (
        (access_cookie_name(), access, cfg.get("ACCESS_TOKEN_LIFETIME", timedelta(minutes=10))),
        (refresh_cookie_name(), refresh, cfg.get("REFRESH_TOKEN_LIFETIME", timedelta(days=14))),
    ):
        response.set_cookie(
            name,
            value,
            max_age=_seconds(lifetime),
            httponly=True,
            secure=secure,
            samesite=samesite,
            path="/",
        )


def _clear_auth_cookies(response: Response) -> None:
    response.delete_cookie(access_cookie_name(), path="/")
    response.delete_cookie(refresh_cookie_name(), path="/")


class LoginView(APIView):
    """
    Issue JWT cookies and run the first access check for the new session.
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(request=LoginRequestSerializer, responses={200: LoginResponseSerializer}, tags=["IAM"])
    def post(self, request):
        serializer = TokenObtainPairSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        decision = AccessGate.check(user=serializer.user)

        res = Response({"detail": "login ok", "access": decision.as_dict()}, status=status.HTTP_200_OK)
        _set_auth_cookies(
            res,
            access=serializer.validated_data["access"],
            refresh=serializer.validated_data["refresh"],
        )
        return res


class RefreshView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(request=None, responses={200: DetailResponseSerializer}, tags=["IAM"])
    def post(self, request):
        refresh = request.COOKIES.get(refresh_cookie_name())

        serializer = TokenRefreshSerializer(data={"refresh": refresh})
        serializer.is_valid(raise_exception=True)

        res = Response({"detail": "refreshed"}, status=status.HTTP_200_OK)
        _set_auth_cookies(
            res,
            access=serializer.validated_data["access"],
            refresh=serializer.validated_data.get("refresh", refresh),
        )
        return res


class LogoutView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(request=None, responses={200: DetailResponseSerializer}, tags=["IAM"])
    def post(self, request):
        res = Response({"detail": "logged out"}, status=status.HTTP_200_OK)
        _clear_auth_cookies(res)
        return res
