# lg_core/iam/tests/test_auth_api.py
import pytest

from lg_core.conftest import make_user
from lg_core.iam.models import DoctorProfile

pytestmark = pytest.mark.django_db


def test_login_sets_cookies_and_reports_access(anon_client, user, clinic):
    res = anon_client.post("/api/v1/auth/login/", {"username": "owner", "password": "testpass"}, format="json")

    assert res.status_code == 200
    body = res.json()
    assert body["detail"] == "login ok"
    assert body["access"]["state"] == "granted"
    assert body["access"]["granted"] is True
    assert "lg_access" in res.cookies
    assert "lg_refresh" in res.cookies
    assert res.cookies["lg_access"]["httponly"]


def test_first_login_provisions_profile(anon_client):
    make_user("fresh", email="fresh@example.com")

    res = anon_client.post("/api/v1/auth/login/", {"username": "fresh", "password": "testpass"}, format="json")

    assert res.status_code == 200
    assert res.json()["access"]["provisioned"] is True
    assert DoctorProfile.objects.filter(user__username="fresh").count() == 1


def test_login_reports_revoked_access_without_failing(anon_client, user, clinic):
    DoctorProfile.objects.filter(user=user).update(access_control=False)

    res = anon_client.post("/api/v1/auth/login/", {"username": "owner", "password": "testpass"}, format="json")

    assert res.status_code == 200
    assert res.json()["access"]["reason"] == "access_revoked"


def test_bad_credentials_are_rejected(anon_client, user):
    res = anon_client.post("/api/v1/auth/login/", {"username": "owner", "password": "wrong"}, format="json")
    # no authenticators on the login view, so DRF reports 403 rather than 401
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "authentication_failed"


def test_refresh_uses_refresh_cookie(anon_client, user, clinic):
    anon_client.post("/api/v1/auth/login/", {"username": "owner", "password": "testpass"}, format="json")

    res = anon_client.post("/api/v1/auth/refresh/")

    assert res.status_code == 200
    assert res.json() == {"detail": "refreshed"}
    assert "lg_access" in res.cookies


def test_cookie_authenticates_subsequent_requests(anon_client, user, clinic):
    anon_client.post("/api/v1/auth/login/", {"username": "owner", "password": "testpass"}, format="json")

    res = anon_client.get("/api/v1/access/")

    assert res.status_code == 200
    assert res.json()["granted"] is True


def test_logout_clears_cookies(api_client):
    res = api_client.post("/api/v1/auth/logout/")
    assert res.status_code == 200
    assert res.cookies["lg_access"].value == ""
