# lg_core/common/tests/test_error_envelope.py
import pytest

pytestmark = pytest.mark.django_db


def test_not_found_uses_error_envelope(anon_client):
    res = anon_client.get("/api/v1/links/zzzzzz/resolve/", HTTP_X_REQUEST_ID="req-123")
    assert res.status_code == 404

    body = res.json()
    assert body["error"]["code"] == "not_found"
    assert body["error"]["message"] == "Link not found."
    assert body["error"]["request_id"] == "req-123"
    assert res["X-Request-Id"] == "req-123"


def test_unauthenticated_request_is_rejected_with_envelope(anon_client):
    res = anon_client.get("/api/v1/access/")
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "not_authenticated"


def test_validation_error_carries_field_details(api_client, clinic):
    res = api_client.post(f"/api/v1/clinics/{clinic.id}/team/", {"email": "not-an-email"}, format="json")
    assert res.status_code == 400

    err = res.json()["error"]
    assert err["code"] == "validation_error"
    assert "email" in err["details"]


def test_request_id_generated_when_absent(anon_client):
    res = anon_client.get("/api/v1/links/zzzzzz/resolve/")
    assert res.json()["error"]["request_id"]
    assert res["X-Request-Id"] == res.json()["error"]["request_id"]


def test_escaped_storage_error_becomes_503_envelope(api_client, clinic, monkeypatch):
    from django.db import DatabaseError

    import lg_core.clinics.api.views as clinic_views

    def boom(*, user_id):
        raise DatabaseError("connection reset")

    monkeypatch.setattr(clinic_views, "accepted_memberships_for_principal", boom)

    res = api_client.get("/api/v1/clinics/")

    assert res.status_code == 503
    assert res.json()["error"]["code"] == "storage_error"
