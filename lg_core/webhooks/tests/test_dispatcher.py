# lg_core/webhooks/tests/test_dispatcher.py
import pytest
import requests
from django.utils import timezone

from lg_core.leads.models import QuizLead
from lg_core.webhooks.dispatcher import (
    DirectDeliveryStrategy,
    Dispatcher,
    OutboxDeliveryStrategy,
    build_envelope,
    get_dispatcher,
)
from lg_core.webhooks.models import DeliveryStatus, WebhookDelivery
from lg_core.webhooks.signing import SIGNATURE_HEADER, TIMESTAMP_HEADER, sign, verify

pytestmark = pytest.mark.django_db


class FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code


@pytest.fixture
def lead(doctor_profile):
    return QuizLead.objects.create(
        name="Pat",
        email="pat@example.com",
        phone="555",
        quiz_type="NOSE",
        score=40,
        answers=[{"q": 1}],
        doctor_id=str(doctor_profile.id),
        submitted_at=timezone.now(),
    )


@pytest.fixture
def telephony_profile(doctor_profile):
    doctor_profile.twilio_account_sid = "AC123"
    doctor_profile.twilio_auth_token = "very-secret"
    doctor_profile.twilio_phone_number = "+15550100"
    doctor_profile.save()
    return doctor_profile


def test_envelope_shape_and_defaults(lead, doctor_profile):
    env = build_envelope(lead=lead, doctor=doctor_profile)

    assert env["webhook_id"] == str(lead.id)
    assert env["lead"]["lead_source"] == "webhook"
    assert env["lead"]["share_key"] is None
    assert env["quiz_data"] == {
        "questions": [{"q": 1}],
        "maxScore": 100,
        "title": "NOSE",
        "description": "Health assessment quiz",
    }
    assert env["doctor"]["clinic_name"] == "Test Clinic"


def test_envelope_uses_submission_quiz_metadata(lead):
    env = build_envelope(
        lead=lead,
        doctor=None,
        submission={"maxScore": 20, "quiz_title": "NOSE Scale", "quiz_description": "Nasal obstruction"},
    )

    assert env["doctor"] is None
    assert env["quiz_data"]["maxScore"] == 20
    assert env["quiz_data"]["title"] == "NOSE Scale"


def test_telephony_token_excluded_by_default(lead, telephony_profile):
    block = build_envelope(lead=lead, doctor=telephony_profile)["doctor"]

    assert block["twilio_account_sid"] == "AC123"
    assert "twilio_auth_token" not in block


def test_telephony_token_included_when_enabled(settings, lead, telephony_profile):
    settings.LEAD_WEBHOOK_INCLUDE_TELEPHONY_SECRETS = True

    block = build_envelope(lead=lead, doctor=telephony_profile)["doctor"]

    assert block["twilio_auth_token"] == "very-secret"


def test_unconfigured_dispatcher_makes_no_request(lead, monkeypatch):
    def fail(*a, **kw):
        raise AssertionError("no request expected")

    monkeypatch.setattr(requests, "post", fail)

    d = Dispatcher(url="", strategy=DirectDeliveryStrategy())
    result = d.dispatch(envelope={"webhook_id": "x"}, lead=lead)

    assert not d.configured
    assert not result.attempted


def test_signed_delivery_headers_verify(lead, doctor_profile, monkeypatch):
    seen = {}

    def fake_post(url, data=None, headers=None, timeout=None):
        seen.update(body=data, headers=headers, timeout=timeout)
        return FakeResponse(204)

    monkeypatch.setattr(requests, "post", fake_post)

    d = Dispatcher(url="https://hooks.example.com/x", strategy=DirectDeliveryStrategy(secret="s3cret", timeout=2.5))
    result = d.dispatch(envelope=build_envelope(lead=lead, doctor=doctor_profile), lead=lead)

    assert result.delivered
    assert result.status_code == 204
    assert seen["timeout"] == 2.5
    headers = seen["headers"]
    assert verify(
        secret="s3cret",
        timestamp=headers[TIMESTAMP_HEADER],
        body=seen["body"],
        signature=headers[SIGNATURE_HEADER],
    )


def test_unsigned_delivery_has_no_signature_header(lead, monkeypatch):
    seen = {}

    def fake_post(url, data=None, headers=None, timeout=None):
        seen.update(headers=headers)
        return FakeResponse(200)

    monkeypatch.setattr(requests, "post", fake_post)

    Dispatcher(url="https://hooks.example.com/x", strategy=DirectDeliveryStrategy()).dispatch(
        envelope={"webhook_id": "x"}, lead=lead
    )

    assert SIGNATURE_HEADER not in seen["headers"]


def test_non_2xx_and_network_errors_are_reported_not_raised(lead, monkeypatch):
    d = Dispatcher(url="https://hooks.example.com/x", strategy=DirectDeliveryStrategy())

    monkeypatch.setattr(requests, "post", lambda *a, **kw: FakeResponse(502))
    r = d.dispatch(envelope={"webhook_id": "x"}, lead=lead)
    assert (r.attempted, r.delivered, r.error) == (True, False, "HTTP 502")

    def refused(*a, **kw):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(requests, "post", refused)
    r = d.dispatch(envelope={"webhook_id": "x"}, lead=lead)
    assert r.attempted and not r.delivered
    assert "refused" in r.error


def test_outbox_strategy_queues_without_posting(lead, doctor_profile, monkeypatch):
    def fail(*a, **kw):
        raise AssertionError("no request expected")

    monkeypatch.setattr(requests, "post", fail)

    d = Dispatcher(url="https://hooks.example.com/x", strategy=OutboxDeliveryStrategy())
    result = d.dispatch(envelope=build_envelope(lead=lead, doctor=doctor_profile), lead=lead)

    assert result.queued
    row = WebhookDelivery.objects.get()
    assert row.status == DeliveryStatus.PENDING
    assert row.lead_id == lead.id
    assert row.payload["webhook_id"] == str(lead.id)


def test_get_dispatcher_follows_settings(settings):
    settings.LEAD_WEBHOOK_URL = "https://hooks.example.com/x"
    settings.LEAD_WEBHOOK_STRATEGY = "outbox"
    assert isinstance(get_dispatcher().strategy, OutboxDeliveryStrategy)

    settings.LEAD_WEBHOOK_STRATEGY = "carrier-pigeon"
    with pytest.raises(ValueError):
        get_dispatcher()


def test_sign_is_deterministic():
    assert sign(secret="k", timestamp="1", body=b"{}") == sign(secret="k", timestamp="1", body=b"{}")
    assert not verify(secret="k", timestamp="2", body=b"{}", signature=sign(secret="k", timestamp="1", body=b"{}"))
