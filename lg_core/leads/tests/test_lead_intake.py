# lg_core/leads/tests/test_lead_intake.py
import pytest
import requests
from django.db import DatabaseError
from rest_framework.exceptions import ValidationError

from lg_core.common.api.exceptions import StorageError
from lg_core.leads.models import QuizLead
from lg_core.leads.services import LeadIntakeService, validate_submission

pytestmark = pytest.mark.django_db

INTAKE_URL = "/api/v1/leads/intake/"


class FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code


@pytest.fixture
def submission(doctor_profile):
    return {
        "name": "Pat Doe",
        "email": "pat@example.com",
        "phone": "555-0100",
        "quiz_type": "NOSE",
        "doctor_id": str(doctor_profile.id),
        "score": 55,
        "answers": [{"question": "Nasal blockage?", "answer": "Often", "score": 3}],
        "lead_source": "flyer",
    }


@pytest.fixture
def webhook_settings(settings):
    settings.LEAD_WEBHOOK_URL = "https://hooks.example.com/lead"
    settings.LEAD_WEBHOOK_STRATEGY = "direct"
    return settings


def test_valid_submission_is_persisted_and_enveloped(anon_client, submission, doctor_profile):
    res = anon_client.post(INTAKE_URL, submission, format="json")

    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["message"] == "Lead webhook processed successfully"
    assert body["n8n_triggered"] is False

    lead = QuizLead.objects.get()
    assert body["webhook_id"] == str(lead.id)
    assert body["data"]["lead"]["email"] == "pat@example.com"
    assert body["data"]["doctor"]["id"] == str(doctor_profile.id)
    assert body["data"]["quiz_data"]["maxScore"] == 100
    assert lead.doctor_id == str(doctor_profile.id)
    assert lead.score == 55.0


def test_missing_email_is_rejected_without_a_row(anon_client, submission):
    del submission["email"]

    res = anon_client.post(INTAKE_URL, submission, format="json")

    assert res.status_code == 400
    assert res.json() == {
        "success": False,
        "error": "Missing required field: email",
        "details": "Failed to process lead webhook",
    }
    assert QuizLead.objects.count() == 0


def test_first_missing_field_is_reported():
    with pytest.raises(ValidationError) as exc:
        validate_submission({"quiz_type": "NOSE", "score": 3})
    assert list(exc.value.detail) == ["name"]
    assert exc.value.detail["name"][0] == "Missing required field: name"


def test_blank_string_counts_as_missing(submission):
    submission["phone"] = "   "
    with pytest.raises(ValidationError) as exc:
        validate_submission(submission)
    assert "phone" in exc.value.detail


def test_zero_score_is_accepted(submission):
    submission["score"] = 0
    assert validate_submission(submission)["score"] == 0


def test_non_numeric_score_is_rejected(submission):
    submission["score"] = "lots"
    with pytest.raises(ValidationError):
        validate_submission(submission)


@pytest.mark.parametrize("score", ["NaN", "inf", "-Infinity", "1e400", float("nan")])
def test_non_finite_score_is_rejected(submission, score):
    submission["score"] = score
    with pytest.raises(ValidationError) as exc:
        validate_submission(submission)
    assert list(exc.value.detail) == ["score"]


def test_non_finite_score_over_api_is_a_validation_error(anon_client, submission):
    submission["score"] = "NaN"

    res = anon_client.post(INTAKE_URL, submission, format="json")

    assert res.status_code == 400
    assert res.json() == {
        "success": False,
        "error": "Score must be a finite number.",
        "details": "Failed to process lead webhook",
    }
    assert QuizLead.objects.count() == 0


def test_scheduled_date_is_stored(submission):
    submission["scheduled_date"] = "2024-03-01T10:00:00Z"

    result = LeadIntakeService.submit(submission)

    assert result.lead.scheduled_date.year == 2024
    assert result.lead.scheduled_date.day == 1


def test_malformed_scheduled_date_is_rejected(submission):
    submission["scheduled_date"] = "next tuesday"
    with pytest.raises(ValidationError) as exc:
        validate_submission(submission)
    assert list(exc.value.detail) == ["scheduled_date"]


def test_impossible_scheduled_date_is_a_validation_error(anon_client, submission):
    submission["scheduled_date"] = "2024-02-30T10:00:00"

    res = anon_client.post(INTAKE_URL, submission, format="json")

    assert res.status_code == 400
    assert res.json() == {
        "success": False,
        "error": "Must be an ISO-8601 datetime.",
        "details": "Failed to process lead webhook",
    }
    assert QuizLead.objects.count() == 0


def test_non_object_body_is_rejected(anon_client):
    res = anon_client.post(INTAKE_URL, [1, 2, 3], format="json")
    assert res.status_code == 400
    assert res.json()["success"] is False


def test_unknown_doctor_still_saves_lead_with_null_doctor(anon_client, submission):
    submission["doctor_id"] = "not-a-profile"

    res = anon_client.post(INTAKE_URL, submission, format="json")

    assert res.status_code == 200
    assert res.json()["data"]["doctor"] is None
    assert QuizLead.objects.get().doctor_id == "not-a-profile"


def test_storage_failure_is_reported_as_failure(submission, monkeypatch):
    def boom(**kwargs):
        raise DatabaseError("disk full")

    monkeypatch.setattr(QuizLead.objects, "create", boom)

    with pytest.raises(StorageError):
        LeadIntakeService.submit(submission)


def test_storage_failure_over_api_is_400(anon_client, submission, monkeypatch):
    def boom(**kwargs):
        raise DatabaseError("disk full")

    monkeypatch.setattr(QuizLead.objects, "create", boom)

    res = anon_client.post(INTAKE_URL, submission, format="json")

    assert res.status_code == 400
    assert res.json()["error"] == "Lead could not be saved."


def test_webhook_error_does_not_fail_intake(anon_client, submission, webhook_settings, monkeypatch):
    monkeypatch.setattr(requests, "post", lambda *a, **kw: FakeResponse(500))

    res = anon_client.post(INTAKE_URL, submission, format="json")

    assert res.status_code == 200
    assert res.json()["success"] is True
    assert res.json()["n8n_triggered"] is True
    assert QuizLead.objects.count() == 1


def test_webhook_timeout_does_not_fail_intake(anon_client, submission, webhook_settings, monkeypatch):
    def timeout(*a, **kw):
        raise requests.Timeout("slow endpoint")

    monkeypatch.setattr(requests, "post", timeout)

    res = anon_client.post(INTAKE_URL, submission, format="json")

    assert res.status_code == 200
    assert QuizLead.objects.count() == 1


def test_webhook_posts_envelope_once(submission, webhook_settings, monkeypatch):
    calls = []

    def fake_post(url, data=None, headers=None, timeout=None):
        calls.append((url, data, headers, timeout))
        return FakeResponse(200)

    monkeypatch.setattr(requests, "post", fake_post)

    result = LeadIntakeService.submit(submission)

    assert result.delivery.delivered
    assert len(calls) == 1
    url, body, headers, timeout = calls[0]
    assert url == "https://hooks.example.com/lead"
    assert headers["Content-Type"] == "application/json"
    assert timeout == 10.0
    assert str(result.lead.id).encode() in body
