# lg_core/webhooks/dispatcher.py
"""
Lead -> external automation endpoint.

`Dispatcher` owns "is an endpoint configured?" and hands the envelope to a
delivery strategy:
  - DirectDeliveryStrategy: one POST, at-most-once, no retry (default)
  - OutboxDeliveryStrategy: persist a WebhookDelivery row, delivered later
    with retry by `manage.py deliver_webhooks`

Delivery problems are logged and reported on DeliveryResult; they never
raise into the caller.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import DatabaseError, transaction
from django.utils import timezone

from lg_core.webhooks.models import WebhookDelivery
from lg_core.webhooks.signing import signature_headers

logger = logging.getLogger(__name__)

DEFAULT_LEAD_SOURCE = "webhook"
DEFAULT_MAX_SCORE = 100
DEFAULT_QUIZ_DESCRIPTION = "Health assessment quiz"


@dataclass(frozen=True)
class DeliveryResult:
    attempted: bool
    delivered: bool = False
    queued: bool = False
    status_code: Optional[int] = None
    error: Optional[str] = None


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def doctor_block(doctor) -> Optional[dict[str, Any]]:
    if doctor is None:
        return None

    block = {
        "id": str(doctor.id),
        "name": f"{doctor.first_name} {doctor.last_name}".strip(),
        "email": doctor.email or None,
        "phone": doctor.phone or None,
        "clinic_name": doctor.display_clinic_name or None,
        "location": doctor.location or None,
        "twilio_account_sid": doctor.twilio_account_sid or None,
        "twilio_phone_number": doctor.twilio_phone_number or None,
    }
    # raw telephony secrets stay out of the payload unless explicitly enabled
    if getattr(settings, "LEAD_WEBHOOK_INCLUDE_TELEPHONY_SECRETS", False):
        block["twilio_auth_token"] = doctor.twilio_auth_token or None
    return block


def build_envelope(*, lead, doctor, submission: Optional[dict] = None) -> dict[str, Any]:
    submission = submission or {}
    answers = lead.answers if lead.answers is not None else []

    return {
        "lead": {
            "id": str(lead.id),
            "name": lead.name,
            "email": lead.email,
            "phone": lead.phone,
            "quiz_type": lead.quiz_type,
            "score": lead.score,
            "submitted_at": _iso(lead.submitted_at),
            "lead_source": lead.lead_source or DEFAULT_LEAD_SOURCE,
            "share_key": lead.share_key or None,
            "answers": answers,
        },
        "doctor": doctor_block(doctor),
        "quiz_data": {
            "questions": answers,
            "maxScore": submission.get("maxScore") or DEFAULT_MAX_SCORE,
            "title": submission.get("quiz_title") or lead.quiz_type,
            "description": submission.get("quiz_description") or DEFAULT_QUIZ_DESCRIPTION,
        },
        "webhook_timestamp": timezone.now().isoformat(),
        "webhook_id": str(lead.id),
    }


def encode_envelope(envelope: dict[str, Any]) -> bytes:
    return json.dumps(envelope, cls=DjangoJSONEncoder, separators=(",", ":")).encode("utf-8")


def post_envelope(*, url: str, envelope: dict[str, Any], secret: str = "", timeout: float = 10.0) -> DeliveryResult:
    """
    Exactly one POST. Non-2xx and network errors become a failed result.
    """
    body = encode_envelope(envelope)
    headers = {"Content-Type": "application/json", **signature_headers(secret=secret, body=body)}
    webhook_id = envelope.get("webhook_id")

    try:
        resp = requests.post(url, data=body, headers=headers, timeout=timeout)
    except requests.RequestException as e:
        logger.warning("Lead webhook delivery failed webhook_id=%s: %s", webhook_id, e)
        return DeliveryResult(attempted=True, delivered=False, error=str(e))

    if not 200 <= resp.status_code < 300:
        logger.warning("Lead webhook returned %s webhook_id=%s", resp.status_code, webhook_id)
        return DeliveryResult(
            attempted=True,
            delivered=False,
            status_code=resp.status_code,
            error=f"HTTP {resp.status_code}",
        )

    logger.info("Lead webhook delivered webhook_id=%s", webhook_id)
    return DeliveryResult(attempted=True, delivered=True, status_code=resp.status_code)


class DirectDeliveryStrategy:
    name = "direct"

    def __init__(self, *, secret: str = "", timeout: float = 10.0) -> None:
        self.secret = secret
        self.timeout = timeout

    def deliver(self, *, url: str, envelope: dict[str, Any], lead=None) -> DeliveryResult:
        return post_envelope(url=url, envelope=envelope, secret=self.secret, timeout=self.timeout)


class OutboxDeliveryStrategy:
    name = "outbox"

    def deliver(self, *, url: str, envelope: dict[str, Any], lead=None) -> DeliveryResult:
        try:
            with transaction.atomic():
                WebhookDelivery.objects.create(
                    lead=lead,
                    url=url,
                    payload=json.loads(encode_envelope(envelope)),
                    next_attempt_at=timezone.now(),
                )
        except DatabaseError as e:
            logger.warning("Could not queue lead webhook webhook_id=%s", envelope.get("webhook_id"), exc_info=True)
            return DeliveryResult(attempted=True, delivered=False, error=str(e))

        return DeliveryResult(attempted=True, delivered=False, queued=True)


class Dispatcher:
    def __init__(self, *, url: str, strategy) -> None:
        self.url = (url or "").strip()
        self.strategy = strategy

    @property
    def configured(self) -> bool:
        return bool(self.url)

    def dispatch(self, *, envelope: dict[str, Any], lead=None) -> DeliveryResult:
        if not self.configured:
            logger.info("Lead webhook not configured; skipping webhook_id=%s", envelope.get("webhook_id"))
            return DeliveryResult(attempted=False)
        return self.strategy.deliver(url=self.url, envelope=envelope, lead=lead)


def get_dispatcher() -> Dispatcher:
    strategy_name = getattr(settings, "LEAD_WEBHOOK_STRATEGY", "direct")
    secret = getattr(settings, "LEAD_WEBHOOK_SECRET", "")
    timeout = float(getattr(settings, "LEAD_WEBHOOK_TIMEOUT_SECONDS", 10))

    if strategy_name == "outbox":
        strategy = OutboxDeliveryStrategy()
    elif strategy_name == "direct":
        strategy = DirectDeliveryStrategy(secret=secret, timeout=timeout)
    else:
        raise ValueError(f"Unknown LEAD_WEBHOOK_STRATEGY: {strategy_name!r}")

    return Dispatcher(url=getattr(settings, "LEAD_WEBHOOK_URL", ""), strategy=strategy)
