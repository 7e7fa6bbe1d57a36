# lg_core/webhooks/services.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from lg_core.webhooks.dispatcher import post_envelope
from lg_core.webhooks.models import DeliveryStatus, WebhookDelivery

logger = logging.getLogger(__name__)

BACKOFF_BASE_SECONDS = 30
BACKOFF_CAP_SECONDS = 3600
CLAIM_MARGIN_SECONDS = 30


def backoff_delay(attempts: int) -> timedelta:
    """30s, 60s, 120s, ... capped at one hour."""
    seconds = BACKOFF_BASE_SECONDS * (2 ** max(attempts - 1, 0))
    return timedelta(seconds=min(seconds, BACKOFF_CAP_SECONDS))


def _timeout() -> float:
    return float(getattr(settings, "LEAD_WEBHOOK_TIMEOUT_SECONDS", 10))


@dataclass
class DrainSummary:
    examined: int = 0
    delivered: int = 0
    retried: int = 0
    failed: int = 0


class OutboxService:
    @staticmethod
    def due(*, now=None, limit: int = 100):
        now = now or timezone.now()
        return (
            WebhookDelivery.objects.filter(status=DeliveryStatus.PENDING, next_attempt_at__lte=now)
            .order_by("next_attempt_at")[:limit]
        )

    @staticmethod
    def claim(*, delivery_id, now=None) -> bool:
        """
        Lease a due row by pushing `next_attempt_at` past the request timeout.
        A conditional update, so only one drainer wins; no lock is held
        while the POST is in flight.
        """
        now = now or timezone.now()
        lease = timedelta(seconds=_timeout() + CLAIM_MARGIN_SECONDS)
        claimed = WebhookDelivery.objects.filter(
            id=delivery_id, status=DeliveryStatus.PENDING, next_attempt_at__lte=now
        ).update(next_attempt_at=now + lease, updated_at=now)
        return claimed == 1

    @staticmethod
    def attempt(*, delivery_id, now=None) -> WebhookDelivery:
        """
        One delivery attempt for one outbox row: claim, POST, then record
        the outcome in a second short transaction.
        """
        if not OutboxService.claim(delivery_id=delivery_id, now=now):
            return WebhookDelivery.objects.get(id=delivery_id)

        d = WebhookDelivery.objects.get(id=delivery_id)
        result = post_envelope(
            url=d.url,
            envelope=d.payload,
            secret=getattr(settings, "LEAD_WEBHOOK_SECRET", ""),
            timeout=_timeout(),
        )

        with transaction.atomic():
            d = WebhookDelivery.objects.select_for_update().get(id=delivery_id)
            if d.status != DeliveryStatus.PENDING:
                return d

            now = timezone.now()
            d.attempts += 1
            d.last_status_code = result.status_code
            d.last_error = result.error or ""

            if result.delivered:
                d.status = DeliveryStatus.DELIVERED
                d.delivered_at = now
            elif d.attempts >= int(getattr(settings, "LEAD_WEBHOOK_MAX_ATTEMPTS", 5)):
                d.status = DeliveryStatus.FAILED
                logger.warning("Lead webhook gave up after %s attempts delivery_id=%s", d.attempts, d.id)
            else:
                d.next_attempt_at = now + backoff_delay(d.attempts)

            d.save(
                update_fields=[
                    "attempts",
                    "last_status_code",
                    "last_error",
                    "status",
                    "delivered_at",
                    "next_attempt_at",
                    "updated_at",
                ]
            )
            return d

    @staticmethod
    def drain(*, limit: int = 100, now=None) -> DrainSummary:
        summary = DrainSummary()
        for delivery_id in list(OutboxService.due(now=now, limit=limit).values_list("id", flat=True)):
            summary.examined += 1
            d = OutboxService.attempt(delivery_id=delivery_id, now=now)
            if d.status == DeliveryStatus.DELIVERED:
                summary.delivered += 1
            elif d.status == DeliveryStatus.FAILED:
                summary.failed += 1
            else:
                summary.retried += 1
        return summary
