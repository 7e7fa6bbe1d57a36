# lg_core/links/services.py
from __future__ import annotations

import logging
import secrets
import string
import threading
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode
from uuid import UUID

from django.conf import settings
from django.db import DatabaseError, IntegrityError, close_old_connections, connection, transaction
from django.db.models import F
from rest_framework.exceptions import PermissionDenied, ValidationError

from lg_core.common.api.exceptions import ConflictError, NotFoundError
from lg_core.iam.authz import Action, can
from lg_core.iam.selectors import accepted_membership, get_doctor_profile_or_none
from lg_core.links.models import LinkMapping
from lg_core.links.selectors import get_link_or_none

logger = logging.getLogger(__name__)

_ALPHABET = string.ascii_letters + string.digits
_MAX_CODE_ATTEMPTS = 10


@dataclass(frozen=True)
class RedirectTarget:
    url: str
    short_code: str
    doctor_id: str
    quiz_type: Optional[str]
    custom_quiz_id: Optional[str]
    lead_source: str


def build_target(link: LinkMapping) -> RedirectTarget:
    source = link.lead_source or settings.SHORTLINK_DEFAULT_SOURCE
    doctor_id = str(link.doctor_id)

    if link.custom_quiz_id:
        query = urlencode({"doctor": doctor_id, "source": source})
        url = f"/quiz/custom/{link.custom_quiz_id}?{query}"
        quiz_type = None
    else:
        quiz_type = (link.quiz_type or settings.SHORTLINK_DEFAULT_QUIZ).lower()
        url = f"/share/{quiz_type}/{doctor_id}?{urlencode({'source': source})}"

    return RedirectTarget(
        url=url,
        short_code=link.short_code,
        doctor_id=doctor_id,
        quiz_type=quiz_type,
        custom_quiz_id=link.custom_quiz_id or None,
        lead_source=source,
    )


def increment_click(short_code: str) -> None:
    """
    Atomic store-level increment. Analytics only: failures are logged.
    """
    try:
        LinkMapping.objects.filter(short_code=short_code).update(click_count=F("click_count") + 1)
    except DatabaseError:
        logger.warning("Click increment failed short_code=%s", short_code, exc_info=True)


def _increment_click_in_thread(short_code: str) -> None:
    close_old_connections()
    try:
        increment_click(short_code)
    finally:
        connection.close()


def schedule_click_increment(short_code: str) -> None:
    if not getattr(settings, "SHORTLINK_ASYNC_CLICKS", True):
        increment_click(short_code)
        return

    # fire-and-forget; the redirect never waits on analytics
    t = threading.Thread(target=_increment_click_in_thread, args=(short_code,), daemon=True)
    t.start()


class ShortLinkResolver:
    @staticmethod
    def resolve(short_code: str) -> RedirectTarget:
        code = (short_code or "").strip()
        if not code:
            raise NotFoundError("Link not found.")

        try:
            link = get_link_or_none(short_code=code)
        except DatabaseError:
            logger.warning("Short link lookup failed short_code=%s", code, exc_info=True)
            link = None

        if link is None:
            raise NotFoundError("Link not found.")

        schedule_click_increment(code)
        return build_target(link)


def _generate_code(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


class LinkService:
    @staticmethod
    def create(
        *,
        actor,
        doctor_profile_id: UUID,
        quiz_type: str = "",
        custom_quiz_id: str = "",
        lead_source: str = "",
    ) -> LinkMapping:
        quiz_type = (quiz_type or "").strip()
        custom_quiz_id = (str(custom_quiz_id) if custom_quiz_id else "").strip()
        lead_source = (lead_source or "").strip()

        if quiz_type and custom_quiz_id:
            raise ValidationError({"non_field_errors": ["Set either quiz_type or custom_quiz_id, not both."]})

        doctor = get_doctor_profile_or_none(profile_id=doctor_profile_id)
        if doctor is None:
            raise NotFoundError("Doctor profile not found.")

        if doctor.user_id != actor.id:
            if not doctor.clinic_id or not can(
                accepted_membership(user_id=actor.id, clinic_id=doctor.clinic_id), Action.MANAGE_CONTENT
            ):
                raise PermissionDenied("Not allowed to create links for this doctor profile.")

        length = int(getattr(settings, "SHORTLINK_CODE_LENGTH", 6))
        for _ in range(_MAX_CODE_ATTEMPTS):
            try:
                with transaction.atomic():
                    link = LinkMapping.objects.create(
                        short_code=_generate_code(length),
                        doctor=doctor,
                        quiz_type=quiz_type,
                        custom_quiz_id=custom_quiz_id,
                        lead_source=lead_source,
                    )
            except IntegrityError:
                # code collision; draw again
                continue
            logger.info("Short link created short_code=%s doctor_id=%s", link.short_code, doctor.id)
            return link

        raise ConflictError("Could not allocate a unique short code.")
