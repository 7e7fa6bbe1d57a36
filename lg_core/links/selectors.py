# lg_core/links/selectors.py
from __future__ import annotations

from typing import Optional

from django.db.models import QuerySet

from lg_core.links.models import LinkMapping


def get_link_or_none(*, short_code: str) -> Optional[LinkMapping]:
    return LinkMapping.objects.filter(short_code=short_code).first()


def links_for_user(*, user_id: int) -> QuerySet[LinkMapping]:
    return (
        LinkMapping.objects.select_related("doctor")
        .filter(doctor__user_id=user_id)
        .order_by("-created_at")
    )
