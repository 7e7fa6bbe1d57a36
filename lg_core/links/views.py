# lg_core/links/views.py
from __future__ import annotations

from django.conf import settings
from django.http import HttpResponseRedirect
from django.shortcuts import render
from django.views.decorators.http import require_GET

from lg_core.common.api.exceptions import NotFoundError
from lg_core.links.services import ShortLinkResolver


@require_GET
def short_link_redirect(request, short_code: str):
    """
    GET /s/<code> -> 302 to the assessment.
    Unknown codes show a short "not found" page before moving on.
    """
    try:
        target = ShortLinkResolver.resolve(short_code)
    except NotFoundError:
        return render(
            request,
            "links/not_found.html",
            {
                "fallback_url": settings.SHORTLINK_NOT_FOUND_URL,
                "delay_seconds": settings.SHORTLINK_NOT_FOUND_DELAY_SECONDS,
            },
            status=404,
        )

    return HttpResponseRedirect(target.url)
