# lg_core/common/api/pagination.py
from __future__ import annotations

from django.conf import settings
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class DefaultPagination(PageNumberPagination):
    """
    Portal lists (links, leads): {count, next, previous, results}.
    Page size comes from PORTAL_PAGE_SIZE; clients may ask for up to
    PORTAL_MAX_PAGE_SIZE with ?page_size=.
    """

    page_size_query_param = "page_size"

    def __init__(self) -> None:
        self.page_size = int(getattr(settings, "PORTAL_PAGE_SIZE", 20))
        self.max_page_size = int(getattr(settings, "PORTAL_MAX_PAGE_SIZE", 200))


def paginate(request, queryset, serializer_class) -> Response:
    """For plain ViewSets that do not go through GenericAPIView."""
    paginator = DefaultPagination()
    page = paginator.paginate_queryset(queryset, request)
    return paginator.get_paginated_response(serializer_class(page, many=True).data)
