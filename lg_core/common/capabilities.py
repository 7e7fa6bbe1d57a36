# lg_core/common/capabilities.py
from __future__ import annotations

import logging
import threading

from django.db import connections

logger = logging.getLogger(__name__)

_LOCK = threading.Lock()
_CACHE: dict[tuple[str, str, str], bool] = {}


def supports_field(model, field_name: str, *, using: str = "default") -> bool:
    """
    Does the live table for `model` actually have the column backing `field_name`?

    Detected once per process by schema introspection and cached, so callers
    branch on a known capability instead of reacting to a failed write.

    This only helps callers that ask before touching the model. Ordinary reads
    and inserts select every declared column, so on a table missing one they
    fail as storage errors regardless of what this returns.
    """
    field = model._meta.get_field(field_name)
    table = model._meta.db_table
    key = (using, table, field.column)

    with _LOCK:
        if key in _CACHE:
            return _CACHE[key]

    connection = connections[using]
    with connection.cursor() as cursor:
        columns = {c.name for c in connection.introspection.get_table_description(cursor, table)}

    supported = field.column in columns
    if not supported:
        logger.warning("Schema capability missing: %s.%s", table, field.column)

    with _LOCK:
        _CACHE[key] = supported
    return supported


def reset_capabilities() -> None:
    with _LOCK:
        _CACHE.clear()
