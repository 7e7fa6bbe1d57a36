# lg_core/common/db.py
from __future__ import annotations

import logging
from contextlib import contextmanager

from django.db import DatabaseError, IntegrityError

from lg_core.common.api.exceptions import StorageError

logger = logging.getLogger(__name__)


@contextmanager
def storage_guard(operation: str, **context):
    """
    Re-raise store failures as StorageError (503), logged with the operation
    name and entity ids. IntegrityError passes through untouched so callers
    can map uniqueness races to their own domain errors.
    """
    try:
        yield
    except IntegrityError:
        raise
    except DatabaseError as exc:
        logger.error("Storage failure during %s %s", operation, context, exc_info=True)
        raise StorageError(f"Storage operation failed: {operation}.") from exc
