# lg_core/audit/services.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
from uuid import UUID

from django.db import transaction

from lg_core.audit.models import AuditEvent


@dataclass(frozen=True)
class AuditRecord:
    event_code: str
    entity_type: str
    entity_id: str
    clinic_id: UUID | None
    actor_user_id: int | None
    metadata: Dict[str, Any]


class AuditService:
    """
    Central audit writer. Rows are never updated after insert.
    """

    @staticmethod
    @transaction.atomic
    def log(
        *,
        event_code: str,
        entity_type: str,
        entity_id: Any,
        clinic_id: UUID | None,
        actor_user_id: int | None,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuditRecord:
        metadata = dict(metadata or {})
        if before is not None:
            metadata["before"] = before
        if after is not None:
            metadata["after"] = after

        AuditEvent.objects.create(
            clinic_id=clinic_id,
            event_code=event_code,
            entity_type=entity_type,
            entity_id=str(entity_id),
            actor_user_id=actor_user_id,
            metadata=metadata,
        )

        return AuditRecord(
            event_code=event_code,
            entity_type=entity_type,
            entity_id=str(entity_id),
            clinic_id=clinic_id,
            actor_user_id=actor_user_id,
            metadata=metadata,
        )
