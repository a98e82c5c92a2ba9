import logging
import uuid
from typing import Any

from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from compliance_hub.models.audit_event import AuditEvent
from compliance_hub.models.user import User

logger = logging.getLogger(__name__)


def log_event(
    *,
    db: Session,
    actor: User,
    action: str,
    entity_type: str,
    entity_id: uuid.UUID,
    metadata: dict[str, Any] | None = None,
) -> AuditEvent:
    """
    Stage an audit row in the caller's transaction. It commits or rolls back
    together with the change it records. The tenant is the actor's organization.
    """
    event = AuditEvent(
        organization_id=actor.organization_id,
        actor_user_id=actor.id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        # UUIDs and datetimes become strings in the JSON column
        event_metadata=jsonable_encoder(metadata) if metadata is not None else None,
    )
    db.add(event)
    logger.debug("Audit %s %s %s by %s", action, entity_type, entity_id, actor.id)
    return event
