import logging

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from compliance_hub.core.security import get_current_user
from compliance_hub.db.session import get_db
from compliance_hub.models.rbac import Role, UserRole
from compliance_hub.models.user import User

logger = logging.getLogger(__name__)

ROLE_DESCRIPTIONS = {
    "SYSTEM_ADMIN": "Full access to the organization's configuration",
    "COMPLIANCE_OFFICER": "Designs, publishes and retires disclosure forms",
    "INVESTIGATOR": "Read-only access to disclosure forms",
}

FORM_WRITE_ROLES = ("SYSTEM_ADMIN", "COMPLIANCE_OFFICER")
FORM_READ_ROLES = FORM_WRITE_ROLES + ("INVESTIGATOR",)


def get_user_role_names(db: Session, user: User) -> set[str]:
    rows = (
        db.query(Role.name)
        .join(UserRole, UserRole.role_id == Role.id)
        .filter(UserRole.user_id == user.id)
        .all()
    )
    return {name for (name,) in rows}


def require_roles(*allowed: str):
    """
    Dependency factory; the caller needs any one of `allowed`.

      current_user: User = Depends(require_roles(*FORM_WRITE_ROLES))
    """
    allowed_set = frozenset(allowed)

    def _check(
        db: Session = Depends(get_db),
        user: User = Depends(get_current_user),
    ) -> User:
        if get_user_role_names(db, user).isdisjoint(allowed_set):
            logger.info("Denied %s: requires one of %s", user.email, sorted(allowed_set))
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Forbidden. Requires one of: {sorted(allowed_set)}",
            )
        return user

    return _check
