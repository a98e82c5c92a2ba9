"""
Version-on-publish.

Status per template family (organization_id, name):

    DRAFT --publish--> PUBLISHED --publish (has submissions)--> ARCHIVED
                                    \\-> new row, version + 1, PUBLISHED

Once a published row has submissions its schema is frozen: submissions
point at the row id and must stay interpretable against it, so further
publishes fork a new row instead of mutating history. Before the first
submission a publish happens in place.
"""
from __future__ import annotations

import copy
import logging
import uuid
from datetime import datetime

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from compliance_hub.core.form_templates import (
    CONTENT_COLUMNS,
    count_submissions,
    flush_or_409,
    get_template_or_404,
)
from compliance_hub.models.disclosure_form_template import DisclosureFormTemplate
from compliance_hub.models.user import User

logger = logging.getLogger(__name__)


def should_fork(*, current_status: str, submission_count: int, create_new_version: bool) -> bool:
    return (current_status == "PUBLISHED" and submission_count > 0) or create_new_version


def publish_template(
    db: Session,
    *,
    organization_id: uuid.UUID,
    template_id: uuid.UUID,
    create_new_version: bool,
    actor: User,
) -> tuple[DisclosureFormTemplate, bool]:
    """
    Returns (published row, forked). When forked, the returned row is the new
    version and the original row is ARCHIVED in the same transaction.
    """
    template = get_template_or_404(db, organization_id, template_id)

    if template.status == "ARCHIVED":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot publish archived template. Clone it to create a new version.",
        )

    submissions = count_submissions(db, organization_id, template.id)
    now = datetime.utcnow()

    if should_fork(
        current_status=template.status,
        submission_count=submissions,
        create_new_version=create_new_version,
    ):
        forked = DisclosureFormTemplate(
            organization_id=template.organization_id,
            name=template.name,
            description=template.description,
            disclosure_type=template.disclosure_type,
            version=template.version + 1,
            status="PUBLISHED",
            published_at=now,
            published_by=actor.id,
            parent_template_id=template.parent_template_id,
            language=template.language,
            is_system=template.is_system,
            created_by_id=template.created_by_id,
            **{column: copy.deepcopy(getattr(template, column)) for column in CONTENT_COLUMNS},
        )
        template.status = "ARCHIVED"
        db.add(forked)
        flush_or_409(
            db,
            f"Version {template.version + 1} of '{template.name}' already exists",
        )

        logger.info(
            "Created version %s of template '%s' (archived version %s, %s submission(s))",
            forked.version,
            template.name,
            template.version,
            submissions,
        )
        return forked, True

    template.status = "PUBLISHED"
    template.published_at = now
    template.published_by = actor.id
    db.flush()

    logger.info("Published template '%s' version %s", template.name, template.version)
    return template, False


def changes_summary(version: int) -> str:
    # no content diffing yet; summary is positional only
    return "Initial version" if version == 1 else f"Version {version}"


def list_versions(
    db: Session,
    *,
    organization_id: uuid.UUID,
    template_id: uuid.UUID,
) -> list[DisclosureFormTemplate]:
    template = get_template_or_404(db, organization_id, template_id)

    return (
        db.query(DisclosureFormTemplate)
        .filter(
            DisclosureFormTemplate.organization_id == organization_id,
            DisclosureFormTemplate.name == template.name,
        )
        .order_by(DisclosureFormTemplate.version.desc())
        .all()
    )


def get_published_template(
    db: Session,
    *,
    organization_id: uuid.UUID,
    name: str,
    language: str | None = None,
) -> DisclosureFormTemplate:
    """The current form of a family: its highest published version."""
    query = db.query(DisclosureFormTemplate).filter(
        DisclosureFormTemplate.organization_id == organization_id,
        DisclosureFormTemplate.name == name,
        DisclosureFormTemplate.status == "PUBLISHED",
    )
    if language:
        query = query.filter(DisclosureFormTemplate.language == language)

    template = query.order_by(DisclosureFormTemplate.version.desc()).first()
    if not template:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Published template '{name}' not found")
    return template
