"""
Disclosure form template store.

Every lookup includes organization_id in its predicate; a template id from
another tenant behaves exactly like a missing one (404).
"""
from __future__ import annotations

import logging
import uuid

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from compliance_hub.models.campaign import Campaign, OPEN_CAMPAIGN_STATUSES
from compliance_hub.models.disclosure_form_template import DisclosureFormTemplate
from compliance_hub.models.disclosure_submission import DisclosureSubmission
from compliance_hub.models.user import User
from compliance_hub.schemas.disclosure_forms import (
    FormTemplateCreate,
    FormTemplateFilters,
    FormTemplateUpdate,
)
from compliance_hub.schemas.form_fields import dump_schema_items

logger = logging.getLogger(__name__)

# schema documents copied verbatim on fork/clone
CONTENT_COLUMNS = ("fields", "sections", "validation_rules", "calculated_fields", "ui_schema")
_SCHEMA_LIST_COLUMNS = ("fields", "sections", "validation_rules", "calculated_fields")


def get_template_or_404(db: Session, organization_id: uuid.UUID, template_id: uuid.UUID) -> DisclosureFormTemplate:
    template = (
        db.query(DisclosureFormTemplate)
        .filter(
            DisclosureFormTemplate.id == template_id,
            DisclosureFormTemplate.organization_id == organization_id,
        )
        .one_or_none()
    )
    if not template:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Form template {template_id} not found")
    return template


def family_exists(db: Session, organization_id: uuid.UUID, name: str) -> bool:
    """A template family is identified by its version-1 row."""
    row = (
        db.query(DisclosureFormTemplate.id)
        .filter(
            DisclosureFormTemplate.organization_id == organization_id,
            DisclosureFormTemplate.name == name,
            DisclosureFormTemplate.version == 1,
        )
        .first()
    )
    return row is not None


def ensure_name_available(db: Session, organization_id: uuid.UUID, name: str) -> None:
    if family_exists(db, organization_id, name):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Form template with name '{name}' already exists",
        )


def ensure_renamable(db: Session, template: DisclosureFormTemplate) -> None:
    """
    A name identifies a version family, so only a family's sole row (its
    version 1) may be renamed. Renaming one version would split the family.
    """
    other_versions = (
        db.query(DisclosureFormTemplate.id)
        .filter(
            DisclosureFormTemplate.organization_id == template.organization_id,
            DisclosureFormTemplate.name == template.name,
            DisclosureFormTemplate.id != template.id,
        )
        .count()
    )
    if template.version != 1 or other_versions > 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot rename a template that has other versions. Clone it under the new name instead.",
        )


def count_submissions(db: Session, organization_id: uuid.UUID, template_id: uuid.UUID) -> int:
    return (
        db.query(DisclosureSubmission)
        .filter(
            DisclosureSubmission.organization_id == organization_id,
            DisclosureSubmission.form_template_id == template_id,
        )
        .count()
    )


def count_translations(db: Session, organization_id: uuid.UUID, template_id: uuid.UUID) -> int:
    return (
        db.query(DisclosureFormTemplate)
        .filter(
            DisclosureFormTemplate.organization_id == organization_id,
            DisclosureFormTemplate.parent_template_id == template_id,
        )
        .count()
    )


def count_open_campaigns(db: Session, organization_id: uuid.UUID, template_id: uuid.UUID) -> int:
    return (
        db.query(Campaign)
        .filter(
            Campaign.organization_id == organization_id,
            Campaign.disclosure_form_template_id == template_id,
            Campaign.status.in_(OPEN_CAMPAIGN_STATUSES),
        )
        .count()
    )


def flush_or_409(db: Session, detail: str) -> None:
    """
    Flush pending writes. The (organization_id, name, version) unique
    constraint backs up every check-then-insert in this package.
    """
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        logger.warning("Unique constraint violation mapped to 409: %s", detail)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)


def create_template(
    db: Session,
    *,
    organization_id: uuid.UUID,
    payload: FormTemplateCreate,
    actor: User,
) -> DisclosureFormTemplate:
    ensure_name_available(db, organization_id, payload.name)

    if payload.parent_template_id:
        parent = (
            db.query(DisclosureFormTemplate)
            .filter(
                DisclosureFormTemplate.id == payload.parent_template_id,
                DisclosureFormTemplate.organization_id == organization_id,
            )
            .one_or_none()
        )
        if not parent:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Parent template {payload.parent_template_id} not found",
            )
        if parent.disclosure_type != payload.disclosure_type.value:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Translation must have the same disclosure type as parent template",
            )

    template = DisclosureFormTemplate(
        organization_id=organization_id,
        name=payload.name,
        description=payload.description,
        disclosure_type=payload.disclosure_type.value,
        version=1,
        status="DRAFT",
        language=payload.language or "en",
        parent_template_id=payload.parent_template_id,
        fields=dump_schema_items(payload.fields),
        sections=dump_schema_items(payload.sections),
        validation_rules=dump_schema_items(payload.validation_rules),
        calculated_fields=dump_schema_items(payload.calculated_fields),
        ui_schema=payload.ui_schema,
        is_system=False,
        created_by_id=actor.id,
    )
    db.add(template)
    flush_or_409(db, f"Form template with name '{payload.name}' already exists")

    logger.info("Created disclosure form template '%s' for org %s", template.name, organization_id)
    return template


def _filtered_query(db: Session, organization_id: uuid.UUID, filters: FormTemplateFilters) -> Query:
    query = db.query(DisclosureFormTemplate).filter(DisclosureFormTemplate.organization_id == organization_id)

    if filters.disclosure_type:
        query = query.filter(DisclosureFormTemplate.disclosure_type == filters.disclosure_type.value)

    if filters.status:
        query = query.filter(DisclosureFormTemplate.status == filters.status.value)
    elif not filters.include_archived:
        query = query.filter(DisclosureFormTemplate.status != "ARCHIVED")

    if filters.language:
        query = query.filter(DisclosureFormTemplate.language == filters.language)

    if filters.search:
        # literal substring: % and _ in the term are escaped
        query = query.filter(
            or_(
                DisclosureFormTemplate.name.icontains(filters.search, autoescape=True),
                DisclosureFormTemplate.description.icontains(filters.search, autoescape=True),
            )
        )

    # masters only unless translations were asked for
    if not filters.include_translations:
        query = query.filter(DisclosureFormTemplate.parent_template_id.is_(None))

    return query


def list_templates(
    db: Session,
    *,
    organization_id: uuid.UUID,
    filters: FormTemplateFilters,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[list[DisclosureFormTemplate], int]:
    """Returns (page, total). Newest version of each family sorts first within its name."""
    query = _filtered_query(db, organization_id, filters)
    total = query.count()

    query = query.order_by(DisclosureFormTemplate.name.asc(), DisclosureFormTemplate.version.desc())
    if offset:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return query.all(), total


def update_template(
    db: Session,
    *,
    organization_id: uuid.UUID,
    template_id: uuid.UUID,
    payload: FormTemplateUpdate,
    actor: User,
) -> tuple[DisclosureFormTemplate, list[str]]:
    """Apply only the keys the client sent. Returns (template, changed column names)."""
    template = get_template_or_404(db, organization_id, template_id)

    if template.status == "ARCHIVED":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot update archived template. Clone it to create a new version.",
        )

    if template.status == "PUBLISHED" and count_submissions(db, organization_id, template.id) > 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot update published template with submissions. Publish a new version instead.",
        )

    if "name" in payload.model_fields_set and payload.name != template.name:
        ensure_renamable(db, template)
        ensure_name_available(db, organization_id, payload.name)

    changed: list[str] = []
    for column in sorted(payload.model_fields_set):
        value = getattr(payload, column)
        if column in _SCHEMA_LIST_COLUMNS:
            value = dump_schema_items(value)
        setattr(template, column, value)
        changed.append(column)

    if "name" in changed:
        flush_or_409(db, f"Form template with name '{template.name}' already exists")
    else:
        db.flush()

    logger.info("Updated form template %s (%s) by user %s", template.id, ",".join(changed) or "no-op", actor.id)
    return template, changed


def delete_template(
    db: Session,
    *,
    organization_id: uuid.UUID,
    template_id: uuid.UUID,
    actor: User,
) -> DisclosureFormTemplate:
    template = get_template_or_404(db, organization_id, template_id)

    if template.status != "DRAFT":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only draft templates can be deleted. Archive published templates instead.",
        )

    if count_submissions(db, organization_id, template.id) > 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete template with existing submissions.",
        )

    if count_translations(db, organization_id, template.id) > 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete template with existing translations.",
        )

    db.delete(template)
    db.flush()

    logger.info("Deleted draft template '%s' by user %s", template.name, actor.id)
    return template


def archive_template(
    db: Session,
    *,
    organization_id: uuid.UUID,
    template_id: uuid.UUID,
    actor: User,
) -> DisclosureFormTemplate:
    template = get_template_or_404(db, organization_id, template_id)

    open_campaigns = count_open_campaigns(db, organization_id, template.id)
    if open_campaigns > 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Cannot archive template with {open_campaigns} active campaign(s). "
                "Archive or complete the campaigns first."
            ),
        )

    template.status = "ARCHIVED"
    db.flush()

    logger.info("Archived template '%s' by user %s", template.name, actor.id)
    return template
