"""
Cloning and translation links.

A translation is a template whose parent_template_id points at its master
(one level only). Staleness is a version comparison, not a content diff:
a child is stale whenever its master's version is ahead of its own.
"""
from __future__ import annotations

import copy
import logging
import uuid

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from compliance_hub.core.form_templates import (
    CONTENT_COLUMNS,
    ensure_name_available,
    flush_or_409,
    get_template_or_404,
)
from compliance_hub.models.disclosure_form_template import DisclosureFormTemplate
from compliance_hub.models.user import User
from compliance_hub.schemas.disclosure_forms import FormTemplateClone

logger = logging.getLogger(__name__)


def is_stale(parent_version: int, child_version: int) -> bool:
    return parent_version > child_version


def clone_description(source: DisclosureFormTemplate, *, as_translation: bool) -> str:
    if as_translation:
        return f"Translation of: {source.name}"
    if source.description:
        return f"Cloned from: {source.name}\n\n{source.description}"
    return f"Cloned from: {source.name}"


def clone_template(
    db: Session,
    *,
    organization_id: uuid.UUID,
    template_id: uuid.UUID,
    payload: FormTemplateClone,
    actor: User,
) -> DisclosureFormTemplate:
    source = get_template_or_404(db, organization_id, template_id)

    ensure_name_available(db, organization_id, payload.name)

    if payload.as_translation:
        # no fallback to the master's language: a translation must say what it is
        if not payload.language:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="language is required when cloning as a translation",
            )
        language = payload.language
    else:
        language = payload.language or source.language

    cloned = DisclosureFormTemplate(
        organization_id=organization_id,
        name=payload.name,
        description=clone_description(source, as_translation=payload.as_translation),
        disclosure_type=source.disclosure_type,
        version=1,
        status="DRAFT",
        parent_template_id=source.id if payload.as_translation else None,
        language=language,
        is_system=False,
        created_by_id=actor.id,
        **{column: copy.deepcopy(getattr(source, column)) for column in CONTENT_COLUMNS},
    )
    db.add(cloned)
    flush_or_409(db, f"Form template with name '{payload.name}' already exists")

    logger.info(
        "Cloned template '%s' to '%s'%s",
        source.name,
        cloned.name,
        " as translation" if payload.as_translation else "",
    )
    return cloned


def list_translations(
    db: Session,
    *,
    organization_id: uuid.UUID,
    template_id: uuid.UUID,
) -> tuple[DisclosureFormTemplate, list[DisclosureFormTemplate]]:
    """Returns (master, its translation children)."""
    template = get_template_or_404(db, organization_id, template_id)

    children = (
        db.query(DisclosureFormTemplate)
        .filter(
            DisclosureFormTemplate.organization_id == organization_id,
            DisclosureFormTemplate.parent_template_id == template.id,
        )
        .order_by(DisclosureFormTemplate.language.asc(), DisclosureFormTemplate.name.asc())
        .all()
    )
    return template, children
