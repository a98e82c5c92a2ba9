import uuid

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from compliance_hub.core.audit import log_event
from compliance_hub.core.form_schema_check import check_form_schema
from compliance_hub.core.form_templates import (
    archive_template,
    create_template,
    delete_template,
    get_template_or_404,
    list_templates,
    update_template,
)
from compliance_hub.core.form_translations import clone_template, is_stale, list_translations
from compliance_hub.core.form_versions import (
    changes_summary,
    get_published_template,
    list_versions,
    publish_template,
)
from compliance_hub.core.rbac import FORM_READ_ROLES, FORM_WRITE_ROLES, require_roles
from compliance_hub.db.session import get_db
from compliance_hub.models.disclosure_form_template import DisclosureFormTemplate
from compliance_hub.models.user import User
from compliance_hub.schemas.disclosure_forms import (
    DisclosureFormType,
    FormTemplateClone,
    FormTemplateCreate,
    FormTemplateFilters,
    FormTemplateListItem,
    FormTemplateOut,
    FormTemplatePublish,
    FormTemplateStatus,
    FormTemplateTranslationOut,
    FormTemplateUpdate,
    FormTemplateVersionOut,
    PublishResult,
)
from compliance_hub.schemas.pagination import paginate
from compliance_hub.schemas.validation import SchemaCheckResponse

router = APIRouter(prefix="/disclosure-forms", tags=["disclosure-forms"])

ENTITY_TYPE = "disclosure_form_template"


def _str_or_none(value) -> str | None:
    return str(value) if value is not None else None


def to_out(t: DisclosureFormTemplate) -> FormTemplateOut:
    parent = t.parent_template
    return FormTemplateOut(
        id=str(t.id),
        organization_id=str(t.organization_id),
        name=t.name,
        description=t.description,
        disclosure_type=t.disclosure_type,
        version=t.version,
        status=t.status,
        published_at=t.published_at,
        published_by=_str_or_none(t.published_by),
        language=t.language,
        parent_template_id=_str_or_none(t.parent_template_id),
        fields=t.fields or [],
        sections=t.sections or [],
        validation_rules=t.validation_rules,
        calculated_fields=t.calculated_fields,
        ui_schema=t.ui_schema,
        is_system=t.is_system,
        created_by_id=str(t.created_by_id),
        created_at=t.created_at,
        updated_at=t.updated_at,
        is_stale=is_stale(parent.version, t.version) if parent else None,
        parent_version=parent.version if parent else None,
        translation_count=len(t.translations),
    )


def to_list_item(t: DisclosureFormTemplate) -> FormTemplateListItem:
    return FormTemplateListItem(
        id=str(t.id),
        name=t.name,
        description=t.description,
        disclosure_type=t.disclosure_type,
        version=t.version,
        status=t.status,
        language=t.language,
        parent_template_id=_str_or_none(t.parent_template_id),
        has_translations=len(t.translations) > 0,
        field_count=len(t.fields or []),
        section_count=len(t.sections or []),
        is_system=t.is_system,
        created_at=t.created_at,
        updated_at=t.updated_at,
    )


def _reload(db: Session, t: DisclosureFormTemplate) -> DisclosureFormTemplate:
    db.refresh(t)
    return t


@router.post("", response_model=FormTemplateOut, status_code=status.HTTP_201_CREATED)
def create_form_template(
    payload: FormTemplateCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*FORM_WRITE_ROLES)),
):
    t = create_template(db, organization_id=current_user.organization_id, payload=payload, actor=current_user)

    log_event(
        db=db,
        actor=current_user,
        action="FORM_TEMPLATE_CREATED",
        entity_type=ENTITY_TYPE,
        entity_id=t.id,
        metadata={
            "name": t.name,
            "disclosure_type": t.disclosure_type,
            "language": t.language,
            "parent_template_id": _str_or_none(t.parent_template_id),
        },
    )

    db.commit()
    return to_out(_reload(db, t))


@router.get("")
def list_form_templates(
    disclosure_type: DisclosureFormType | None = Query(default=None, description="Filter by disclosure type"),
    status: FormTemplateStatus | None = Query(default=None, description="Filter by status (DRAFT, PUBLISHED, ARCHIVED)"),
    language: str | None = Query(default=None, description="Filter by language code"),
    search: str | None = Query(default=None, description="Search name or description"),
    include_translations: bool = Query(default=False, description="Include translation children"),
    include_archived: bool = Query(default=False, description="Include ARCHIVED when no status filter is given"),
    limit: int = Query(default=100, ge=1, le=500, description="Maximum number of results"),
    offset: int = Query(default=0, ge=0, description="Number of results to skip"),
    include_pagination: bool = Query(default=False, description="Include pagination metadata"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*FORM_READ_ROLES)),
):
    """
    List form templates for the caller's organization.

    Sorted by name, newest version first within a name.
    Use ?include_pagination=true to get pagination metadata.
    """
    filters = FormTemplateFilters(
        disclosure_type=disclosure_type,
        status=status,
        language=language,
        search=search,
        include_translations=include_translations,
        include_archived=include_archived,
    )
    rows, total = list_templates(
        db,
        organization_id=current_user.organization_id,
        filters=filters,
        limit=limit,
        offset=offset,
    )
    items = [to_list_item(t) for t in rows]

    if include_pagination:
        return paginate(items, total=total, limit=limit, offset=offset)
    return items


@router.get("/published/{name}", response_model=FormTemplateOut)
def get_published_form_template(
    name: str,
    language: str | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*FORM_READ_ROLES)),
):
    t = get_published_template(db, organization_id=current_user.organization_id, name=name, language=language)
    return to_out(t)


@router.get("/{template_id}", response_model=FormTemplateOut)
def get_form_template(
    template_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*FORM_READ_ROLES)),
):
    t = get_template_or_404(db, current_user.organization_id, template_id)
    return to_out(t)


@router.put("/{template_id}", response_model=FormTemplateOut)
def update_form_template(
    template_id: uuid.UUID,
    payload: FormTemplateUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*FORM_WRITE_ROLES)),
):
    t, changed = update_template(
        db,
        organization_id=current_user.organization_id,
        template_id=template_id,
        payload=payload,
        actor=current_user,
    )

    log_event(
        db=db,
        actor=current_user,
        action="FORM_TEMPLATE_UPDATED",
        entity_type=ENTITY_TYPE,
        entity_id=t.id,
        metadata={"changed": changed, "status": t.status, "version": t.version},
    )

    db.commit()
    return to_out(_reload(db, t))


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_form_template(
    template_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*FORM_WRITE_ROLES)),
):
    t = delete_template(
        db,
        organization_id=current_user.organization_id,
        template_id=template_id,
        actor=current_user,
    )

    log_event(
        db=db,
        actor=current_user,
        action="FORM_TEMPLATE_DELETED",
        entity_type=ENTITY_TYPE,
        entity_id=template_id,
        metadata={"name": t.name, "version": t.version},
    )

    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{template_id}/publish", response_model=PublishResult)
def publish_form_template(
    template_id: uuid.UUID,
    payload: FormTemplatePublish | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*FORM_WRITE_ROLES)),
):
    create_new_version = payload.create_new_version if payload else False
    t, forked = publish_template(
        db,
        organization_id=current_user.organization_id,
        template_id=template_id,
        create_new_version=create_new_version,
        actor=current_user,
    )

    if forked:
        log_event(
            db=db,
            actor=current_user,
            action="FORM_TEMPLATE_VERSIONED",
            entity_type=ENTITY_TYPE,
            entity_id=t.id,
            metadata={
                "name": t.name,
                "from_template_id": str(template_id),
                "version": t.version,
                "requested": create_new_version,
            },
        )
    else:
        log_event(
            db=db,
            actor=current_user,
            action="FORM_TEMPLATE_PUBLISHED",
            entity_type=ENTITY_TYPE,
            entity_id=t.id,
            metadata={"name": t.name, "version": t.version},
        )

    db.commit()
    return PublishResult(id=str(t.id), version=t.version)


@router.post("/{template_id}/clone", response_model=FormTemplateOut, status_code=status.HTTP_201_CREATED)
def clone_form_template(
    template_id: uuid.UUID,
    payload: FormTemplateClone,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*FORM_WRITE_ROLES)),
):
    t = clone_template(
        db,
        organization_id=current_user.organization_id,
        template_id=template_id,
        payload=payload,
        actor=current_user,
    )

    log_event(
        db=db,
        actor=current_user,
        action="FORM_TEMPLATE_CLONED",
        entity_type=ENTITY_TYPE,
        entity_id=t.id,
        metadata={
            "source_template_id": str(template_id),
            "name": t.name,
            "language": t.language,
            "as_translation": payload.as_translation,
        },
    )

    db.commit()
    return to_out(_reload(db, t))


@router.post("/{template_id}/archive", status_code=status.HTTP_204_NO_CONTENT)
def archive_form_template(
    template_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*FORM_WRITE_ROLES)),
):
    t = archive_template(
        db,
        organization_id=current_user.organization_id,
        template_id=template_id,
        actor=current_user,
    )

    log_event(
        db=db,
        actor=current_user,
        action="FORM_TEMPLATE_ARCHIVED",
        entity_type=ENTITY_TYPE,
        entity_id=t.id,
        metadata={"name": t.name, "version": t.version},
    )

    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{template_id}/versions", response_model=list[FormTemplateVersionOut])
def list_form_template_versions(
    template_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*FORM_READ_ROLES)),
):
    rows = list_versions(db, organization_id=current_user.organization_id, template_id=template_id)
    return [
        FormTemplateVersionOut(
            id=str(v.id),
            version=v.version,
            status=v.status,
            published_at=v.published_at,
            published_by=_str_or_none(v.published_by),
            created_at=v.created_at,
            field_count=len(v.fields) if isinstance(v.fields, list) else 0,
            changes_summary=changes_summary(v.version),
        )
        for v in rows
    ]


@router.get("/{template_id}/translations", response_model=list[FormTemplateTranslationOut])
def list_form_template_translations(
    template_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*FORM_READ_ROLES)),
):
    master, children = list_translations(db, organization_id=current_user.organization_id, template_id=template_id)
    return [
        FormTemplateTranslationOut(
            id=str(c.id),
            name=c.name,
            language=c.language,
            status=c.status,
            version=c.version,
            is_stale=is_stale(master.version, c.version),
            updated_at=c.updated_at,
        )
        for c in children
    ]


@router.get("/{template_id}/schema-check", response_model=SchemaCheckResponse)
def check_form_template_schema(
    template_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*FORM_READ_ROLES)),
):
    t = get_template_or_404(db, current_user.organization_id, template_id)
    errors, warnings = check_form_schema(t)
    return SchemaCheckResponse(valid=not errors, errors=errors, warnings=warnings)
