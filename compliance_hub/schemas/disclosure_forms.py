import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from compliance_hub.schemas.form_fields import (
    CalculatedField,
    FormField,
    FormSection,
    ValidationRule,
    find_duplicates,
)


class DisclosureFormType(str, Enum):
    COI = "COI"
    GIFT = "GIFT"
    OUTSIDE_EMPLOYMENT = "OUTSIDE_EMPLOYMENT"
    ATTESTATION = "ATTESTATION"
    POLITICAL = "POLITICAL"
    CHARITABLE = "CHARITABLE"
    TRAVEL = "TRAVEL"
    CUSTOM = "CUSTOM"


class FormTemplateStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


def _check_fields(v: list | None) -> list | None:
    if v is None:
        return v
    dupe_keys = find_duplicates([f.key for f in v])
    if dupe_keys:
        raise ValueError(f"Duplicate field keys: {dupe_keys}")
    dupe_ids = find_duplicates([f.id for f in v])
    if dupe_ids:
        raise ValueError(f"Duplicate field ids: {dupe_ids}")
    return v


def _check_sections(v: list | None) -> list | None:
    if v is None:
        return v
    dupe_ids = find_duplicates([s.id for s in v])
    if dupe_ids:
        raise ValueError(f"Duplicate section ids: {dupe_ids}")
    return v


class FormTemplateCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    disclosure_type: DisclosureFormType
    language: str | None = Field(default=None, min_length=2, max_length=20)
    parent_template_id: uuid.UUID | None = None
    fields: list[FormField] = Field(default_factory=list)
    sections: list[FormSection] = Field(default_factory=list)
    validation_rules: list[ValidationRule] | None = None
    calculated_fields: list[CalculatedField] | None = None
    ui_schema: dict[str, Any] | None = None

    @field_validator("fields")
    @classmethod
    def _fields_unique(cls, v):
        return _check_fields(v)

    @field_validator("sections")
    @classmethod
    def _sections_unique(cls, v):
        return _check_sections(v)


class FormTemplateUpdate(BaseModel):
    """
    Partial update. Only keys present in the request body are applied
    (see model_fields_set); omitted keys leave the stored value untouched.
    """

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    fields: list[FormField] | None = None
    sections: list[FormSection] | None = None
    validation_rules: list[ValidationRule] | None = None
    calculated_fields: list[CalculatedField] | None = None
    ui_schema: dict[str, Any] | None = None

    @field_validator("name", "fields", "sections")
    @classmethod
    def _not_null_when_sent(cls, v):
        # these columns are NOT NULL; an explicit null is a client error
        if v is None:
            raise ValueError("may not be null")
        return v

    @field_validator("fields")
    @classmethod
    def _fields_unique(cls, v):
        return _check_fields(v)

    @field_validator("sections")
    @classmethod
    def _sections_unique(cls, v):
        return _check_sections(v)


class FormTemplatePublish(BaseModel):
    create_new_version: bool = False


class FormTemplateClone(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    language: str | None = Field(default=None, min_length=2, max_length=20)
    as_translation: bool = False


class FormTemplateFilters(BaseModel):
    disclosure_type: DisclosureFormType | None = None
    status: FormTemplateStatus | None = None
    language: str | None = None
    search: str | None = None
    include_translations: bool = False
    include_archived: bool = False


class FormTemplateOut(BaseModel):
    id: str
    organization_id: str
    name: str
    description: str | None
    disclosure_type: DisclosureFormType
    version: int
    status: FormTemplateStatus
    published_at: datetime | None
    published_by: str | None
    language: str
    parent_template_id: str | None
    fields: list[FormField]
    sections: list[FormSection]
    validation_rules: list[ValidationRule] | None
    calculated_fields: list[CalculatedField] | None
    ui_schema: dict[str, Any] | None
    is_system: bool
    created_by_id: str
    created_at: datetime
    updated_at: datetime

    # computed, never stored
    is_stale: bool | None = None
    parent_version: int | None = None
    translation_count: int = 0


class FormTemplateListItem(BaseModel):
    id: str
    name: str
    description: str | None
    disclosure_type: DisclosureFormType
    version: int
    status: FormTemplateStatus
    language: str
    parent_template_id: str | None
    has_translations: bool
    field_count: int
    section_count: int
    is_system: bool
    created_at: datetime
    updated_at: datetime


class PublishResult(BaseModel):
    id: str
    version: int


class FormTemplateVersionOut(BaseModel):
    id: str
    version: int
    status: FormTemplateStatus
    published_at: datetime | None
    published_by: str | None
    created_at: datetime
    field_count: int
    changes_summary: str


class FormTemplateTranslationOut(BaseModel):
    id: str
    name: str
    language: str
    status: FormTemplateStatus
    version: int
    is_stale: bool
    updated_at: datetime
