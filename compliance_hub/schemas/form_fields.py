"""
Disclosure form schema types.

A template stores its schema as JSON documents (fields, sections,
validation_rules, calculated_fields). These models describe the shape
accepted at the API boundary. They check structure only; semantic
cross-references (conditionals pointing at real keys, acyclic calculated
dependencies) are reported by compliance_hub.core.form_schema_check.
"""
import re
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class FormFieldType(str, Enum):
    # basic inputs
    TEXT = "TEXT"
    TEXTAREA = "TEXTAREA"
    NUMBER = "NUMBER"
    DATE = "DATE"
    DATETIME = "DATETIME"
    DROPDOWN = "DROPDOWN"
    MULTI_SELECT = "MULTI_SELECT"
    CHECKBOX = "CHECKBOX"
    RADIO = "RADIO"
    FILE_UPLOAD = "FILE_UPLOAD"
    # compliance-specific inputs
    RELATIONSHIP_MAPPER = "RELATIONSHIP_MAPPER"
    DOLLAR_THRESHOLD = "DOLLAR_THRESHOLD"
    RECURRING_DATE = "RECURRING_DATE"
    ENTITY_LOOKUP = "ENTITY_LOOKUP"
    SIGNATURE_CAPTURE = "SIGNATURE_CAPTURE"
    ATTESTATION = "ATTESTATION"
    CURRENCY = "CURRENCY"
    PERCENTAGE = "PERCENTAGE"


class ConditionalOperator(str, Enum):
    EQUALS = "eq"
    NOT_EQUALS = "neq"
    GREATER_THAN = "gt"
    LESS_THAN = "lt"
    GREATER_THAN_OR_EQUALS = "gte"
    LESS_THAN_OR_EQUALS = "lte"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"


class SchemaModel(BaseModel):
    """Base for stored schema documents: unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


CurrencyCode = Annotated[str, Field(pattern=r"^[A-Z]{3}$")]


# ---------------------------------------------------------------------------
# validation + conditional logic
# ---------------------------------------------------------------------------


class FieldValidation(SchemaModel):
    min_length: int | None = Field(default=None, ge=0)
    max_length: int | None = Field(default=None, ge=1)
    min: float | None = None
    max: float | None = None
    pattern: str | None = None
    pattern_message: str | None = None
    custom_validator: str | None = None

    @field_validator("pattern")
    @classmethod
    def _pattern_compiles(cls, v: str | None) -> str | None:
        if v is not None:
            try:
                re.compile(v)
            except re.error as e:
                raise ValueError(f"Invalid regex pattern: {e}")
        return v

    @model_validator(mode="after")
    def _bounds_ordered(self):
        if self.min_length is not None and self.max_length is not None and self.min_length > self.max_length:
            raise ValueError("min_length must be <= max_length")
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("min must be <= max")
        return self


class ConditionalIf(SchemaModel):
    field: str = Field(min_length=1)
    operator: ConditionalOperator
    value: Any = None


class ConditionalAction(SchemaModel):
    show: bool | None = None
    hide: bool | None = None
    require: bool | None = None
    unrequire: bool | None = None
    set_value: Any = None


class FieldConditional(SchemaModel):
    if_: ConditionalIf = Field(alias="if")
    then: ConditionalAction


# ---------------------------------------------------------------------------
# per-type configuration
# ---------------------------------------------------------------------------


class FieldOption(SchemaModel):
    value: str
    label: str
    parent_value: str | None = None  # cascading dropdowns
    disabled: bool = False


class NoConfig(SchemaModel):
    """Field kinds that take no type-specific settings."""


class OptionsConfig(SchemaModel):
    options: list[FieldOption] = Field(default_factory=list)
    allow_other: bool = False
    cascade_from: str | None = None

    @field_validator("options")
    @classmethod
    def _option_values_unique(cls, v: list[FieldOption]) -> list[FieldOption]:
        values = [o.value for o in v]
        if len(values) != len(set(values)):
            raise ValueError("Option values must be unique")
        return v


class EntityLookupConfig(SchemaModel):
    entity_type: Literal["vendor", "employee", "person", "organization"]
    search_fields: list[str] = Field(default_factory=list)
    display_template: str | None = None  # e.g. "{{name}} - {{department}}"


class RelationshipMapperConfig(SchemaModel):
    relationship_types: list[str] = Field(default_factory=list)
    allow_multiple: bool = False


class DollarThresholdConfig(SchemaModel):
    threshold_warning: float | None = Field(default=None, ge=0)
    threshold_block: float | None = Field(default=None, ge=0)
    currency: CurrencyCode = "USD"

    @model_validator(mode="after")
    def _warning_below_block(self):
        if (
            self.threshold_warning is not None
            and self.threshold_block is not None
            and self.threshold_warning > self.threshold_block
        ):
            raise ValueError("threshold_warning must be <= threshold_block")
        return self


class CurrencyConfig(SchemaModel):
    currency: CurrencyCode = "USD"


class RecurringDateConfig(SchemaModel):
    recurrence_type: Literal["annual", "quarterly", "monthly"]


class FileUploadConfig(SchemaModel):
    allowed_types: list[str] = Field(default_factory=list)  # MIME types, e.g. "application/pdf", "image/*"
    max_size_bytes: int | None = Field(default=None, ge=1)
    max_files: int | None = Field(default=None, ge=1)


class FieldUiConfig(SchemaModel):
    col_span: int | None = Field(default=None, ge=1, le=12)
    widget: str | None = None
    help_text: str | None = None
    tooltip: str | None = None
    hidden: bool | None = None


# ---------------------------------------------------------------------------
# fields: tagged union on `type`, each variant carries only its own config
# ---------------------------------------------------------------------------


class _FieldBase(SchemaModel):
    id: str = Field(min_length=1, max_length=100)
    key: str = Field(min_length=1, max_length=120)
    label: str = Field(min_length=1, max_length=500)
    description: str | None = None
    placeholder: str | None = None
    required: bool = False
    validation: FieldValidation | None = None
    conditionals: list[FieldConditional] = Field(default_factory=list)
    ui_config: FieldUiConfig | None = None


class PlainField(_FieldBase):
    type: Literal[
        "TEXT",
        "TEXTAREA",
        "NUMBER",
        "DATE",
        "DATETIME",
        "CHECKBOX",
        "SIGNATURE_CAPTURE",
        "ATTESTATION",
        "PERCENTAGE",
    ]
    config: NoConfig | None = None


class OptionsField(_FieldBase):
    type: Literal["DROPDOWN", "MULTI_SELECT", "RADIO"]
    config: OptionsConfig | None = None


class FileUploadField(_FieldBase):
    type: Literal["FILE_UPLOAD"]
    config: FileUploadConfig | None = None


class RelationshipMapperField(_FieldBase):
    type: Literal["RELATIONSHIP_MAPPER"]
    config: RelationshipMapperConfig | None = None


class DollarThresholdField(_FieldBase):
    type: Literal["DOLLAR_THRESHOLD"]
    config: DollarThresholdConfig | None = None


class RecurringDateField(_FieldBase):
    type: Literal["RECURRING_DATE"]
    config: RecurringDateConfig | None = None


class EntityLookupField(_FieldBase):
    type: Literal["ENTITY_LOOKUP"]
    config: EntityLookupConfig | None = None


class CurrencyField(_FieldBase):
    type: Literal["CURRENCY"]
    config: CurrencyConfig | None = None


FormField = Annotated[
    Union[
        PlainField,
        OptionsField,
        FileUploadField,
        RelationshipMapperField,
        DollarThresholdField,
        RecurringDateField,
        EntityLookupField,
        CurrencyField,
    ],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# sections + repeaters
# ---------------------------------------------------------------------------


class AggregateConfig(SchemaModel):
    function: Literal["SUM", "COUNT", "AVG", "MIN", "MAX"]
    source_field: str = Field(min_length=1)
    target_field: str = Field(min_length=1)


class _RepeaterBase(SchemaModel):
    enabled: bool = True
    min_items: int | None = Field(default=None, ge=0)
    max_items: int | None = Field(default=None, ge=1)
    item_label: str | None = None  # e.g. "Gift {{index}}"
    aggregate: list[AggregateConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def _item_bounds_ordered(self):
        if self.min_items is not None and self.max_items is not None and self.min_items > self.max_items:
            raise ValueError("min_items must be <= max_items")
        return self


class NestedRepeaterConfig(_RepeaterBase):
    """Second (innermost) repeater level. Has no nested_repeaters of its own."""


class NestedRepeater(SchemaModel):
    field_id: str = Field(min_length=1)
    config: NestedRepeaterConfig


class RepeaterConfig(_RepeaterBase):
    nested_repeaters: list[NestedRepeater] = Field(default_factory=list)


class FormSection(SchemaModel):
    id: str = Field(min_length=1, max_length=100)
    title: str = Field(min_length=1, max_length=300)
    description: str | None = None
    fields: list[str] = Field(default_factory=list)
    repeater: RepeaterConfig | None = None
    conditional: FieldConditional | None = None
    collapsible: bool = False
    collapsed: bool = False


# ---------------------------------------------------------------------------
# calculated fields + cross-field rules
# ---------------------------------------------------------------------------


class CalculatedField(SchemaModel):
    id: str = Field(min_length=1, max_length=100)
    key: str = Field(min_length=1, max_length=120)
    expression: str = Field(min_length=1)  # evaluated client-side, e.g. "SUM(gifts.value)"
    dependencies: list[str] = Field(default_factory=list)
    format: Literal["currency", "percentage", "number", "date"] | None = None


class ValidationCondition(SchemaModel):
    left: str = Field(min_length=1)
    operator: ConditionalOperator
    right: str


class ValidationRule(SchemaModel):
    id: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=200)
    condition: ValidationCondition
    error_message: str = Field(min_length=1)
    severity: Literal["error", "warning"] = "error"


def dump_schema_items(items: list[BaseModel] | None) -> list[dict] | None:
    """Serialize schema models into the JSON stored on the template row."""
    if items is None:
        return None
    return [i.model_dump(mode="json", by_alias=True, exclude_none=True) for i in items]


def find_duplicates(values: list[str]) -> list[str]:
    seen: set[str] = set()
    dupes: list[str] = []
    for v in values:
        if v in seen and v not in dupes:
            dupes.append(v)
        seen.add(v)
    return dupes
