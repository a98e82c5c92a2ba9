import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from compliance_hub.db.base import Base, JSONDocument

DISCLOSURE_FORM_TYPES = (
    "COI",
    "GIFT",
    "OUTSIDE_EMPLOYMENT",
    "ATTESTATION",
    "POLITICAL",
    "CHARITABLE",
    "TRAVEL",
    "CUSTOM",
)
FORM_TEMPLATE_STATUSES = ("DRAFT", "PUBLISHED", "ARCHIVED")


def _in_list(column: str, values: tuple[str, ...]) -> str:
    return f"{column} IN (" + ",".join(f"'{v}'" for v in values) + ")"


class DisclosureFormTemplate(Base):
    __tablename__ = "disclosure_form_templates"
    __table_args__ = (
        # (org, name, version) is the only real guard against duplicate families
        # and concurrent version forks; flush failures surface as 409
        UniqueConstraint(
            "organization_id", "name", "version", name="uq_disclosure_form_templates_org_name_version"
        ),
        CheckConstraint(_in_list("status", FORM_TEMPLATE_STATUSES), name="ck_disclosure_form_templates_status"),
        CheckConstraint(
            _in_list("disclosure_type", DISCLOSURE_FORM_TYPES), name="ck_disclosure_form_templates_type"
        ),
        CheckConstraint("version >= 1", name="ck_disclosure_form_templates_version"),
        Index("ix_disclosure_form_templates_org_type", "organization_id", "disclosure_type"),
        Index("ix_disclosure_form_templates_org_status", "organization_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    disclosure_type: Mapped[str] = mapped_column(String(40), nullable=False)

    version: Mapped[int] = mapped_column(nullable=False, default=1)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="DRAFT")

    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    published_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    # translations point at their master; one level only
    parent_template_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("disclosure_form_templates.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    language: Mapped[str] = mapped_column(String(20), nullable=False, default="en")

    # schema content, embedded as JSON documents
    fields: Mapped[list] = mapped_column(JSONDocument, nullable=False, default=list)
    sections: Mapped[list] = mapped_column(JSONDocument, nullable=False, default=list)
    validation_rules: Mapped[list | None] = mapped_column(JSONDocument, nullable=True)
    calculated_fields: Mapped[list | None] = mapped_column(JSONDocument, nullable=True)
    ui_schema: Mapped[dict | None] = mapped_column(JSONDocument, nullable=True)

    is_system: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_by_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    parent_template = relationship(
        "DisclosureFormTemplate",
        remote_side=[id],
        back_populates="translations",
        lazy="selectin",
    )
    translations = relationship(
        "DisclosureFormTemplate",
        back_populates="parent_template",
        lazy="selectin",
        order_by="DisclosureFormTemplate.language",
    )
