import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from compliance_hub.db.base import Base


class DisclosureSubmission(Base):
    """
    Submitted disclosure. Owned by the submissions workflow; the template
    subsystem only counts rows per form_template_id.
    """

    __tablename__ = "disclosure_submissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    form_template_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("disclosure_form_templates.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    # schema version the answers were captured against
    form_version: Mapped[int | None] = mapped_column(nullable=True)

    submitted_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
