from datetime import datetime
from sqlalchemy.orm import Session

from compliance_hub.models.campaign import Campaign
from compliance_hub.models.disclosure_form_template import DisclosureFormTemplate
from compliance_hub.models.disclosure_submission import DisclosureSubmission
from compliance_hub.models.organization import Organization
from compliance_hub.models.rbac import Role, UserRole
from compliance_hub.models.user import User

API = "/api/v1/disclosure-forms"


def auth(email: str) -> dict:
    return {"X-User-Email": email}


def create_org(db, slug: str = "acme", name: str | None = None) -> Organization:
    org = db.query(Organization).filter(Organization.slug == slug).one_or_none()
    if org:
        return org
    org = Organization(name=name or slug.title(), slug=slug)
    db.add(org)
    db.commit()
    db.refresh(org)
    return org

def ensure_role(db, name: str) -> Role:
    r = db.query(Role).filter(Role.name == name).one_or_none()
    if r:
        return r
    r = Role(name=name)
    db.add(r)
    db.commit()
    db.refresh(r)
    return r

def create_user(db, email: str, org: Organization | None = None, full_name="User") -> User:
    org = org or create_org(db)
    u = User(email=email, full_name=full_name, is_active=True, organization_id=org.id)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u

def grant_role(db, user: User, role_name: str):
    role = ensure_role(db, role_name)
    exists = db.query(UserRole).filter(UserRole.user_id == user.id, UserRole.role_id == role.id).one_or_none()
    if not exists:
        db.add(UserRole(user_id=user.id, role_id=role.id))
        db.commit()

def create_officer(db, email: str = "officer@acme.test", org: Organization | None = None) -> User:
    u = create_user(db, email, org=org, full_name="Compliance Officer")
    grant_role(db, u, "COMPLIANCE_OFFICER")
    return u


def text_field(key: str, *, field_id: str | None = None, required: bool = False, **extra) -> dict:
    return {"id": field_id or f"f_{key}", "type": "TEXT", "key": key, "label": key.title(), "required": required, **extra}


def create_form_template(
    db: Session,
    *,
    org: Organization,
    created_by: User,
    name: str = "Gift Policy",
    version: int = 1,
    status: str = "DRAFT",
    disclosure_type: str = "GIFT",
    language: str = "en",
    description: str | None = None,
    parent: DisclosureFormTemplate | None = None,
    fields: list[dict] | None = None,
    sections: list[dict] | None = None,
    calculated_fields: list[dict] | None = None,
    validation_rules: list[dict] | None = None,
) -> DisclosureFormTemplate:
    t = DisclosureFormTemplate(
        organization_id=org.id,
        name=name,
        version=version,
        status=status,
        disclosure_type=disclosure_type,
        language=language,
        description=description,
        parent_template_id=parent.id if parent else None,
        fields=fields if fields is not None else [text_field("giver")],
        sections=sections if sections is not None else [],
        calculated_fields=calculated_fields,
        validation_rules=validation_rules,
        created_by_id=created_by.id,
        published_at=datetime.utcnow() if status == "PUBLISHED" else None,
    )
    db.add(t)
    db.commit()
    db.refresh(t)
    return t


def create_submission(db, template: DisclosureFormTemplate) -> DisclosureSubmission:
    s = DisclosureSubmission(
        organization_id=template.organization_id,
        form_template_id=template.id,
        form_version=template.version,
    )
    db.add(s)
    db.commit()
    db.refresh(s)
    return s


def create_campaign(db, template: DisclosureFormTemplate, status: str = "ACTIVE") -> Campaign:
    c = Campaign(
        organization_id=template.organization_id,
        name=f"{template.name} campaign",
        status=status,
        disclosure_form_template_id=template.id,
    )
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


def get_template(db, template_id) -> DisclosureFormTemplate | None:
    db.expire_all()
    return db.get(DisclosureFormTemplate, template_id)
