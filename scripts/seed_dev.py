# seed_dev.py
from datetime import datetime

from sqlalchemy.orm import Session

from compliance_hub.core.rbac import ROLE_DESCRIPTIONS
from compliance_hub.db.session import SessionLocal
from compliance_hub.models.disclosure_form_template import DisclosureFormTemplate
from compliance_hub.models.organization import Organization
from compliance_hub.models.rbac import Role, UserRole
from compliance_hub.models.user import User
from compliance_hub.schemas.form_fields import CalculatedField, FormSection, ValidationRule, dump_schema_items
from compliance_hub.schemas.disclosure_forms import FormTemplateCreate


# ---------- helpers: tenancy + RBAC ----------

def get_or_create_org(db: Session, slug: str, name: str) -> Organization:
    org = db.query(Organization).filter(Organization.slug == slug).one_or_none()
    if org:
        return org
    org = Organization(slug=slug, name=name)
    db.add(org)
    db.commit()
    db.refresh(org)
    return org


def get_or_create_role(db: Session, name: str) -> Role:
    r = db.query(Role).filter(Role.name == name).one_or_none()
    if r:
        return r
    r = Role(name=name, description=ROLE_DESCRIPTIONS.get(name))
    db.add(r)
    db.commit()
    db.refresh(r)
    return r


def get_or_create_user(db: Session, *, org: Organization, email: str, full_name: str) -> User:
    u = db.query(User).filter(User.email == email).one_or_none()
    if u:
        # keep these up to date in dev
        changed = False
        if u.full_name != full_name:
            u.full_name = full_name
            changed = True
        if not u.is_active:
            u.is_active = True
            changed = True
        if changed:
            db.commit()
            db.refresh(u)
        return u

    u = User(email=email, full_name=full_name, is_active=True, organization_id=org.id)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def ensure_user_role(db: Session, user_id, role_id):
    ur = (
        db.query(UserRole)
        .filter(UserRole.user_id == user_id, UserRole.role_id == role_id)
        .one_or_none()
    )
    if ur:
        return ur
    ur = UserRole(user_id=user_id, role_id=role_id)
    db.add(ur)
    db.commit()
    return ur


# ---------- helpers: system templates ----------

def get_or_create_system_template(
    db: Session,
    *,
    org: Organization,
    created_by: User,
    payload: FormTemplateCreate,
) -> DisclosureFormTemplate:
    t = (
        db.query(DisclosureFormTemplate)
        .filter(
            DisclosureFormTemplate.organization_id == org.id,
            DisclosureFormTemplate.name == payload.name,
        )
        .order_by(DisclosureFormTemplate.version.desc())
        .first()
    )
    if t:
        return t

    now = datetime.utcnow()
    t = DisclosureFormTemplate(
        organization_id=org.id,
        name=payload.name,
        description=payload.description,
        disclosure_type=payload.disclosure_type.value,
        version=1,
        status="PUBLISHED",
        published_at=now,
        published_by=created_by.id,
        language="en",
        fields=dump_schema_items(payload.fields),
        sections=dump_schema_items(payload.sections),
        validation_rules=dump_schema_items(payload.validation_rules),
        calculated_fields=dump_schema_items(payload.calculated_fields),
        is_system=True,
        created_by_id=created_by.id,
    )
    db.add(t)
    db.commit()
    db.refresh(t)
    return t


# parsed with the create schema, same as an API request
COI_TEMPLATE = FormTemplateCreate(
    name="Annual Conflict of Interest",
    description="Yearly conflict of interest attestation for all employees.",
    disclosure_type="COI",
    fields=[
        {
            "id": "f_has_conflict",
            "type": "RADIO",
            "key": "has_conflict",
            "label": "Do you have any actual or potential conflicts of interest?",
            "required": True,
            "config": {"options": [{"value": "yes", "label": "Yes"}, {"value": "no", "label": "No"}]},
        },
        {
            "id": "f_counterparty",
            "type": "ENTITY_LOOKUP",
            "key": "counterparty",
            "label": "Organization involved",
            "config": {"entity_type": "organization", "search_fields": ["name"]},
            "conditionals": [
                {"if": {"field": "has_conflict", "operator": "eq", "value": "yes"}, "then": {"show": True, "require": True}}
            ],
        },
        {
            "id": "f_relationship",
            "type": "RELATIONSHIP_MAPPER",
            "key": "relationship",
            "label": "Nature of the relationship",
            "config": {"relationship_types": ["ownership", "family", "board_seat", "employment"]},
            "conditionals": [
                {"if": {"field": "has_conflict", "operator": "eq", "value": "yes"}, "then": {"show": True}}
            ],
        },
        {
            "id": "f_ownership",
            "type": "PERCENTAGE",
            "key": "ownership_percent",
            "label": "Ownership interest",
            "validation": {"min": 0, "max": 100},
        },
        {
            "id": "f_attest",
            "type": "ATTESTATION",
            "key": "attestation",
            "label": "I attest that the above is complete and accurate.",
            "required": True,
        },
        {"id": "f_signature", "type": "SIGNATURE_CAPTURE", "key": "signature", "label": "Signature", "required": True},
    ],
    sections=[
        FormSection(
            id="s_conflicts",
            title="Conflicts",
            fields=["f_has_conflict", "f_counterparty", "f_relationship", "f_ownership"],
            repeater={"max_items": 20, "item_label": "Conflict {{index}}"},
        ),
        FormSection(id="s_attestation", title="Attestation", fields=["f_attest", "f_signature"]),
    ],
)

GIFT_TEMPLATE = FormTemplateCreate(
    name="Gifts and Entertainment",
    description="Disclosure of gifts, meals and entertainment received from third parties.",
    disclosure_type="GIFT",
    fields=[
        {
            "id": "f_giver",
            "type": "ENTITY_LOOKUP",
            "key": "giver",
            "label": "Giver",
            "required": True,
            "config": {"entity_type": "vendor", "search_fields": ["name"], "display_template": "{{name}}"},
        },
        {
            "id": "f_gift_type",
            "type": "DROPDOWN",
            "key": "gift_type",
            "label": "Type",
            "config": {
                "options": [
                    {"value": "gift", "label": "Gift"},
                    {"value": "meal", "label": "Meal"},
                    {"value": "event", "label": "Event / entertainment"},
                    {"value": "travel", "label": "Travel"},
                ]
            },
        },
        {"id": "f_date", "type": "DATE", "key": "received_on", "label": "Date received", "required": True},
        {
            "id": "f_value",
            "type": "DOLLAR_THRESHOLD",
            "key": "value",
            "label": "Estimated value",
            "required": True,
            "config": {"threshold_warning": 100, "threshold_block": 500, "currency": "USD"},
        },
        {
            "id": "f_receipt",
            "type": "FILE_UPLOAD",
            "key": "receipt",
            "label": "Receipt or invitation",
            "config": {"allowed_types": ["application/pdf", "image/*"], "max_files": 3},
        },
        {"id": "f_total", "type": "CURRENCY", "key": "gift_total", "label": "Total value", "config": {"currency": "USD"}},
    ],
    sections=[
        FormSection(
            id="s_gifts",
            title="Gifts received",
            fields=["f_giver", "f_gift_type", "f_date", "f_value", "f_receipt"],
            repeater={
                "min_items": 1,
                "max_items": 50,
                "item_label": "Gift {{index}}",
                "aggregate": [{"function": "SUM", "source_field": "value", "target_field": "gift_total"}],
            },
        ),
        FormSection(id="s_summary", title="Summary", fields=["f_total"]),
    ],
    calculated_fields=[
        CalculatedField(
            id="c_count",
            key="gift_count",
            expression="COUNT(gifts)",
            dependencies=["giver"],
            format="number",
        )
    ],
    validation_rules=[
        ValidationRule(
            id="r_total",
            name="Annual limit",
            condition={"left": "gift_total", "operator": "lte", "right": "1000"},
            error_message="Total gifts from one giver may not exceed $1,000 per year.",
            severity="warning",
        )
    ],
)


# ---------- main ----------

def main():
    db = SessionLocal()
    try:
        # ---- Tenant + roles ----
        org = get_or_create_org(db, "acme", "Acme Corp")
        roles = {name: get_or_create_role(db, name) for name in ROLE_DESCRIPTIONS}

        # ---- Users, one per role ----
        admin = get_or_create_user(db, org=org, email="admin@acme.test", full_name="Admin Local")
        officer = get_or_create_user(db, org=org, email="officer@acme.test", full_name="Compliance Officer")
        investigator = get_or_create_user(db, org=org, email="investigator@acme.test", full_name="Investigator")

        ensure_user_role(db, admin.id, roles["SYSTEM_ADMIN"].id)
        ensure_user_role(db, officer.id, roles["COMPLIANCE_OFFICER"].id)
        ensure_user_role(db, investigator.id, roles["INVESTIGATOR"].id)

        # ---- Published system templates ----
        coi = get_or_create_system_template(db, org=org, created_by=admin, payload=COI_TEMPLATE)
        gift = get_or_create_system_template(db, org=org, created_by=admin, payload=GIFT_TEMPLATE)

        print("\n=== DEV SEED COMPLETE ===")
        print(f"Organization: {org.name} ({org.id})")
        print("Users:")
        print(f"  system admin:       {admin.email}")
        print(f"  compliance officer: {officer.email}")
        print(f"  investigator:       {investigator.email}")

        print("\nTemplates:")
        for t in (coi, gift):
            print(f"  {t.id} {t.name} v{t.version} ({t.status})")

        print("\nNext API steps:")
        print("  GET  /api/v1/disclosure-forms              (X-User-Email: officer@acme.test)")
        print(f"  POST /api/v1/disclosure-forms/{gift.id}/clone  {{\"name\": \"Regalos\", \"language\": \"es\", \"as_translation\": true}}")
        print(f"  GET  /api/v1/disclosure-forms/{gift.id}/schema-check")

    finally:
        db.close()


if __name__ == "__main__":
    main()
