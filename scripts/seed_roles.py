from compliance_hub.core.rbac import ROLE_DESCRIPTIONS
from compliance_hub.db.session import SessionLocal
from compliance_hub.models.rbac import Role


def main():
    db = SessionLocal()
    try:
        existing = {r.name: r for r in db.query(Role).all()}
        for name, description in ROLE_DESCRIPTIONS.items():
            role = existing.get(name)
            if role is None:
                db.add(Role(name=name, description=description))
            elif role.description != description:
                role.description = description
        db.commit()
        print("Roles seeded:", list(ROLE_DESCRIPTIONS))
    finally:
        db.close()


if __name__ == "__main__":
    main()
