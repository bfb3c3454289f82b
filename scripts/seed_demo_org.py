"""
Seed a demo organization (one property, two departments, one principal per
role) and print a bearer token for each principal. Local development only.
If the property already exists, it is left unchanged. Run from the repo root
with .env loaded.

Usage:
  python scripts/seed_demo_org.py                    # seeds "Demo Hotel"
  python scripts/seed_demo_org.py "Harbour Hotel"    # seeds a named property
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from leave_scope.core.security import create_access_token
from leave_scope.db.session import SessionLocal
from leave_scope.models import (
    Department,
    Principal,
    PrincipalDepartment,
    PrincipalProperty,
    Property,
    Role,
)

DEPARTMENTS = ["Front Desk", "Housekeeping"]


def seed(db, property_name: str):
    prop = db.query(Property).filter(Property.name == property_name).first()
    if prop is not None:
        print(f"Property '{property_name}' already exists (id={prop.id}), nothing to do")
        return []

    prop = Property(name=property_name, active=True)
    db.add(prop)
    db.flush()
    departments = []
    for name in DEPARTMENTS:
        dept = Department(property_id=prop.id, name=name, active=True)
        db.add(dept)
        departments.append(dept)
    db.flush()

    slug = property_name.lower().replace(" ", "-")
    people = [
        ("Regional Admin", Role.REGIONAL_ADMIN, [], []),
        ("Property Manager", Role.PROPERTY_MANAGER, [prop], []),
        ("Property HR", Role.PROPERTY_HR, [prop], []),
        ("Front Desk Head", Role.DEPARTMENT_HEAD, [], [departments[0]]),
        ("Front Desk Agent", Role.STAFF, [], [departments[0]]),
        ("Room Attendant", Role.STAFF, [], [departments[1]]),
    ]
    created = []
    for name, role, properties, depts in people:
        principal = Principal(
            name=name,
            email=f"{name.lower().replace(' ', '.')}@{slug}.example.com",
            primary_role=role.value,
            active=True,
        )
        db.add(principal)
        db.flush()
        for p in properties:
            db.add(PrincipalProperty(principal_id=principal.id, property_id=p.id))
        for d in depts:
            db.add(PrincipalDepartment(principal_id=principal.id, department_id=d.id))
        created.append(principal)
    db.commit()
    return created


def main():
    property_name = sys.argv[1] if len(sys.argv) > 1 else "Demo Hotel"

    db = SessionLocal()
    try:
        for principal in seed(db, property_name):
            token = create_access_token({"sub": str(principal.id)})
            print(f"{principal.id:>4} {principal.primary_role:<17} {principal.name:<18} {token}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
