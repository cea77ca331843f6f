from decimal import Decimal

from app.db.models import Package
from app.db.session import SessionLocal


DEMO_PACKAGES = [
    {
        "package_name": "Classic Booth",
        "description": "Open-frame booth with unlimited 4R prints.",
        "price": Decimal("8000.00"),
        "duration_hours": 2,
    },
    {
        "package_name": "Premium Booth",
        "description": "Enclosed booth with props, backdrop and attendant.",
        "price": Decimal("12000.00"),
        "duration_hours": 3,
    },
    {
        "package_name": "360 Video Booth",
        "description": "Rotating platform with instant video sharing.",
        "price": Decimal("15000.00"),
        "duration_hours": 4,
    },
]


def seed_demo_packages() -> None:
    session = SessionLocal()
    try:
        existing_names = {package.package_name for package in session.query(Package).all()}
        created = 0
        for values in DEMO_PACKAGES:
            if values["package_name"] in existing_names:
                continue
            session.add(Package(status=True, display=True, **values))
            created += 1
        session.commit()
        print(f"Created {created} demo package(s); {len(existing_names)} already present")
    finally:
        session.close()


if __name__ == "__main__":
    seed_demo_packages()
