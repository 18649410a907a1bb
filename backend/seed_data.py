"""Seed database with demo customers, RMAs and users."""
import time
from datetime import date, timedelta

from jose import jwt

from rma_tracker.config import settings
from rma_tracker.database import Base, SessionLocal, engine
from rma_tracker.models import User
from rma_tracker.use_cases.customer_lifecycle import create_customer_use_case
from rma_tracker.use_cases.rma_lifecycle import DeviceInput, ServiceCycleInput, create_rma_use_case
from rma_tracker.use_cases.service_cycles import update_cycle_status_by_serial_use_case

ADMIN_USER_ID = "00000000-0000-0000-0000-000000000101"
DEV_TOKEN_TTL_SECONDS = 24 * 3600


def dev_token(user_id: str) -> str:
    """Token for local development only; production tokens come from the identity service."""
    now = int(time.time())
    return jwt.encode(
        {"sub": user_id, "iat": now, "exp": now + DEV_TOKEN_TTL_SECONDS},
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )


def seed():
    """Seed database with demo data."""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        if db.query(User).filter(User.id == ADMIN_USER_ID).first():
            print("Database already seeded, nothing to do.")
            return

        db.add_all([
            User(id=ADMIN_USER_ID, email="admin@example.com", name="Administrator", role="ADMIN"),
            User(
                id="00000000-0000-0000-0000-000000000102",
                email="technician@example.com",
                name="Service Technician",
                role="USER",
            ),
        ])
        db.commit()

        acme = create_customer_use_case(
            db=db,
            name="Acme Medical",
            contact_person="Jane Doe",
            email="jane.doe@acme.example",
            phone="+1 555 0100",
            address="1 Main Street, Springfield",
        )
        globex = create_customer_use_case(
            db=db,
            name="Globex Clinics",
            contact_person="Hank Scorpio",
            email="service@globex.example",
        )

        today = date.today()
        first = create_rma_use_case(
            db=db,
            customer_id=acme.id,
            devices=[
                DeviceInput(serial_number="SN-1001", article_number="ART-200"),
                DeviceInput(serial_number="SN-1002", article_number="ART-200", quantity=2),
            ],
            service_cycles=[
                ServiceCycleInput(device_serial_number="SN-1001", issue_description="Display flickers"),
                ServiceCycleInput(device_serial_number="SN-1002", issue_description="Does not power on"),
            ],
            date_of_incident=today - timedelta(days=10),
            date_of_report=today - timedelta(days=9),
        )
        update_cycle_status_by_serial_use_case(
            db=db,
            rma_id=first.id,
            device_serial_number="SN-1001",
            new_status="Received",
            notes="Arrived at service center",
        )

        create_rma_use_case(
            db=db,
            customer_id=globex.id,
            devices=[DeviceInput(serial_number="GX-77", article_number="ART-310")],
            service_cycles=[
                ServiceCycleInput(
                    device_serial_number="GX-77",
                    issue_description="Casing cracked during use",
                    accessories_included="Charger",
                )
            ],
            date_of_incident=today - timedelta(days=3),
            date_of_report=today - timedelta(days=2),
            is_injury_related=True,
            injury_details="Operator cut a finger on the cracked casing",
        )

        print("✅ Database seeded successfully!")
        print("\nDemo users:")
        print("  admin@example.com (ADMIN)")
        print("  technician@example.com (USER)")
        print(f"\nAdmin dev token:\n  {dev_token(ADMIN_USER_ID)}")

    except Exception as e:
        db.rollback()
        print(f"❌ Error seeding database: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
