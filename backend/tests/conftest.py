from __future__ import annotations

from collections.abc import Iterator
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from rma_tracker import models
from rma_tracker.auth import get_current_user
from rma_tracker.database import Base, enable_sqlite_foreign_keys, get_db
from rma_tracker.main import app
from rma_tracker.use_cases.customer_lifecycle import create_customer_use_case
from rma_tracker.use_cases.rma_lifecycle import DeviceInput, ServiceCycleInput, create_rma_use_case


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine) -> Iterator[Session]:
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def admin_user(db: Session) -> models.User:
    user = models.User(id="user-admin", email="admin@example.com", name="Admin", role="ADMIN")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def regular_user(db: Session) -> models.User:
    user = models.User(id="user-regular", email="tech@example.com", name="Tech", role="USER")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def customer(db: Session) -> models.Customer:
    return create_customer_use_case(
        db=db,
        name="Acme Medical",
        contact_person="Jane Doe",
        email="jane@acme.example",
        phone="+1 555 0100",
    )


@pytest.fixture
def make_rma(db: Session):
    """Create an RMA with one Pending cycle per serial through the real use case."""

    def _make(customer_id: str, *serials: str, **kwargs) -> models.Rma:
        serials = serials or ("SN1",)
        return create_rma_use_case(
            db=db,
            customer_id=customer_id,
            devices=[DeviceInput(serial_number=serial) for serial in serials],
            service_cycles=[ServiceCycleInput(device_serial_number=serial) for serial in serials],
            date_of_incident=kwargs.pop("date_of_incident", date(2026, 1, 10)),
            date_of_report=kwargs.pop("date_of_report", date(2026, 1, 11)),
            **kwargs,
        )

    return _make


@pytest.fixture
def client(db: Session, admin_user: models.User) -> Iterator[TestClient]:
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_current_user] = lambda: admin_user
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
