from __future__ import annotations

import json

from rma_tracker import models


def test_create_and_get_customer_with_rma_summary(client, db, make_rma) -> None:
    created = client.post(
        "/api/v1/customers",
        json={"name": "Initech", "contactPerson": "Bill", "email": "bill@initech.example"},
    )
    assert created.status_code == 201
    customer_id = created.json()["id"]
    rma = make_rma(customer_id, "SN1")

    detail = client.get(f"/api/v1/customers/{customer_id}")

    assert detail.status_code == 200
    body = detail.json()
    assert body["contactPerson"] == "Bill"
    assert body["rmaCount"] == 1
    assert [summary["id"] for summary in body["rmas"]] == [rma.id]
    assert set(body["rmas"][0]) == {"id", "creationDate", "lastUpdateDate"}


def test_create_customer_with_invalid_email_is_problem_details(client) -> None:
    response = client.post("/api/v1/customers", json={"name": "Initech", "email": "nope"})

    assert response.status_code == 422
    assert response.json()["code"] == "CUSTOMER_EMAIL_INVALID"
    assert response.json()["details"] == {"field": "email"}


def test_list_customers_paginates_by_name(client, customer) -> None:
    client.post("/api/v1/customers", json={"name": "Beta Corp"})

    response = client.get("/api/v1/customers", params={"limit": 1, "search": ""})

    body = response.json()
    assert [c["name"] for c in body["data"]] == ["Acme Medical"]
    assert body["pagination"]["total"] == 2
    assert body["pagination"]["totalPages"] == 2


def test_customer_rmas_endpoint(client, customer, make_rma) -> None:
    first = make_rma(customer.id, "SN1")

    response = client.get(f"/api/v1/customers/{customer.id}/rmas")

    assert response.status_code == 200
    assert [rma["id"] for rma in response.json()] == [first.id]
    assert client.get("/api/v1/customers/CUST-MISSING/rmas").status_code == 404


def test_update_customer_partial(client, customer) -> None:
    response = client.put(f"/api/v1/customers/{customer.id}", json={"phone": "+1 555 0199"})

    assert response.status_code == 200
    assert response.json()["phone"] == "+1 555 0199"
    assert response.json()["name"] == "Acme Medical"


def test_delete_customer_preserves_rmas_by_default(client, db, customer, make_rma) -> None:
    make_rma(customer.id, "SN1")
    make_rma(customer.id, "SN2")
    customer_id = customer.id

    response = client.delete(f"/api/v1/customers/{customer_id}")

    assert response.status_code == 200
    assert response.json() == {
        "message": "Customer deleted, RMAs preserved",
        "deletedRmas": 0,
        "preservedRmas": 2,
    }
    rmas = db.query(models.Rma).all()
    assert len(rmas) == 2
    assert {(rma.customer_id, rma.customer_name) for rma in rmas} == {(None, "Acme Medical")}

    entry = db.query(models.AuditLog).one()
    assert (entry.action, entry.entity, entry.entity_id) == ("DELETE", "CUSTOMER", customer_id)
    assert json.loads(entry.details)["preservedRmas"] == 2


def test_delete_customer_with_rmas_cascades(client, db, customer, make_rma) -> None:
    make_rma(customer.id, "SN1")

    response = client.delete(f"/api/v1/customers/{customer.id}", params={"deleteRmas": "true"})

    assert response.status_code == 200
    assert response.json()["deletedRmas"] == 1
    assert db.query(models.Rma).count() == 0
    assert db.query(models.Customer).count() == 0


def test_delete_unknown_customer_is_404(client) -> None:
    response = client.delete("/api/v1/customers/CUST-MISSING")
    assert response.status_code == 404
    assert response.json()["code"] == "CUSTOMER_NOT_FOUND"


def test_customer_delete_succeeds_when_audit_table_is_gone(client, db, engine, customer, make_rma) -> None:
    rma_id = make_rma(customer.id, "SN1").id
    customer_id = customer.id
    models.AuditLog.__table__.drop(engine)

    response = client.delete(f"/api/v1/customers/{customer_id}", params={"deleteRmas": "false"})

    assert response.status_code == 200
    assert response.json()["preservedRmas"] == 1
    db.expire_all()
    assert db.get(models.Customer, customer_id) is None
    kept = db.get(models.Rma, rma_id)
    assert kept.customer_id is None
    assert kept.customer_name == "Acme Medical"
