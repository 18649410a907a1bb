from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.testclient import TestClient

from rma_tracker.domain_errors import DomainError, NotFoundError, ValidationError
from rma_tracker.main import domain_error_handler, unhandled_error_handler
from rma_tracker.problem_details import build_internal_error_response, build_problem_details_response


def test_problem_details_payload_contains_stable_code_and_rfc7807_fields() -> None:
    response = build_problem_details_response(
        DomainError(
            code="PROBE_ERROR",
            http_status=409,
            message="probe failed",
            details={"probe": True},
        )
    )

    assert response.status_code == 409
    assert response.media_type == "application/problem+json"

    body = response.body.decode("utf-8")
    assert '"type":"https://api.rma-tracker.local/problems/probe_error"' in body
    assert '"title":"Conflict"' in body
    assert '"status":409' in body
    assert '"detail":"probe failed"' in body
    assert '"code":"PROBE_ERROR"' in body
    assert '"details":{"probe":true}' in body


def test_validation_error_maps_to_422_with_field_details() -> None:
    error = ValidationError("Serial number is required", code="DEVICE_SERIAL_REQUIRED", field="devices[0].serialNumber")
    response = build_problem_details_response(error)

    body = response.body.decode("utf-8")
    assert response.status_code == 422
    assert '"title":"Unprocessable Entity"' in body
    assert '"details":{"field":"devices[0].serialNumber"}' in body


def test_not_found_error_omits_details_when_none() -> None:
    response = build_problem_details_response(NotFoundError("RMA with ID X not found", code="RMA_NOT_FOUND"))

    body = response.body.decode("utf-8")
    assert response.status_code == 404
    assert '"code":"RMA_NOT_FOUND"' in body
    assert '"details"' not in body


def test_internal_error_response_is_opaque() -> None:
    response = build_internal_error_response()

    body = response.body.decode("utf-8")
    assert response.status_code == 500
    assert '"code":"INTERNAL_ERROR"' in body
    assert "Traceback" not in body


def _app_with_handlers() -> FastAPI:
    app = FastAPI()
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.get("/boom")
    def _boom():
        raise ValidationError("bad input", code="ROUTE_PROBLEM", field="thing")

    @app.get("/crash")
    def _crash():
        raise RuntimeError("secret connection string leaked")

    return app


def test_exception_handler_maps_domain_error_to_problem_details() -> None:
    client = TestClient(_app_with_handlers())
    response = client.get("/boom")

    assert response.status_code == 422
    assert response.headers["content-type"].startswith("application/problem+json")
    payload = response.json()
    assert payload["code"] == "ROUTE_PROBLEM"
    assert payload["detail"] == "bad input"
    assert payload["details"] == {"field": "thing"}


def test_unexpected_error_is_logged_and_hidden(caplog) -> None:
    client = TestClient(_app_with_handlers(), raise_server_exceptions=False)

    with caplog.at_level(logging.ERROR, logger="rma_tracker.main"):
        response = client.get("/crash")

    assert response.status_code == 500
    assert response.json()["code"] == "INTERNAL_ERROR"
    assert "secret connection string" not in response.text
    assert "Unhandled error on GET /crash" in caplog.text
