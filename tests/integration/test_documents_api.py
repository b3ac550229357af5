"""Integration tests for the tracking document HTTP API."""

import pytest
from fastapi.testclient import TestClient

from followup_tracker import __version__


def _payload(counterparty_code="S001", lines=None, **header):
    header.setdefault("counterparty_name", "Acme Supplies")
    header.setdefault("document_date", "2024-03-15")
    return {
        "header": {"counterparty_code": counterparty_code, **header},
        "lines": lines if lines is not None else [
            {"order": 1, "description": "Order confirmed", "status": "0",
             "date": "2024-03-15", "time": "09:30"},
        ],
    }


def _create(client: TestClient, **kwargs) -> int:
    response = client.post("/v1/documents", json=_payload(**kwargs))
    assert response.status_code == 201, response.text
    return response.json()["id"]


@pytest.mark.integration
class TestServiceEndpoints:

    def test_health(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "service": "followup-tracker",
            "version": __version__,
        }

    def test_root_redirects_to_docs(self, client: TestClient):
        response = client.get("/", follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"] == "/docs"


@pytest.mark.integration
class TestCreateAndRead:

    def test_create_and_get(self, client: TestClient):
        document_id = _create(client, external_reference="ACM-17")

        response = client.get(f"/v1/documents/{document_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["header"]["id"] == document_id
        assert data["header"]["display_number"] == 1
        assert data["header"]["external_reference"] == "ACM-17"
        assert data["header"]["source_order_id"] == 0
        assert [line["description"] for line in data["lines"]] == ["Order confirmed"]
        assert data["lines"][0]["line_id"] > 0

    def test_blank_lines_are_dropped(self, client: TestClient):
        document_id = _create(client, lines=[
            {"order": 1, "description": "Order confirmed", "status": "0"},
            {"order": 2, "description": "", "status": ""},
        ])

        lines = client.get(f"/v1/documents/{document_id}").json()["lines"]

        assert len(lines) == 1
        assert lines[0]["date"] is not None
        assert lines[0]["time"] != ""

    def test_duplicate_line_orders_are_stored_densely(self, client: TestClient):
        document_id = _create(client, lines=[
            {"order": 1, "description": "Called supplier", "status": "0"},
            {"order": 1, "description": "Supplier answered", "status": "1"},
        ])

        lines = client.get(f"/v1/documents/{document_id}").json()["lines"]

        assert [(line["order"], line["description"]) for line in lines] == [
            (1, "Called supplier"),
            (2, "Supplier answered"),
        ]

    def test_validation_failure_is_422_problem(self, client: TestClient):
        response = client.post("/v1/documents", json=_payload(counterparty_code=""))

        assert response.status_code == 422
        assert response.headers["content-type"].startswith("application/problem+json")
        problem = response.json()
        assert problem["status"] == 422
        assert problem["detail"] == "The counterparty is required."
        assert problem["error_kind"] == "validation"

    def test_missing_status_is_rejected(self, client: TestClient):
        response = client.post("/v1/documents", json=_payload(lines=[
            {"order": 1, "description": "Order confirmed", "status": ""},
        ]))

        assert response.status_code == 422
        assert "Line 1" in response.json()["detail"]

    def test_malformed_body_is_422(self, client: TestClient):
        response = client.post("/v1/documents", json={"lines": []})

        assert response.status_code == 422
        assert response.headers["content-type"].startswith("application/problem+json")

    def test_duplicate_source_order_is_409(self, client: TestClient):
        _create(client, source_order_id=101, source_order_number=5001)

        response = client.post("/v1/documents", json=_payload(source_order_id=101, source_order_number=5001))

        assert response.status_code == 409
        assert response.json()["error_kind"] == "integrity"

    def test_unknown_document_is_404(self, client: TestClient):
        response = client.get("/v1/documents/999")

        assert response.status_code == 404
        assert response.json()["detail"] == "Tracking document 999 not found"

    def test_non_positive_id_is_rejected(self, client: TestClient):
        assert client.get("/v1/documents/0").status_code == 422

    def test_list_by_counterparty(self, client: TestClient):
        first = _create(client)
        _create(client, counterparty_code="S002")
        second = _create(client)

        response = client.get("/v1/documents", params={"counterparty_code": "S001"})

        assert response.status_code == 200
        assert [doc["id"] for doc in response.json()["documents"]] == [second, first]

    def test_next_number(self, client: TestClient):
        assert client.get("/v1/documents/next-number").json() == {"display_number": 1}

        _create(client)

        assert client.get("/v1/documents/next-number").json() == {"display_number": 2}


@pytest.mark.integration
class TestUpdateAndDelete:

    def test_update_replaces_document(self, client: TestClient):
        document_id = _create(client)

        response = client.put(f"/v1/documents/{document_id}", json=_payload(
            external_reference="NEW",
            status=1,
            lines=[
                {"order": 1, "description": "Goods shipped", "status": "1"},
                {"order": 2, "description": "Delivered", "status": "1"},
            ],
        ))

        assert response.status_code == 200
        data = response.json()
        assert data["header"]["external_reference"] == "NEW"
        assert data["header"]["status"] == 1
        assert data["header"]["display_number"] == 1
        assert [line["order"] for line in data["lines"]] == [1, 2]

    def test_update_with_duplicate_orders(self, client: TestClient):
        document_id = _create(client)

        response = client.put(f"/v1/documents/{document_id}", json=_payload(lines=[
            {"order": 4, "description": "Delivered", "status": "1"},
            {"order": 2, "description": "Goods shipped", "status": "1"},
            {"order": 2, "description": "Invoice received", "status": "1"},
        ]))

        assert response.status_code == 200
        orders = [(line["order"], line["description"]) for line in response.json()["lines"]]
        assert orders == [(1, "Goods shipped"), (2, "Invoice received"), (3, "Delivered")]

    def test_update_unknown_document(self, client: TestClient):
        response = client.put("/v1/documents/999", json=_payload())

        assert response.status_code == 404

    def test_update_validation(self, client: TestClient):
        document_id = _create(client)

        response = client.put(f"/v1/documents/{document_id}", json=_payload(lines=[]))

        assert response.status_code == 422
        assert response.json()["detail"] == "At least one tracking line is required."

    def test_delete(self, client: TestClient):
        document_id = _create(client)

        response = client.delete(f"/v1/documents/{document_id}")

        assert response.status_code == 204
        assert client.get(f"/v1/documents/{document_id}").status_code == 404
        assert client.delete(f"/v1/documents/{document_id}").status_code == 404


@pytest.mark.integration
class TestLookups:

    def test_document_for_source_order(self, client: TestClient):
        document_id = _create(client, source_order_id=102, source_order_number=5002)

        assert client.get("/v1/source-orders/102/document").json() == {"document_id": document_id}
        assert client.get("/v1/source-orders/103/document").json() == {"document_id": 0}

    def test_open_orders(self, client: TestClient, seeded_purchase_orders):
        response = client.get("/v1/counterparties/S001/open-orders")

        assert response.status_code == 200
        orders = response.json()["orders"]
        assert [order["source_order_id"] for order in orders] == [104, 102, 101]
        assert orders[0] == {"source_order_id": 104, "source_order_number": 5004, "date": "2024-02-01"}

    def test_line_statuses(self, client: TestClient):
        response = client.get("/v1/line-statuses")

        assert response.status_code == 200
        assert response.json()["statuses"][0] == {"code": "0", "name": "Pending"}
