"""
Tests for the POST /alerts/dispatch endpoint.

Tests cover:
- Successful dispatch response shape
- INVALID_ARGUMENT errors (400) for missing fields and bad bodies
- INTERNAL errors (500) for delivery failures
- Request logging headers and dispatch metrics
"""

import httpx


def valid_body() -> dict:
    return {
        "phoneNumber": "+14155550100",
        "message": "ACCIDENT ALERT!",
        "location": {"latitude": 40.7128, "longitude": -74.006},
        "intensity": 5,
        "timestamp": "2025-01-15T10:00:00Z",
    }


class TestDispatchSuccess:

    def test_dispatch(self, client, stored_records):
        response = client.post("/alerts/dispatch", json=valid_body())

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "messageId": "SM1",
            "status": "queued",
            "message": "SMS sent successfully",
        }
        records = stored_records()
        assert len(records) == 1
        assert records[0].status == "sent"

    def test_caller_id_is_optional(self, client):
        response = client.post(
            "/alerts/dispatch",
            json=valid_body(),
            headers={"X-Caller-Id": "user-123"},
        )

        assert response.status_code == 200

    def test_unknown_fields_ignored(self, client):
        body = valid_body()
        body["appVersion"] = "2.0"

        response = client.post("/alerts/dispatch", json=body)

        assert response.status_code == 200

    def test_request_id_header(self, client):
        response = client.post("/alerts/dispatch", json=valid_body())

        assert response.headers["X-Request-ID"]


class TestDispatchInvalidArgument:

    def test_missing_phone_number(self, client, fake_gateway, stored_records):
        body = valid_body()
        del body["phoneNumber"]

        response = client.post("/alerts/dispatch", json=body)

        assert response.status_code == 400
        assert response.json() == {
            "error": {
                "status": "INVALID_ARGUMENT",
                "message": "Phone number and message are required",
            }
        }
        assert fake_gateway.requests == []
        assert stored_records() == []

    def test_empty_message(self, client, stored_records):
        body = valid_body()
        body["message"] = ""

        response = client.post("/alerts/dispatch", json=body)

        assert response.status_code == 400
        assert response.json()["error"]["status"] == "INVALID_ARGUMENT"
        assert stored_records() == []

    def test_empty_body(self, client):
        response = client.post("/alerts/dispatch", content=b"")

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "No data received"

    def test_null_body(self, client):
        response = client.post(
            "/alerts/dispatch",
            content=b"null",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "No data received"

    def test_invalid_json(self, client, fake_gateway):
        response = client.post(
            "/alerts/dispatch",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["status"] == "INVALID_ARGUMENT"
        assert response.json()["error"]["message"].startswith("Invalid JSON")
        assert fake_gateway.requests == []

    def test_deeply_nested_json(self, client, fake_gateway, stored_records):
        body = b"[" * 100000 + b"]" * 100000

        response = client.post(
            "/alerts/dispatch",
            content=body,
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["status"] == "INVALID_ARGUMENT"
        assert response.json()["error"]["message"].startswith("Invalid JSON")
        assert fake_gateway.requests == []
        assert stored_records() == []

    def test_wrong_type(self, client):
        body = valid_body()
        body["intensity"] = "very high"

        response = client.post("/alerts/dispatch", json=body)

        assert response.status_code == 400
        assert "intensity" in response.json()["error"]["message"]


class TestDispatchInternal:

    def test_gateway_rejection(self, client, fake_gateway, stored_records):
        fake_gateway.handler = lambda request: httpx.Response(
            400, json={"code": 21608, "message": "The number is unverified"}
        )

        response = client.post("/alerts/dispatch", json=valid_body())

        assert response.status_code == 500
        assert response.json() == {
            "error": {
                "status": "INTERNAL",
                "message": "SMS failed: The number is unverified",
            }
        }
        records = stored_records()
        assert len(records) == 1
        assert records[0].status == "failed"
        assert records[0].error == "The number is unverified"

    def test_gateway_timeout(self, client, fake_gateway, stored_records):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)
        fake_gateway.handler = handler

        response = client.post("/alerts/dispatch", json=valid_body())

        assert response.status_code == 500
        assert response.json()["error"]["status"] == "INTERNAL"
        assert len(stored_records()) == 1


class TestDispatchMetrics:

    def test_outcomes_are_counted(self, client, fake_gateway):
        client.post("/alerts/dispatch", json=valid_body())
        client.post("/alerts/dispatch", json={"message": "no phone"})

        response = client.get("/metrics")

        assert response.status_code == 200
        assert 'alert_dispatch_total{result="sent"}' in response.text
        assert 'alert_dispatch_total{result="invalid"}' in response.text
