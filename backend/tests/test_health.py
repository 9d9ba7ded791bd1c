from fastapi.testclient import TestClient


def _get_client() -> TestClient:
    from weekwise.main import app

    return TestClient(app)


def test_health_endpoint_returns_ok() -> None:
    client = _get_client()
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_request_id_generated_and_returned() -> None:
    client = _get_client()
    response = client.get("/health")

    assert response.headers.get("X-Request-Id")


def test_request_id_echoed_from_header() -> None:
    client = _get_client()
    req_id = "test-request-id-123"
    response = client.get("/health", headers={"X-Request-Id": req_id})

    assert response.headers.get("X-Request-Id") == req_id


def test_planner_routes_are_mounted() -> None:
    from weekwise.main import app

    paths = {route.path for route in app.routes}

    assert {
        "/weekly-plan/generate",
        "/weekly-plan/{plan_id}/confirm",
        "/onboarding/start",
        "/telegram/webhook",
    } <= paths


def test_request_id_echoed_on_planner_validation_error() -> None:
    client = _get_client()
    response = client.post("/weekly-plan/generate", json={}, headers={"X-Request-Id": "plan-req-1"})

    assert response.status_code == 422
    assert response.headers.get("X-Request-Id") == "plan-req-1"
