import pytest

from driver_api.observability import metrics_store, observe_timing


def test_metrics_endpoint_returns_typed_payload(client, admin_headers):
    metrics_store.increment("order_status_changed_total", 2)
    with observe_timing("epod_pdf_render_seconds"):
        pass

    response = client.get("/metrics", headers=admin_headers)

    assert response.status_code == 200
    payload = response.json()
    assert payload["service"] == "Driver Orders API"
    assert payload["counters"]["order_status_changed_total"] == 2
    assert payload["timings"]["epod_pdf_render_seconds"]["count"] == 1


def test_metrics_endpoint_counts_requests(client, admin_headers):
    client.get("/health")

    response = client.get("/metrics", headers=admin_headers)

    assert response.json()["counters"]["http_requests_total"] >= 1


def test_metrics_endpoint_requires_auth(client):
    response = client.get("/metrics")

    assert response.status_code == 401
    assert response.json() == {"message": "Missing bearer token"}
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_metrics_endpoint_rejects_driver(client, driver_headers):
    response = client.get("/metrics", headers=driver_headers)

    assert response.status_code == 403
    assert response.json() == {"message": "Insufficient role"}


def test_metrics_endpoint_exposes_explicit_response_schema(client):
    payload = client.get("/openapi.json").json()
    metrics_get = payload["paths"]["/metrics"]["get"]

    assert metrics_get["responses"]["200"]["content"]["application/json"]["schema"]["$ref"] == (
        "#/components/schemas/MetricsResponse"
    )


def test_snapshot_aggregates_timings():
    metrics_store.observe("x_seconds", 0.5)
    metrics_store.observe("x_seconds", 1.5)

    timings = metrics_store.snapshot().timings

    assert timings["x_seconds"] == {"count": 2, "avg_s": 1.0, "max_s": 1.5}


def test_timing_is_recorded_when_block_raises():
    with pytest.raises(RuntimeError):
        with observe_timing("epod_pdf_render_seconds"):
            raise RuntimeError("render failed")

    assert metrics_store.snapshot().timings["epod_pdf_render_seconds"]["count"] == 1
