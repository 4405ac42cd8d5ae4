import pytest

ORDER_PAYLOAD = {
    "pickup_address": "Warszawa, Prosta 1",
    "delivery_address": "Krakow, Dluga 2",
    "pickup_time": "2026-10-18T08:00:00Z",
    "delivery_time": "2026-10-18T16:00:00Z",
    "cargo_info": "2 pallets",
}


@pytest.fixture
def create_order(client, admin_headers):
    def _create(**overrides) -> dict:
        response = client.post(
            "/api/admin/orders",
            json={**ORDER_PAYLOAD, **overrides},
            headers=admin_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def delivered_order(client, create_order, driver, driver_headers):
    order = create_order(driver_id=driver.id)
    response = client.post(
        f"/api/orders/{order['id']}/status",
        json={"status": 4, "lat": 50.06, "lng": 19.94},
        headers=driver_headers,
    )
    assert response.status_code == 200, response.text
    return order
