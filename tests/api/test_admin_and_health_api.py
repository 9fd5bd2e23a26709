"""API tests for the admin order endpoints and health checks."""
from tests.conftest import REDIRECT_URL
from tests.mocks.fake_payment_gateway import VALID_CALLBACK_AUTH, callback_body


USER = {"X-User-Id": "user-1"}
ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "admin"}


def _paid_order(client, seed):
    seed.standard_cart()
    order = client.post("/orders", json={"redirectUrl": REDIRECT_URL}, headers=USER).json()["order"]
    client.post(
        "/orders/payment-callback",
        content=callback_body(order["paymentDetails"]["merchantOrderId"], "COMPLETED"),
        headers={"Authorization": VALID_CALLBACK_AUTH},
    )
    return order


# =============================================================================
# ADMIN
# =============================================================================

def test_admin_routes_require_admin_role(api_client):
    forbidden = api_client.get("/admin/orders", headers=USER)
    assert forbidden.status_code == 403
    assert forbidden.json() == {
        "success": False,
        "code": "FORBIDDEN",
        "message": "Administrator access required",
    }

    anonymous = api_client.get("/admin/orders/analytics")
    assert anonymous.status_code == 401
    assert anonymous.json()["code"] == "UNAUTHORIZED"


def test_admin_lists_all_orders(api_client, api_seed):
    _paid_order(api_client, api_seed)

    response = api_client.get("/admin/orders", headers=ADMIN)

    assert response.status_code == 200
    assert response.json()["pagination"]["total"] == 1


def test_admin_updates_status_and_tracking(api_client, api_seed):
    order = _paid_order(api_client, api_seed)

    response = api_client.patch(
        f"/admin/orders/{order['id']}/status",
        json={
            "status": "processing",
            "trackingNumber": "AWB123",
            "trackingUrl": "https://track.example.test/AWB123",
            "estimatedDelivery": "2026-11-02T00:00:00Z",
        },
        headers=ADMIN,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "processing"
    assert body["trackingNumber"] == "AWB123"

    customer_view = api_client.get(f"/orders/{order['id']}", headers=USER).json()
    assert customer_view["trackingUrl"] == "https://track.example.test/AWB123"


def test_admin_invalid_transition(api_client, api_seed):
    api_seed.standard_cart()
    order = api_client.post("/orders", json={"redirectUrl": REDIRECT_URL}, headers=USER).json()["order"]

    response = api_client.patch(
        f"/admin/orders/{order['id']}/status", json={"status": "completed"}, headers=ADMIN
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_STATUS_TRANSITION"


def test_admin_analytics(api_client, api_seed):
    _paid_order(api_client, api_seed)
    # Confirmation emptied the cart
    api_seed.standard_cart()
    unpaid = api_client.post("/orders", json={"redirectUrl": REDIRECT_URL}, headers=USER)
    assert unpaid.status_code == 201

    response = api_client.get("/admin/orders/analytics", headers=ADMIN)

    assert response.status_code == 200
    analytics = response.json()
    assert analytics["totalOrders"] == 2
    assert analytics["paidOrders"] == 1
    assert analytics["revenue"] == "2297.50"
    assert analytics["byPaymentStatus"] == {"completed": 1, "pending": 1}


# =============================================================================
# HEALTH
# =============================================================================

def test_health(api_client):
    response = api_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_readiness_with_database(api_client):
    response = api_client.get("/health/ready")

    assert response.status_code == 200
    assert response.json()["checks"]["database"] == "ok"


def test_root(api_client):
    assert api_client.get("/").json()["docs"] == "/docs"
