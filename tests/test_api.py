from datetime import timedelta

import pytest

from canteen.core.security import create_access_token
from canteen.models import UserRole


def order_body(canteen_id, *lines, total=42.0, **extra):
    body = {
        "canteenId": canteen_id,
        "items": [{"menuItem": item, "quantity": qty} for item, qty in lines],
        "subtotal": total,
        "tax": 0,
        "total": total,
    }
    body.update(extra)
    return body


async def place(client, seed, who="student", **kwargs):
    lines = kwargs.pop("lines", [(seed.coffee, 1)])
    response = await client.post("/orders", json=order_body(seed.east, *lines, **kwargs), headers=seed.auth(who))
    assert response.status_code == 201, response.text
    return response.json()


async def set_status(client, seed, order_id, status, who="kitchen_east"):
    return await client.patch(f"/orders/{order_id}/status", json={"status": status}, headers=seed.auth(who))


class TestHealth:
    async def test_root(self, client):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["health"] == "/health"

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["database"] == "healthy"
        assert data["payment_service"] == "healthy"


class TestAuthentication:
    async def test_missing_token(self, client, seed):
        response = await client.get("/orders/my")
        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "error": "AuthenticationError",
            "detail": "No token, authorization denied",
        }

    async def test_garbage_token(self, client, seed):
        response = await client.get("/orders/my", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid token"

    async def test_expired_token(self, client, seed, settings):
        token = create_access_token(
            settings, seed.principals["student"].user_id, UserRole.STUDENT, expires_in=timedelta(seconds=-5)
        )
        response = await client.get("/orders/my", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Token has expired"

    async def test_unknown_user(self, client, seed, settings):
        token = create_access_token(settings, 99999, UserRole.STUDENT)
        response = await client.get("/orders/my", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    async def test_stale_role_claim(self, client, seed, settings):
        token = create_access_token(settings, seed.principals["student"].user_id, UserRole.ADMIN)
        response = await client.get("/orders/admin/stats", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


class TestPlaceOrder:
    async def test_created(self, client, seed):
        order = await place(client, seed, lines=[(seed.coffee, 2), (seed.samosa, 1)], total=55.0)
        assert order["status"] == "pending"
        assert order["priority"] == "normal"
        assert order["paymentMode"] == "COD"
        assert order["paymentStatus"] == "pending"
        assert order["canteenId"] == seed.east
        assert order["items"][0]["menuItem"]["name"] == "Filter Coffee"

    async def test_client_price_is_ignored(self, client, seed):
        body = order_body(seed.east, (seed.coffee, 1))
        body["items"][0].update({"price": 1.0, "name": "Free Coffee"})
        response = await client.post("/orders", json=body, headers=seed.auth("student"))
        assert response.status_code == 201
        line = response.json()["items"][0]
        assert line["price"] == 20.0
        assert line["name"] == "Filter Coffee"

    async def test_staff_high_priority_upi_paid(self, client, seed):
        order = await place(client, seed, who="staff", paymentMode="UPI", paymentOrderId="CC_1")
        assert order["priority"] == "high"
        assert order["paymentStatus"] == "paid"
        assert order["paymentOrderId"] == "CC_1"

    async def test_empty_cart(self, client, seed):
        response = await client.post("/orders", json=order_body(seed.east), headers=seed.auth("student"))
        assert response.status_code == 400
        assert response.json()["error"] == "EmptyCart"
        assert response.json()["detail"] == "Cart is empty"

    async def test_zero_total(self, client, seed):
        response = await client.post(
            "/orders", json=order_body(seed.east, (seed.coffee, 1), total=0), headers=seed.auth("student")
        )
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidTotal"

    @pytest.mark.parametrize("field", ["total", "subtotal", "tax"])
    @pytest.mark.parametrize("value", ["Infinity", "NaN", "-Infinity"])
    async def test_non_finite_amounts_rejected(self, client, seed, field, value):
        body = order_body(seed.east, (seed.coffee, 1))
        body[field] = value
        response = await client.post("/orders", json=body, headers=seed.auth("student"))
        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"

        orders = await client.get("/orders/my", headers=seed.auth("student"))
        assert orders.json() == []

    async def test_item_from_another_canteen(self, client, seed):
        response = await client.post(
            "/orders", json=order_body(seed.east, (seed.thali, 1)), headers=seed.auth("student")
        )
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidMenuItem"

    async def test_missing_canteen(self, client, seed):
        body = order_body(seed.east, (seed.coffee, 1))
        del body["canteenId"]
        response = await client.post("/orders", json=body, headers=seed.auth("student"))
        assert response.status_code == 400
        assert response.json()["detail"] == "canteenId is required"

    async def test_malformed_quantity(self, client, seed):
        response = await client.post(
            "/orders", json=order_body(seed.east, (seed.coffee, 0)), headers=seed.auth("student")
        )
        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"

    @pytest.mark.parametrize("who", ["admin", "kitchen_east"])
    async def test_only_customers_order(self, client, seed, who):
        response = await client.post("/orders", json=order_body(seed.east, (seed.coffee, 1)), headers=seed.auth(who))
        assert response.status_code == 403

    async def test_my_orders_newest_first(self, client, seed):
        first = await place(client, seed)
        second = await place(client, seed, lines=[(seed.samosa, 1)])
        await place(client, seed, who="staff")

        response = await client.get("/orders/my", headers=seed.auth("student"))
        assert [o["id"] for o in response.json()] == [second["id"], first["id"]]


class TestKitchen:
    async def test_queue_priority(self, client, seed):
        normal = await place(client, seed)
        high = await place(client, seed, who="staff")

        response = await client.get("/orders/kitchen/queue", headers=seed.auth("kitchen_east"))
        assert response.status_code == 200
        assert [o["id"] for o in response.json()] == [high["id"], normal["id"]]

    async def test_queue_requires_kitchen_role(self, client, seed):
        response = await client.get("/orders/kitchen/queue", headers=seed.auth("student"))
        assert response.status_code == 403
        assert response.json()["error"] == "AuthorizationError"

    async def test_other_canteen_queue_is_empty(self, client, seed):
        await place(client, seed)
        response = await client.get("/orders/kitchen/queue", headers=seed.auth("kitchen_core"))
        assert response.json() == []

    async def test_lifecycle_to_history(self, client, seed):
        order = await place(client, seed)
        for status in ("preparing", "ready", "completed"):
            response = await set_status(client, seed, order["id"], status)
            assert response.status_code == 200, response.text

        done = response.json()
        assert done["status"] == "completed"
        assert done["paymentStatus"] == "paid"

        queue = await client.get("/orders/kitchen/queue", headers=seed.auth("kitchen_east"))
        assert queue.json() == []

        history = await client.get("/orders/kitchen/history", headers=seed.auth("kitchen_east"))
        assert [o["id"] for o in history.json()] == [order["id"]]

    async def test_skip_is_rejected(self, client, seed):
        order = await place(client, seed)
        response = await set_status(client, seed, order["id"], "ready")
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidTransition"
        assert response.json()["detail"] == "Invalid transition from pending to ready"

    async def test_unknown_status_value(self, client, seed):
        order = await place(client, seed)
        response = await set_status(client, seed, order["id"], "cancelled")
        assert response.status_code == 400

    async def test_other_canteen_kitchen(self, client, seed):
        order = await place(client, seed)
        response = await set_status(client, seed, order["id"], "preparing", who="kitchen_core")
        assert response.status_code == 403
        assert response.json()["detail"] == "Access denied"

    async def test_admin_can_transition_any_canteen(self, client, seed):
        order = await place(client, seed)
        response = await set_status(client, seed, order["id"], "preparing", who="admin")
        assert response.status_code == 200

    async def test_student_cannot_transition(self, client, seed):
        order = await place(client, seed)
        response = await set_status(client, seed, order["id"], "preparing", who="student")
        assert response.status_code == 403

    async def test_bad_and_missing_ids(self, client, seed):
        response = await set_status(client, seed, "abc", "preparing")
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid order id"

        response = await set_status(client, seed, 424242, "preparing")
        assert response.status_code == 404
        assert response.json()["detail"] == "Order not found"

    async def test_admin_history_needs_canteen(self, client, seed):
        response = await client.get("/orders/kitchen/history", headers=seed.auth("admin"))
        assert response.status_code == 400

        response = await client.get(
            "/orders/kitchen/history", params={"canteenId": seed.east}, headers=seed.auth("admin")
        )
        assert response.status_code == 200
        assert response.json() == []


class TestAdmin:
    async def test_stats_with_no_orders(self, client, seed):
        response = await client.get("/orders/admin/stats", headers=seed.auth("admin"))
        assert response.status_code == 200
        assert response.json() == {"todayOrders": 0, "totalRevenue": 0}

    async def test_stats_and_today(self, client, seed):
        await place(client, seed, total=42.0)
        await place(client, seed, who="staff", total=58.0)

        stats = await client.get("/orders/admin/stats", headers=seed.auth("admin"))
        assert stats.json() == {"todayOrders": 2, "totalRevenue": 100.0}

        today = await client.get("/orders/admin/today", headers=seed.auth("admin"))
        assert len(today.json()) == 2

        other = await client.get(
            "/orders/admin/stats", params={"canteenId": seed.core}, headers=seed.auth("admin")
        )
        assert other.json() == {"todayOrders": 0, "totalRevenue": 0}

    @pytest.mark.parametrize("who", ["student", "kitchen_east"])
    async def test_stats_admin_only(self, client, seed, who):
        response = await client.get("/orders/admin/stats", headers=seed.auth(who))
        assert response.status_code == 403


class TestMenu:
    async def test_canteens(self, client, seed):
        response = await client.get("/canteens")
        assert {c["code"] for c in response.json()} == {"EAST", "CORE", "MUNCH"}

    async def test_student_sees_available_items(self, client, seed):
        response = await client.get("/menu", params={"canteenId": seed.east}, headers=seed.auth("student"))
        assert response.status_code == 200
        names = {item["name"] for item in response.json()}
        assert names == {"Filter Coffee", "Samosa"}

    async def test_student_must_pick_canteen(self, client, seed):
        response = await client.get("/menu", headers=seed.auth("student"))
        assert response.status_code == 400

    async def test_admin_sees_everything(self, client, seed):
        response = await client.get("/menu", headers=seed.auth("admin"))
        assert len(response.json()) == 4

    async def test_crud(self, client, seed):
        created = await client.post(
            "/menu",
            json={"canteenId": seed.core, "name": "Lemon Tea", "category": "Beverages", "price": 12},
            headers=seed.auth("admin"),
        )
        assert created.status_code == 201
        item_id = created.json()["id"]

        updated = await client.put(
            f"/menu/{item_id}", json={"price": 14, "available": False}, headers=seed.auth("admin")
        )
        assert updated.status_code == 200
        assert updated.json()["price"] == 14
        assert updated.json()["available"] is False
        assert updated.json()["name"] == "Lemon Tea"

        deleted = await client.delete(f"/menu/{item_id}", headers=seed.auth("admin"))
        assert deleted.status_code == 200

        missing = await client.delete(f"/menu/{item_id}", headers=seed.auth("admin"))
        assert missing.status_code == 404

    async def test_create_rejects_bad_category_and_closed_canteen(self, client, seed):
        response = await client.post(
            "/menu",
            json={"canteenId": seed.core, "name": "Cake", "category": "Desserts", "price": 30},
            headers=seed.auth("admin"),
        )
        assert response.status_code == 400

        response = await client.post(
            "/menu",
            json={"canteenId": seed.closed, "name": "Cake", "category": "Snacks", "price": 30},
            headers=seed.auth("admin"),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidCanteen"

    async def test_students_cannot_manage_menu(self, client, seed):
        response = await client.put(f"/menu/{seed.coffee}", json={"price": 1}, headers=seed.auth("student"))
        assert response.status_code == 403


class TestPayments:
    async def test_create_gateway_order(self, client, seed, app):
        response = await client.post("/payments/create-order", json={"amount": 189.0}, headers=seed.auth("student"))
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["provider"] == "mock"
        assert data["paymentOrderId"].startswith("CC_")
        assert data["currency"] == "INR"
        assert len(app.state.payment_gateway.created) == 1

    @pytest.mark.parametrize("body", [{}, {"amount": 0}, {"amount": -10}])
    async def test_invalid_amount(self, client, seed, body):
        response = await client.post("/payments/create-order", json=body, headers=seed.auth("student"))
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid amount"

    async def test_infinite_amount(self, client, seed, app):
        response = await client.post(
            "/payments/create-order", json={"amount": "Infinity"}, headers=seed.auth("student")
        )
        assert response.status_code == 400
        assert not app.state.payment_gateway.created

    async def test_gateway_failure(self, client, seed, app):
        app.state.payment_gateway.failure_rate = 1.0
        response = await client.post("/payments/create-order", json={"amount": 50}, headers=seed.auth("student"))
        assert response.status_code == 500
        assert response.json()["error"] == "PaymentGatewayError"
