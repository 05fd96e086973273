# backend/tests/routes/test_booking_routes.py
"""
HTTP tests for the booking and payment routes.

Responses are camelCase; errors are problem+json bodies carrying the RPC
error ``code``.
"""

import pytest

from ..helpers import CITY, auth_headers

CUSTOMER = auth_headers("cust_1", "customer")
VENDOR = auth_headers("vendor_1", "vendor")
FREELANCER = auth_headers("f_1", "freelancer")


@pytest.fixture
def catalog(seed):
    seed.customer("cust_1")
    seed.vendor("vendor_1")
    seed.service("svc_home", price="1000", category="hair")
    seed.service("svc_shop", price="1000", category="hair", vendor_id="vendor_1")


def create(client, booking_type="IN_SHOP", service_id="svc_shop", **extra):
    body = {"cityId": CITY, "serviceId": service_id, "type": booking_type, **extra}
    return client.post("/api/v1/bookings", json=body, headers=CUSTOMER)


class TestCreateBookingRoute:
    def test_create_in_shop(self, client, catalog):
        response = create(client, idempotencyKey="k1")

        assert response.status_code == 201
        data = response.json()
        assert data["alreadyExists"] is False
        booking = data["booking"]
        assert booking["status"] == "CREATED"
        assert booking["vendorId"] == "vendor_1"
        assert booking["payment"] == {
            "mode": "OFFLINE",
            "status": "NOT_REQUIRED",
            "amount": 1000.0,
            "currency": "INR",
            "providerRef": None,
        }

    def test_idempotent_retry(self, client, catalog):
        first = create(client, idempotencyKey="k1").json()
        second = create(client, idempotencyKey="k1").json()

        assert second["alreadyExists"] is True
        assert second["booking"]["bookingId"] == first["booking"]["bookingId"]

    def test_home_booking_is_assigned(self, client, seed, catalog, scheduler):
        seed.freelancer("f_1", tier="gold")

        response = create(client, booking_type="HOME", service_id="svc_home")

        assert response.status_code == 201
        booking = response.json()["booking"]
        assert booking["status"] == "ASSIGNED"
        assert booking["freelancerId"] == "f_1"
        assert scheduler.calls == [(CITY, booking["bookingId"], "f_1")]

    def test_no_freelancer_is_resource_exhausted(self, client, catalog):
        response = create(client, booking_type="HOME", service_id="svc_home")

        assert response.status_code == 429
        assert response.json()["code"] == "resource-exhausted"

    def test_missing_token(self, client, catalog):
        response = client.post(
            "/api/v1/bookings", json={"cityId": CITY, "serviceId": "svc_shop", "type": "IN_SHOP"}
        )

        assert response.status_code == 401
        assert response.json()["code"] == "unauthenticated"

    def test_unknown_field_is_invalid(self, client, catalog):
        response = create(client, price=1)

        assert response.status_code == 400
        assert response.json()["code"] == "invalid-argument"

    def test_bad_type_is_invalid(self, client, catalog):
        response = create(client, booking_type="DRIVE_THRU")

        assert response.status_code == 400

    def test_unknown_service(self, client, catalog):
        response = create(client, service_id="nope")

        assert response.status_code == 404
        assert response.json()["code"] == "not-found"

    def test_vendor_cannot_create(self, client, catalog):
        response = client.post(
            "/api/v1/bookings",
            json={"cityId": CITY, "serviceId": "svc_shop", "type": "IN_SHOP"},
            headers=VENDOR,
        )

        assert response.status_code == 403
        assert response.json()["code"] == "permission-denied"


class TestLifecycleRoutes:
    def test_in_shop_lifecycle(self, client, catalog):
        booking_id = create(client).json()["booking"]["bookingId"]
        base = f"/api/v1/bookings/{CITY}/{booking_id}"

        accepted = client.post(f"{base}/vendor-response", json={"action": "ACCEPT"}, headers=VENDOR)
        assert accepted.status_code == 200
        assert accepted.json()["booking"]["status"] == "CONFIRMED"

        completed = client.post(f"{base}/complete", headers=VENDOR)
        assert completed.status_code == 200
        assert completed.json()["status"] == "COMPLETED"

        balance = client.get("/api/v1/accounts/vendor_1/balance", headers=VENDOR).json()
        assert balance["payableBalance"] == -100.0
        assert [e["entryType"] for e in balance["entries"]] == ["EARNING", "COMMISSION"]

        detail = client.get(base, headers=CUSTOMER).json()
        assert [(e["from"], e["to"]) for e in detail["statusEvents"]] == [
            (None, "CREATED"),
            ("CREATED", "CONFIRMED"),
            ("CONFIRMED", "COMPLETED"),
        ]

    def test_second_vendor_response_conflicts(self, client, catalog):
        booking_id = create(client).json()["booking"]["bookingId"]
        url = f"/api/v1/bookings/{CITY}/{booking_id}/vendor-response"
        client.post(url, json={"action": "REJECT"}, headers=VENDOR)

        response = client.post(url, json={"action": "ACCEPT"}, headers=VENDOR)

        assert response.status_code == 409
        assert response.json()["code"] == "failed-precondition"

    def test_home_lifecycle_with_payment(self, client, seed, catalog):
        seed.freelancer("f_1", tier="gold")
        booking_id = create(client, booking_type="HOME", service_id="svc_home").json()["booking"][
            "bookingId"
        ]
        base = f"/api/v1/bookings/{CITY}/{booking_id}"
        payments = f"/api/v1/payments/{CITY}/{booking_id}"

        response = client.post(f"{base}/freelancer-response", json={"action": "ACCEPT"}, headers=FREELANCER)
        assert response.json()["booking"]["status"] == "CONFIRMED"

        authorized = client.post(f"{payments}/authorize", headers=CUSTOMER)
        assert authorized.json()["payment"]["status"] == "AUTHORIZED"

        assert client.post(f"{base}/start", headers=FREELANCER).json()["status"] == "IN_PROGRESS"
        completed = client.post(f"{base}/complete", headers=FREELANCER).json()
        assert completed["payment"]["status"] == "CAPTURED"

        refunded = client.post(f"{payments}/refund", headers=CUSTOMER).json()
        assert refunded["payment"]["status"] == "REFUNDED"
        assert refunded["status"] == "COMPLETED"

        cancelled = client.post(f"{base}/cancel", headers=CUSTOMER).json()
        assert cancelled["status"] == "CANCELLED"

    def test_freelancer_reject_reassigns(self, client, seed, catalog, scheduler):
        seed.freelancer("f_1", tier="gold")
        seed.freelancer("f_2", tier="silver")
        booking_id = create(client, booking_type="HOME", service_id="svc_home").json()["booking"][
            "bookingId"
        ]

        response = client.post(
            f"/api/v1/bookings/{CITY}/{booking_id}/freelancer-response",
            json={"action": "REJECT"},
            headers=FREELANCER,
        )

        data = response.json()
        assert data["reassigned"] is True
        assert data["booking"]["freelancerId"] == "f_2"
        assert data["booking"]["assignmentAttempts"][0]["freelancerId"] == "f_1"
        assert scheduler.calls[-1][2] == "f_2"

    def test_reject_with_nobody_left_is_resource_exhausted(self, client, seed, catalog):
        seed.freelancer("f_1", tier="gold")
        booking_id = create(client, booking_type="HOME", service_id="svc_home").json()["booking"][
            "bookingId"
        ]

        response = client.post(
            f"/api/v1/bookings/{CITY}/{booking_id}/freelancer-response",
            json={"action": "REJECT"},
            headers=FREELANCER,
        )

        assert response.status_code == 429
        assert response.json()["code"] == "resource-exhausted"
        detail = client.get(f"/api/v1/bookings/{CITY}/{booking_id}", headers=CUSTOMER).json()
        assert detail["status"] == "FAILED"
        assert detail["failureReason"] == "NO_FREELANCER_AVAILABLE"

    def test_fail_payment_route(self, client, seed, catalog):
        seed.freelancer("f_1", tier="gold")
        booking_id = create(client, booking_type="HOME", service_id="svc_home").json()["booking"][
            "bookingId"
        ]
        client.post(
            f"/api/v1/bookings/{CITY}/{booking_id}/freelancer-response",
            json={"action": "ACCEPT"},
            headers=FREELANCER,
        )
        client.post(f"/api/v1/payments/{CITY}/{booking_id}/authorize", headers=CUSTOMER)

        failed = client.post(f"/api/v1/payments/{CITY}/{booking_id}/fail", headers=CUSTOMER).json()

        assert failed["status"] == "FAILED"
        assert failed["failureReason"] == "PAYMENT_FAILED"

    def test_stranger_cannot_read_booking(self, client, catalog):
        booking_id = create(client).json()["booking"]["bookingId"]

        response = client.get(
            f"/api/v1/bookings/{CITY}/{booking_id}", headers=auth_headers("cust_9", "customer")
        )

        assert response.status_code == 403

    def test_my_bookings(self, client, catalog):
        create(client, idempotencyKey="a")
        create(client, idempotencyKey="b")

        data = client.get("/api/v1/bookings", headers=CUSTOMER).json()

        assert data["total"] == 2
        assert {item["customerId"] for item in data["items"]} == {"cust_1"}
