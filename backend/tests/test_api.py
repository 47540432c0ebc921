"""
API tests.

Verifies:
- Unauthenticated requests return 401
- Staff are denied privileged operations (403)
- The account owner can run the full booking flow over HTTP
- Health and CORS behavior
"""

from decimal import Decimal

import pytest

from conftest import PASSWORD, auth_headers, get_auth_token, make_staff


# =============================================================================
# UNAUTHENTICATED ACCESS: 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/console/snapshot"),
            ("POST", "/api/console/reload"),
            ("GET", "/api/console/search"),
            ("GET", "/api/flights"),
            ("POST", "/api/flights"),
            ("POST", "/api/flights/1/passengers"),
            ("GET", "/api/settings"),
            ("PUT", "/api/settings/prices"),
            ("GET", "/api/admin/users"),
            ("POST", "/api/admin/roles"),
            ("GET", "/api/admin/permissions"),
            ("POST", "/api/auth/validate"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/flights", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "session_expired"


# =============================================================================
# AUTH ENDPOINTS
# =============================================================================


class TestAuthEndpoints:
    """Registration, login and logout over HTTP."""

    def test_register_and_validate(self, client, seed_roles):
        resp = client.post("/api/auth/register", json={"email": "new@agency.test", "password": PASSWORD})
        assert resp.status_code == 201
        token = resp.get_json()["token"]

        resp = client.post("/api/auth/validate", headers=auth_headers(token))
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["role"] == "Admin"
        assert data["scope"] == data["user"]["id"]

    def test_login_bad_password(self, client, owner):
        resp = client.post("/api/auth/login", json={"email": owner.email, "password": "wrong-one"})
        assert resp.status_code == 401
        assert resp.get_json()["message"] == "Invalid email or password"

    def test_logout_invalidates_token(self, client, owner):
        token = get_auth_token(client, owner.email)
        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 200
        assert client.get("/api/flights", headers=auth_headers(token)).status_code == 401

    def test_deactivated_user_blocked_from_console(self, client, owner):
        make_staff(owner, "off@agency.test", "Staff", "Off Staff", active=False)
        resp = client.post("/api/auth/login", json={"email": "off@agency.test", "password": PASSWORD})
        assert resp.status_code == 200
        assert resp.get_json()["active"] is False

        headers = auth_headers(resp.get_json()["token"])
        assert client.get("/api/console/snapshot", headers=headers).status_code == 403


# =============================================================================
# STAFF DENIED PRIVILEGED OPERATIONS: 403
# =============================================================================


class TestStaffDenied:
    """Staff role cannot perform account-wide operations."""

    def test_cannot_create_user(self, client, staff_headers):
        resp = client.post(
            "/api/admin/users",
            json={"email": "x@agency.test", "password": PASSWORD, "name": "X", "role": "Staff"},
            headers=staff_headers,
        )
        assert resp.status_code == 403

    def test_cannot_create_role(self, client, staff_headers):
        resp = client.post("/api/admin/roles", json={"name": "evil-role"}, headers=staff_headers)
        assert resp.status_code == 403

    def test_cannot_edit_prices(self, client, staff_headers):
        resp = client.put("/api/settings/prices", json={"adult": "1"}, headers=staff_headers)
        assert resp.status_code == 403
        assert resp.get_json()["category"] == "settings"

    def test_cannot_add_airline(self, client, staff_headers):
        resp = client.post("/api/settings/airlines", json={"name": "Evil Air"}, headers=staff_headers)
        assert resp.status_code == 403

    def test_cannot_view_activity(self, client, staff_headers):
        assert client.get("/api/console/activity", headers=staff_headers).status_code == 403

    def test_cannot_search_past(self, client, staff_headers):
        assert client.get("/api/console/search?when=past", headers=staff_headers).status_code == 403


# =============================================================================
# OWNER BOOKING FLOW: 200
# =============================================================================


class TestBookingFlow:
    """Flights and passengers over HTTP."""

    def test_full_flow(self, client, owner_headers):
        resp = client.post("/api/flights", json={
            "airline": "FlyCo", "flightNumber": "FC100", "date": "2026-01-10", "route": "AAA-BBB",
        }, headers=owner_headers)
        assert resp.status_code == 201
        flight = resp.get_json()["flight"]
        assert flight["passengers"] == []

        resp = client.post(f"/api/flights/{flight['uuid']}/passengers", json={
            "id": "tmp-1", "name": "John Doe", "type": "Adult", "infants": ["Baby Doe"],
        }, headers=owner_headers)
        assert resp.status_code == 201
        passenger = resp.get_json()["passenger"]
        assert passenger["infants"] == ["Baby Doe"]

        resp = client.put(f"/api/flights/{flight['uuid']}/passengers/{passenger['id']}", json={
            "infants": [],
        }, headers=owner_headers)
        assert resp.status_code == 200
        assert resp.get_json()["passenger"]["infants"] == []

        resp = client.get("/api/console/snapshot", headers=owner_headers)
        snapshot = resp.get_json()["snapshot"]
        [loaded] = snapshot["flights"]
        assert loaded["passengers"][0]["name"] == "John Doe"

        resp = client.delete(f"/api/flights/{flight['uuid']}", headers=owner_headers)
        assert resp.status_code == 200
        assert client.get("/api/flights", headers=owner_headers).get_json()["count"] == 0

    def test_validation_error(self, client, owner_headers):
        resp = client.post("/api/flights", json={"airline": "FlyCo"}, headers=owner_headers)
        assert resp.status_code == 400
        assert "date" in resp.get_json()["error"]

    def test_unknown_flight(self, client, owner_headers):
        assert client.get("/api/flights/does-not-exist", headers=owner_headers).status_code == 404

    def test_quote(self, client, owner_headers):
        resp = client.post("/api/flights", json={"airline": "FlyCo", "date": "2026-01-10"}, headers=owner_headers)
        uuid = resp.get_json()["flight"]["uuid"]
        resp = client.get(f"/api/flights/{uuid}/quote?type=Adult&infants=2", headers=owner_headers)
        assert resp.status_code == 200
        assert Decimal(resp.get_json()["quote"]["total_price"]) == Decimal("190")

        resp = client.get(f"/api/flights/{uuid}/quote?type=Infant", headers=owner_headers)
        assert resp.status_code == 400

    def test_staff_change_visible_to_owner(self, client, owner_headers, staff_headers):
        client.get("/api/console/snapshot", headers=owner_headers)
        client.post("/api/flights", json={"airline": "FlyCo", "date": "2026-01-10"}, headers=staff_headers)
        resp = client.get("/api/console/snapshot", headers=owner_headers)
        [flight] = resp.get_json()["snapshot"]["flights"]
        assert resp.get_json()["snapshot"]["display_names"][flight["created_by"]] == "Sam Staff"

    def test_permissions_endpoint(self, client, staff_headers):
        resp = client.get("/api/console/permissions", headers=staff_headers)
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["role"] == "Staff"
        assert data["permissions"]["flight"]["create"] is True
        assert data["permissions"]["flight"]["delete"] is False


# =============================================================================
# ADMIN
# =============================================================================


class TestAdminEndpoints:
    """Managed users and roles over HTTP."""

    def test_create_user_and_sign_in(self, client, owner_headers):
        resp = client.post("/api/admin/users", json={
            "email": "clerk@agency.test", "password": PASSWORD, "name": "Cleo Clerk", "role": "Staff",
        }, headers=owner_headers)
        assert resp.status_code == 201
        assert get_auth_token(client, "clerk@agency.test") is not None

        users = client.get("/api/admin/users", headers=owner_headers).get_json()["users"]
        assert [u["email"] for u in users] == ["clerk@agency.test"]

    def test_permission_catalog(self, client, owner_headers):
        resp = client.get("/api/admin/permissions", headers=owner_headers)
        assert resp.status_code == 200
        assert len(resp.get_json()["permissions"]["settings"]) > 0

    def test_invalid_matrix(self, client, owner_headers):
        roles = client.get("/api/admin/roles", headers=owner_headers).get_json()["roles"]
        staff_role = [r for r in roles if r["role"] == "Staff"][0]
        resp = client.put(
            f"/api/admin/roles/{staff_role['id']}/permissions",
            json={"permissions": {"flight": {"fly": True}}},
            headers=owner_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["problems"]


# =============================================================================
# PUBLIC ENDPOINTS: NO AUTH REQUIRED
# =============================================================================


class TestPublicEndpoints:
    """System health is public."""

    def test_health(self, client, seed_roles):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "healthy"

    def test_health_degraded_without_roles(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "degraded"

    def test_cors_allowed_origin(self, client, seed_roles):
        resp = client.get("/health", headers={"Origin": "http://localhost:5173"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

    def test_cors_unknown_origin(self, client, seed_roles):
        resp = client.get("/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in resp.headers
