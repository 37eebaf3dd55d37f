"""
Organization Routes Integration Tests
=====================================

Tests for the organization endpoints including:
- Bearer token verification
- Membership listing and default selection
- Switching with cache invalidation signals
- Header and cookie selection
"""

import uuid
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from stratikey.core.config import settings
from stratikey.core.tenant.cache import tenant_cache


pytestmark = pytest.mark.integration

COOKIE = settings.ORG_SELECTION_COOKIE_NAME


class TestAuthentication:
    """Tests for bearer token handling."""

    def test_missing_token_is_401(self, client: TestClient):
        response = client.get("/api/organizations")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    def test_expired_token_is_401(self, client, marketer_user, mint_token):
        token = mint_token(marketer_user.id, expires_in=timedelta(minutes=-5))

        response = client.get("/api/organizations", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_refresh_token_is_rejected(self, client, marketer_user, mint_token):
        token = mint_token(marketer_user.id, token_type="refresh")

        response = client.get("/api/organizations", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_wrong_audience_is_rejected(self, client, marketer_user, mint_token):
        token = mint_token(marketer_user.id, audience="another-api")

        response = client.get("/api/organizations", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_bad_signature_is_rejected(self, client, marketer_user, mint_token):
        token = mint_token(marketer_user.id, secret="not-the-real-secret-at-all-0123456789")

        response = client.get("/api/organizations", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_unknown_user_is_rejected(self, client, mint_token):
        token = mint_token(uuid.uuid4())

        response = client.get("/api/organizations", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_inactive_user_is_rejected(self, client, make_user, add_membership, org_a, headers_for):
        from stratikey.models import Role

        user = make_user(is_active=False)
        add_membership(user, org_a, Role.VIEWER)

        response = client.get("/api/organizations", headers=headers_for(user))

        assert response.status_code == 401


class TestListOrganizations:
    """Tests for GET /api/organizations."""

    def test_lists_memberships_and_defaults_to_first(self, client, multi_org_headers, org_a, org_b):
        # Act
        response = client.get("/api/organizations", headers=multi_org_headers)

        # Assert
        assert response.status_code == 200
        body = response.json()
        assert [m["organizationId"] for m in body["memberships"]] == [str(org_a.id), str(org_b.id)]
        assert [m["role"] for m in body["memberships"]] == ["MARKETER", "ORG_ADMIN"]
        assert body["activeOrganizationId"] == str(org_a.id)
        assert response.cookies.get(COOKIE) == str(org_a.id)

    def test_user_without_memberships_gets_empty_list(self, client, make_user, headers_for):
        response = client.get("/api/organizations", headers=headers_for(make_user()))

        assert response.status_code == 200
        assert response.json() == {"memberships": [], "activeOrganizationId": None}


class TestActiveOrganization:
    """Tests for GET /api/organizations/active."""

    def test_resolves_first_membership(self, client, multi_org_headers, org_a):
        response = client.get("/api/organizations/active", headers=multi_org_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["membership"]["organizationId"] == str(org_a.id)
        assert body["membership"]["role"] == "MARKETER"
        assert body["cacheEpoch"] == 0

    def test_header_selects_organization_for_one_request(self, client, multi_org_headers, org_b):
        headers = {**multi_org_headers, "X-Organization-Id": str(org_b.id)}

        response = client.get("/api/organizations/active", headers=headers)

        assert response.json()["membership"]["organizationId"] == str(org_b.id)

    def test_cookie_selects_organization(self, client, multi_org_headers, org_b):
        client.cookies.set(COOKIE, str(org_b.id))

        response = client.get("/api/organizations/active", headers=multi_org_headers)

        assert response.json()["membership"]["role"] == "ORG_ADMIN"

    def test_forged_cookie_is_not_trusted(self, client, marketer_headers, org_a, org_b):
        # Arrange: cookie names an organization the caller does not belong to
        client.cookies.set(COOKIE, str(org_b.id))

        # Act
        response = client.get("/api/organizations/active", headers=marketer_headers)

        # Assert
        assert response.status_code == 200
        assert response.json()["membership"]["organizationId"] == str(org_a.id)
        assert response.cookies.get(COOKIE) == str(org_a.id)

    def test_user_without_memberships_is_forbidden(self, client, make_user, headers_for):
        response = client.get("/api/organizations/active", headers=headers_for(make_user()))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"


class TestSwitchOrganization:
    """Tests for POST /api/organizations/switch."""

    def test_switch_persists_selection_and_signals_invalidation(
        self, client, multi_org_headers, org_b
    ):
        # Act
        response = client.post(
            "/api/organizations/switch",
            json={"organizationId": str(org_b.id)},
            headers=multi_org_headers,
        )

        # Assert
        assert response.status_code == 200
        body = response.json()
        assert body["membership"]["organizationId"] == str(org_b.id)
        assert body["invalidateCaches"] is True
        assert body["cacheEpoch"] == 1
        assert response.headers["Clear-Site-Data"] == '"cache"'
        assert response.cookies.get(COOKIE) == str(org_b.id)

        active = client.get("/api/organizations/active", headers=multi_org_headers).json()
        assert active["membership"]["role"] == "ORG_ADMIN"
        assert active["cacheEpoch"] == 1

    def test_reports_epoch_started_by_this_switch(
        self, client, multi_org_headers, multi_org_user, org_b, monkeypatch
    ):
        # Arrange: another switch of the same caller lands right after this one
        original = tenant_cache.invalidate_caller

        def invalidate_then_race(user_id):
            epoch = original(user_id)
            original(user_id)
            return epoch

        monkeypatch.setattr(tenant_cache, "invalidate_caller", invalidate_then_race)

        # Act
        response = client.post(
            "/api/organizations/switch",
            json={"organizationId": str(org_b.id)},
            headers=multi_org_headers,
        )

        # Assert
        assert response.json()["cacheEpoch"] == 1
        assert tenant_cache.epoch_for(str(multi_org_user.id)) == 2

    def test_selection_cookie_attributes(self, client, multi_org_headers, org_b):
        response = client.post(
            "/api/organizations/switch",
            json={"organizationId": str(org_b.id)},
            headers=multi_org_headers,
        )

        set_cookie = response.headers["set-cookie"].lower()
        assert f"max-age={30 * 24 * 60 * 60}" in set_cookie
        assert "httponly" in set_cookie
        assert "samesite=lax" in set_cookie
        assert "path=/" in set_cookie

    def test_switch_to_foreign_organization_is_rejected(self, client, marketer_headers, org_a, org_b):
        # Act
        response = client.post(
            "/api/organizations/switch",
            json={"organizationId": str(org_b.id)},
            headers=marketer_headers,
        )

        # Assert
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "NOT_A_MEMBER"
        assert "Org B" not in response.text

        active = client.get("/api/organizations/active", headers=marketer_headers).json()
        assert active["membership"]["organizationId"] == str(org_a.id)

    def test_nonexistent_and_foreign_organizations_look_the_same(self, client, marketer_headers, org_b):
        foreign = client.post(
            "/api/organizations/switch",
            json={"organizationId": str(org_b.id)},
            headers=marketer_headers,
        )
        missing = client.post(
            "/api/organizations/switch",
            json={"organizationId": str(uuid.uuid4())},
            headers=marketer_headers,
        )

        assert foreign.status_code == missing.status_code == 403
        assert foreign.json() == missing.json()

    def test_missing_body_is_validation_error(self, client, marketer_headers):
        response = client.post("/api/organizations/switch", json={}, headers=marketer_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
