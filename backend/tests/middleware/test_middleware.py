"""
Middleware Unit Tests
=====================

Tests for the middleware stack including:
- Request ID and timing headers
- Security headers
- Fixed-window rate limiting per IP
- Organization and approval budgets charged only for verified members
- Error envelope rendering for unhandled failures
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.requests import Request

from stratikey.core.exceptions import RateLimitError
from stratikey.main import app as main_app, general_exception_handler
from stratikey.middleware import (
    FixedWindowLimiter,
    RateLimitMiddleware,
    RequestContextMiddleware,
    SecurityHeadersMiddleware,
    TenantRateLimiter,
    get_tenant_rate_limiter,
)
from stratikey.models import Role


pytestmark = pytest.mark.middleware


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def build_app(general: FixedWindowLimiter) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, general_limiter=general, enabled=True)

    @app.get("/api/tasks")
    def list_tasks():
        return {"items": []}

    @app.patch("/api/tasks/{task_id}/approval")
    def review_task(task_id: str):
        return {"id": task_id}

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    return app


class TestRequestContextMiddleware:
    """Tests for request tracing headers."""

    def test_adds_request_id_and_timing(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.headers["X-Request-ID"]
        assert float(response.headers["X-Process-Time"]) >= 0

    def test_propagates_incoming_request_id(self, client):
        response = client.get("/", headers={"X-Request-ID": "trace-123"})

        assert response.headers["X-Request-ID"] == "trace-123"

    def test_request_id_on_error_responses(self, client):
        response = client.get("/api/tasks")

        assert response.status_code == 401
        assert response.headers["X-Request-ID"]

    def test_standalone_app(self):
        app = FastAPI()
        app.add_middleware(RequestContextMiddleware)

        @app.get("/ping")
        def ping():
            return {"ok": True}

        response = TestClient(app).get("/ping")

        assert len(response.headers["X-Request-ID"]) == 36


class TestSecurityHeadersMiddleware:
    """Tests for hardening headers."""

    def test_headers_present(self, client):
        response = client.get("/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "frame-ancestors 'none'" in response.headers["Content-Security-Policy"]
        assert "Strict-Transport-Security" not in response.headers

    def test_standalone_app(self):
        app = FastAPI()
        app.add_middleware(SecurityHeadersMiddleware)

        @app.get("/ping")
        def ping():
            return {"ok": True}

        response = TestClient(app).get("/ping")

        assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"


class TestFixedWindowLimiter:
    """Tests for the window counter."""

    def test_allows_up_to_limit(self):
        limiter = FixedWindowLimiter(max_requests=3, window_seconds=60, clock=FakeClock())

        results = [limiter.hit("k") for _ in range(4)]

        assert results[:3] == [None, None, None]
        assert results[3] is not None

    def test_retry_after_counts_to_window_end(self):
        clock = FakeClock(now=600.0 + 45)
        limiter = FixedWindowLimiter(max_requests=1, window_seconds=60, clock=clock)

        limiter.hit("k")

        assert limiter.hit("k") == 15

    def test_new_window_resets_count(self):
        clock = FakeClock(now=600.0)
        limiter = FixedWindowLimiter(max_requests=1, window_seconds=60, clock=clock)
        limiter.hit("k")

        clock.now += 60

        assert limiter.hit("k") is None

    def test_keys_are_independent(self):
        limiter = FixedWindowLimiter(max_requests=1, window_seconds=60, clock=FakeClock())

        assert limiter.hit("a") is None
        assert limiter.hit("b") is None
        assert limiter.hit("a") is not None

    def test_reset(self):
        limiter = FixedWindowLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
        limiter.hit("k")

        limiter.reset()

        assert limiter.hit("k") is None


class TestRateLimitMiddleware:
    """Tests for request rejection."""

    def test_rejects_over_ip_budget_with_envelope(self):
        # Arrange
        clock = FakeClock()
        app = build_app(FixedWindowLimiter(2, 60, clock=clock))
        client = TestClient(app)

        # Act
        responses = [client.get("/api/tasks") for _ in range(3)]

        # Assert
        assert [r.status_code for r in responses] == [200, 200, 429]
        body = responses[2].json()
        assert body["error"]["code"] == "RATE_LIMIT_EXCEEDED"
        assert int(responses[2].headers["Retry-After"]) == body["error"]["details"]["retryAfter"]

    def test_health_is_exempt(self):
        clock = FakeClock()
        app = build_app(FixedWindowLimiter(1, 60, clock=clock))
        client = TestClient(app)

        assert all(client.get("/health").status_code == 200 for _ in range(5))

    def test_organization_selection_does_not_change_ip_budget(self):
        # Arrange
        clock = FakeClock()
        app = build_app(FixedWindowLimiter(2, 60, clock=clock))
        client = TestClient(app)

        # Act
        first = client.patch("/api/tasks/1/approval", headers={"X-Organization-Id": "org-a"})
        second = client.patch("/api/tasks/2/approval", headers={"X-Organization-Id": "org-b"})
        third = client.patch("/api/tasks/3/approval", headers={"X-Organization-Id": "org-c"})

        # Assert
        assert [first.status_code, second.status_code, third.status_code] == [200, 200, 429]

    def test_disabled_middleware_lets_everything_through(self):
        app = FastAPI()
        app.add_middleware(
            RateLimitMiddleware,
            general_limiter=FixedWindowLimiter(1, 60, clock=FakeClock()),
            enabled=False,
        )

        @app.get("/api/tasks")
        def list_tasks():
            return {"items": []}

        client = TestClient(app)

        assert all(client.get("/api/tasks").status_code == 200 for _ in range(3))


class TestTenantRateLimiter:
    """Tests for per-organization budgets charged after membership checks."""

    @pytest.fixture
    def limits(self, client):
        """Install enabled tenant budgets on the application under test."""
        def install(general: int = 100, approval: int = 100) -> TenantRateLimiter:
            clock = FakeClock()
            limiter = TenantRateLimiter(
                general_limiter=FixedWindowLimiter(general, 60, clock=clock),
                approval_limiter=FixedWindowLimiter(approval, 3600, clock=clock),
                enabled=True,
            )
            main_app.dependency_overrides[get_tenant_rate_limiter] = lambda: limiter
            return limiter

        return install

    def test_approval_budget_is_per_organization(
        self, client, limits, admin_headers, multi_org_headers, org_a, org_b, make_task
    ):
        # Arrange
        limits(approval=1)
        first_task, second_task = make_task(org_a), make_task(org_a)
        other_org_task = make_task(org_b)
        body = {"approvalStatus": "APPROVED"}

        # Act
        first = client.patch(f"/api/tasks/{first_task.id}/approval", json=body, headers=admin_headers)
        second = client.patch(f"/api/tasks/{second_task.id}/approval", json=body, headers=admin_headers)
        other_org = client.patch(
            f"/api/tasks/{other_org_task.id}/approval",
            json=body,
            headers={**multi_org_headers, "X-Organization-Id": str(org_b.id)},
        )

        # Assert
        assert first.status_code == 200
        assert second.status_code == 429
        assert second.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"
        assert int(second.headers["Retry-After"]) >= 1
        assert other_org.status_code == 200

    def test_spoofed_organization_does_not_spend_its_budget(
        self, client, limits, admin_headers, headers_for, make_user, add_membership, org_a, org_b, make_task
    ):
        # Arrange: an anonymous client and a member of org B both name org A
        limits(approval=2)
        task = make_task(org_a)
        outsider = make_user()
        add_membership(outsider, org_b, Role.ORG_ADMIN)
        spoofed = {"X-Organization-Id": str(org_a.id)}
        body = {"approvalStatus": "APPROVED"}

        anonymous = [
            client.patch(f"/api/tasks/{task.id}/approval", json=body, headers=spoofed)
            for _ in range(2)
        ]
        foreign = client.patch(
            f"/api/tasks/{task.id}/approval", json=body, headers=headers_for(outsider, **spoofed)
        )

        # Act
        own = client.patch(f"/api/tasks/{task.id}/approval", json=body, headers=admin_headers)

        # Assert
        assert [r.status_code for r in anonymous] == [401, 401]
        assert foreign.status_code == 403
        assert own.status_code == 200

    def test_reads_share_the_organization_budget(self, client, limits, admin_headers, viewer_headers):
        limits(general=2)

        client.get("/api/tasks", headers=admin_headers)
        client.get("/api/tasks", headers=admin_headers)
        response = client.get("/api/tasks", headers=viewer_headers)

        assert response.status_code == 429

    def test_disabled_limiter_never_raises(self):
        limiter = TenantRateLimiter(
            general_limiter=FixedWindowLimiter(1, 60, clock=FakeClock()),
            enabled=False,
        )
        request = Request({"type": "http", "method": "GET", "path": "/api/tasks", "headers": []})

        for _ in range(3):
            limiter.check(request, "org-a")

    def test_exhausted_budget_raises_with_retry_after(self):
        clock = FakeClock(now=600.0 + 20)
        limiter = TenantRateLimiter(
            general_limiter=FixedWindowLimiter(1, 60, clock=clock),
            approval_limiter=FixedWindowLimiter(1, 3600, clock=clock),
            enabled=True,
        )
        request = Request({"type": "http", "method": "GET", "path": "/api/tasks", "headers": []})
        limiter.check(request, "org-a")

        with pytest.raises(RateLimitError) as exc_info:
            limiter.check(request, "org-a")

        assert exc_info.value.retry_after == 40


class TestUnhandledErrors:
    """Tests for the generic 500 handler."""

    def test_unexpected_exception_uses_envelope(self):
        app = FastAPI()
        app.add_exception_handler(Exception, general_exception_handler)

        @app.get("/boom")
        def boom():
            raise RuntimeError("secret internals")

        response = TestClient(app, raise_server_exceptions=False).get("/boom")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INTERNAL_ERROR"
        assert "secret internals" not in response.text
