"""Tenant API routes against PostgreSQL."""

from datetime import UTC, datetime, timedelta

import pytest
from httpx import AsyncClient

from tenantforge.modules.tenants.models import TenantStatus
from tests.factories import UserFactory, bearer


pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


class TestAccess:
    async def test_owner_reads_own_tenant(
        self, client: AsyncClient, make_tenant, user, auth_headers
    ):
        tenant = await make_tenant(owner_id=user.id)

        response = await client.get(f"/api/v1/tenants/{tenant.slug}", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["slug"] == tenant.slug
        assert data["status"] == "active"
        assert data["owner_id"] == str(user.id)

    async def test_other_user_forbidden(self, client: AsyncClient, db, make_tenant, user):
        tenant = await make_tenant(owner_id=user.id)
        stranger = UserFactory.build()
        db.add(stranger)
        await db.flush()

        response = await client.get(f"/api/v1/tenants/{tenant.slug}", headers=bearer(stranger))

        assert response.status_code == 403
        assert response.json()["type"].endswith("/errors/not_owner")

    async def test_guest_tenant_hidden_from_users(
        self, client: AsyncClient, make_tenant, auth_headers
    ):
        tenant = await make_tenant()

        response = await client.get(f"/api/v1/tenants/{tenant.slug}", headers=auth_headers)

        assert response.status_code == 403

    async def test_admin_reads_any_tenant(self, client: AsyncClient, make_tenant, admin_headers):
        tenant = await make_tenant()

        response = await client.get(f"/api/v1/tenants/{tenant.slug}", headers=admin_headers)

        assert response.status_code == 200

    async def test_missing_token(self, client: AsyncClient, make_tenant):
        tenant = await make_tenant()

        response = await client.get(f"/api/v1/tenants/{tenant.slug}")

        assert response.status_code == 401

    async def test_unknown_slug(self, client: AsyncClient, admin_headers):
        response = await client.get("/api/v1/tenants/no-such-site", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["status"] == 404


class TestCheckSlug:
    async def test_free_slug(self, client: AsyncClient):
        response = await client.get("/api/v1/tenants/check-slug/fresh-bakery")

        assert response.status_code == 200
        assert response.json()["available"] is True

    async def test_taken_slug(self, client: AsyncClient, make_tenant):
        tenant = await make_tenant()

        response = await client.get(f"/api/v1/tenants/check-slug/{tenant.slug}")

        assert response.json() == {
            "slug": tenant.slug,
            "available": False,
            "reason": "Slug is already taken",
        }

    async def test_slug_of_deleted_tenant_is_free(self, client: AsyncClient, make_tenant):
        tenant = await make_tenant(status=TenantStatus.DELETED)

        response = await client.get(f"/api/v1/tenants/check-slug/{tenant.slug}")

        assert response.json()["available"] is True

    async def test_reserved_slug(self, client: AsyncClient):
        response = await client.get("/api/v1/tenants/check-slug/admin")

        data = response.json()
        assert data["available"] is False
        assert data["reason"]


class TestLifecycle:
    async def test_suspend_and_resume(self, client: AsyncClient, make_tenant, admin_headers):
        tenant = await make_tenant()

        response = await client.post(
            f"/api/v1/tenants/{tenant.slug}/suspend",
            json={"reason": "Abuse report"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "suspended"
        assert response.json()["suspension_reason"] == "Abuse report"

        response = await client.post(
            f"/api/v1/tenants/{tenant.slug}/resume", headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "active"
        assert response.json()["suspended_at"] is None

    async def test_resume_active_tenant_conflicts(
        self, client: AsyncClient, make_tenant, admin_headers
    ):
        tenant = await make_tenant()

        response = await client.post(
            f"/api/v1/tenants/{tenant.slug}/resume", headers=admin_headers
        )

        assert response.status_code == 409
        assert response.json()["current_status"] == "active"

    async def test_suspend_requires_admin(
        self, client: AsyncClient, make_tenant, user, auth_headers
    ):
        tenant = await make_tenant(owner_id=user.id)

        response = await client.post(
            f"/api/v1/tenants/{tenant.slug}/suspend", json={}, headers=auth_headers
        )

        assert response.status_code == 403

    async def test_extend(self, client: AsyncClient, make_tenant, admin_headers):
        expires_at = datetime.now(UTC) + timedelta(hours=1)
        tenant = await make_tenant(expires_at=expires_at)

        response = await client.post(
            f"/api/v1/tenants/{tenant.slug}/extend",
            json={"hours": 48},
            headers=admin_headers,
        )

        assert response.status_code == 200
        new_expiry = datetime.fromisoformat(response.json()["expires_at"])
        assert abs(new_expiry - (expires_at + timedelta(hours=48))) < timedelta(seconds=1)

    async def test_claim_guest_tenant(self, client: AsyncClient, make_tenant, user, auth_headers):
        tenant = await make_tenant(expires_at=datetime.now(UTC) + timedelta(hours=3))

        response = await client.post(
            f"/api/v1/tenants/{tenant.slug}/claim", headers=auth_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["owner_id"] == str(user.id)
        # The owner is on a paid plan, so the guest expiry is cleared
        assert data["plan_id"] == user.plan_id
        assert data["expires_at"] is None

    async def test_claim_twice_conflicts(
        self, client: AsyncClient, make_tenant, user, auth_headers
    ):
        tenant = await make_tenant(owner_id=user.id)

        response = await client.post(
            f"/api/v1/tenants/{tenant.slug}/claim", headers=auth_headers
        )

        assert response.status_code == 409
        assert response.json()["type"].endswith("/errors/already_claimed")

    async def test_delete_leaves_tombstone(
        self, client: AsyncClient, db, make_tenant, user, auth_headers
    ):
        tenant = await make_tenant(owner_id=user.id)

        response = await client.delete(f"/api/v1/tenants/{tenant.slug}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "deleted"
        await db.refresh(tenant)
        assert tenant.deleted_at is not None


class TestUsage:
    async def test_usage_without_samples(
        self, client: AsyncClient, make_tenant, user, auth_headers
    ):
        tenant = await make_tenant(owner_id=user.id)

        response = await client.get(
            f"/api/v1/tenants/{tenant.slug}/usage?period=7d", headers=auth_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["period"] == "7d"
        assert data["data_points"] == 0

    async def test_unknown_period_rejected(
        self, client: AsyncClient, make_tenant, user, auth_headers
    ):
        tenant = await make_tenant(owner_id=user.id)

        response = await client.get(
            f"/api/v1/tenants/{tenant.slug}/usage?period=1y", headers=auth_headers
        )

        assert response.status_code == 422

    async def test_limits_of_guest_tenant(self, client: AsyncClient, make_tenant, admin_headers):
        tenant = await make_tenant()

        response = await client.get(
            f"/api/v1/tenants/{tenant.slug}/limits", headers=admin_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["within_limits"] is True
        assert data["limits"]["cpu_percent"] == 10
