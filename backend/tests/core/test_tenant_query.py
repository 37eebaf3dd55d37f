"""
Tenant Query Utilities Unit Tests
==================================

Tests for tenant-scoped queries including:
- filter_by_tenant restricted to the active organization
- get_by_id treating foreign rows as missing
- No administrator bypass across organizations
"""

import uuid

import pytest

from stratikey.core.exceptions import NotFoundError
from stratikey.core.tenant.tenant_query import TenantQuery
from stratikey.models import Asset, Role, Task


pytestmark = pytest.mark.tenant


class TestFilterByTenant:
    """Tests for TenantQuery.filter_by_tenant and all."""

    def test_only_active_organization_rows(self, db_session, context_for, marketer_user, org_a, org_b, make_task):
        # Arrange
        own = make_task(org_a, title="Own task")
        make_task(org_b, title="Foreign task")
        context = context_for(marketer_user)

        # Act
        tasks = TenantQuery(db_session, Task, context).all()

        # Assert
        assert [t.id for t in tasks] == [own.id]

    def test_super_admin_gets_no_cross_tenant_bypass(
        self, db_session, context_for, user_factory_with_role, org_a, org_b, make_asset
    ):
        # Arrange
        make_asset(org_a)
        make_asset(org_b)
        context = context_for(user_factory_with_role(Role.SUPER_ADMIN))

        # Act
        assets = TenantQuery(db_session, Asset, context).all()

        # Assert
        assert len(assets) == 1
        assert assets[0].organization_id == org_a.id

    def test_statement_can_be_refined(self, db_session, context_for, marketer_user, org_a, make_task):
        make_task(org_a, title="Alpha")
        make_task(org_a, title="Beta")
        context = context_for(marketer_user)

        stmt = TenantQuery(db_session, Task, context).filter_by_tenant().where(Task.title == "Beta")
        rows = list(db_session.scalars(stmt))

        assert [r.title for r in rows] == ["Beta"]


class TestGetById:
    """Tests for TenantQuery.get_by_id."""

    def test_returns_own_row(self, db_session, context_for, marketer_user, org_a, make_asset):
        asset = make_asset(org_a)

        found = TenantQuery(db_session, Asset, context_for(marketer_user)).get_by_id(asset.id)

        assert found.id == asset.id

    def test_foreign_row_is_not_found(self, db_session, context_for, marketer_user, org_b, make_asset):
        foreign = make_asset(org_b)

        with pytest.raises(NotFoundError) as exc_info:
            TenantQuery(db_session, Asset, context_for(marketer_user)).get_by_id(foreign.id, resource="Asset")

        assert exc_info.value.status_code == 404
        assert str(org_b.id) not in exc_info.value.message

    def test_missing_and_foreign_are_indistinguishable(
        self, db_session, context_for, marketer_user, org_b, make_asset
    ):
        query = TenantQuery(db_session, Asset, context_for(marketer_user))
        foreign = make_asset(org_b)

        with pytest.raises(NotFoundError) as missing:
            query.get_by_id(uuid.uuid4(), resource="Asset")
        with pytest.raises(NotFoundError) as cross:
            query.get_by_id(foreign.id, resource="Asset")

        assert missing.value.message == cross.value.message
        assert missing.value.details == cross.value.details
