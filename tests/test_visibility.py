"""
Tests for the visibility redactor. Pure functions, so items are plain namespaces.
"""
from datetime import datetime, timezone as dt_timezone
from types import SimpleNamespace

import pytest

from registries.models import ItemStatus
from registries.services.visibility import REDACTED_CLAIM_FIELDS, project_item, project_items

pytestmark = pytest.mark.visibility

OWNER, CLAIMANT, VIEWER = 1, 2, 3
WHEN = datetime(2025, 12, 1, tzinfo=dt_timezone.utc)


def make_item(item_id=10, is_secret=False, status=ItemStatus.BOUGHT, claimed_by=CLAIMANT, deleted=False):
    claimed = claimed_by is not None
    return SimpleNamespace(
        id=item_id,
        sublist_id=5,
        label="Headphones",
        url="https://example.com/headphones",
        description="",
        is_secret=is_secret,
        created_by_id=OWNER,
        created_at=WHEN,
        deleted_at=WHEN if deleted else None,
        deleted_by_id=OWNER if deleted else None,
        status=status if claimed else ItemStatus.UNCLAIMED,
        claimed_by_id=claimed_by,
        claimed_at=WHEN if claimed else None,
        bought_at=WHEN if claimed and status == ItemStatus.BOUGHT else None,
    )


def lookup(user_id):
    return {"id": user_id, "name": f"user {user_id}", "email": f"u{user_id}@example.com"}


def failing_lookup(user_id):
    raise AssertionError("owner projections must not look up claimants")


class TestOwnerView:

    @pytest.mark.parametrize("status, claimed_by", [
        (ItemStatus.UNCLAIMED, None),
        (ItemStatus.CLAIMED, CLAIMANT),
        (ItemStatus.BOUGHT, CLAIMANT),
    ])
    def test_every_claim_field_is_null(self, status, claimed_by):
        data = project_item(make_item(status=status, claimed_by=claimed_by), OWNER, OWNER, failing_lookup)
        for field in REDACTED_CLAIM_FIELDS:
            assert data[field] is None

    def test_descriptive_fields_pass_through(self):
        data = project_item(make_item(deleted=True), OWNER, OWNER, failing_lookup)
        assert data["label"] == "Headphones"
        assert data["url"] == "https://example.com/headphones"
        assert data["is_deleted"] is True
        assert data["deleted_by_user_id"] == OWNER

    def test_secret_item_is_omitted(self):
        assert project_item(make_item(is_secret=True), OWNER, OWNER, failing_lookup) is None

    def test_secret_items_are_absent_from_lists(self):
        items = [make_item(1), make_item(2, is_secret=True), make_item(3, claimed_by=None)]
        projected = project_items(items, OWNER, OWNER, failing_lookup)
        assert [data["id"] for data in projected] == [1, 3]
        assert all(data["status"] is None for data in projected)


class TestOtherViewers:

    def test_claim_state_and_claimant_are_visible(self):
        data = project_item(make_item(), VIEWER, OWNER, lookup)
        assert data["status"] == ItemStatus.BOUGHT
        assert data["claimed_by_user_id"] == CLAIMANT
        assert data["claimed_by_user"] == lookup(CLAIMANT)
        assert data["claimed_at"] == WHEN
        assert data["bought_at"] == WHEN

    def test_secret_items_are_visible_to_others(self):
        data = project_item(make_item(is_secret=True), VIEWER, OWNER, lookup)
        assert data["is_secret"] is True
        assert data["status"] == ItemStatus.BOUGHT

    def test_unclaimed_item_does_not_call_lookup(self):
        data = project_item(make_item(claimed_by=None), VIEWER, OWNER, failing_lookup)
        assert data["status"] == ItemStatus.UNCLAIMED
        assert data["claimed_by_user"] is None

    def test_pending_sublist_has_no_owner_view(self):
        # A pending collaborator has no user yet, so nobody is the owner.
        data = project_item(make_item(is_secret=True), VIEWER, None, lookup)
        assert data["status"] == ItemStatus.BOUGHT

    def test_default_lookup_returns_no_profile(self):
        data = project_item(make_item(), VIEWER, OWNER)
        assert data["claimed_by_user_id"] == CLAIMANT
        assert data["claimed_by_user"] is None
