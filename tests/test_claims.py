"""
Claim / release / mark-bought against the database-backed lock store.
"""
import logging
from datetime import datetime, timedelta, timezone as dt_timezone
from unittest import mock

import pytest
from django.db import OperationalError
from django.db.models import QuerySet
from django.utils import timezone

from registries.errors import AlreadyClaimed, Busy, Forbidden, ItemDeleted, NotFound
from registries.models import Collaborator, Item, ItemStatus
from registries.services.claims import ClaimArbiter
from registries.services.collaborators import remove_collaborator
from registries.services.items import get_item
from registries.services.store import (
    DjangoItemLockStore,
    apply_lock_timeout,
    bounded_transaction,
    is_lock_timeout,
)

pytestmark = pytest.mark.claims


class TestClaimScenario:

    def test_claim_conflict_release_reclaim_buy_and_owner_view(self, item, owner, alice, bob):
        arbiter = ClaimArbiter()

        state = arbiter.claim(item.pk, alice.pk)
        item.refresh_from_db()
        assert state.status == ItemStatus.CLAIMED
        assert item.status == ItemStatus.CLAIMED
        assert item.claimed_by_id == alice.pk
        assert item.claimed_at is not None

        with pytest.raises(AlreadyClaimed) as exc_info:
            arbiter.claim(item.pk, bob.pk)
        assert exc_info.value.details["id"] == alice.pk
        assert exc_info.value.details["email"] == alice.email

        arbiter.release(item.pk, alice.pk)
        item.refresh_from_db()
        assert item.status == ItemStatus.UNCLAIMED
        assert item.claimed_by_id is None
        assert item.claimed_at is None

        arbiter.claim(item.pk, bob.pk)
        arbiter.mark_bought(item.pk, bob.pk)
        item.refresh_from_db()
        assert item.status == ItemStatus.BOUGHT
        assert item.claimed_by_id == bob.pk
        assert item.bought_at is not None

        seen_by_owner = get_item(item.pk, owner.pk)
        assert seen_by_owner["status"] is None
        assert seen_by_owner["claimed_by_user"] is None
        assert seen_by_owner["claimed_by_user_id"] is None
        assert seen_by_owner["bought_at"] is None

        seen_by_alice = get_item(item.pk, alice.pk)
        assert seen_by_alice["status"] == ItemStatus.BOUGHT
        assert seen_by_alice["claimed_by_user"]["id"] == bob.pk


class TestClaimPreconditions:

    def test_owner_cannot_claim_unclaimed_item(self, item, owner):
        with pytest.raises(Forbidden):
            ClaimArbiter().claim(item.pk, owner.pk)

    def test_owner_gets_forbidden_not_already_claimed(self, item, owner, alice):
        ClaimArbiter().claim(item.pk, alice.pk)
        with pytest.raises(Forbidden):
            ClaimArbiter().claim(item.pk, owner.pk)

    def test_outsider_cannot_claim(self, item, outsider):
        with pytest.raises(Forbidden):
            ClaimArbiter().claim(item.pk, outsider.pk)
        item.refresh_from_db()
        assert item.status == ItemStatus.UNCLAIMED

    def test_missing_item(self, members, alice):
        with pytest.raises(NotFound):
            ClaimArbiter().claim(987654, alice.pk)

    def test_deleted_item_cannot_be_claimed(self, item, owner, alice):
        item.soft_delete(owner.pk)
        with pytest.raises(ItemDeleted):
            ClaimArbiter().claim(item.pk, alice.pk)

    def test_pending_sublist_claims_can_be_disabled(self, settings, registry, add_member, make_item, members, alice):
        pending = add_member(registry, email="pending@example.com")
        pending_item = make_item(pending.sublist, label="Book")

        settings.ALLOW_CLAIMS_ON_PENDING_SUBLISTS = False
        with pytest.raises(Forbidden):
            ClaimArbiter().claim(pending_item.pk, alice.pk)

        settings.ALLOW_CLAIMS_ON_PENDING_SUBLISTS = True
        assert ClaimArbiter().claim(pending_item.pk, alice.pk).claimed_by_id == alice.pk

    def test_lost_race_is_logged_at_info(self, item, alice, bob, caplog):
        ClaimArbiter().claim(item.pk, alice.pk)
        with caplog.at_level(logging.INFO, logger="registries"):
            with pytest.raises(AlreadyClaimed):
                ClaimArbiter().claim(item.pk, bob.pk)
        assert not [r for r in caplog.records if r.levelno >= logging.ERROR]
        assert any("lost to user" in r.getMessage() for r in caplog.records)


class TestRelease:

    @pytest.mark.parametrize("actor", ["owner", "bob", "carol"])
    def test_only_the_claimant_can_release(self, request, item, alice, actor):
        ClaimArbiter().claim(item.pk, alice.pk)
        user = request.getfixturevalue(actor)
        with pytest.raises(Forbidden):
            ClaimArbiter().release(item.pk, user.pk)
        item.refresh_from_db()
        assert item.claimed_by_id == alice.pk

    def test_release_of_unclaimed_item_is_forbidden(self, item, alice):
        with pytest.raises(Forbidden):
            ClaimArbiter().release(item.pk, alice.pk)

    def test_release_of_bought_item_clears_everything(self, item, alice):
        arbiter = ClaimArbiter()
        arbiter.claim(item.pk, alice.pk)
        arbiter.mark_bought(item.pk, alice.pk)
        arbiter.release(item.pk, alice.pk)
        item.refresh_from_db()
        assert item.status == ItemStatus.UNCLAIMED
        assert item.bought_at is None
        assert item.claimed_by_id is None

    def test_release_allowed_on_deleted_item(self, item, owner, alice):
        ClaimArbiter().claim(item.pk, alice.pk)
        item.soft_delete(owner.pk)
        ClaimArbiter().release(item.pk, alice.pk)
        item.refresh_from_db()
        assert item.status == ItemStatus.UNCLAIMED
        assert item.is_deleted


class TestMarkBought:

    def test_mark_bought_is_idempotent(self, item, alice):
        first = datetime(2025, 12, 1, 9, 0, tzinfo=dt_timezone.utc)
        later = first + timedelta(hours=5)
        ClaimArbiter().claim(item.pk, alice.pk)

        ClaimArbiter(now=lambda: first).mark_bought(item.pk, alice.pk)
        state = ClaimArbiter(now=lambda: later).mark_bought(item.pk, alice.pk)

        item.refresh_from_db()
        assert state.status == ItemStatus.BOUGHT
        assert item.status == ItemStatus.BOUGHT
        assert item.bought_at == first

    def test_unclaimed_item_cannot_be_marked_bought(self, item, alice):
        with pytest.raises(Forbidden):
            ClaimArbiter().mark_bought(item.pk, alice.pk)
        item.refresh_from_db()
        assert item.status == ItemStatus.UNCLAIMED

    def test_non_claimant_cannot_mark_bought(self, item, alice, bob):
        ClaimArbiter().claim(item.pk, alice.pk)
        with pytest.raises(Forbidden):
            ClaimArbiter().mark_bought(item.pk, bob.pk)


class TestLockTimeouts:

    def test_lock_timeout_becomes_busy(self, item, alice):
        store = DjangoItemLockStore(lock_timeout_ms=10)
        with mock.patch(
            "registries.services.store.apply_lock_timeout",
            side_effect=OperationalError("database is locked"),
        ):
            with pytest.raises(Busy):
                ClaimArbiter(store=store).claim(item.pk, alice.pk)
        item.refresh_from_db()
        assert item.status == ItemStatus.UNCLAIMED

    def test_other_operational_errors_propagate(self, item, alice):
        with mock.patch(
            "registries.services.store.apply_lock_timeout",
            side_effect=OperationalError("disk I/O error"),
        ):
            with pytest.raises(OperationalError):
                ClaimArbiter().claim(item.pk, alice.pk)

    def test_lock_timeout_detection(self):
        pg_cause = Exception("canceling statement due to lock timeout")
        pg_cause.pgcode = "55P03"
        pg_error = OperationalError("lock timeout")
        pg_error.__cause__ = pg_cause

        mysql_error = OperationalError(1205, "Lock wait timeout exceeded")

        assert is_lock_timeout(pg_error)
        assert is_lock_timeout(mysql_error)
        assert is_lock_timeout(OperationalError("database is locked"))
        assert not is_lock_timeout(OperationalError("no such table: registries_item"))

    def test_default_timeout_comes_from_settings(self, settings):
        settings.CLAIM_LOCK_TIMEOUT_MS = 1234
        assert DjangoItemLockStore().lock_timeout_ms == 1234

    def test_claimed_at_uses_current_time(self, item, alice):
        before = timezone.now()
        state = ClaimArbiter().claim(item.pk, alice.pk)
        assert before <= state.claimed_at <= timezone.now()

    def test_deadlocks_count_as_lock_timeouts(self):
        pg_cause = Exception("deadlock detected")
        pg_cause.pgcode = "40P01"
        pg_error = OperationalError("deadlock detected")
        pg_error.__cause__ = pg_cause

        assert is_lock_timeout(pg_error)
        assert is_lock_timeout(OperationalError(1213, "Deadlock found when trying to get lock"))


class TestSessionLockTimeout:

    @pytest.fixture
    def mysql_connection(self):
        connection = mock.MagicMock(vendor="mysql")
        cursor = connection.cursor.return_value.__enter__.return_value
        cursor.fetchone.return_value = (50,)
        return connection, cursor

    def test_mysql_timeout_rounds_up_and_restores(self, mysql_connection):
        connection, cursor = mysql_connection

        restore = apply_lock_timeout(connection, 1500)
        assert cursor.execute.call_args_list[-1] == mock.call("SET SESSION innodb_lock_wait_timeout = 2")

        restore()
        assert cursor.execute.call_args_list[-1] == mock.call("SET SESSION innodb_lock_wait_timeout = 50")

    def test_mysql_sub_second_timeout_waits_one_second(self, mysql_connection):
        connection, cursor = mysql_connection
        apply_lock_timeout(connection, 200)
        assert cursor.execute.call_args_list[-1] == mock.call("SET SESSION innodb_lock_wait_timeout = 1")

    def test_postgres_timeout_is_transaction_local(self):
        connection = mock.MagicMock(vendor="postgresql")
        cursor = connection.cursor.return_value.__enter__.return_value

        assert apply_lock_timeout(connection, 750) is None
        cursor.execute.assert_called_once_with("SET LOCAL lock_timeout = 750")

    def test_restore_runs_after_success_and_after_busy(self, db):
        restore = mock.Mock()
        with mock.patch("registries.services.store.apply_lock_timeout", return_value=restore):
            with bounded_transaction(lock_timeout_ms=100):
                pass
            assert restore.call_count == 1

            with pytest.raises(Busy):
                with bounded_transaction(lock_timeout_ms=100):
                    raise OperationalError("database is locked")
            assert restore.call_count == 2


class TestClaimantMembershipLock:

    def test_collaborator_row_is_locked_before_the_item(self, item, alice, mocker):
        spy = mocker.spy(QuerySet, "select_for_update")

        ClaimArbiter().claim(item.pk, alice.pk)

        assert [call.args[0].model for call in spy.call_args_list] == [Collaborator, Item]

    def test_removed_claimant_is_forbidden(self, registry, members, item, owner, alice):
        remove_collaborator(registry.pk, members["alice"].collaborator.pk, owner.pk)

        with pytest.raises(Forbidden):
            ClaimArbiter().claim(item.pk, alice.pk)
        item.refresh_from_db()
        assert item.claimed_by_id is None

