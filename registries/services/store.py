"""
Lock-and-mutate access to one item's claim state.

The claim arbiter only talks to an ``ItemLockStore``: acquire exclusive access
to one item by id, evaluate, write, release. ``DjangoItemLockStore`` backs it
with a transaction and ``SELECT ... FOR UPDATE`` on the item row; the
test-suite ships an in-memory implementation built on threading locks.
"""

import logging
import math
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, ContextManager, Iterator, Protocol

from django.contrib.auth import get_user_model
from django.db import DEFAULT_DB_ALIAS, DatabaseError, OperationalError, transaction

from ..errors import Busy, NotFound
from ..models import Collaborator, CollaboratorStatus, Item, ItemStatus, public_profile
from ..utils import get_effective_config
from .ownership import Ownership, resolve_item_ownership

logger = logging.getLogger(__name__)

User = get_user_model()

# PostgreSQL lock_not_available and deadlock_detected; MySQL lock wait timeout,
# NOWAIT failure and deadlock.
_PG_LOCK_TIMEOUT_CODES = {"55P03", "40P01"}
_MYSQL_LOCK_TIMEOUT_CODES = {1205, 1213, 3572}


@dataclass(frozen=True)
class ClaimState:
    """The claim-bearing columns of one item row, as read under the lock."""
    item_id: int
    status: str
    claimed_by_id: int | None
    claimed_at: datetime | None
    bought_at: datetime | None
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def is_unclaimed(self) -> bool:
        return self.status == ItemStatus.UNCLAIMED and self.claimed_by_id is None

    def claimed(self, user_id, now: datetime) -> "ClaimState":
        return replace(self, status=ItemStatus.CLAIMED, claimed_by_id=user_id, claimed_at=now, bought_at=None)

    def released(self) -> "ClaimState":
        return replace(self, status=ItemStatus.UNCLAIMED, claimed_by_id=None, claimed_at=None, bought_at=None)

    def bought(self, now: datetime) -> "ClaimState":
        return replace(self, status=ItemStatus.BOUGHT, bought_at=now)


class LockedItem(Protocol):
    state: ClaimState
    ownership: Ownership
    actor_is_member: bool

    def write(self, state: ClaimState) -> None:
        ...


class ItemLockStore(Protocol):
    def lock_item(self, item_id, actor_id=None) -> ContextManager[LockedItem]:
        """
        Hold exclusive access to the item for the duration of the block.

        When ``actor_id`` is given, the actor's ACCEPTED membership of the
        item's registry is locked first and reported as ``actor_is_member``.
        """
        ...

    def public_profile(self, user_id) -> dict | None:
        ...


def is_lock_timeout(exc: OperationalError) -> bool:
    """True when a database error means "gave up waiting for a row lock"."""
    cause = exc.__cause__ or exc
    sqlstate = getattr(cause, "sqlstate", None) or getattr(cause, "pgcode", None)
    if sqlstate in _PG_LOCK_TIMEOUT_CODES:
        return True
    args = getattr(cause, "args", ())
    if args and args[0] in _MYSQL_LOCK_TIMEOUT_CODES:
        return True
    # SQLite reports busy-timeout expiry this way.
    return "database is locked" in str(exc).lower()


def apply_lock_timeout(connection, timeout_ms) -> Callable[[], None] | None:
    """
    Bound row-lock waits for the current transaction.

    PostgreSQL scopes ``SET LOCAL`` to the transaction. MySQL only has a
    session variable with whole-second resolution, so the previous value is
    read first and a callable restoring it is returned; run it once the
    transaction is over.
    """
    timeout_ms = max(1, int(timeout_ms))
    if connection.vendor == "postgresql":
        with connection.cursor() as cursor:
            cursor.execute(f"SET LOCAL lock_timeout = {timeout_ms}")
        return None
    if connection.vendor == "mysql":
        with connection.cursor() as cursor:
            cursor.execute("SELECT @@SESSION.innodb_lock_wait_timeout")
            previous = int(cursor.fetchone()[0])
            cursor.execute(f"SET SESSION innodb_lock_wait_timeout = {math.ceil(timeout_ms / 1000)}")

        def restore():
            with connection.cursor() as cursor:
                cursor.execute(f"SET SESSION innodb_lock_wait_timeout = {previous}")

        return restore
    return None


@contextmanager
def bounded_transaction(using: str = DEFAULT_DB_ALIAS, lock_timeout_ms=None, label: str = "row"):
    """
    ``transaction.atomic`` with a bounded lock wait.

    Lock timeouts and deadlocks surface as ``Busy``; any other
    ``OperationalError`` propagates unchanged.
    """
    if lock_timeout_ms is None:
        lock_timeout_ms = get_effective_config().claim_lock_timeout_ms
    connection = transaction.get_connection(using)
    restore = None
    try:
        with transaction.atomic(using=using):
            restore = apply_lock_timeout(connection, lock_timeout_ms)
            yield
    except OperationalError as exc:
        if not is_lock_timeout(exc):
            raise
        logger.info("Lock wait on %s exceeded %sms or deadlocked", label, lock_timeout_ms)
        raise Busy() from exc
    finally:
        if restore is not None:
            try:
                restore()
            except DatabaseError:
                logger.warning("Could not restore the session lock wait timeout", exc_info=True)


class DjangoLockedItem:
    def __init__(self, item: Item, ownership: Ownership, using: str, actor_is_member: bool = False):
        self._using = using
        self.ownership = ownership
        self.actor_is_member = actor_is_member
        self.state = ClaimState(
            item_id=item.pk,
            status=item.status,
            claimed_by_id=item.claimed_by_id,
            claimed_at=item.claimed_at,
            bought_at=item.bought_at,
            deleted_at=item.deleted_at,
        )

    def write(self, state: ClaimState) -> None:
        Item.objects.using(self._using).filter(pk=state.item_id).update(
            status=state.status,
            claimed_by_id=state.claimed_by_id,
            claimed_at=state.claimed_at,
            bought_at=state.bought_at,
        )
        self.state = state


class DjangoItemLockStore:
    """
    Row-lock store over the Django ORM. One transaction per ``lock_item`` block.

    Lock order is the actor's collaborator row, then the item row, the same
    order collaborator removal takes them in.
    """

    def __init__(self, using: str = DEFAULT_DB_ALIAS, lock_timeout_ms: int | None = None):
        self.using = using
        if lock_timeout_ms is None:
            lock_timeout_ms = get_effective_config().claim_lock_timeout_ms
        self.lock_timeout_ms = lock_timeout_ms

    @contextmanager
    def lock_item(self, item_id, actor_id=None) -> Iterator[DjangoLockedItem]:
        with bounded_transaction(self.using, self.lock_timeout_ms, label=f"item {item_id}"):
            # An item never moves between registries, so this read needs no lock.
            ownership = resolve_item_ownership(item_id)
            actor_is_member = False
            if actor_id is not None:
                actor_is_member = self._lock_membership(ownership.registry_id, actor_id)
            item = (
                Item.objects.using(self.using)
                .select_for_update(of=("self",))
                .only("id", "sublist_id", "status", "claimed_by", "claimed_at", "bought_at", "deleted_at")
                .filter(pk=item_id)
                .first()
            )
            if item is None:
                raise NotFound("Item")
            yield DjangoLockedItem(item, ownership, self.using, actor_is_member)

    def _lock_membership(self, registry_id, user_id) -> bool:
        return (
            Collaborator.objects.using(self.using)
            .select_for_update(of=("self",))
            .filter(registry_id=registry_id, user_id=user_id, status=CollaboratorStatus.ACCEPTED)
            .values_list("pk", flat=True)
            .first()
        ) is not None

    def public_profile(self, user_id) -> dict | None:
        if user_id is None:
            return None
        user = User.objects.using(self.using).select_related("profile").filter(pk=user_id).first()
        return public_profile(user)
