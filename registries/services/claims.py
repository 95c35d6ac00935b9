"""
Claim arbitration.

Per-item state machine::

    UNCLAIMED --claim--> CLAIMED --mark_bought--> BOUGHT
        ^                   |                       |
        +------release------+-------release---------+

Every operation runs inside ``store.lock_item`` so preconditions are evaluated
against the freshly locked row and the write happens in the same transaction.
A claim locks the claimant's collaborator row before the item, the same order
collaborator removal takes them in.
Operations on different items never contend; there is no application-level
lock and no cached claim state.
"""

import logging
from typing import Callable

from django.utils import timezone

from ..errors import AlreadyClaimed, Forbidden, ItemDeleted
from ..models import ItemStatus
from ..utils import EffectiveConfig, get_effective_config
from .store import ClaimState, DjangoItemLockStore, ItemLockStore

logger = logging.getLogger(__name__)


class ClaimArbiter:
    def __init__(
        self,
        store: ItemLockStore | None = None,
        now: Callable = timezone.now,
        config: EffectiveConfig | None = None,
    ):
        self.store = store if store is not None else DjangoItemLockStore()
        self.now = now
        self.config = config if config is not None else get_effective_config()

    def claim(self, item_id, actor_id) -> ClaimState:
        """
        Bind ``actor_id`` to an UNCLAIMED item.

        Raises:
            NotFound: no such item
            Forbidden: actor owns the sub-list, is not an ACCEPTED collaborator,
                or the sub-list is still pending and pending claims are disabled
            ItemDeleted: item is soft-deleted
            AlreadyClaimed: someone holds the item (details: their public profile)
            Busy: the row lock could not be acquired in time
        """
        with self.store.lock_item(item_id, actor_id) as locked:
            ownership = locked.ownership

            # Owner exclusion comes first so it holds whatever the item's state.
            if ownership.is_owner(actor_id):
                raise Forbidden("You cannot claim items on your own sublist")

            if not locked.actor_is_member:
                raise Forbidden("You must be a collaborator to claim items")

            if ownership.is_pending and not self.config.allow_claims_on_pending_sublists:
                raise Forbidden("Items on a pending collaborator's list cannot be claimed yet")

            state = locked.state
            if state.is_deleted:
                raise ItemDeleted()

            if not state.is_unclaimed:
                logger.info(
                    "Claim on item %s by user %s lost to user %s",
                    item_id, actor_id, state.claimed_by_id,
                )
                raise AlreadyClaimed(self.store.public_profile(state.claimed_by_id))

            new_state = state.claimed(actor_id, self.now())
            locked.write(new_state)

        logger.info("Item %s claimed by user %s", item_id, actor_id)
        return new_state

    def release(self, item_id, actor_id) -> ClaimState:
        """
        Drop the actor's claim (CLAIMED or BOUGHT) back to UNCLAIMED.
        Only the current claimant may release; soft-deleted items included.
        """
        with self.store.lock_item(item_id) as locked:
            state = locked.state
            if state.claimed_by_id is None or state.claimed_by_id != actor_id:
                raise Forbidden("Only the claimer can release this item")

            new_state = state.released()
            locked.write(new_state)

        logger.info("Item %s released by user %s", item_id, actor_id)
        return new_state

    def mark_bought(self, item_id, actor_id) -> ClaimState:
        """Mark the actor's claimed item as bought. Idempotent: BOUGHT stays as-is."""
        with self.store.lock_item(item_id) as locked:
            state = locked.state
            if state.claimed_by_id is None or state.claimed_by_id != actor_id:
                raise Forbidden("Only the claimer can mark this item as bought")

            if state.status == ItemStatus.BOUGHT:
                return state

            new_state = state.bought(self.now())
            locked.write(new_state)

        logger.info("Item %s marked bought by user %s", item_id, actor_id)
        return new_state

