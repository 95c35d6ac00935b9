"""
Ownership resolution.

The single source of truth for "who owns this item": every authorization and
visibility decision goes through these helpers instead of walking
item → sub-list → collaborator itself. Pure reads, no side effects.
"""

import logging
from dataclasses import dataclass

from ..errors import InvariantViolation, NotFound
from ..models import Collaborator, CollaboratorStatus, Item, Registry, SubList

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ownership:
    registry_id: int
    sublist_id: int
    collaborator_id: int
    owner_user_id: int | None  # None while the collaborator is still pending
    collaborator_status: str
    item_id: int | None = None

    def is_owner(self, user_id) -> bool:
        return self.owner_user_id is not None and self.owner_user_id == user_id

    @property
    def is_pending(self) -> bool:
        return self.owner_user_id is None


def resolve_sublist_ownership(sublist_id, *, item_id=None) -> Ownership:
    row = (
        SubList.objects
        .filter(pk=sublist_id)
        .values("id", "registry_id", "collaborator_id", "collaborator__user_id", "collaborator__status")
        .first()
    )
    if row is None:
        if item_id is not None:
            # The item exists but its chain does not: corrupted data, not a bad request.
            logger.error("Item %s references missing sub-list %s", item_id, sublist_id)
            raise InvariantViolation(
                "Sub-list missing for item", item_id=item_id, sublist_id=sublist_id
            )
        raise NotFound("Sublist")

    if row["collaborator_id"] is None or row["collaborator__status"] is None:
        logger.error(
            "Sub-list %s has no collaborator (item=%s, registry=%s)",
            sublist_id, item_id, row["registry_id"],
        )
        raise InvariantViolation(
            "Collaborator missing for sub-list",
            item_id=item_id, sublist_id=sublist_id, registry_id=row["registry_id"],
        )

    return Ownership(
        registry_id=row["registry_id"],
        sublist_id=row["id"],
        collaborator_id=row["collaborator_id"],
        owner_user_id=row["collaborator__user_id"],
        collaborator_status=row["collaborator__status"],
        item_id=item_id,
    )


def resolve_item_ownership(item_id) -> Ownership:
    """
    Return registry, sub-list, owning collaborator and that collaborator's
    user id (None while pending) for an item. Soft-deleted items resolve too.

    Raises:
        NotFound: no such item
        InvariantViolation: the item's sub-list or collaborator is missing
    """
    sublist_id = Item.objects.filter(pk=item_id).values_list("sublist_id", flat=True).first()
    if sublist_id is None:
        raise NotFound("Item")
    return resolve_sublist_ownership(sublist_id, item_id=item_id)


def is_registry_member(registry_id, user_id) -> bool:
    """ACCEPTED collaborators (the owner included) are members."""
    if user_id is None:
        return False
    return Collaborator.objects.filter(
        registry_id=registry_id,
        user_id=user_id,
        status=CollaboratorStatus.ACCEPTED,
    ).exists()


def can_user_invite(registry_id, user_id) -> bool:
    """The owner always; other ACCEPTED collaborators when the registry allows it."""
    registry = Registry.objects.filter(pk=registry_id).values("owner_id", "collaborators_can_invite").first()
    if registry is None or user_id is None:
        return False
    if registry["owner_id"] == user_id:
        return True
    return registry["collaborators_can_invite"] and is_registry_member(registry_id, user_id)
