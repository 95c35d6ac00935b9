"""
Collaborator lifecycle.

A collaborator, its sub-list and that sub-list's items form one aggregate:
created together, deleted together. Removal runs as a single transaction and
either fully happens or leaves no trace.
"""

import logging
from dataclasses import asdict, dataclass

from django.db import transaction
from django.utils import timezone

from ..errors import Forbidden, InvariantViolation, NotFound
from ..models import (
    UNCLAIMED_VALUES,
    Collaborator,
    CollaboratorStatus,
    InviteToken,
    Item,
    Registry,
    SubList,
)
from ..utils import EffectiveConfig, get_effective_config, normalize_email
from .store import bounded_transaction

logger = logging.getLogger(__name__)


def default_sublist_name(name: str | None, email: str) -> str:
    label = (name or "").strip() or email.split("@")[0]
    return f"{label}'s List"


class CollaboratorAggregate:
    """Collaborator + SubList + Items, handled as one unit."""

    def __init__(self, collaborator: Collaborator, sublist: SubList, item_ids: list[int]):
        self.collaborator = collaborator
        self.sublist = sublist
        self.item_ids = item_ids

    @classmethod
    def load(cls, collaborator_id, for_update: bool = False) -> "CollaboratorAggregate":
        collaborators = Collaborator.objects.all()
        if for_update:
            collaborators = collaborators.select_for_update()
        collaborator = collaborators.filter(pk=collaborator_id).first()
        if collaborator is None:
            raise NotFound("Collaborator")

        sublist = SubList.objects.filter(collaborator=collaborator).first()
        if sublist is None:
            logger.error(
                "Collaborator %s in registry %s has no sub-list",
                collaborator.pk, collaborator.registry_id,
            )
            raise InvariantViolation(
                "Sub-list missing for collaborator",
                collaborator_id=collaborator.pk, registry_id=collaborator.registry_id,
            )

        items = Item.objects.filter(sublist=sublist)
        if for_update:
            items = items.select_for_update()
        return cls(collaborator, sublist, list(items.values_list("pk", flat=True)))

    @classmethod
    def create(
        cls,
        registry: Registry,
        email: str,
        name: str = "",
        user=None,
        status: str = CollaboratorStatus.PENDING,
        sublist_name: str | None = None,
        description: str = "",
    ) -> "CollaboratorAggregate":
        email = normalize_email(email)
        with transaction.atomic():
            collaborator = Collaborator.objects.create(
                registry=registry,
                user=user,
                email=email,
                name=name or "",
                status=status,
                accepted_at=timezone.now() if status == CollaboratorStatus.ACCEPTED else None,
            )
            sublist = SubList.objects.create(
                registry=registry,
                collaborator=collaborator,
                name=sublist_name or default_sublist_name(name, email),
                description=description or "",
            )
        return cls(collaborator, sublist, [])

    def delete(self) -> None:
        """Delete items, then the sub-list, then the collaborator."""
        with transaction.atomic():
            Item.objects.filter(sublist_id=self.sublist.pk).delete()
            SubList.objects.filter(pk=self.sublist.pk).delete()
            Collaborator.objects.filter(pk=self.collaborator.pk).delete()


@dataclass(frozen=True)
class RemovalResult:
    collaborator_id: int
    claims_cleared: int
    items_deleted: int
    tokens_invalidated: int

    def to_dict(self) -> dict:
        return asdict(self)


def _check_removal_permission(registry: Registry, acting_user_id, config: EffectiveConfig) -> None:
    if registry.owner_id == acting_user_id:
        return
    if config.collaborators_can_remove and registry.collaborators_can_invite:
        is_member = Collaborator.objects.filter(
            registry=registry, user_id=acting_user_id, status=CollaboratorStatus.ACCEPTED
        ).exists()
        if is_member:
            return
    raise Forbidden("Only the registry owner can remove collaborators")


def remove_collaborator(
    registry_id,
    collaborator_id,
    acting_user_id,
    *,
    config: EffectiveConfig | None = None,
) -> RemovalResult:
    """
    Remove a collaborator and everything hanging off them.

    In one transaction: clear every claim the removed user holds on other
    sub-lists of the registry, invalidate their unused invite tokens and delete
    the collaborator aggregate. Any failure rolls the whole thing back.

    Raises:
        NotFound: registry or collaborator missing, or collaborator belongs
            to another registry
        Forbidden: actor may not remove collaborators, tries to remove
            themself, or targets the registry owner
        Busy: a row lock could not be acquired in time
    """
    config = config or get_effective_config()

    with bounded_transaction(
        lock_timeout_ms=config.claim_lock_timeout_ms, label=f"collaborator {collaborator_id}"
    ):
        registry = Registry.objects.filter(pk=registry_id).first()
        if registry is None:
            raise NotFound("Registry")

        _check_removal_permission(registry, acting_user_id, config)

        aggregate = CollaboratorAggregate.load(collaborator_id, for_update=True)
        target = aggregate.collaborator
        if target.registry_id != registry.pk:
            raise NotFound("Collaborator")
        if target.user_id is not None and target.user_id == acting_user_id:
            raise Forbidden("You cannot remove yourself")
        if target.user_id is not None and target.user_id == registry.owner_id:
            raise Forbidden("The registry owner cannot be removed")

        claims_cleared = 0
        if target.user_id is not None:
            claims_cleared = (
                Item.objects
                .filter(sublist__registry_id=registry.pk, claimed_by_id=target.user_id)
                .exclude(sublist_id=aggregate.sublist.pk)
                .update(**UNCLAIMED_VALUES)
            )

        items_deleted = len(aggregate.item_ids)

        tokens_invalidated = InviteToken.objects.filter(
            collaborator=target, used=False
        ).update(used=True)

        aggregate.delete()

    logger.info(
        "Collaborator %s removed from registry %s by user %s "
        "(claims cleared=%s, items deleted=%s, tokens invalidated=%s)",
        collaborator_id, registry_id, acting_user_id,
        claims_cleared, items_deleted, tokens_invalidated,
    )
    return RemovalResult(
        collaborator_id=target.pk,
        claims_cleared=claims_cleared,
        items_deleted=items_deleted,
        tokens_invalidated=tokens_invalidated,
    )
