"""
Item and sub-list editing.

Claim fields are never written here: edits save only their own columns, and
soft deletion only sets ``deleted_at``/``deleted_by``.
"""

import logging

from django.db import transaction

from ..errors import Forbidden, ItemDeleted, NotFound, ValidationFailed
from ..models import Item, Registry, SubList
from ..utils import sanitize_text, sanitize_url
from .ownership import (
    Ownership,
    is_registry_member,
    resolve_item_ownership,
    resolve_sublist_ownership,
)
from .profiles import load_profile_lookup
from .visibility import project_item

logger = logging.getLogger(__name__)

EDITABLE_ITEM_FIELDS = ("label", "url", "description")


def _clean_item_fields(data: dict) -> dict:
    cleaned = {}
    if "label" in data:
        cleaned["label"] = sanitize_text(data["label"] or "")
    if "url" in data:
        raw = (data["url"] or "").strip()
        url = sanitize_url(raw)
        if raw and not url:
            raise ValidationFailed("Invalid URL", details={"url": ["Only http(s) URLs are allowed"]})
        cleaned["url"] = url
    if "description" in data:
        cleaned["description"] = sanitize_text(data["description"] or "")
    return cleaned


def _project_for(item: Item, viewer_id, ownership: Ownership) -> dict | None:
    lookup = load_profile_lookup([item.claimed_by_id])
    return project_item(item, viewer_id, ownership.owner_user_id, lookup)


def _check_edit_permission(item: Item, ownership: Ownership, user_id) -> None:
    # Secret items belong to whoever added them; the list owner never sees them.
    if item.is_secret:
        allowed = item.created_by_id is not None and item.created_by_id == user_id
    else:
        allowed = ownership.is_owner(user_id)
    if not allowed:
        raise Forbidden("You can only edit items on your own sublist")


def create_item(sublist_id, user, data: dict) -> dict:
    """
    Add an item to a sub-list.

    The sub-list owner adds regular items. When the registry allows secret
    gifts, other members may add items to someone else's sub-list; those are
    always secret.
    """
    ownership = resolve_sublist_ownership(sublist_id)
    is_secret = bool(data.get("is_secret"))

    if ownership.is_owner(user.pk):
        if is_secret:
            raise ValidationFailed("You cannot add a secret item to your own list")
    else:
        allow_secret = Registry.objects.filter(
            pk=ownership.registry_id
        ).values_list("allow_secret_gifts", flat=True).first()
        if not (allow_secret and is_registry_member(ownership.registry_id, user.pk)):
            raise Forbidden("You can only add items to your own sublist")
        is_secret = True

    fields = _clean_item_fields(data)
    if not fields.get("label") and not fields.get("url"):
        raise ValidationFailed("Either label or URL must be provided")

    item = Item.objects.create(
        sublist_id=ownership.sublist_id,
        is_secret=is_secret,
        created_by=user,
        **fields,
    )
    logger.info(
        "Item %s added to sub-list %s by user %s (secret=%s)",
        item.pk, ownership.sublist_id, user.pk, is_secret,
    )
    return project_item(item, user.pk, ownership.owner_user_id)


def update_item(item_id, user_id, data: dict) -> dict:
    with transaction.atomic():
        item = Item.objects.select_for_update().filter(pk=item_id).first()
        if item is None:
            raise NotFound("Item")
        ownership = resolve_item_ownership(item.pk)
        _check_edit_permission(item, ownership, user_id)
        if item.is_deleted:
            raise ItemDeleted()

        fields = _clean_item_fields(data)
        for name, value in fields.items():
            setattr(item, name, value)
        if not item.label and not item.url:
            raise ValidationFailed("Either label or URL must be provided")
        if fields:
            item.save(update_fields=list(fields))

    return _project_for(item, user_id, ownership)


def soft_delete_item(item_id, user_id) -> dict:
    """Mark an item deleted. Any claim on it stays in place."""
    with transaction.atomic():
        item = Item.objects.select_for_update().filter(pk=item_id).first()
        if item is None:
            raise NotFound("Item")
        ownership = resolve_item_ownership(item.pk)
        _check_edit_permission(item, ownership, user_id)
        if item.is_deleted:
            raise ItemDeleted()
        item.soft_delete(user_id)

    logger.info("Item %s soft-deleted by user %s", item.pk, user_id)
    return _project_for(item, user_id, ownership)


def get_item(item_id, viewer_id) -> dict:
    """
    One item as ``viewer_id`` may see it.

    Raises:
        NotFound: no such item, or a secret item asked for by its list owner
        Forbidden: viewer is not a member of the registry
    """
    ownership = resolve_item_ownership(item_id)
    if not is_registry_member(ownership.registry_id, viewer_id):
        raise Forbidden("You are not a member of this registry")

    item = Item.objects.get(pk=item_id)
    data = _project_for(item, viewer_id, ownership)
    if data is None:
        raise NotFound("Item")
    return data


def sublist_to_dict(sublist: SubList) -> dict:
    return {
        "id": sublist.pk,
        "registry_id": sublist.registry_id,
        "collaborator_id": sublist.collaborator_id,
        "name": sublist.name,
        "description": sublist.description,
    }


def update_sublist(sublist_id, user_id, data: dict) -> dict:
    ownership = resolve_sublist_ownership(sublist_id)
    if not ownership.is_owner(user_id):
        raise Forbidden("You can only edit your own sublist")

    sublist = SubList.objects.get(pk=ownership.sublist_id)
    changed = []
    for name in ("name", "description"):
        if name in data:
            setattr(sublist, name, sanitize_text(data[name] or ""))
            changed.append(name)
    if changed:
        sublist.save(update_fields=changed)
    return sublist_to_dict(sublist)
