"""
Viewer-specific projection of items.

Pure and total: callers load items and claimant profiles once per request and
pass a lookup in; nothing here touches the database. When the viewer owns the
sub-list every claim-bearing field is nulled, and secret items are dropped
entirely rather than redacted.
"""

from typing import Any, Callable, Iterable

# Every key of the projection that reveals claim or purchase state.
REDACTED_CLAIM_FIELDS = frozenset({
    "status",
    "claimed_by_user_id",
    "claimed_by_user",
    "claimed_at",
    "bought_at",
})

ProfileLookup = Callable[[Any], dict | None]


def _no_profiles(user_id) -> dict | None:
    return None


def is_owner_view(viewer_id, owner_user_id) -> bool:
    return owner_user_id is not None and viewer_id == owner_user_id


def project_item(
    item,
    viewer_id,
    owner_user_id,
    profile_lookup: ProfileLookup = _no_profiles,
) -> dict[str, Any] | None:
    """
    Project one stored item for ``viewer_id``.

    Args:
        item: an Item (or any object with the same attributes)
        viewer_id: the requesting user's id
        owner_user_id: user id of the sub-list's collaborator (None if pending)
        profile_lookup: user id -> public profile dict

    Returns:
        The visible representation, or None if the viewer must not see the
        item at all (a secret item viewed by its sub-list owner).
    """
    owner_view = is_owner_view(viewer_id, owner_user_id)
    if owner_view and item.is_secret:
        return None

    data = {
        "id": item.id,
        "sublist_id": item.sublist_id,
        "label": item.label,
        "url": item.url,
        "description": item.description,
        "is_secret": item.is_secret,
        "created_by_user_id": item.created_by_id,
        "created_at": item.created_at,
        "deleted_at": item.deleted_at,
        "deleted_by_user_id": item.deleted_by_id,
        "is_deleted": item.deleted_at is not None,
    }

    if owner_view:
        data.update(dict.fromkeys(REDACTED_CLAIM_FIELDS))
        return data

    claimed_by_id = item.claimed_by_id
    data.update({
        "status": item.status,
        "claimed_by_user_id": claimed_by_id,
        "claimed_by_user": profile_lookup(claimed_by_id) if claimed_by_id is not None else None,
        "claimed_at": item.claimed_at,
        "bought_at": item.bought_at,
    })
    return data


def project_items(
    items: Iterable,
    viewer_id,
    owner_user_id,
    profile_lookup: ProfileLookup = _no_profiles,
) -> list[dict[str, Any]]:
    """Project a sub-list's items, omitting those hidden from the viewer."""
    projected = (project_item(item, viewer_id, owner_user_id, profile_lookup) for item in items)
    return [data for data in projected if data is not None]
