"""
Registry creation, listing and the redacted registry tree.
"""

import logging

from django.db import transaction
from django.db.models import Count, Prefetch

from ..errors import Forbidden, InvariantViolation, NotFound, ValidationFailed
from ..models import Collaborator, CollaboratorStatus, Item, Registry, SubList, public_profile
from ..utils import normalize_email, sanitize_text, sanitize_url
from .collaborators import CollaboratorAggregate, default_sublist_name
from .invites import build_accept_url, issue_invite_token
from .ownership import can_user_invite, is_registry_member
from .profiles import display_name_for, load_profile_lookup
from .visibility import project_items

logger = logging.getLogger(__name__)

__all__ = [
    "create_registry",
    "list_registries_for_user",
    "get_registry_for_viewer",
    "can_user_invite",
    "update_registry",
]

UPDATABLE_FIELDS = ("title", "occasion_date", "deadline", "collaborators_can_invite", "allow_secret_gifts")


def registry_to_dict(registry: Registry, viewer_id=None) -> dict:
    return {
        "id": registry.pk,
        "title": registry.title,
        "occasion_date": registry.occasion_date,
        "deadline": registry.deadline,
        "owner_id": registry.owner_id,
        "owner": public_profile(registry.owner),
        "collaborators_can_invite": registry.collaborators_can_invite,
        "allow_secret_gifts": registry.allow_secret_gifts,
        "created_at": registry.created_at,
        "updated_at": registry.updated_at,
        "is_owner": viewer_id is not None and registry.owner_id == viewer_id,
    }


def _create_items(sublist, items, created_by) -> int:
    created = 0
    for entry in items or []:
        label = sanitize_text(entry.get("label") or "")
        url = sanitize_url(entry.get("url") or "")
        if not label and not url:
            continue
        Item.objects.create(sublist=sublist, label=label, url=url, created_by=created_by)
        created += 1
    return created


def create_registry(user, data: dict) -> dict:
    """
    Create a registry owned by ``user``.

    In one transaction: the registry, the owner's ACCEPTED collaborator and
    sub-list, and for each initial member a PENDING collaborator with its
    sub-list, pre-filled items and an invite token.
    """
    owner_email = normalize_email(user.email)
    members = data.get("initial_members") or []

    emails = [normalize_email(m.get("email")) for m in members]
    if owner_email in emails:
        raise ValidationFailed("You are already the owner of this registry")
    if len(set(emails)) != len(emails):
        raise ValidationFailed("Initial members must have distinct emails")

    with transaction.atomic():
        registry = Registry.objects.create(
            title=sanitize_text(data["title"]),
            owner=user,
            occasion_date=data.get("occasion_date"),
            deadline=data.get("deadline"),
            collaborators_can_invite=bool(data.get("collaborators_can_invite")),
            allow_secret_gifts=bool(data.get("allow_secret_gifts")),
        )

        owner = CollaboratorAggregate.create(
            registry,
            owner_email,
            user=user,
            status=CollaboratorStatus.ACCEPTED,
            sublist_name=default_sublist_name(display_name_for(user), owner_email),
        )

        invites = []
        for member in members:
            name = sanitize_text(member.get("name") or "")
            aggregate = CollaboratorAggregate.create(
                registry,
                member["email"],
                name,
                description=sanitize_text(member.get("description") or ""),
            )
            _create_items(aggregate.sublist, member.get("items"), user)
            token = issue_invite_token(aggregate.collaborator, created_by=user)
            invites.append({
                "email": aggregate.collaborator.email,
                "collaborator_id": aggregate.collaborator.pk,
                "accept_url": build_accept_url(token.token),
            })

    logger.info(
        "Registry %s created by user %s with %s initial member(s)",
        registry.pk, user.pk, len(invites),
    )
    result = registry_to_dict(registry, user.pk)
    result.update(
        collaborator_id=owner.collaborator.pk,
        sublist_id=owner.sublist.pk,
        invites=invites,
    )
    return result


def list_registries_for_user(user_id) -> list[dict]:
    """Registries where the user is an ACCEPTED collaborator, newest first."""
    member_of = Collaborator.objects.filter(
        user_id=user_id, status=CollaboratorStatus.ACCEPTED
    ).values("registry_id")
    registries = (
        Registry.objects
        .filter(pk__in=member_of)
        .select_related("owner__profile")
        .annotate(
            collaborator_count=Count("collaborators", distinct=True)
        )
        .order_by("-created_at", "-id")
    )
    results = []
    for registry in registries:
        data = registry_to_dict(registry, user_id)
        data["collaborator_count"] = registry.collaborator_count
        results.append(data)
    return results


def _sublist_of(collaborator: Collaborator) -> SubList:
    try:
        return collaborator.sublist
    except SubList.DoesNotExist:
        logger.error(
            "Collaborator %s in registry %s has no sub-list",
            collaborator.pk, collaborator.registry_id,
        )
        raise InvariantViolation(
            "Sub-list missing for collaborator",
            collaborator_id=collaborator.pk, registry_id=collaborator.registry_id,
        )


def get_registry_for_viewer(registry_id, viewer_id) -> dict:
    """
    The whole registry tree as ``viewer_id`` may see it.

    The tree and every claimant profile are loaded up front; the redactor
    runs over each sub-list with the collaborator's user as owner.
    """
    registry = Registry.objects.select_related("owner__profile").filter(pk=registry_id).first()
    if registry is None:
        raise NotFound("Registry")
    if not is_registry_member(registry.pk, viewer_id):
        raise Forbidden("You are not a member of this registry")

    collaborators = list(
        Collaborator.objects
        .filter(registry=registry)
        .select_related("user__profile", "sublist")
        .prefetch_related(Prefetch("sublist__items", queryset=Item.objects.order_by("created_at", "id")))
    )

    sublists = {c.pk: _sublist_of(c) for c in collaborators}
    claimant_ids = {
        item.claimed_by_id
        for sublist in sublists.values()
        for item in sublist.items.all()
        if item.claimed_by_id is not None
    }
    lookup = load_profile_lookup(claimant_ids)

    tree = []
    for collaborator in collaborators:
        sublist = sublists[collaborator.pk]
        tree.append({
            "id": collaborator.pk,
            "email": collaborator.email,
            "name": collaborator.name,
            "status": collaborator.status,
            "accepted_at": collaborator.accepted_at,
            "user": public_profile(collaborator.user),
            "is_viewer": collaborator.user_id is not None and collaborator.user_id == viewer_id,
            "sublist": {
                "id": sublist.pk,
                "name": sublist.name,
                "description": sublist.description,
                "items": project_items(sublist.items.all(), viewer_id, collaborator.user_id, lookup),
            },
        })

    data = registry_to_dict(registry, viewer_id)
    data["can_invite"] = can_user_invite(registry.pk, viewer_id)
    data["collaborators"] = tree
    return data


def update_registry(registry_id, user_id, data: dict) -> dict:
    """
    Owner-only settings update. ``data`` holds only the fields being changed;
    ``owner_id`` transfers ownership to an ACCEPTED collaborator.
    """
    with transaction.atomic():
        registry = Registry.objects.select_for_update().filter(pk=registry_id).first()
        if registry is None:
            raise NotFound("Registry")
        if registry.owner_id != user_id:
            raise Forbidden("Only the registry owner can update settings")

        new_owner_id = data.get("owner_id")
        if new_owner_id is not None and new_owner_id != registry.owner_id:
            if not is_registry_member(registry.pk, new_owner_id):
                raise ValidationFailed("New owner must be an accepted collaborator of this registry")
            registry.owner_id = new_owner_id

        for name in UPDATABLE_FIELDS:
            if name in data:
                value = data[name]
                if name == "title":
                    value = sanitize_text(value)
                setattr(registry, name, value)
        registry.save()

    if new_owner_id is not None and new_owner_id != user_id:
        logger.info("Registry %s ownership transferred from user %s to %s", registry.pk, user_id, new_owner_id)

    registry = Registry.objects.select_related("owner__profile").get(pk=registry.pk)
    return registry_to_dict(registry, user_id)
