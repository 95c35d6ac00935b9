"""
Invite tokens: issuing, inspecting and consuming them.

No email is sent from here. ``create_invites`` hands back accept URLs and the
caller decides how to deliver them.
"""

import logging
from dataclasses import dataclass, field

from django.db import DatabaseError, transaction
from django.utils import timezone

from ..constants import MAX_INVITES_PER_REQUEST
from ..errors import (
    DuplicateInvite,
    EmailMismatch,
    Forbidden,
    InviteExpired,
    InviteInvalid,
    InviteUsed,
    NotFound,
    RegistryError,
    ValidationFailed,
)
from ..models import Collaborator, CollaboratorStatus, InviteToken, Registry, public_profile
from ..utils import get_effective_config, normalize_email
from .collaborators import CollaboratorAggregate
from .ownership import can_user_invite

logger = logging.getLogger(__name__)


@dataclass
class InviteResult:
    email: str
    ok: bool
    collaborator_id: int | None = None
    is_new: bool = False
    accept_url: str | None = None
    error: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = {"email": self.email, "ok": self.ok}
        if self.ok:
            data.update(
                collaborator_id=self.collaborator_id,
                is_new=self.is_new,
                accept_url=self.accept_url,
            )
        else:
            data["error"] = self.error
        return data


def build_accept_url(token: str) -> str:
    return f"{get_effective_config().app_base_url}/invite/{token}"


def issue_invite_token(collaborator: Collaborator, created_by=None) -> InviteToken:
    """Mark every unused token of the collaborator used, then issue a fresh one."""
    with transaction.atomic():
        InviteToken.objects.filter(collaborator=collaborator, used=False).update(used=True)
        return InviteToken.objects.create(
            registry_id=collaborator.registry_id,
            collaborator=collaborator,
            email=collaborator.email,
            created_by=created_by,
        )


def _invite_one(registry: Registry, email: str, name: str, created_by) -> InviteResult:
    with transaction.atomic():
        collaborator = (
            Collaborator.objects.select_for_update()
            .filter(registry=registry, email=email)
            .first()
        )
        is_new = collaborator is None
        if is_new:
            collaborator = CollaboratorAggregate.create(registry, email, name).collaborator
        elif collaborator.status != CollaboratorStatus.PENDING:
            raise DuplicateInvite(email)

        invite = issue_invite_token(collaborator, created_by)

    return InviteResult(
        email=email,
        ok=True,
        collaborator_id=collaborator.pk,
        is_new=is_new,
        accept_url=build_accept_url(invite.token),
    )


def create_invites(registry_id, invites, created_by) -> list[InviteResult]:
    """
    Invite each ``{"email", "name"}`` entry to the registry.

    Each email runs in its own savepoint: one bad entry is reported in its
    result and never aborts the rest.
    """
    registry = Registry.objects.filter(pk=registry_id).first()
    if registry is None:
        raise NotFound("Registry")
    if not can_user_invite(registry.pk, created_by.pk):
        raise Forbidden("You do not have permission to invite collaborators")
    if not invites:
        raise ValidationFailed("At least one invite is required")
    if len(invites) > MAX_INVITES_PER_REQUEST:
        raise ValidationFailed(f"At most {MAX_INVITES_PER_REQUEST} invites per request")

    results = []
    for invite in invites:
        email = normalize_email(invite.get("email"))
        try:
            results.append(_invite_one(registry, email, invite.get("name") or "", created_by))
        except RegistryError as exc:
            results.append(InviteResult(email=email, ok=False, error=exc.to_dict()))
        except DatabaseError:
            logger.exception("Failed to invite %s to registry %s", email, registry.pk)
            results.append(InviteResult(
                email=email, ok=False,
                error=RegistryError("Could not create invite").to_dict(),
            ))

    logger.info(
        "User %s invited %s/%s emails to registry %s",
        created_by.pk, sum(r.ok for r in results), len(results), registry.pk,
    )
    return results


def consume_invite_token(token: str, user_id, email: str) -> Collaborator:
    """
    Accept the invite behind ``token`` for the authenticated user.

    Raises:
        InviteInvalid: unknown token, or its collaborator has been removed
        InviteUsed / InviteExpired: token no longer usable
        EmailMismatch: token was issued to a different email
    """
    with transaction.atomic():
        invite = InviteToken.objects.select_for_update().filter(token=token or "").first()
        if invite is None:
            raise InviteInvalid()
        if invite.used:
            raise InviteUsed()
        if invite.is_expired():
            raise InviteExpired()
        if normalize_email(invite.email) != normalize_email(email):
            raise EmailMismatch()

        collaborator = (
            Collaborator.objects.select_for_update()
            .filter(pk=invite.collaborator_id)
            .first()
        )
        if collaborator is None:
            raise InviteInvalid()

        invite.used = True
        invite.save(update_fields=["used"])
        collaborator.mark_accepted(user_id)

    logger.info(
        "User %s accepted invite to registry %s (collaborator %s)",
        user_id, collaborator.registry_id, collaborator.pk,
    )
    return collaborator


def get_invite_info(token: str) -> dict | None:
    """Display info for an invite page. Never consumes the token."""
    invite = (
        InviteToken.objects
        .select_related("registry__owner__profile", "collaborator")
        .filter(token=token or "")
        .first()
    )
    if invite is None:
        return None

    registry = invite.registry
    return {
        "email": invite.email,
        "used": invite.used,
        "expired": invite.is_expired(),
        "expires_at": invite.expires_at,
        "registry": {
            "id": registry.pk,
            "title": registry.title,
            "occasion_date": registry.occasion_date,
            "owner": public_profile(registry.owner),
        },
        "collaborator_status": invite.collaborator.status if invite.collaborator else None,
    }


def accept_pending_invites_by_email(user_id, email: str) -> list[dict]:
    """Accept every PENDING, unlinked collaborator row for ``email``."""
    email = normalize_email(email)
    if not email:
        return []

    accepted = []
    with transaction.atomic():
        pending = (
            Collaborator.objects.select_for_update(of=("self",))
            .select_related("registry", "sublist")
            .filter(email=email, status=CollaboratorStatus.PENDING, user__isnull=True)
        )
        now = timezone.now()
        for collaborator in pending:
            collaborator.user_id = user_id
            collaborator.status = CollaboratorStatus.ACCEPTED
            collaborator.accepted_at = now
            collaborator.save(update_fields=["user", "status", "accepted_at"])
            InviteToken.objects.filter(collaborator=collaborator, used=False).update(used=True)
            accepted.append({
                "collaborator_id": collaborator.pk,
                "registry_id": collaborator.registry_id,
                "registry_title": collaborator.registry.title,
                "sublist_id": collaborator.sublist.pk,
            })

    if accepted:
        logger.info("User %s accepted %s pending invite(s) by email", user_id, len(accepted))
    return accepted
