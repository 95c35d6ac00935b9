from datetime import timedelta
import secrets

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import models
from django.db.models import CheckConstraint, Q
from django.db.models.signals import post_save, pre_delete
from django.dispatch import receiver
from django.utils import timezone

from .constants import INVITE_TOKEN_BYTES, INVITE_TOKEN_EXPIRY_DAYS

User = get_user_model()


# === Registry ==========================================================================

class Registry(models.Model):
    """A named collection of collaborators and their gift lists for one occasion."""
    title = models.CharField(max_length=200)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="owned_registries"
    )
    occasion_date = models.DateTimeField(null=True, blank=True)
    deadline = models.DateTimeField(null=True, blank=True)
    collaborators_can_invite = models.BooleanField(default=False)
    allow_secret_gifts = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "registries"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["owner"], name="registry_owner_idx"),
        ]

    def __str__(self):
        return self.title


# === Collaborators =====================================================================

class CollaboratorStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    ACCEPTED = "ACCEPTED", "Accepted"
    REMOVED = "REMOVED", "Removed"


class Collaborator(models.Model):
    """
    A registry member, one row per email.
    - When pending: user is NULL, email is set, accepted_at is NULL.
    - When accepted: user is linked and accepted_at is set.
    Removal deletes the row with its sub-list and items, so no REMOVED row
    is ever stored.
    Owns exactly one SubList, created in the same transaction.
    """
    registry = models.ForeignKey(Registry, on_delete=models.CASCADE, related_name="collaborators")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name="collaborations",
    )
    email = models.EmailField()
    name = models.CharField(max_length=100, blank=True)
    status = models.CharField(
        max_length=10, choices=CollaboratorStatus.choices, default=CollaboratorStatus.PENDING
    )
    created_at = models.DateTimeField(auto_now_add=True)
    accepted_at = models.DateTimeField(null=True, blank=True)
    removed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["user"], name="collab_user_idx"),
            models.Index(fields=["registry", "status"], name="collab_registry_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(fields=["registry", "email"], name="uniq_registry_collaborator_email"),
        ]

    @property
    def is_accepted(self) -> bool:
        return self.status == CollaboratorStatus.ACCEPTED

    def mark_accepted(self, user_id):
        self.user_id = user_id
        self.status = CollaboratorStatus.ACCEPTED
        self.accepted_at = timezone.now()
        self.save(update_fields=["user", "status", "accepted_at"])

    def save(self, *args, **kwargs):
        self.email = (self.email or "").strip().lower()
        super().save(*args, **kwargs)

    def __str__(self):
        who = self.user or self.email
        return f"{self.registry_id} → {who} [{self.status}]"


class SubList(models.Model):
    """The gift list belonging to one collaborator."""
    registry = models.ForeignKey(Registry, on_delete=models.CASCADE, related_name="sublists")
    collaborator = models.OneToOneField(Collaborator, on_delete=models.CASCADE, related_name="sublist")
    name = models.CharField(max_length=200, blank=True)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["registry"], name="sublist_registry_idx"),
        ]

    def __str__(self):
        return self.name or f"SubList {self.pk}"


# === Items =============================================================================

class ItemStatus(models.TextChoices):
    UNCLAIMED = "UNCLAIMED", "Unclaimed"
    CLAIMED = "CLAIMED", "Claimed"
    BOUGHT = "BOUGHT", "Bought"


class Item(models.Model):
    sublist = models.ForeignKey(SubList, on_delete=models.CASCADE, related_name="items")
    label = models.CharField(max_length=500, blank=True)
    url = models.URLField(max_length=2048, blank=True)
    description = models.TextField(blank=True)
    is_secret = models.BooleanField(default=False)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name="created_items",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    # Soft delete. Never touches the claim fields below.
    deleted_at = models.DateTimeField(null=True, blank=True)
    deleted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name="deleted_items",
    )

    # Claim state, mutated only through the claim arbiter or collaborator removal.
    status = models.CharField(max_length=10, choices=ItemStatus.choices, default=ItemStatus.UNCLAIMED)
    claimed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name="claimed_items",
    )
    claimed_at = models.DateTimeField(null=True, blank=True)
    bought_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["sublist"], name="item_sublist_idx"),
            models.Index(fields=["claimed_by"], name="item_claimed_by_idx"),
            models.Index(fields=["status"], name="item_status_idx"),
        ]
        constraints = [
            CheckConstraint(
                condition=(
                    Q(status=ItemStatus.UNCLAIMED, claimed_by__isnull=True,
                      claimed_at__isnull=True, bought_at__isnull=True)
                    | Q(status=ItemStatus.CLAIMED, claimed_by__isnull=False,
                        claimed_at__isnull=False, bought_at__isnull=True)
                    | Q(status=ItemStatus.BOUGHT, claimed_by__isnull=False,
                        claimed_at__isnull=False, bought_at__isnull=False)
                ),
                name="item_claim_state_consistent",
            ),
        ]

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self, user_id):
        self.deleted_at = timezone.now()
        self.deleted_by_id = user_id
        self.save(update_fields=["deleted_at", "deleted_by"])

    def __str__(self):
        return self.label or self.url or f"Item {self.pk}"


# Fields reset whenever a claim is dropped (release, collaborator removal).
UNCLAIMED_VALUES = {
    "status": ItemStatus.UNCLAIMED,
    "claimed_by": None,
    "claimed_at": None,
    "bought_at": None,
}


# === Invite tokens =====================================================================

def _invite_token():
    # url-safe and short enough for a slug
    return secrets.token_urlsafe(INVITE_TOKEN_BYTES)


def _invite_expiry():
    days = getattr(settings, "INVITE_TOKEN_EXPIRY_DAYS", INVITE_TOKEN_EXPIRY_DAYS)
    return timezone.now() + timedelta(days=days)


class InviteToken(models.Model):
    """
    A single-use, time-limited credential binding an email to a pending
    collaborator slot. Survives collaborator removal (collaborator set NULL,
    used=True) so the invalidation stays observable.
    """
    token = models.SlugField(max_length=64, unique=True, default=_invite_token)
    registry = models.ForeignKey(Registry, on_delete=models.CASCADE, related_name="invite_tokens")
    collaborator = models.ForeignKey(
        Collaborator, on_delete=models.SET_NULL, null=True, blank=True, related_name="invite_tokens"
    )
    email = models.EmailField()
    created_at = models.DateTimeField(auto_now_add=True)
    expires_at = models.DateTimeField(default=_invite_expiry)
    used = models.BooleanField(default=False)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name="issued_invites",
    )

    class Meta:
        indexes = [
            models.Index(fields=["registry"], name="invite_registry_idx"),
            models.Index(fields=["email"], name="invite_email_idx"),
            models.Index(fields=["expires_at"], name="invite_expires_idx"),
            models.Index(fields=["collaborator", "used"], name="invite_collab_used_idx"),
        ]

    def is_expired(self) -> bool:
        return timezone.now() > self.expires_at

    def __str__(self):
        return f"Invite({self.email}, registry={self.registry_id}, used={self.used})"


# === User profile ======================================================================

class UserProfile(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="profile")
    display_name = models.CharField(max_length=100, blank=True)

    def __str__(self):
        return f"{self.user} profile"


def public_profile(user) -> dict | None:
    """Minimal identity others may see: id, display name, email."""
    if user is None:
        return None
    profile = getattr(user, "profile", None)
    name = (profile.display_name if profile else "") or user.get_full_name()
    return {"id": user.pk, "name": name or None, "email": user.email}


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_user_profile(sender, instance, created, **kwargs):
    """Create UserProfile automatically when a new user is created."""
    if created:
        UserProfile.objects.get_or_create(user=instance)


@receiver(pre_delete, sender=settings.AUTH_USER_MODEL)
def release_claims_of_deleted_user(sender, instance, **kwargs):
    """
    Drop every claim a user holds before the account disappears, so the
    claimed_by SET_NULL never leaves a CLAIMED/BOUGHT item without a claimant.
    """
    Item.objects.filter(claimed_by=instance).update(**UNCLAIMED_VALUES)
