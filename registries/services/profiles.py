import logging

from django.contrib.auth import get_user_model

from ..errors import NotFound
from ..models import UserProfile, public_profile
from ..utils import sanitize_text

logger = logging.getLogger(__name__)

User = get_user_model()


def display_name_for(user) -> str:
    profile = getattr(user, "profile", None)
    return (profile.display_name if profile else "") or user.get_full_name()


def load_profile_lookup(user_ids):
    """
    Fetch public profiles for ``user_ids`` in one query and return a lookup
    callable suitable for the visibility redactor.
    """
    ids = {pk for pk in user_ids if pk is not None}
    profiles = {}
    if ids:
        for user in User.objects.filter(pk__in=ids).select_related("profile"):
            profiles[user.pk] = public_profile(user)
    return profiles.get


def get_public_profile(user_id) -> dict:
    user = User.objects.select_related("profile").filter(pk=user_id).first()
    if user is None:
        raise NotFound("User")
    return public_profile(user)


def update_profile(user, data: dict) -> dict:
    profile, _ = UserProfile.objects.get_or_create(user=user)
    if "name" in data:
        profile.display_name = sanitize_text(data["name"] or "")
        profile.save(update_fields=["display_name"])
        logger.info("User %s updated display name", user.pk)
    user.profile = profile
    return public_profile(user)
