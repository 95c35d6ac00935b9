"""
Views package for the registries application.

- api: JSON endpoints for registries, items, claims, invites and profiles
- health: liveness / readiness / full health checks
- errors: JSON 404 and 500 handlers
- helpers: response builders, payload validation and the ``api_view`` decorator
"""

from .api import (
    registries_collection,
    registry_detail,
    registry_invites,
    registry_collaborator,
    sublist_items,
    sublist_detail,
    item_detail,
    item_claim,
    item_release,
    item_mark_bought,
    invite_accept,
    invite_info,
    invite_accept_pending,
    profile,
)

from .health import (
    health_check,
    liveness_check,
    readiness_check,
)

from .errors import (
    error_404,
    error_500,
)

__all__ = [
    "registries_collection",
    "registry_detail",
    "registry_invites",
    "registry_collaborator",
    "sublist_items",
    "sublist_detail",
    "item_detail",
    "item_claim",
    "item_release",
    "item_mark_bought",
    "invite_accept",
    "invite_info",
    "invite_accept_pending",
    "profile",
    "health_check",
    "liveness_check",
    "readiness_check",
    "error_404",
    "error_500",
]
