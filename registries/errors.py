"""
Typed errors raised by the registry services.

Services never build HTTP responses. They raise one of these and the JSON
views translate it with ``to_dict()`` and ``status``, so a frontend can tell
"someone beat you to it" apart from "you're not allowed".
"""

from typing import Any

# --------------------------------------------------------------------------------------
# Machine-readable codes
# --------------------------------------------------------------------------------------
ERR_NOT_AUTHENTICATED = "ERR_NOT_AUTHENTICATED"
ERR_FORBIDDEN = "ERR_FORBIDDEN"
ERR_NOT_FOUND = "ERR_NOT_FOUND"
ERR_VALIDATION = "ERR_VALIDATION"
ERR_ALREADY_CLAIMED = "ERR_ALREADY_CLAIMED"
ERR_BUSY = "ERR_BUSY"
ERR_DUPLICATE_INVITE = "ERR_DUPLICATE_INVITE"
ERR_ITEM_DELETED = "ERR_ITEM_DELETED"
ERR_INVITE_INVALID = "ERR_INVITE_INVALID"
ERR_INVITE_EXPIRED = "ERR_INVITE_EXPIRED"
ERR_INVITE_USED = "ERR_INVITE_USED"
ERR_EMAIL_MISMATCH = "ERR_EMAIL_MISMATCH"
ERR_INTERNAL = "ERR_INTERNAL"


class RegistryError(Exception):
    """Base class: carries an HTTP status, a stable code and optional details."""

    status = 500
    code = ERR_INTERNAL
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        data = {"code": self.code, "message": self.message}
        if self.details:
            data["details"] = self.details
        return data


class NotFound(RegistryError):
    status = 404
    code = ERR_NOT_FOUND
    default_message = "Not found"

    def __init__(self, resource: str = "Resource", details: Any = None):
        self.resource = resource
        super().__init__(f"{resource} not found", details)


class Forbidden(RegistryError):
    status = 403
    code = ERR_FORBIDDEN
    default_message = "You do not have permission to perform this action"


class ValidationFailed(RegistryError):
    status = 422
    code = ERR_VALIDATION
    default_message = "Validation failed"


class Conflict(RegistryError):
    status = 409


class AlreadyClaimed(Conflict):
    """Lost the race for an item. Expected under contention; not an error-level event."""

    code = ERR_ALREADY_CLAIMED
    default_message = "Item is already claimed"

    def __init__(self, claimant: dict[str, Any] | None = None):
        self.claimant = claimant
        super().__init__(details=claimant)


class Busy(Conflict):
    """The row lock could not be acquired in time. Safe to retry."""

    code = ERR_BUSY
    default_message = "Item is busy, please retry"
    retryable = True


class DuplicateInvite(Conflict):
    code = ERR_DUPLICATE_INVITE

    def __init__(self, email: str):
        super().__init__(f"An invite already exists for {email}")


class ItemDeleted(Conflict):
    code = ERR_ITEM_DELETED
    default_message = "Item has been deleted"


class InviteInvalid(RegistryError):
    status = 400
    code = ERR_INVITE_INVALID
    default_message = "Invalid invite token"


class InviteExpired(RegistryError):
    status = 410
    code = ERR_INVITE_EXPIRED
    default_message = "Invite token has expired"


class InviteUsed(RegistryError):
    status = 410
    code = ERR_INVITE_USED
    default_message = "Invite token has already been used"


class EmailMismatch(RegistryError):
    status = 403
    code = ERR_EMAIL_MISMATCH
    default_message = "The authenticated email does not match the invite"


class InvariantViolation(RegistryError):
    """
    Stored data contradicts a model invariant (e.g. a sub-list without a
    collaborator). Always logged at ERROR by the raiser, never swallowed.
    """

    status = 500
    code = ERR_INTERNAL
    default_message = "Internal data inconsistency"

    def __init__(self, message: str | None = None, **context: Any):
        self.context = context
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        # Entity ids stay in the logs, not in the response body.
        return {"code": self.code, "message": self.default_message}
