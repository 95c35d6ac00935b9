"""
Constants for the registries application.
Centralizes magic numbers and configuration defaults for better maintainability.
"""

# --------------------------------------------------------------------------------------
# Invites
# --------------------------------------------------------------------------------------
INVITE_TOKEN_EXPIRY_DAYS = 30        # Default lifetime of an invite token
INVITE_TOKEN_BYTES = 32              # Entropy of the secret token
MAX_INVITES_PER_REQUEST = 50         # Emails accepted by one invite call
INVITE_RETENTION_DAYS = 90           # Used/expired tokens kept this long before purge

# --------------------------------------------------------------------------------------
# Claim arbitration
# --------------------------------------------------------------------------------------
CLAIM_LOCK_TIMEOUT_MS = 5000         # Max wait for an item row lock
BUSY_RETRY_AFTER_SECONDS = 1         # Retry-After hint when a lock wait times out

# --------------------------------------------------------------------------------------
# Text Limits
# --------------------------------------------------------------------------------------
MAX_TITLE_LENGTH = 200               # Registry title
MAX_NAME_LENGTH = 100                # Collaborator / profile display names
MAX_LABEL_LENGTH = 500               # Item label
MAX_TEXT_LENGTH = 10_000             # Maximum length for sanitized text
MAX_URL_LENGTH = 2048                # Maximum length for URLs

# --------------------------------------------------------------------------------------
# Public profile
# --------------------------------------------------------------------------------------
PUBLIC_PROFILE_FIELDS = ("id", "name", "email")
