from django.conf import settings
import bleach
import re

from .constants import (
    CLAIM_LOCK_TIMEOUT_MS,
    INVITE_TOKEN_EXPIRY_DAYS,
    MAX_TEXT_LENGTH,
    MAX_URL_LENGTH,
)


def sanitize_text(text: str, allow_basic_formatting: bool = False) -> str:
    """
    Sanitize text input to prevent XSS attacks.

    Args:
        text: The text to sanitize
        allow_basic_formatting: If True, allows basic HTML tags like <b>, <i>, <br>

    Returns:
        Sanitized text string
    """
    if not text:
        return ""

    if allow_basic_formatting:
        allowed_tags = ['b', 'i', 'u', 'br', 'p', 'strong', 'em']
    else:
        allowed_tags = []

    cleaned = bleach.clean(
        text,
        tags=allowed_tags,
        attributes={},
        strip=True
    )

    if len(cleaned) > MAX_TEXT_LENGTH:
        cleaned = cleaned[:MAX_TEXT_LENGTH]

    return cleaned.strip()


def sanitize_url(url: str) -> str:
    """
    Sanitize and validate URLs to prevent XSS and open redirect attacks.

    Returns:
        Sanitized URL or empty string if invalid
    """
    if not url:
        return ""

    url = url.strip()

    # Only allow http/https protocols
    if not re.match(r'^https?://', url, re.IGNORECASE):
        return ""

    if re.search(r'(javascript|data|vbscript):', url, re.IGNORECASE):
        return ""

    from urllib.parse import urlparse
    try:
        parsed = urlparse(url)
    except ValueError:
        return ""
    if not parsed.netloc:
        return ""

    if len(url) > MAX_URL_LENGTH:
        return ""

    return url


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


class EffectiveConfig:
    def __init__(self):
        """
        Nil-safe view over the registry settings. Services read policy
        through this instead of poking at django.conf.settings directly.
        """

        def _setting(name: str, default):
            value = getattr(settings, name, None)
            return default if value is None or value == "" else value

        # --- Invites --------------------------------------------------------
        self.invite_token_expiry_days = int(_setting("INVITE_TOKEN_EXPIRY_DAYS", INVITE_TOKEN_EXPIRY_DAYS))
        self.app_base_url = str(_setting("APP_BASE_URL", "http://localhost:8000")).rstrip("/")

        # --- Claims ---------------------------------------------------------
        self.claim_lock_timeout_ms = int(_setting("CLAIM_LOCK_TIMEOUT_MS", CLAIM_LOCK_TIMEOUT_MS))
        self.allow_claims_on_pending_sublists = bool(_setting("ALLOW_CLAIMS_ON_PENDING_SUBLISTS", True))

        # --- Collaborator removal policy ------------------------------------
        self.collaborators_can_remove = bool(_setting("COLLABORATORS_CAN_REMOVE", False))

        # --- Auth -----------------------------------------------------------
        self.allow_registration = bool(_setting("ALLOW_REGISTRATION", True))


def get_effective_config() -> EffectiveConfig:
    return EffectiveConfig()
