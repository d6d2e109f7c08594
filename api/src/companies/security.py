"""Invitation token utilities.

Provides:
- Token generation (cryptographically secure)
- Token hashing for storage and lookup
- Invitation link building
"""

import hashlib
import secrets
from urllib.parse import urlencode


INVITE_TOKEN_BYTES = 32


def generate_invite_token() -> str:
    """Generate a cryptographically secure invitation token.

    Returns:
        Hex token (256 bits / 32 bytes)
    """
    return secrets.token_hex(INVITE_TOKEN_BYTES)


def hash_invite_token(token: str) -> str:
    """Hash a token for storage.

    Only the SHA-256 hex digest is stored; the raw token only travels in
    the invitation link.
    """
    return hashlib.sha256(token.encode()).hexdigest()


def build_invite_url(app_url: str, token: str, email: str) -> str:
    """Registration link with the invite token and e-mail prefilled."""
    query = urlencode({"invite": token, "email": email.lower()})
    return f"{app_url.rstrip('/')}/register?{query}"
