"""
Token and expiry helpers shared across the signing services.

These are pure functions that don't depend on models; they can be imported
and used in multiple places without circular imports.
"""

import secrets
from django.utils import timezone


def generate_access_token(nbytes=32):
    """
    Generate a signer access token.

    Args:
        nbytes: int, random bytes (default 32, giving 64 hex characters)

    Returns:
        str: hex token, unique per signer and generated once
    """
    return secrets.token_hex(nbytes)


def is_expired(expires_at, now=None):
    """
    Check if an expiry datetime has passed.

    Args:
        expires_at: datetime or None (None never expires)
        now: datetime, defaults to timezone.now()

    Returns:
        bool
    """
    if expires_at is None:
        return False
    return (now or timezone.now()) > expires_at
