# microtools/utils/tokens.py
# Unguessable identifiers and capability tokens

import secrets

# 8 random bytes -> 11 URL-safe characters
TOKEN_BYTES = 8


def generate_id() -> str:
    """Mint an object identifier suitable for a URL path segment."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def generate_token() -> str:
    """Mint a capability token for one sub-resource."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def tokens_match(presented: str | None, stored: str | None) -> bool:
    """True only when both tokens are present and equal."""
    if not presented or not stored:
        return False
    return secrets.compare_digest(presented.encode(), stored.encode())
