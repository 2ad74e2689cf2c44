from __future__ import annotations

import secrets

DIGITS = "0123456789"
ADMIN_APPROVAL_PREFIX = "VIP"
SWEEP_APPROVAL_PREFIX = "PARTNER"


def generate_affiliate_code(prefix: str, digits: int = 4) -> str:
    """Builds a partner code such as VIP4821 from a prefix and random digits."""
    if digits <= 0:
        raise ValueError("digits must be positive")
    normalized_prefix = prefix.strip().upper()
    if not normalized_prefix:
        raise ValueError("prefix must not be empty")
    return normalized_prefix + "".join(secrets.choice(DIGITS) for _ in range(digits))
