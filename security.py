"""Security helpers: random tokens, client identification, password policy."""

import re
import secrets
from typing import Any


def generate_secure_token(length: int = 32) -> str:
    """Generate a cryptographically secure random token."""
    return secrets.token_urlsafe(length)


# --- Client identification ---


def get_client_ip(request: Any) -> str:
    """
    Extract client IP address from request.

    Handles X-Forwarded-For header for reverse proxy setups and strips the
    IPv4-mapped IPv6 prefix.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # Take the first IP (original client)
        ip = forwarded.split(",")[0].strip()
    elif request.client:
        ip = request.client.host
    else:
        return "unknown"

    return ip.removeprefix("::ffff:")


# --- Password Validation ---


def check_password_strength(password: str) -> list[str]:
    """
    Check password strength and return list of issues.

    Returns empty list if password meets all requirements.
    """
    issues = []

    if len(password) < 8:
        issues.append("Password must be at least 8 characters")
    if len(password) > 128:
        issues.append("Password must be less than 128 characters")
    if not re.search(r"[A-Z]", password):
        issues.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        issues.append("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        issues.append("Password must contain at least one digit")

    return issues


def is_common_password(password: str) -> bool:
    """Check if password is in a short list of well-known passwords."""
    common_passwords = {
        "password", "123456", "12345678", "qwerty", "abc123",
        "letmein", "admin123", "password1", "password123",
        "irrigation", "driptech", "welcome1", "passw0rd",
    }
    return password.lower() in common_passwords
