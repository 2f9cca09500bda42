# EquipRent - Construction Equipment Rental Marketplace
# Copyright (C) 2025 Oleg Tokmakov
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""Utility helper functions."""

import hashlib
import hmac
import re
import secrets
from datetime import date, datetime
from typing import Optional, Tuple

from equiprent.config import get_settings


def generate_token(length: int = 32) -> str:
    """Generate a secure random token.

    Args:
        length: Length of the token in bytes (will be URL-safe encoded).

    Returns:
        URL-safe random token string.
    """
    return secrets.token_urlsafe(length)


def sanitize_input(text: Optional[str], max_length: Optional[int] = None) -> str:
    """Sanitize user input by stripping HTML tags and limiting length.

    Args:
        text: Input text to sanitize.
        max_length: Maximum allowed length (truncates if exceeded).

    Returns:
        Sanitized string.
    """
    if text is None:
        return ""

    # Remove HTML tags
    clean = re.sub(r"<[^>]+>", "", str(text))

    # Normalize whitespace
    clean = " ".join(clean.split())

    # Truncate if needed
    if max_length and len(clean) > max_length:
        clean = clean[:max_length]

    return clean


def is_valid_email(email: str) -> bool:
    """Validate email format.

    Args:
        email: Email address to validate.

    Returns:
        True if valid email format.
    """
    pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
    return bool(re.match(pattern, email))


def _pbkdf2(password: str, salt: str, iterations: int) -> str:
    raw = hashlib.pbkdf2_hmac(
        "sha256",
        (password or "").encode("utf-8"),
        salt.encode("utf-8"),
        iterations,
    )
    return raw.hex()


def hash_password(password: str, salt: Optional[str] = None) -> Tuple[str, str]:
    """Hash a password with PBKDF2-SHA256.

    Args:
        password: Plain text password.
        salt: Existing salt; a new one is generated if omitted.

    Returns:
        Tuple of (hex digest, salt).
    """
    if salt is None:
        salt = secrets.token_hex(16)
    iterations = get_settings().security.password_hash_iterations
    return _pbkdf2(password, salt, iterations), salt


def verify_password(password: str, password_hash: str, salt: str) -> bool:
    """Check a password against a stored hash in constant time."""
    candidate, _ = hash_password(password, salt)
    return hmac.compare_digest(candidate, password_hash)


def parse_date_string(date_str: str) -> Optional[date]:
    """Parse an ISO date string.

    Args:
        date_str: Date string like "2025-01-15".

    Returns:
        date object or None if invalid.
    """
    if not date_str:
        return None

    try:
        return datetime.strptime(date_str.strip(), "%Y-%m-%d").date()
    except ValueError:
        return None
