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

"""Account registration, sign-in and session token management."""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from equiprent.config import get_settings
from equiprent.exceptions import AuthenticationError, BadRequestError, PermissionDeniedError
from equiprent.models.auth import AuthToken
from equiprent.models.user import User, UserRole, normalize_role
from equiprent.utils.helpers import generate_token, hash_password, is_valid_email, verify_password

logger = logging.getLogger(__name__)


def register_user(
    db: Session,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role: str = UserRole.CLIENT.value,
    phone: Optional[str] = None,
    company_name: Optional[str] = None,
) -> User:
    """Create a new account and its profile.

    Raises:
        BadRequestError: invalid email, weak password, unknown or admin role,
            or email already registered.
    """
    settings = get_settings()

    email = email.lower().strip()
    if not is_valid_email(email):
        raise BadRequestError("Invalid email format")

    if len(password or "") < settings.security.password_min_length:
        raise BadRequestError(
            f"Password must be at least {settings.security.password_min_length} characters"
        )

    normalized_role = normalize_role(role)
    if normalized_role is None:
        raise BadRequestError(f"Unknown role: {role}")
    if normalized_role == UserRole.ADMIN.value:
        raise BadRequestError("Admin accounts cannot be self-registered")

    if db.query(User).filter(User.email == email).first():
        raise BadRequestError("An account with this email already exists")

    password_hash, salt = hash_password(password)
    user = User(
        email=email,
        password_hash=password_hash,
        password_salt=salt,
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        role=normalized_role,
        phone=phone,
        company_name=company_name,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("Registered user %s with role %s", user.email, user.role)
    return user


def authenticate_user(db: Session, email: str, password: str) -> User:
    """Check credentials and return the matching active user."""
    user = db.query(User).filter(User.email == email.lower().strip()).first()

    if not user or not verify_password(password, user.password_hash, user.password_salt):
        logger.warning("Failed login attempt for %s", email)
        raise AuthenticationError("Invalid email or password")

    if not user.is_active:
        raise PermissionDeniedError("This account has been deactivated")

    return user


def issue_token(
    db: Session,
    user: User,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> AuthToken:
    """Create a session token, revoking the oldest ones past the per-user limit."""
    settings = get_settings()

    user.last_login_at = datetime.utcnow()

    user_tokens = (
        db.query(AuthToken)
        .filter(AuthToken.user_id == user.id, AuthToken.is_revoked == False)
        .order_by(AuthToken.created_at.desc(), AuthToken.id.desc())
        .all()
    )

    if len(user_tokens) >= settings.security.max_tokens_per_user:
        for old_token in user_tokens[settings.security.max_tokens_per_user - 1 :]:
            old_token.is_revoked = True

    auth_token = AuthToken(
        user_id=user.id,
        token=generate_token(32),
        expires_at=datetime.utcnow() + timedelta(days=settings.security.auth_token_days),
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(auth_token)
    db.commit()
    db.refresh(auth_token)
    return auth_token


def revoke_token(db: Session, token: str) -> bool:
    """Revoke a session token. Returns False if it does not exist."""
    auth_token = db.query(AuthToken).filter(AuthToken.token == token).first()
    if not auth_token:
        return False
    auth_token.is_revoked = True
    db.commit()
    return True


def revoke_user_tokens(db: Session, user_id: int) -> int:
    """Revoke every session of a user."""
    count = (
        db.query(AuthToken)
        .filter(AuthToken.user_id == user_id, AuthToken.is_revoked == False)
        .update({"is_revoked": True}, synchronize_session=False)
    )
    db.commit()
    return count


def validate_token(db: Session, token: Optional[str]) -> User:
    """Resolve a session token to its active user and mark it as used.

    Raises:
        AuthenticationError: missing, unknown, expired or revoked token.
        PermissionDeniedError: the account has been deactivated.
    """
    if not token:
        raise AuthenticationError("Not authenticated")

    auth_token = db.query(AuthToken).filter(AuthToken.token == token).first()
    if not auth_token:
        raise AuthenticationError("Invalid authentication token")
    if not auth_token.is_valid():
        raise AuthenticationError("Authentication token expired or revoked")

    user = auth_token.user
    if not user:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise PermissionDeniedError("User account is deactivated")

    auth_token.last_used_at = datetime.utcnow()
    db.commit()
    return user
