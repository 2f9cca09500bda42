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

"""FastAPI dependencies resolving the signed-in user."""

from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from equiprent.database import get_db
from equiprent.exceptions import EquipRentError
from equiprent.models.user import User
from equiprent.services.accounts import validate_token

BEARER_PREFIX = "Bearer "


def get_token_from_request(request: Request) -> Optional[str]:
    """Session token from the `auth_token` cookie or a Bearer header."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith(BEARER_PREFIX):
        return auth_header[len(BEARER_PREFIX) :].strip() or None
    return request.cookies.get("auth_token")


async def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User:
    try:
        return validate_token(db, get_token_from_request(request))
    except EquipRentError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail)


async def get_current_user_optional(
    request: Request,
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Signed-in user, or None for anonymous and stale sessions."""
    token = get_token_from_request(request)
    if not token:
        return None
    try:
        return validate_token(db, token)
    except EquipRentError:
        return None


def _require_role(current_user: User, allowed: bool, message: str) -> User:
    if not allowed:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)
    return current_user


async def require_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    return _require_role(current_user, current_user.is_admin, "Admin access required")


async def require_lister(
    current_user: User = Depends(get_current_user),
) -> User:
    """Professional, business and admin accounts may list equipment."""
    return _require_role(
        current_user,
        current_user.can_list_equipment,
        "Professional or business account required",
    )
