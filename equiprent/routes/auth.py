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

"""Authentication routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from equiprent.config import get_settings
from equiprent.database import get_db
from equiprent.exceptions import EquipRentError
from equiprent.middleware.auth import get_current_user, get_token_from_request
from equiprent.models.auth import AuthToken
from equiprent.models.user import User, UserRole
from equiprent.services.accounts import (
    authenticate_user,
    issue_token,
    register_user,
    revoke_token,
    validate_token,
)
from equiprent.services.users import delete_user_and_related_data, update_profile

router = APIRouter(prefix="/api/auth")


class RegisterRequest(BaseModel):
    """Registration request."""

    email: EmailStr
    password: str
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    role: str = UserRole.CLIENT.value
    phone: Optional[str] = Field(default=None, max_length=50)
    company_name: Optional[str] = Field(default=None, max_length=255)


class LoginRequest(BaseModel):
    """Login request."""

    email: EmailStr
    password: str


class ProfileUpdate(BaseModel):
    """Self-service profile update."""

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=50)
    company_name: Optional[str] = Field(default=None, max_length=255)


def _set_auth_cookie(response: Response, auth_token: AuthToken) -> None:
    settings = get_settings()
    response.set_cookie(
        key="auth_token",
        value=auth_token.token,
        httponly=True,
        secure=not settings.app.debug,
        samesite="lax",
        max_age=settings.security.auth_token_days * 24 * 60 * 60,
    )


def _client_info(request: Request):
    ip_address = request.client.host if request.client else None
    return ip_address, request.headers.get("User-Agent")


@router.post("/register", status_code=201)
async def register(
    request: Request,
    response: Response,
    data: RegisterRequest,
    db: Session = Depends(get_db),
):
    """Create an account and open a session for it."""
    user = register_user(
        db,
        email=data.email,
        password=data.password,
        first_name=data.first_name,
        last_name=data.last_name,
        role=data.role,
        phone=data.phone,
        company_name=data.company_name,
    )

    ip_address, user_agent = _client_info(request)
    auth_token = issue_token(db, user, ip_address, user_agent)
    _set_auth_cookie(response, auth_token)

    return {
        "success": True,
        "user": user.to_dict(),
        "token": auth_token.token,
        "expires_at": auth_token.expires_at.isoformat(),
    }


@router.post("/login")
async def login(
    request: Request,
    response: Response,
    data: LoginRequest,
    db: Session = Depends(get_db),
):
    """Sign in with email and password."""
    user = authenticate_user(db, data.email, data.password)

    ip_address, user_agent = _client_info(request)
    auth_token = issue_token(db, user, ip_address, user_agent)
    _set_auth_cookie(response, auth_token)

    return {
        "success": True,
        "user": user.to_dict(),
        "token": auth_token.token,
        "expires_at": auth_token.expires_at.isoformat(),
    }


@router.get("/validate")
async def validate_session(
    request: Request,
    db: Session = Depends(get_db),
):
    """Check if current session is valid."""
    try:
        user = validate_token(db, get_token_from_request(request))
    except EquipRentError:
        return {"valid": False}

    return {"valid": True, "user_id": user.id}


@router.get("/me")
async def get_current_user_info(
    current_user: User = Depends(get_current_user),
):
    """Get current authenticated user info."""
    return {
        "success": True,
        "user": current_user.to_dict(),
    }


@router.put("/me")
async def update_current_user(
    data: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update own profile fields."""
    user = update_profile(db, current_user, data.model_dump(exclude_unset=True))
    return {
        "success": True,
        "user": user.to_dict(),
    }


@router.delete("/me")
async def delete_current_user(
    response: Response,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Delete own account and everything attached to it."""
    counts = delete_user_and_related_data(db, current_user.id)
    response.delete_cookie("auth_token")
    return {
        "success": True,
        "deleted": counts,
        "message": "Account deleted",
    }


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Logout and revoke current session."""
    token = get_token_from_request(request)

    if token:
        revoke_token(db, token)

    response.delete_cookie("auth_token")

    return {"success": True, "message": "Logged out successfully"}
