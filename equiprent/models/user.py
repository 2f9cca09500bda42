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

"""User model."""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from equiprent.database import Base


class UserRole(str, enum.Enum):
    """Marketplace roles."""

    CLIENT = "CLIENT"
    PROFESSIONAL = "PROFESSIONAL"
    BUSINESS = "BUSINESS"
    ADMIN = "ADMIN"


class VerificationStatus(str, enum.Enum):
    """Identity/business verification state of a user."""

    UNVERIFIED = "UNVERIFIED"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


# Roles allowed to list equipment for rent
LISTING_ROLES = (UserRole.PROFESSIONAL.value, UserRole.BUSINESS.value, UserRole.ADMIN.value)


def normalize_role(raw_role: Optional[str]) -> Optional[str]:
    """Upper-case a role name, returning None if it is not a known role."""
    if not raw_role:
        return None
    role = raw_role.strip().upper()
    if role in UserRole.__members__:
        return role
    return None


class User(Base):
    """User model."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(128), nullable=False)
    password_salt = Column(String(64), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.CLIENT.value, index=True)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    phone = Column(String(50), nullable=True)
    company_name = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    verification_status = Column(
        String(20), nullable=False, default=VerificationStatus.UNVERIFIED.value
    )
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    last_login_at = Column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "role IN ('CLIENT', 'PROFESSIONAL', 'BUSINESS', 'ADMIN')", name="ck_user_role"
        ),
    )

    # Relationships
    auth_tokens = relationship("AuthToken", back_populates="user", passive_deletes=True)
    equipment = relationship("Equipment", back_populates="owner", passive_deletes=True)

    @property
    def is_admin(self) -> bool:
        """Check if user is admin."""
        return self.role == UserRole.ADMIN.value

    @property
    def can_list_equipment(self) -> bool:
        """Check if user may publish equipment."""
        return self.role in LISTING_ROLES

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> dict:
        """Convert user to dictionary."""
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
            "company_name": self.company_name,
            "is_active": self.is_active,
            "verification_status": self.verification_status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "last_login_at": self.last_login_at.isoformat() if self.last_login_at else None,
        }

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
