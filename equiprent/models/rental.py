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

"""Rental request model."""

import enum
from datetime import date, datetime

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from equiprent.database import Base


class RentalStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


# Allowed status transitions; REJECTED and COMPLETED are terminal
STATUS_TRANSITIONS = {
    RentalStatus.PENDING.value: {RentalStatus.APPROVED.value, RentalStatus.REJECTED.value},
    RentalStatus.APPROVED.value: {RentalStatus.ACTIVE.value, RentalStatus.REJECTED.value},
    RentalStatus.ACTIVE.value: {RentalStatus.COMPLETED.value},
    RentalStatus.REJECTED.value: set(),
    RentalStatus.COMPLETED.value: set(),
}

# Requests in these states hold the equipment for their date range
BLOCKING_STATUSES = (
    RentalStatus.PENDING.value,
    RentalStatus.APPROVED.value,
    RentalStatus.ACTIVE.value,
)


class RentalRequest(Base):
    """Client proposal to rent equipment for a date range."""

    __tablename__ = "rental_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    equipment_id = Column(
        Integer, ForeignKey("equipment.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    equipment_owner_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=False, index=True)
    status = Column(String(20), nullable=False, default=RentalStatus.PENDING.value, index=True)
    message = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED', 'ACTIVE', 'COMPLETED')",
            name="ck_rental_status",
        ),
    )

    # Relationships
    equipment = relationship("Equipment")
    user = relationship("User", foreign_keys=[user_id])
    equipment_owner = relationship("User", foreign_keys=[equipment_owner_id])

    @property
    def rental_days(self) -> int:
        """Number of billable days, never less than one."""
        return max((self.end_date - self.start_date).days, 1)

    def overlaps_with(self, other_start_date: date, other_end_date: date) -> bool:
        """Check if this request's inclusive date range intersects another."""
        return not (self.end_date < other_start_date or self.start_date > other_end_date)

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in STATUS_TRANSITIONS.get(self.status, set())

    def is_participant(self, user_id: int) -> bool:
        return user_id in (self.user_id, self.equipment_owner_id)

    def to_dict(self, include_equipment: bool = True, include_user: bool = True) -> dict:
        """Convert to dictionary."""
        result = {
            "id": self.id,
            "equipment_id": self.equipment_id,
            "user_id": self.user_id,
            "equipment_owner_id": self.equipment_owner_id,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "status": self.status,
            "message": self.message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

        if include_equipment and self.equipment:
            result["equipment_name"] = self.equipment.name

        if include_user and self.user:
            result["user_name"] = self.user.full_name
            result["user_email"] = self.user.email

        return result

    def __repr__(self):
        return (
            f"<RentalRequest(id={self.id}, user_id={self.user_id}, "
            f"equipment_id={self.equipment_id}, status='{self.status}')>"
        )
