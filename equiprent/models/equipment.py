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

"""Equipment, maintenance, availability and rating models."""

import enum
from datetime import date, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from equiprent.database import Base


class MaintenanceType(str, enum.Enum):
    PREVENTIVE = "PREVENTIVE"
    CORRECTIVE = "CORRECTIVE"
    INSPECTION = "INSPECTION"


class AvailabilityStatus(str, enum.Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class Equipment(Base):
    """Rentable piece of construction machinery."""

    __tablename__ = "equipment"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False, default=0.0)  # per day
    category = Column(String(100), nullable=False, index=True)
    location = Column(String(255), nullable=True)
    image = Column(String(500), nullable=True)
    specifications = Column(JSON, nullable=False, default=dict)
    is_available = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_rented = Column(Boolean, nullable=False, default=False)
    # ISO date string -> available flag
    availability_schedule = Column(JSON, nullable=False, default=dict)
    minimum_rental_period = Column(Integer, nullable=False, default=1)
    deposit_amount = Column(Float, nullable=False, default=0.0)
    average_rating = Column(Float, nullable=False, default=0.0)
    total_ratings = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    owner = relationship("User", back_populates="equipment")
    maintenance_history = relationship(
        "MaintenanceRecord",
        back_populates="equipment",
        order_by="MaintenanceRecord.id",
        passive_deletes=True,
    )

    def to_dict(self, include_maintenance: bool = False) -> dict:
        """Convert to dictionary."""
        result = {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "category": self.category,
            "location": self.location,
            "image": self.image,
            "specifications": dict(self.specifications or {}),
            "is_available": self.is_available,
            "is_active": self.is_active,
            "is_rented": self.is_rented,
            "availability_schedule": dict(self.availability_schedule or {}),
            "minimum_rental_period": self.minimum_rental_period,
            "deposit_amount": self.deposit_amount,
            "average_rating": self.average_rating,
            "total_ratings": self.total_ratings,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_maintenance:
            result["maintenance_history"] = [m.to_dict() for m in self.maintenance_history]
        return result

    def __repr__(self):
        return f"<Equipment(id={self.id}, name='{self.name}', owner_id={self.owner_id})>"


class MaintenanceRecord(Base):
    """Maintenance history entry. Records are appended, never edited."""

    __tablename__ = "maintenance_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    equipment_id = Column(
        Integer, ForeignKey("equipment.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date = Column(Date, nullable=False)
    description = Column(Text, nullable=False, default="")
    cost = Column(Float, nullable=False, default=0.0)
    performed_by = Column(String(255), nullable=False, default="")
    maintenance_type = Column(String(20), nullable=False, default=MaintenanceType.PREVENTIVE.value)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint(
            "maintenance_type IN ('PREVENTIVE', 'CORRECTIVE', 'INSPECTION')",
            name="ck_maintenance_type",
        ),
    )

    equipment = relationship("Equipment", back_populates="maintenance_history")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "equipment_id": self.equipment_id,
            "date": self.date.isoformat() if self.date else None,
            "description": self.description,
            "cost": self.cost,
            "performed_by": self.performed_by,
            "type": self.maintenance_type,
        }

    def __repr__(self):
        return f"<MaintenanceRecord(id={self.id}, equipment_id={self.equipment_id})>"


class Availability(Base):
    """Availability block of an equipment item."""

    __tablename__ = "availabilities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    equipment_id = Column(
        Integer, ForeignKey("equipment.id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default=AvailabilityStatus.AVAILABLE.value)

    __table_args__ = (
        CheckConstraint("status IN ('available', 'unavailable')", name="ck_availability_status"),
    )

    def covers(self, start_date: date, end_date: date) -> bool:
        """Check if this block intersects the inclusive range."""
        return not (self.end_date < start_date or self.start_date > end_date)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "equipment_id": self.equipment_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "status": self.status,
        }

    def __repr__(self):
        return (
            f"<Availability(equipment_id={self.equipment_id}, "
            f"{self.start_date}..{self.end_date}, status='{self.status}')>"
        )


class Rating(Base):
    """User rating of an equipment item."""

    __tablename__ = "ratings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    equipment_id = Column(
        Integer, ForeignKey("equipment.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("equipment_id", "user_id", name="uq_rating_equipment_user"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_rating_range"),
    )

    user = relationship("User")

    def to_dict(self) -> dict:
        result = {
            "id": self.id,
            "equipment_id": self.equipment_id,
            "user_id": self.user_id,
            "rating": self.rating,
            "comment": self.comment,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if self.user:
            result["user_name"] = self.user.full_name
        return result

    def __repr__(self):
        return f"<Rating(id={self.id}, equipment_id={self.equipment_id}, rating={self.rating})>"
