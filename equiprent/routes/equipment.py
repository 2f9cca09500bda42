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

"""Equipment management routes."""

import datetime
import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import or_
from sqlalchemy.orm import Session

from equiprent.database import get_db
from equiprent.middleware.auth import get_current_user, get_current_user_optional, require_lister
from equiprent.models.equipment import Equipment, MaintenanceRecord, MaintenanceType
from equiprent.models.user import User
from equiprent.services.availability import update_availability_schedule
from equiprent.utils.helpers import sanitize_input

logger = logging.getLogger(__name__)

router = APIRouter()


# Pydantic schemas
class EquipmentCreate(BaseModel):
    """Equipment creation request."""

    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    price: float = Field(ge=0)
    category: str = Field(min_length=1, max_length=100)
    location: Optional[str] = None
    image: Optional[str] = None
    specifications: Dict[str, str] = Field(default_factory=dict)
    is_available: bool = True
    minimum_rental_period: int = Field(default=1, ge=1)
    deposit_amount: float = Field(default=0.0, ge=0)


class EquipmentUpdate(BaseModel):
    """Equipment update request."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    location: Optional[str] = None
    image: Optional[str] = None
    specifications: Optional[Dict[str, str]] = None
    is_available: Optional[bool] = None
    is_active: Optional[bool] = None
    minimum_rental_period: Optional[int] = Field(default=None, ge=1)
    deposit_amount: Optional[float] = Field(default=None, ge=0)


class ScheduleUpdate(BaseModel):
    """Per-day availability map, ISO date -> available."""

    schedule: Dict[str, bool]


class MaintenanceCreate(BaseModel):
    """Maintenance record creation request."""

    date: datetime.date
    description: str = Field(min_length=1)
    cost: float = Field(default=0.0, ge=0)
    performed_by: str = ""
    type: MaintenanceType = MaintenanceType.PREVENTIVE


def get_equipment_or_404(db: Session, equipment_id: int) -> Equipment:
    equipment = db.query(Equipment).filter(Equipment.id == equipment_id).first()
    if not equipment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Equipment not found",
        )
    return equipment


def get_managed_equipment(db: Session, equipment_id: int, user: User) -> Equipment:
    """Fetch equipment the user may modify (owner or admin)."""
    equipment = get_equipment_or_404(db, equipment_id)
    if not (user.is_admin or equipment.owner_id == user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only manage your own equipment",
        )
    return equipment


# Equipment Routes
@router.get("/api/equipment")
async def list_equipment(
    category: Optional[str] = None,
    available: Optional[bool] = None,
    owner_id: Optional[int] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    search: Optional[str] = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    """List equipment with optional filters."""
    query = db.query(Equipment)

    if category:
        query = query.filter(Equipment.category == category)

    if available is not None:
        query = query.filter(Equipment.is_available == available)

    if owner_id:
        query = query.filter(Equipment.owner_id == owner_id)

    if min_price is not None:
        query = query.filter(Equipment.price >= min_price)

    if max_price is not None:
        query = query.filter(Equipment.price <= max_price)

    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Equipment.name.ilike(pattern),
                Equipment.description.ilike(pattern),
                Equipment.location.ilike(pattern),
            )
        )

    # Inactive listings are only visible to admins and their owners
    can_see_inactive = current_user is not None and (
        current_user.is_admin or (owner_id is not None and owner_id == current_user.id)
    )
    if not (include_inactive and can_see_inactive):
        query = query.filter(Equipment.is_active == True)

    equipment = query.order_by(Equipment.name, Equipment.id).all()

    return {
        "success": True,
        "equipment": [e.to_dict() for e in equipment],
    }


@router.get("/api/equipment/mine")
async def list_my_equipment(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List equipment owned by the current user, inactive included."""
    equipment = (
        db.query(Equipment)
        .filter(Equipment.owner_id == current_user.id)
        .order_by(Equipment.name, Equipment.id)
        .all()
    )
    return {
        "success": True,
        "equipment": [e.to_dict() for e in equipment],
    }


@router.get("/api/equipment/{equipment_id}")
async def get_equipment(
    equipment_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    """Get equipment details with maintenance history."""
    equipment = get_equipment_or_404(db, equipment_id)

    if not equipment.is_active and not (
        current_user and (current_user.is_admin or current_user.id == equipment.owner_id)
    ):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Equipment not found",
        )

    result = equipment.to_dict(include_maintenance=True)
    result["owner"] = (
        {
            "id": equipment.owner.id,
            "name": equipment.owner.full_name,
            "company_name": equipment.owner.company_name,
        }
        if equipment.owner
        else None
    )

    return {
        "success": True,
        "equipment": result,
    }


@router.post("/api/equipment", status_code=201)
async def create_equipment(
    data: EquipmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_lister),
):
    """Create new equipment (professional, business or admin accounts)."""
    equipment = Equipment(
        owner_id=current_user.id,
        name=sanitize_input(data.name, 255),
        description=sanitize_input(data.description, 10000) if data.description else None,
        price=data.price,
        category=sanitize_input(data.category, 100),
        location=sanitize_input(data.location, 255) if data.location else None,
        image=data.image,
        specifications={
            sanitize_input(k, 100): sanitize_input(v, 500) for k, v in data.specifications.items()
        },
        is_available=data.is_available,
        minimum_rental_period=data.minimum_rental_period,
        deposit_amount=data.deposit_amount,
    )
    db.add(equipment)
    db.commit()
    db.refresh(equipment)

    logger.info("Equipment %s created by user %s", equipment.id, current_user.id)

    return {
        "success": True,
        "equipment": equipment.to_dict(),
        "message": f"Equipment '{equipment.name}' created",
    }


@router.put("/api/equipment/{equipment_id}")
async def update_equipment(
    equipment_id: int,
    data: EquipmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update equipment (owner or admin)."""
    equipment = get_managed_equipment(db, equipment_id, current_user)

    if data.name is not None:
        equipment.name = sanitize_input(data.name, 255)

    if data.description is not None:
        equipment.description = sanitize_input(data.description, 10000) if data.description else None

    if data.price is not None:
        equipment.price = data.price

    if data.category is not None:
        equipment.category = sanitize_input(data.category, 100)

    if data.location is not None:
        equipment.location = sanitize_input(data.location, 255) if data.location else None

    if data.image is not None:
        equipment.image = data.image or None

    if data.specifications is not None:
        equipment.specifications = {
            sanitize_input(k, 100): sanitize_input(v, 500) for k, v in data.specifications.items()
        }

    if data.is_available is not None:
        equipment.is_available = data.is_available

    if data.is_active is not None:
        equipment.is_active = data.is_active

    if data.minimum_rental_period is not None:
        equipment.minimum_rental_period = data.minimum_rental_period

    if data.deposit_amount is not None:
        equipment.deposit_amount = data.deposit_amount

    db.commit()
    db.refresh(equipment)

    return {
        "success": True,
        "equipment": equipment.to_dict(),
        "message": f"Equipment '{equipment.name}' updated",
    }


@router.delete("/api/equipment/{equipment_id}")
async def delete_equipment(
    equipment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Delete equipment with its rental requests, availability, maintenance and ratings."""
    equipment = get_managed_equipment(db, equipment_id, current_user)
    name = equipment.name

    db.delete(equipment)
    db.commit()

    logger.info("Equipment %s deleted by user %s", equipment_id, current_user.id)

    return {
        "success": True,
        "message": f"Equipment '{name}' deleted",
    }


@router.put("/api/equipment/{equipment_id}/schedule")
async def update_equipment_schedule(
    equipment_id: int,
    data: ScheduleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Replace the per-day availability schedule (owner or admin)."""
    equipment = get_managed_equipment(db, equipment_id, current_user)
    equipment = update_availability_schedule(db, equipment, data.schedule)

    return {
        "success": True,
        "availability_schedule": equipment.availability_schedule,
    }


# Maintenance Routes
@router.get("/api/equipment/{equipment_id}/maintenance")
async def list_maintenance(
    equipment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List maintenance records with a cost summary (owner or admin)."""
    equipment = get_managed_equipment(db, equipment_id, current_user)
    records = equipment.maintenance_history

    total_cost = sum(r.cost or 0.0 for r in records)
    dates = [r.date for r in records if r.date]

    return {
        "success": True,
        "records": [r.to_dict() for r in records],
        "summary": {
            "count": len(records),
            "total_cost": round(total_cost, 2),
            "average_cost": round(total_cost / len(records), 2) if records else 0.0,
            "last_maintenance_date": max(dates).isoformat() if dates else None,
        },
    }


@router.post("/api/equipment/{equipment_id}/maintenance", status_code=201)
async def add_maintenance_record(
    equipment_id: int,
    data: MaintenanceCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Append a maintenance record (owner or admin)."""
    equipment = get_managed_equipment(db, equipment_id, current_user)

    record = MaintenanceRecord(
        equipment_id=equipment.id,
        date=data.date,
        description=sanitize_input(data.description, 5000),
        cost=data.cost,
        performed_by=sanitize_input(data.performed_by, 255),
        maintenance_type=data.type.value,
    )
    db.add(record)
    db.commit()
    db.refresh(record)

    return {
        "success": True,
        "record": record.to_dict(),
    }
