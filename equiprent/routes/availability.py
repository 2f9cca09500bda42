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

"""Availability calendar routes."""

from datetime import date
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, model_validator
from sqlalchemy.orm import Session

from equiprent.database import get_db
from equiprent.middleware.auth import get_current_user
from equiprent.models.equipment import AvailabilityStatus
from equiprent.models.user import User
from equiprent.routes.equipment import get_equipment_or_404, get_managed_equipment
from equiprent.services.availability import (
    get_equipment_availability,
    replace_equipment_availability,
)

router = APIRouter(prefix="/api/equipment")


class AvailabilityBlockIn(BaseModel):
    """One availability block."""

    start_date: date
    end_date: date
    status: AvailabilityStatus

    @model_validator(mode="after")
    def check_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class AvailabilityReplace(BaseModel):
    """Complete new set of availability blocks."""

    blocks: List[AvailabilityBlockIn]


@router.get("/{equipment_id}/availability")
async def get_availability(
    equipment_id: int,
    db: Session = Depends(get_db),
):
    """Get all availability blocks of an equipment item."""
    get_equipment_or_404(db, equipment_id)
    blocks = get_equipment_availability(db, equipment_id)

    return {
        "success": True,
        "equipment_id": equipment_id,
        "blocks": [b.to_dict() for b in blocks],
    }


@router.put("/{equipment_id}/availability")
async def replace_availability(
    equipment_id: int,
    data: AvailabilityReplace,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Replace every availability block of an equipment item (owner or admin)."""
    get_managed_equipment(db, equipment_id, current_user)

    blocks = replace_equipment_availability(
        db,
        equipment_id,
        [(b.start_date, b.end_date, b.status.value) for b in data.blocks],
    )

    return {
        "success": True,
        "equipment_id": equipment_id,
        "blocks": [b.to_dict() for b in blocks],
    }
