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

"""Rental request routes."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from equiprent.database import get_db
from equiprent.middleware.auth import get_current_user
from equiprent.models.rental import RentalStatus
from equiprent.models.user import User
from equiprent.routes.equipment import get_managed_equipment
from equiprent.services import rentals as rental_service

router = APIRouter()


class RentalCreate(BaseModel):
    """Rental request creation."""

    equipment_id: int
    start_date: date
    end_date: date
    message: Optional[str] = Field(default=None, max_length=5000)


class RentalStatusUpdate(BaseModel):
    """Rental request status change."""

    status: RentalStatus


@router.post("/api/rentals", status_code=201)
async def create_rental(
    data: RentalCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Submit a rental request."""
    rental = rental_service.create_rental_request(
        db,
        current_user,
        equipment_id=data.equipment_id,
        start_date=data.start_date,
        end_date=data.end_date,
        message=data.message,
    )

    return {
        "success": True,
        "rental": rental.to_dict(),
        "message": "Rental request submitted",
    }


@router.get("/api/rentals")
async def list_my_rentals(
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List rental requests made by the current user."""
    rentals = rental_service.list_user_rentals(db, current_user.id, status)
    return {
        "success": True,
        "rentals": [r.to_dict() for r in rentals],
    }


@router.get("/api/rentals/received")
async def list_received_rentals(
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List rental requests on equipment owned by the current user."""
    rentals = rental_service.list_owner_rentals(db, current_user.id, status)
    return {
        "success": True,
        "rentals": [r.to_dict() for r in rentals],
    }


@router.get("/api/equipment/{equipment_id}/rentals")
async def list_equipment_rentals(
    equipment_id: int,
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List rental requests on one equipment item (owner or admin)."""
    get_managed_equipment(db, equipment_id, current_user)
    rentals = rental_service.list_equipment_rentals(db, equipment_id, status)
    return {
        "success": True,
        "rentals": [r.to_dict() for r in rentals],
    }


@router.get("/api/rentals/{rental_id}")
async def get_rental(
    rental_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get a rental request (participants and admins)."""
    rental = rental_service.get_rental_for_user(db, rental_id, current_user)
    return {
        "success": True,
        "rental": rental.to_dict(),
    }


@router.put("/api/rentals/{rental_id}/status")
async def update_rental_status(
    rental_id: int,
    data: RentalStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Approve, reject, start or complete a rental request."""
    rental = rental_service.update_rental_status(db, rental_id, data.status.value, current_user)
    return {
        "success": True,
        "rental": rental.to_dict(),
        "message": f"Rental request {rental.status.lower()}",
    }


@router.delete("/api/rentals/{rental_id}")
async def cancel_rental(
    rental_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Cancel a pending rental request."""
    rental_service.cancel_rental_request(db, rental_id, current_user)
    return {
        "success": True,
        "message": "Rental request cancelled",
    }


@router.get("/api/rentals/{rental_id}/invoice")
async def get_rental_invoice(
    rental_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Price breakdown of a rental request."""
    rental = rental_service.get_rental_for_user(db, rental_id, current_user)
    return {
        "success": True,
        "invoice": rental_service.compute_invoice(rental),
    }
