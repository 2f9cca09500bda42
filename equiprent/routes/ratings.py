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

"""Equipment rating routes."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from equiprent.database import get_db
from equiprent.middleware.auth import get_current_user
from equiprent.models.user import User
from equiprent.routes.equipment import get_equipment_or_404
from equiprent.services import ratings as rating_service

router = APIRouter()


class RatingCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=2000)


class RatingUpdate(BaseModel):
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=2000)


@router.get("/api/equipment/{equipment_id}/ratings")
async def list_ratings(
    equipment_id: int,
    db: Session = Depends(get_db),
):
    """List ratings of an equipment item, newest first."""
    equipment = get_equipment_or_404(db, equipment_id)
    ratings = rating_service.list_ratings(db, equipment_id)
    return {
        "success": True,
        "average_rating": equipment.average_rating,
        "total_ratings": equipment.total_ratings,
        "ratings": [r.to_dict() for r in ratings],
    }


@router.post("/api/equipment/{equipment_id}/ratings", status_code=201)
async def add_rating(
    equipment_id: int,
    data: RatingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rating = rating_service.add_rating(db, current_user, equipment_id, data.rating, data.comment)
    return {
        "success": True,
        "rating": rating.to_dict(),
    }


@router.put("/api/ratings/{rating_id}")
async def update_rating(
    rating_id: int,
    data: RatingUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rating = rating_service.update_rating(db, rating_id, current_user, data.rating, data.comment)
    return {
        "success": True,
        "rating": rating.to_dict(),
    }


@router.delete("/api/ratings/{rating_id}")
async def delete_rating(
    rating_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rating_service.delete_rating(db, rating_id, current_user)
    return {
        "success": True,
        "message": "Rating deleted",
    }
