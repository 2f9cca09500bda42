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

"""Equipment ratings and the denormalized average kept on equipment."""

import logging
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from equiprent.exceptions import BadRequestError, NotFoundError, PermissionDeniedError
from equiprent.models.equipment import Equipment, Rating
from equiprent.models.user import User
from equiprent.utils.helpers import sanitize_input

logger = logging.getLogger(__name__)


def _check_value(value: int) -> None:
    if value < 1 or value > 5:
        raise BadRequestError("Rating must be between 1 and 5")


def recompute_equipment_rating(db: Session, equipment_id: int) -> None:
    """Refresh average_rating and total_ratings of one equipment item. The caller commits."""
    average, count = (
        db.query(func.avg(Rating.rating), func.count(Rating.id))
        .filter(Rating.equipment_id == equipment_id)
        .one()
    )
    db.query(Equipment).filter(Equipment.id == equipment_id).update(
        {
            "average_rating": round(float(average), 2) if average is not None else 0.0,
            "total_ratings": count or 0,
        },
        synchronize_session=False,
    )


def recompute_ratings(db: Session, equipment_ids: Iterable[int]) -> None:
    for equipment_id in set(equipment_ids):
        recompute_equipment_rating(db, equipment_id)


def list_ratings(db: Session, equipment_id: int) -> List[Rating]:
    return (
        db.query(Rating)
        .options(joinedload(Rating.user))
        .filter(Rating.equipment_id == equipment_id)
        .order_by(Rating.created_at.desc(), Rating.id.desc())
        .all()
    )


def add_rating(
    db: Session, user: User, equipment_id: int, value: int, comment: Optional[str] = None
) -> Rating:
    """Rate an equipment item. One rating per user; owners cannot rate their own."""
    _check_value(value)

    equipment = db.query(Equipment).filter(Equipment.id == equipment_id).first()
    if not equipment:
        raise NotFoundError("Equipment not found")

    if equipment.owner_id == user.id:
        raise BadRequestError("You cannot rate your own equipment")

    existing = (
        db.query(Rating)
        .filter(Rating.equipment_id == equipment_id, Rating.user_id == user.id)
        .first()
    )
    if existing:
        raise BadRequestError("You have already rated this equipment")

    rating = Rating(
        equipment_id=equipment_id,
        user_id=user.id,
        rating=value,
        comment=sanitize_input(comment) if comment else None,
    )
    db.add(rating)
    db.flush()
    recompute_equipment_rating(db, equipment_id)
    db.commit()
    db.refresh(rating)

    logger.info("User %s rated equipment %s: %s", user.id, equipment_id, value)
    return rating


def _get_editable_rating(db: Session, rating_id: int, user: User) -> Rating:
    rating = db.query(Rating).filter(Rating.id == rating_id).first()
    if not rating:
        raise NotFoundError("Rating not found")
    if not (user.is_admin or rating.user_id == user.id):
        raise PermissionDeniedError("Cannot modify this rating")
    return rating


def update_rating(
    db: Session,
    rating_id: int,
    user: User,
    value: Optional[int] = None,
    comment: Optional[str] = None,
) -> Rating:
    rating = _get_editable_rating(db, rating_id, user)

    if value is not None:
        _check_value(value)
        rating.rating = value
    if comment is not None:
        rating.comment = sanitize_input(comment)

    db.flush()
    recompute_equipment_rating(db, rating.equipment_id)
    db.commit()
    db.refresh(rating)
    return rating


def delete_rating(db: Session, rating_id: int, user: User) -> None:
    rating = _get_editable_rating(db, rating_id, user)
    equipment_id = rating.equipment_id

    db.delete(rating)
    db.flush()
    recompute_equipment_rating(db, equipment_id)
    db.commit()

    logger.info("Rating %s on equipment %s deleted by user %s", rating_id, equipment_id, user.id)
