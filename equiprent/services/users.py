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

"""User administration, account deletion and marketplace statistics."""

import logging
from typing import Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from equiprent.exceptions import BadRequestError, NotFoundError
from equiprent.models.auth import AuthToken, Notification
from equiprent.models.equipment import Availability, Equipment, MaintenanceRecord, Rating
from equiprent.models.rental import RentalRequest, RentalStatus
from equiprent.models.user import User, UserRole, normalize_role
from equiprent.models.verification import VerificationDocument, VerificationHistory
from equiprent.services.notifications import delete_rental_notifications
from equiprent.services.ratings import recompute_ratings
from equiprent.services.storage import delete_stored_file

logger = logging.getLogger(__name__)

# Profile fields a user may edit on their own account
PROFILE_FIELDS = ("first_name", "last_name", "phone", "company_name")


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def list_users(db: Session, role: Optional[str] = None) -> List[User]:
    """List users, optionally restricted to one role."""
    query = db.query(User)
    if role:
        normalized = normalize_role(role)
        if normalized is None:
            raise BadRequestError(f"Unknown role: {role}")
        query = query.filter(User.role == normalized)
    return query.order_by(User.last_name, User.first_name, User.id).all()


def update_profile(db: Session, user: User, changes: Dict[str, Optional[str]]) -> User:
    """Apply profile field changes. Unknown keys are ignored."""
    for field in PROFILE_FIELDS:
        if field in changes and changes[field] is not None:
            setattr(user, field, changes[field].strip())
    db.commit()
    db.refresh(user)
    return user


def update_user(db: Session, user_id: int, changes: Dict[str, Optional[str]]) -> User:
    """Admin update of a user's role and profile fields."""
    user = get_user(db, user_id)

    if changes.get("role") is not None:
        role = normalize_role(changes["role"])
        if role is None:
            raise BadRequestError(f"Unknown role: {changes['role']}")
        if role != user.role:
            logger.info("User %s role changed from %s to %s", user.id, user.role, role)
        user.role = role

    return update_profile(db, user, changes)


def set_user_active(db: Session, user_id: int, is_active: bool) -> User:
    """Activate or deactivate a user. Deactivation revokes every session."""
    user = get_user(db, user_id)
    user.is_active = is_active

    if not is_active:
        db.query(AuthToken).filter(AuthToken.user_id == user_id).update(
            {"is_revoked": True}, synchronize_session=False
        )

    db.commit()
    db.refresh(user)
    logger.info("User %s %s", user.id, "activated" if is_active else "deactivated")
    return user


def delete_user_and_related_data(db: Session, user_id: int) -> Dict[str, int]:
    """Delete a user and everything that references them, in one transaction.

    Removed, in order: rental requests made by the user or on the user's
    equipment, availability blocks, maintenance records and ratings of the
    user's equipment, the user's own ratings, notifications (the user's own
    and anyone's about the deleted requests), verification history and
    documents, auth tokens, the equipment, and the user row.
    Stored document files are removed from disk once the transaction commits.

    Returns:
        Number of deleted rows per collection.
    """
    user = get_user(db, user_id)

    equipment_ids = [
        row.id for row in db.query(Equipment.id).filter(Equipment.owner_id == user_id).all()
    ]
    # Equipment owned by others that this user rated; their averages change
    rated_equipment_ids = [
        row.equipment_id
        for row in db.query(Rating.equipment_id).filter(Rating.user_id == user_id).all()
        if row.equipment_id not in equipment_ids
    ]
    stored_files = [
        row.storage_path
        for row in db.query(VerificationDocument.storage_path)
        .filter(VerificationDocument.user_id == user_id)
        .all()
    ]

    counts = {}
    try:
        rental_filter = or_(
            RentalRequest.user_id == user_id,
            RentalRequest.equipment_owner_id == user_id,
        )
        if equipment_ids:
            rental_filter = or_(rental_filter, RentalRequest.equipment_id.in_(equipment_ids))
        rental_ids = [row.id for row in db.query(RentalRequest.id).filter(rental_filter).all()]
        counts["rental_requests"] = (
            db.query(RentalRequest).filter(rental_filter).delete(synchronize_session=False)
        )

        if equipment_ids:
            counts["availabilities"] = (
                db.query(Availability)
                .filter(Availability.equipment_id.in_(equipment_ids))
                .delete(synchronize_session=False)
            )
            counts["maintenance_records"] = (
                db.query(MaintenanceRecord)
                .filter(MaintenanceRecord.equipment_id.in_(equipment_ids))
                .delete(synchronize_session=False)
            )
            rating_filter = or_(Rating.user_id == user_id, Rating.equipment_id.in_(equipment_ids))
        else:
            counts["availabilities"] = 0
            counts["maintenance_records"] = 0
            rating_filter = Rating.user_id == user_id

        counts["ratings"] = db.query(Rating).filter(rating_filter).delete(synchronize_session=False)

        # Includes other users' notifications about the deleted requests
        counts["notifications"] = delete_rental_notifications(db, rental_ids) + (
            db.query(Notification)
            .filter(Notification.user_id == user_id)
            .delete(synchronize_session=False)
        )
        counts["verification_history"] = (
            db.query(VerificationHistory)
            .filter(VerificationHistory.user_id == user_id)
            .delete(synchronize_session=False)
        )
        counts["verification_documents"] = (
            db.query(VerificationDocument)
            .filter(VerificationDocument.user_id == user_id)
            .delete(synchronize_session=False)
        )
        # Documents this user reviewed stay, without a reviewer
        db.query(VerificationDocument).filter(VerificationDocument.verified_by == user_id).update(
            {"verified_by": None}, synchronize_session=False
        )
        counts["auth_tokens"] = (
            db.query(AuthToken).filter(AuthToken.user_id == user_id).delete(synchronize_session=False)
        )
        counts["equipment"] = (
            db.query(Equipment).filter(Equipment.owner_id == user_id).delete(synchronize_session=False)
        )

        recompute_ratings(db, rated_equipment_ids)

        db.delete(user)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Failed to delete user %s", user_id)
        raise

    counts["users"] = 1

    for storage_path in stored_files:
        delete_stored_file(storage_path)

    logger.info("Deleted user %s and related data: %s", user_id, counts)
    return counts


def get_marketplace_stats(db: Session) -> dict:
    """Counts of users by role, equipment state and rental requests by status."""
    users_by_role = {role.value: 0 for role in UserRole}
    for role, count in db.query(User.role, func.count(User.id)).group_by(User.role).all():
        users_by_role[role] = count

    rentals_by_status = {s.value: 0 for s in RentalStatus}
    for rental_status, count in (
        db.query(RentalRequest.status, func.count(RentalRequest.id))
        .group_by(RentalRequest.status)
        .all()
    ):
        rentals_by_status[rental_status] = count

    equipment_total = db.query(func.count(Equipment.id)).scalar() or 0
    equipment_available = (
        db.query(func.count(Equipment.id))
        .filter(Equipment.is_available == True, Equipment.is_active == True)
        .scalar()
        or 0
    )
    equipment_rented = (
        db.query(func.count(Equipment.id)).filter(Equipment.is_rented == True).scalar() or 0
    )

    return {
        "users": {
            "total": sum(users_by_role.values()),
            "by_role": users_by_role,
        },
        "equipment": {
            "total": equipment_total,
            "available": equipment_available,
            "rented": equipment_rented,
        },
        "rental_requests": {
            "total": sum(rentals_by_status.values()),
            "by_status": rentals_by_status,
        },
    }
