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

"""Rental request lifecycle.

Creation checks the requested range against the equipment's availability
calendar and against every other request holding the equipment, then inserts
the request in the same transaction. The equipment row is locked for the
duration so two concurrent submissions cannot both pass the overlap check.

Status changes follow ``STATUS_TRANSITIONS``:

    PENDING  -> APPROVED | REJECTED
    APPROVED -> ACTIVE | REJECTED
    ACTIVE   -> COMPLETED
"""

import logging
from datetime import date
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session, joinedload

from equiprent.config import get_settings
from equiprent.exceptions import BadRequestError, ConflictError, NotFoundError, PermissionDeniedError
from equiprent.models.equipment import Equipment
from equiprent.models.rental import BLOCKING_STATUSES, RentalRequest, RentalStatus
from equiprent.models.user import User
from equiprent.services.availability import find_unavailable_blocks, find_unavailable_days
from equiprent.services.notifications import delete_rental_notifications, queue_rental_notification
from equiprent.utils.helpers import sanitize_input

logger = logging.getLogger(__name__)

# Transitions only the equipment owner (or an admin) may perform
OWNER_TRANSITIONS = (
    RentalStatus.APPROVED.value,
    RentalStatus.REJECTED.value,
    RentalStatus.ACTIVE.value,
)


def _lock_equipment(db: Session, equipment_id: int) -> Optional[Equipment]:
    """Take the equipment write lock for the rest of the transaction.

    The no-op UPDATE comes first: SQLite ignores FOR UPDATE and only starts
    its write transaction on the first data-modifying statement, so a second
    writer blocks here until the first one commits or rolls back.
    """
    db.query(Equipment).filter(Equipment.id == equipment_id).update(
        {Equipment.updated_at: Equipment.updated_at}, synchronize_session=False
    )
    return (
        db.query(Equipment)
        .filter(Equipment.id == equipment_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def check_rental_conflicts(
    db: Session,
    equipment_id: int,
    start_date: date,
    end_date: date,
    statuses: Sequence[str] = BLOCKING_STATUSES,
    exclude_rental_id: Optional[int] = None,
) -> List[RentalRequest]:
    """Return requests on the equipment whose inclusive range overlaps the given one."""
    query = db.query(RentalRequest).filter(
        RentalRequest.equipment_id == equipment_id,
        RentalRequest.status.in_(list(statuses)),
        RentalRequest.start_date <= end_date,
        RentalRequest.end_date >= start_date,
    )

    if exclude_rental_id:
        query = query.filter(RentalRequest.id != exclude_rental_id)

    return [r for r in query.order_by(RentalRequest.start_date).all() if r.overlaps_with(start_date, end_date)]


def _conflict_info(conflicts: List[RentalRequest]) -> list:
    return [
        {
            "id": c.id,
            "start_date": c.start_date.isoformat(),
            "end_date": c.end_date.isoformat(),
            "status": c.status,
        }
        for c in conflicts
    ]


def validate_rental_period(equipment: Equipment, start_date: date, end_date: date) -> None:
    """Check the requested dates against global and per-equipment limits."""
    settings = get_settings()

    if end_date <= start_date:
        raise BadRequestError("End date must be after start date")

    if start_date < date.today():
        raise BadRequestError("Cannot create rental requests in the past")

    days = (end_date - start_date).days
    if days > settings.rental.max_duration_days:
        raise BadRequestError(
            f"Rental duration cannot exceed {settings.rental.max_duration_days} days"
        )

    if days < (equipment.minimum_rental_period or 1):
        raise BadRequestError(
            f"Minimum rental period for this equipment is {equipment.minimum_rental_period} days"
        )


def create_rental_request(
    db: Session,
    user: User,
    equipment_id: int,
    start_date: date,
    end_date: date,
    message: Optional[str] = None,
) -> RentalRequest:
    """Validate and insert a PENDING rental request.

    Raises:
        NotFoundError: equipment missing or inactive.
        BadRequestError: invalid period, or the user owns the equipment.
        ConflictError: equipment unavailable or already requested for the period.
    """
    settings = get_settings()

    try:
        equipment = _lock_equipment(db, equipment_id)

        if not equipment or not equipment.is_active:
            raise NotFoundError("Equipment not found or inactive")

        if equipment.owner_id == user.id:
            raise BadRequestError("You cannot rent your own equipment")

        if not equipment.is_available:
            raise ConflictError("This equipment is not available for rent")

        validate_rental_period(equipment, start_date, end_date)

        blocked_ranges = find_unavailable_blocks(db, equipment.id, start_date, end_date)
        blocked_days = find_unavailable_days(equipment, start_date, end_date)
        if blocked_ranges or blocked_days:
            raise ConflictError(
                "Equipment is unavailable for part of the requested period",
                {
                    "unavailable_blocks": [b.to_dict() for b in blocked_ranges],
                    "unavailable_days": [d.isoformat() for d in blocked_days],
                },
            )

        conflicts = check_rental_conflicts(db, equipment.id, start_date, end_date)
        if conflicts:
            logger.warning(
                "Rental request by user %s on equipment %s conflicts with %s",
                user.id,
                equipment.id,
                [c.id for c in conflicts],
            )
            raise ConflictError(
                "Rental request overlaps existing reservations",
                {"conflicts": _conflict_info(conflicts)},
            )

        rental = RentalRequest(
            equipment_id=equipment.id,
            user_id=user.id,
            equipment_owner_id=equipment.owner_id,
            start_date=start_date,
            end_date=end_date,
            status=RentalStatus.PENDING.value,
            message=sanitize_input(message, settings.rental.max_message_length) if message else None,
        )
        db.add(rental)
        db.flush()

        queue_rental_notification(db, rental, "created")
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(rental)
    logger.info(
        "Rental request %s created by user %s for equipment %s (%s to %s)",
        rental.id,
        user.id,
        equipment_id,
        start_date,
        end_date,
    )
    return rental


def get_rental_request(db: Session, rental_id: int) -> RentalRequest:
    rental = (
        db.query(RentalRequest)
        .options(joinedload(RentalRequest.equipment), joinedload(RentalRequest.user))
        .filter(RentalRequest.id == rental_id)
        .first()
    )
    if not rental:
        raise NotFoundError("Rental request not found")
    return rental


def get_rental_for_user(db: Session, rental_id: int, user: User) -> RentalRequest:
    """Fetch a rental request visible to the user (participant or admin)."""
    rental = get_rental_request(db, rental_id)
    if not (user.is_admin or rental.is_participant(user.id)):
        raise PermissionDeniedError("Cannot view this rental request")
    return rental


def update_rental_status(
    db: Session,
    rental_id: int,
    new_status: str,
    actor: User,
) -> RentalRequest:
    """Move a rental request to a new status.

    Raises:
        NotFoundError: unknown request.
        PermissionDeniedError: the actor may not perform this transition.
        ConflictError: illegal transition, or approval would double-book.
    """
    new_status = (new_status or "").upper()
    if new_status not in RentalStatus.__members__:
        raise BadRequestError(f"Invalid status: {new_status}")

    try:
        rental = get_rental_request(db, rental_id)
        equipment = _lock_equipment(db, rental.equipment_id)
        db.refresh(rental)

        if new_status in OWNER_TRANSITIONS:
            allowed = actor.is_admin or rental.equipment_owner_id == actor.id
        else:
            allowed = actor.is_admin or rental.is_participant(actor.id)
        if not allowed:
            raise PermissionDeniedError("You are not allowed to change this rental request")

        if not rental.can_transition_to(new_status):
            raise ConflictError(f"Cannot change status from {rental.status} to {new_status}")

        if new_status == RentalStatus.APPROVED.value:
            conflicts = check_rental_conflicts(
                db,
                rental.equipment_id,
                rental.start_date,
                rental.end_date,
                statuses=(RentalStatus.APPROVED.value, RentalStatus.ACTIVE.value),
                exclude_rental_id=rental.id,
            )
            if conflicts:
                raise ConflictError(
                    "Approving this request would overlap existing reservations",
                    {"conflicts": _conflict_info(conflicts)},
                )

        previous_status = rental.status
        rental.status = new_status

        if equipment is not None:
            if new_status == RentalStatus.ACTIVE.value:
                equipment.is_rented = True
            elif new_status == RentalStatus.COMPLETED.value:
                equipment.is_rented = False

        queue_rental_notification(db, rental, new_status)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(rental)
    logger.info(
        "Rental request %s: %s -> %s by user %s", rental.id, previous_status, new_status, actor.id
    )
    return rental


def cancel_rental_request(db: Session, rental_id: int, actor: User) -> None:
    """Delete a PENDING request. Only its author or an admin may cancel."""
    rental = get_rental_request(db, rental_id)

    if not (actor.is_admin or rental.user_id == actor.id):
        raise PermissionDeniedError("Cannot cancel this rental request")

    if rental.status != RentalStatus.PENDING.value:
        raise ConflictError("Only pending rental requests can be cancelled")

    delete_rental_notifications(db, [rental.id])
    db.delete(rental)
    db.commit()
    logger.info("Rental request %s cancelled by user %s", rental_id, actor.id)


def _list_query(db: Session, status_filter: Optional[str]):
    query = db.query(RentalRequest).options(
        joinedload(RentalRequest.equipment), joinedload(RentalRequest.user)
    )
    if status_filter:
        query = query.filter(RentalRequest.status == status_filter.upper())
    return query


def list_user_rentals(db: Session, user_id: int, status_filter: Optional[str] = None) -> List[RentalRequest]:
    """Requests submitted by a user."""
    return (
        _list_query(db, status_filter)
        .filter(RentalRequest.user_id == user_id)
        .order_by(RentalRequest.start_date.desc())
        .all()
    )


def list_owner_rentals(db: Session, owner_id: int, status_filter: Optional[str] = None) -> List[RentalRequest]:
    """Requests received on equipment owned by a user."""
    return (
        _list_query(db, status_filter)
        .filter(RentalRequest.equipment_owner_id == owner_id)
        .order_by(RentalRequest.start_date.desc())
        .all()
    )


def list_equipment_rentals(db: Session, equipment_id: int, status_filter: Optional[str] = None) -> List[RentalRequest]:
    return (
        _list_query(db, status_filter)
        .filter(RentalRequest.equipment_id == equipment_id)
        .order_by(RentalRequest.start_date)
        .all()
    )


def compute_invoice(rental: RentalRequest) -> dict:
    """Price a rental: billable days times the daily price, plus the deposit."""
    equipment = rental.equipment
    daily_price = equipment.price if equipment else 0.0
    deposit = equipment.deposit_amount if equipment else 0.0
    days = rental.rental_days
    rental_cost = round(days * daily_price, 2)

    return {
        "rental_request_id": rental.id,
        "equipment_id": rental.equipment_id,
        "equipment_name": equipment.name if equipment else None,
        "client_name": rental.user.full_name if rental.user else None,
        "client_email": rental.user.email if rental.user else None,
        "start_date": rental.start_date.isoformat(),
        "end_date": rental.end_date.isoformat(),
        "days": days,
        "daily_price": daily_price,
        "rental_cost": rental_cost,
        "deposit_amount": deposit,
        "total": round(rental_cost + deposit, 2),
        "status": rental.status,
    }
