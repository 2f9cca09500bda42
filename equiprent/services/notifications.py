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

"""In-app notifications for rental and verification events."""

from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from equiprent.models.auth import Notification
from equiprent.models.rental import RentalRequest, RentalStatus
from equiprent.models.verification import DocumentStatus, VerificationDocument

RENTAL_REFERENCE = "rental_request"

_STATUS_MESSAGES = {
    RentalStatus.APPROVED.value: "Your rental request for {equipment} has been approved",
    RentalStatus.REJECTED.value: "Your rental request for {equipment} has been rejected",
    RentalStatus.ACTIVE.value: "Your rental of {equipment} has started",
    RentalStatus.COMPLETED.value: "The rental of {equipment} is completed",
}


def queue_notification(
    db: Session,
    user_id: int,
    notification_type: str,
    message: str,
    reference_type: Optional[str] = None,
    reference_id: Optional[int] = None,
) -> Notification:
    """Add a notification to the session. The caller commits."""
    notification = Notification(
        user_id=user_id,
        notification_type=notification_type,
        message=message,
        reference_type=reference_type,
        reference_id=reference_id,
    )
    db.add(notification)
    return notification


def queue_rental_notification(db: Session, rental: RentalRequest, event: str) -> None:
    """Notify the other party of a rental request event.

    Args:
        db: Database session
        rental: Rental request
        event: 'created' or one of the rental statuses
    """
    equipment_name = rental.equipment.name if rental.equipment else f"#{rental.equipment_id}"

    if event == "created":
        queue_notification(
            db,
            rental.equipment_owner_id,
            "rental_request_created",
            f"New rental request for {equipment_name} "
            f"({rental.start_date.isoformat()} to {rental.end_date.isoformat()})",
            RENTAL_REFERENCE,
            rental.id,
        )
        return

    template = _STATUS_MESSAGES.get(event)
    if template is None:
        return

    queue_notification(
        db,
        rental.user_id,
        f"rental_request_{event.lower()}",
        template.format(equipment=equipment_name),
        RENTAL_REFERENCE,
        rental.id,
    )


def delete_rental_notifications(db: Session, rental_ids: Iterable[int]) -> int:
    """Drop every user's notifications pointing at the given rental requests."""
    rental_ids = list(rental_ids)
    if not rental_ids:
        return 0
    return (
        db.query(Notification)
        .filter(
            Notification.reference_type == RENTAL_REFERENCE,
            Notification.reference_id.in_(rental_ids),
        )
        .delete(synchronize_session=False)
    )


def queue_verification_notification(db: Session, document: VerificationDocument) -> None:
    """Notify a user that one of their documents was reviewed."""
    verdict = "approved" if document.status == DocumentStatus.APPROVED.value else "rejected"
    message = f"Your document {document.name} has been {verdict}"
    if document.comments:
        message = f"{message}: {document.comments}"
    queue_notification(
        db,
        document.user_id,
        f"verification_{verdict}",
        message,
        "verification_document",
        document.id,
    )


def list_notifications(db: Session, user_id: int, unread_only: bool = False) -> List[Notification]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read == False)
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()


def mark_all_read(db: Session, user_id: int) -> int:
    count = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read == False)
        .update({"is_read": True}, synchronize_session=False)
    )
    db.commit()
    return count
