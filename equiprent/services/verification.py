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

"""Verification documents: upload, admin review and audit history."""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import UploadFile
from sqlalchemy.orm import Session, joinedload

from equiprent.exceptions import BadRequestError, ConflictError, NotFoundError, PermissionDeniedError
from equiprent.models.user import User, VerificationStatus
from equiprent.models.verification import (
    DocumentStatus,
    VerificationAction,
    VerificationDocument,
    VerificationHistory,
)
from equiprent.services.notifications import queue_verification_notification
from equiprent.services.storage import delete_stored_file, save_verification_file
from equiprent.utils.helpers import sanitize_input

logger = logging.getLogger(__name__)

_REVIEW_ACTIONS = {
    DocumentStatus.APPROVED.value: VerificationAction.VERIFY.value,
    DocumentStatus.REJECTED.value: VerificationAction.REJECT.value,
}


async def upload_document(
    db: Session, user: User, file: UploadFile, document_type: str
) -> VerificationDocument:
    """Store an uploaded file and record it as a PENDING document.

    The user's verification status moves to PENDING until an admin reviews it.
    """
    document_type = sanitize_input(document_type, 100).upper()
    if not document_type:
        raise BadRequestError("Document type is required")

    storage_path, file_type = await save_verification_file(file, user.id)

    try:
        document = VerificationDocument(
            user_id=user.id,
            name=sanitize_input(file.filename, 255) or "document",
            document_type=document_type,
            file_type=file_type,
            storage_path=storage_path,
            status=DocumentStatus.PENDING.value,
        )
        db.add(document)
        db.flush()

        db.add(
            VerificationHistory(
                user_id=user.id,
                document_id=document.id,
                action=VerificationAction.UPLOAD.value,
                status=DocumentStatus.PENDING.value,
            )
        )
        user.verification_status = VerificationStatus.PENDING.value
        db.commit()
    except Exception:
        db.rollback()
        delete_stored_file(storage_path)
        raise

    db.refresh(document)
    logger.info("User %s uploaded %s document %s", user.id, document_type, document.id)
    return document


def list_user_documents(db: Session, user_id: int) -> List[VerificationDocument]:
    return (
        db.query(VerificationDocument)
        .filter(VerificationDocument.user_id == user_id)
        .order_by(VerificationDocument.upload_date.desc(), VerificationDocument.id.desc())
        .all()
    )


def list_user_history(db: Session, user_id: int) -> List[VerificationHistory]:
    return (
        db.query(VerificationHistory)
        .filter(VerificationHistory.user_id == user_id)
        .order_by(VerificationHistory.timestamp.desc(), VerificationHistory.id.desc())
        .all()
    )


def list_documents_by_status(db: Session, status_filter: Optional[str] = None) -> List[VerificationDocument]:
    """Admin queue of documents, oldest first so the review order is stable."""
    query = db.query(VerificationDocument).options(joinedload(VerificationDocument.user))
    if status_filter:
        status_filter = status_filter.upper()
        if status_filter not in DocumentStatus.__members__:
            raise BadRequestError(f"Invalid document status: {status_filter}")
        query = query.filter(VerificationDocument.status == status_filter)
    return query.order_by(VerificationDocument.upload_date, VerificationDocument.id).all()


def get_document_for_user(db: Session, document_id: int, user: User) -> VerificationDocument:
    document = db.query(VerificationDocument).filter(VerificationDocument.id == document_id).first()
    if not document:
        raise NotFoundError("Document not found")
    if not (user.is_admin or document.user_id == user.id):
        raise PermissionDeniedError("Cannot access this document")
    return document


def review_document(
    db: Session,
    document_id: int,
    reviewer: User,
    new_status: str,
    comments: Optional[str] = None,
) -> VerificationDocument:
    """Approve or reject a document and propagate the verdict to its owner.

    Raises:
        BadRequestError: status is not APPROVED or REJECTED.
        NotFoundError: unknown document.
        ConflictError: the document was already reviewed.
    """
    new_status = (new_status or "").upper()
    action = _REVIEW_ACTIONS.get(new_status)
    if action is None:
        raise BadRequestError("Status must be APPROVED or REJECTED")

    document = (
        db.query(VerificationDocument)
        .options(joinedload(VerificationDocument.user))
        .filter(VerificationDocument.id == document_id)
        .first()
    )
    if not document:
        raise NotFoundError("Document not found")

    if document.status != DocumentStatus.PENDING.value:
        raise ConflictError(f"Document already {document.status.lower()}")

    comments = sanitize_input(comments) if comments else None

    try:
        document.status = new_status
        document.verified_at = datetime.utcnow()
        document.verified_by = reviewer.id
        document.comments = comments

        db.add(
            VerificationHistory(
                user_id=document.user_id,
                document_id=document.id,
                action=action,
                status=new_status,
                comments=comments,
            )
        )
        if document.user:
            document.user.verification_status = new_status

        queue_verification_notification(db, document)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(document)
    logger.info(
        "Document %s of user %s %s by admin %s",
        document.id,
        document.user_id,
        new_status.lower(),
        reviewer.id,
    )
    return document
