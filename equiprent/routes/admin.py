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

"""Admin routes for user, verification and system management."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from equiprent.database import get_db
from equiprent.middleware.auth import require_admin
from equiprent.models.auth import CronJob
from equiprent.models.user import User
from equiprent.services import users as user_service
from equiprent.services import verification as verification_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin")


class UserUpdate(BaseModel):
    """Admin user update request."""

    role: Optional[str] = None
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=50)
    company_name: Optional[str] = Field(default=None, max_length=255)


class UserStatusUpdate(BaseModel):
    """User status update request."""

    is_active: bool


class DocumentReview(BaseModel):
    """Verification document review."""

    status: str
    comments: Optional[str] = Field(default=None, max_length=2000)


class CronJobUpdate(BaseModel):
    """Cron job update request."""

    is_enabled: Optional[bool] = None


def _reject_self(user_id: int, current_user: User, action: str) -> None:
    if user_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot {action} your own account",
        )


# User Management Routes
@router.get("/users")
async def list_users(
    role: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """List all users, optionally filtered by role."""
    users = user_service.list_users(db, role)
    return {
        "success": True,
        "users": [u.to_dict() for u in users],
    }


@router.put("/users/{user_id}")
async def update_user(
    user_id: int,
    data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Update a user's role and profile fields."""
    if data.role is not None:
        _reject_self(user_id, current_user, "change the role of")

    user = user_service.update_user(db, user_id, data.model_dump(exclude_unset=True))
    return {
        "success": True,
        "user": user.to_dict(),
        "message": "User updated",
    }


@router.put("/users/{user_id}/status")
async def update_user_status(
    user_id: int,
    data: UserStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Activate or deactivate user (admin only)."""
    _reject_self(user_id, current_user, "change the status of")

    user = user_service.set_user_active(db, user_id, data.is_active)
    return {
        "success": True,
        "user": user.to_dict(),
        "message": f"User {'activated' if data.is_active else 'deactivated'}",
    }


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Delete a user and all related data."""
    _reject_self(user_id, current_user, "delete")

    counts = user_service.delete_user_and_related_data(db, user_id)
    logger.info("Admin %s deleted user %s", current_user.id, user_id)
    return {
        "success": True,
        "deleted": counts,
        "message": "User and related data deleted",
    }


@router.get("/stats")
async def get_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Marketplace counters."""
    return {
        "success": True,
        "stats": user_service.get_marketplace_stats(db),
    }


# Verification Review Routes
@router.get("/verification/documents")
async def list_verification_documents(
    doc_status: Optional[str] = Query("PENDING", alias="status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """List verification documents by status (all when status is empty)."""
    documents = verification_service.list_documents_by_status(db, doc_status or None)
    results = []
    for document in documents:
        item = document.to_dict()
        if document.user:
            item["user_email"] = document.user.email
            item["user_name"] = document.user.full_name
        results.append(item)

    return {
        "success": True,
        "documents": results,
    }


@router.put("/verification/documents/{document_id}")
async def review_verification_document(
    document_id: int,
    data: DocumentReview,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Approve or reject a verification document."""
    document = verification_service.review_document(
        db, document_id, current_user, data.status, data.comments
    )
    return {
        "success": True,
        "document": document.to_dict(),
        "message": f"Document {document.status.lower()}",
    }


# Cron Job Management Routes
@router.get("/cron-jobs")
async def list_cron_jobs(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """List all cron jobs."""
    jobs = db.query(CronJob).order_by(CronJob.job_key).all()
    return {
        "success": True,
        "jobs": [j.to_dict() for j in jobs],
    }


@router.put("/cron-jobs/{job_id}")
async def update_cron_job(
    job_id: int,
    data: CronJobUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Update cron job settings."""
    job = db.query(CronJob).filter(CronJob.id == job_id).first()
    if not job:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Cron job not found",
        )

    if data.is_enabled is not None:
        job.is_enabled = data.is_enabled

    db.commit()
    db.refresh(job)

    return {
        "success": True,
        "job": job.to_dict(),
        "message": f"Cron job '{job.job_name}' {'enabled' if job.is_enabled else 'disabled'}",
    }


@router.post("/cron-jobs/{job_id}/trigger")
async def trigger_cron_job(
    job_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Manually trigger a cron job."""
    from equiprent.services.scheduler import run_cron_job

    job = db.query(CronJob).filter(CronJob.id == job_id).first()
    if not job:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Cron job not found",
        )

    if not job.is_enabled:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot trigger disabled cron job",
        )

    try:
        result = await run_cron_job(job.job_key, db)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to run cron job: {str(e)}",
        )

    return {
        "success": True,
        "message": f"Cron job '{job.job_name}' triggered successfully",
        "result": result,
    }
