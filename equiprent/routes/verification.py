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

"""Verification document routes for account holders."""

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from equiprent.database import get_db
from equiprent.middleware.auth import get_current_user
from equiprent.models.user import User
from equiprent.services import verification as verification_service
from equiprent.services.storage import media_type_for, resolve_stored_file

router = APIRouter(prefix="/api/verification")


@router.post("/documents", status_code=201)
async def upload_document(
    document_type: str = Form(...),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Upload a PDF, JPEG or PNG document for review."""
    document = await verification_service.upload_document(db, current_user, file, document_type)
    return {
        "success": True,
        "document": document.to_dict(),
        "verification_status": current_user.verification_status,
    }


@router.get("/documents")
async def list_my_documents(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List own documents, newest first."""
    documents = verification_service.list_user_documents(db, current_user.id)
    return {
        "success": True,
        "verification_status": current_user.verification_status,
        "documents": [d.to_dict() for d in documents],
    }


@router.get("/history")
async def list_my_history(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List own verification events, newest first."""
    history = verification_service.list_user_history(db, current_user.id)
    return {
        "success": True,
        "history": [h.to_dict() for h in history],
    }


@router.get("/documents/{document_id}/download")
async def download_document(
    document_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Download a stored document (its owner or an admin)."""
    document = verification_service.get_document_for_user(db, document_id, current_user)
    path = resolve_stored_file(document.storage_path)
    return FileResponse(path, media_type=media_type_for(path.name), filename=document.name)
