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

"""Verification document and audit trail models."""

import enum
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from equiprent.database import Base


class DocumentStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class VerificationAction(str, enum.Enum):
    UPLOAD = "UPLOAD"
    VERIFY = "VERIFY"
    REJECT = "REJECT"


class VerificationDocument(Base):
    """Identity or business document uploaded for admin review."""

    __tablename__ = "verification_documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)  # original filename
    document_type = Column(String(100), nullable=False)  # ID_CARD, KBIS, INSURANCE...
    file_type = Column(String(20), nullable=False)  # PDF, IMAGE, OTHER
    storage_path = Column(String(500), nullable=False)
    status = Column(String(20), nullable=False, default=DocumentStatus.PENDING.value, index=True)
    upload_date = Column(DateTime, nullable=False, default=datetime.utcnow)
    verified_at = Column(DateTime, nullable=True)
    verified_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    comments = Column(Text, nullable=True)

    user = relationship("User", foreign_keys=[user_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "document_type": self.document_type,
            "file_type": self.file_type,
            "status": self.status,
            "upload_date": self.upload_date.isoformat() if self.upload_date else None,
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
            "verified_by": self.verified_by,
            "comments": self.comments,
        }

    def __repr__(self):
        return f"<VerificationDocument(id={self.id}, user_id={self.user_id}, status='{self.status}')>"


class VerificationHistory(Base):
    """Append-only audit trail of verification events."""

    __tablename__ = "verification_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    document_id = Column(
        Integer, ForeignKey("verification_documents.id", ondelete="SET NULL"), nullable=True
    )
    action = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False)
    timestamp = Column(DateTime, nullable=False, default=datetime.utcnow)
    comments = Column(Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "document_id": self.document_id,
            "action": self.action,
            "status": self.status,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "comments": self.comments,
        }

    def __repr__(self):
        return f"<VerificationHistory(id={self.id}, action='{self.action}')>"
