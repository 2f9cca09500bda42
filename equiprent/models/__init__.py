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

"""Database models for EquipRent."""

from equiprent.models.user import User, UserRole, VerificationStatus
from equiprent.models.auth import AuthToken, CronJob, Notification
from equiprent.models.equipment import (
    Availability,
    AvailabilityStatus,
    Equipment,
    MaintenanceRecord,
    MaintenanceType,
    Rating,
)
from equiprent.models.rental import RentalRequest, RentalStatus
from equiprent.models.verification import (
    DocumentStatus,
    VerificationAction,
    VerificationDocument,
    VerificationHistory,
)

__all__ = [
    "User",
    "UserRole",
    "VerificationStatus",
    "AuthToken",
    "CronJob",
    "Notification",
    "Availability",
    "AvailabilityStatus",
    "Equipment",
    "MaintenanceRecord",
    "MaintenanceType",
    "Rating",
    "RentalRequest",
    "RentalStatus",
    "DocumentStatus",
    "VerificationAction",
    "VerificationDocument",
    "VerificationHistory",
]
