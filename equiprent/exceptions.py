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

"""Service-level errors, mapped to HTTP responses in equiprent.main."""

from typing import Any, Optional

from fastapi import status


class EquipRentError(Exception):
    """Base error raised by service functions."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, payload: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.payload = payload

    @property
    def detail(self) -> Any:
        if self.payload:
            return {"message": self.message, **self.payload}
        return self.message


class BadRequestError(EquipRentError):
    status_code = status.HTTP_400_BAD_REQUEST


class PermissionDeniedError(EquipRentError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(EquipRentError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(EquipRentError):
    status_code = status.HTTP_409_CONFLICT


class AuthenticationError(EquipRentError):
    status_code = status.HTTP_401_UNAUTHORIZED

