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

"""Availability calendar of equipment.

Two representations exist side by side: availability blocks (date ranges
stored in their own table and replaced wholesale on every edit) and the
per-day ``availability_schedule`` map stored on the equipment row.
"""

import logging
from datetime import date, timedelta
from typing import Dict, Iterable, List, Tuple

from sqlalchemy.orm import Session

from equiprent.exceptions import BadRequestError
from equiprent.models.equipment import Availability, AvailabilityStatus, Equipment
from equiprent.utils.helpers import parse_date_string

logger = logging.getLogger(__name__)

# (start_date, end_date, status)
AvailabilityBlock = Tuple[date, date, str]


def get_equipment_availability(db: Session, equipment_id: int) -> List[Availability]:
    """Return every availability block of an equipment item in insertion order."""
    return (
        db.query(Availability)
        .filter(Availability.equipment_id == equipment_id)
        .order_by(Availability.id)
        .all()
    )


def replace_equipment_availability(
    db: Session,
    equipment_id: int,
    blocks: Iterable[AvailabilityBlock],
) -> List[Availability]:
    """Replace all availability blocks of an equipment item.

    Existing blocks are deleted and the new ones inserted in a single
    transaction. Blocks are stored as given: no merging, no de-duplication.

    Raises:
        BadRequestError: a block ends before it starts or has an unknown status.
    """
    blocks = list(blocks)
    valid_statuses = {s.value for s in AvailabilityStatus}

    for start_date, end_date, block_status in blocks:
        if end_date < start_date:
            raise BadRequestError(
                f"Availability block {start_date.isoformat()} to {end_date.isoformat()} "
                "ends before it starts"
            )
        if block_status not in valid_statuses:
            raise BadRequestError(f"Invalid availability status: {block_status}")

    try:
        deleted = (
            db.query(Availability)
            .filter(Availability.equipment_id == equipment_id)
            .delete(synchronize_session=False)
        )

        new_blocks = [
            Availability(
                equipment_id=equipment_id,
                start_date=start_date,
                end_date=end_date,
                status=block_status,
            )
            for start_date, end_date, block_status in blocks
        ]
        db.add_all(new_blocks)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Failed to replace availability of equipment %s", equipment_id)
        raise

    logger.info(
        "Replaced availability of equipment %s: %d removed, %d added",
        equipment_id,
        deleted,
        len(new_blocks),
    )
    return get_equipment_availability(db, equipment_id)


def find_unavailable_blocks(
    db: Session, equipment_id: int, start_date: date, end_date: date
) -> List[Availability]:
    """Return the 'unavailable' blocks intersecting an inclusive date range."""
    return (
        db.query(Availability)
        .filter(
            Availability.equipment_id == equipment_id,
            Availability.status == AvailabilityStatus.UNAVAILABLE.value,
            Availability.start_date <= end_date,
            Availability.end_date >= start_date,
        )
        .order_by(Availability.start_date)
        .all()
    )


def find_unavailable_days(equipment: Equipment, start_date: date, end_date: date) -> List[date]:
    """Return the days of the range marked unavailable in the equipment's schedule."""
    schedule = equipment.availability_schedule or {}
    if not schedule:
        return []

    blocked = []
    current = start_date
    while current <= end_date:
        if schedule.get(current.isoformat()) is False:
            blocked.append(current)
        current += timedelta(days=1)
    return blocked


def normalize_schedule(schedule: Dict[str, bool]) -> Dict[str, bool]:
    """Validate and canonicalize a per-day schedule map.

    Raises:
        BadRequestError: a key is not an ISO date.
    """
    normalized = {}
    for key, available in schedule.items():
        day = parse_date_string(key)
        if day is None:
            raise BadRequestError(f"Invalid schedule date: {key}")
        normalized[day.isoformat()] = bool(available)
    return dict(sorted(normalized.items()))


def update_availability_schedule(
    db: Session, equipment: Equipment, schedule: Dict[str, bool]
) -> Equipment:
    """Overwrite the per-day availability schedule of an equipment item."""
    equipment.availability_schedule = normalize_schedule(schedule)
    db.commit()
    db.refresh(equipment)
    logger.info(
        "Updated availability schedule of equipment %s (%d days)",
        equipment.id,
        len(equipment.availability_schedule),
    )
    return equipment
