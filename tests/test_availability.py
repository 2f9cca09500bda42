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

from equiprent.exceptions import BadRequestError
from equiprent.models import Availability
from equiprent.services.availability import (
    get_equipment_availability,
    replace_equipment_availability,
)

from tests.base import ApiTestCase, future


class AvailabilityTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.owner = self.create_user("owner@builder.io", role="BUSINESS")
        self.equipment = self.create_equipment(self.owner)
        self.url = f"/api/equipment/{self.equipment.id}/availability"

    def blocks_payload(self, *ranges):
        return {
            "blocks": [
                {"start_date": start.isoformat(), "end_date": end.isoformat(), "status": block_status}
                for start, end, block_status in ranges
            ]
        }

    def test_replace_then_get_returns_exactly_the_blocks(self):
        ranges = (
            (future(10), future(12), "unavailable"),
            (future(1), future(5), "available"),
            # duplicates are stored as given
            (future(1), future(5), "available"),
            (future(20), future(20), "unavailable"),
        )
        response = self.client.put(
            self.url, json=self.blocks_payload(*ranges), headers=self.auth(self.owner)
        )
        self.assertEqual(response.status_code, 200)

        blocks = self.client.get(self.url).json()["blocks"]
        self.assertEqual(
            [(b["start_date"], b["end_date"], b["status"]) for b in blocks],
            [(s.isoformat(), e.isoformat(), st) for s, e, st in ranges],
        )

    def test_replace_discards_previous_blocks(self):
        headers = self.auth(self.owner)
        self.client.put(
            self.url,
            json=self.blocks_payload((future(1), future(3), "unavailable")),
            headers=headers,
        )
        self.client.put(
            self.url,
            json=self.blocks_payload((future(7), future(9), "available")),
            headers=headers,
        )

        blocks = self.client.get(self.url).json()["blocks"]
        self.assertEqual(len(blocks), 1)
        self.assertEqual(blocks[0]["start_date"], future(7).isoformat())

    def test_replace_with_empty_set_clears_calendar(self):
        headers = self.auth(self.owner)
        self.client.put(
            self.url,
            json=self.blocks_payload((future(1), future(3), "unavailable")),
            headers=headers,
        )
        response = self.client.put(self.url, json={"blocks": []}, headers=headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get(self.url).json()["blocks"], [])

    def test_invalid_block_rejects_whole_call(self):
        headers = self.auth(self.owner)
        self.client.put(
            self.url,
            json=self.blocks_payload((future(1), future(3), "unavailable")),
            headers=headers,
        )

        reversed_range = self.client.put(
            self.url,
            json=self.blocks_payload(
                (future(4), future(6), "available"),
                (future(9), future(8), "available"),
            ),
            headers=headers,
        )
        self.assertEqual(reversed_range.status_code, 422)

        bad_status = self.client.put(
            self.url,
            json=self.blocks_payload((future(4), future(6), "maybe")),
            headers=headers,
        )
        self.assertEqual(bad_status.status_code, 422)

        blocks = self.client.get(self.url).json()["blocks"]
        self.assertEqual(
            [(b["start_date"], b["status"]) for b in blocks],
            [(future(1).isoformat(), "unavailable")],
        )

    def test_only_owner_or_admin_can_replace(self):
        stranger = self.create_user("stranger@builder.io", role="PROFESSIONAL")
        response = self.client.put(
            self.url,
            json=self.blocks_payload((future(1), future(3), "unavailable")),
            headers=self.auth(stranger),
        )
        self.assertEqual(response.status_code, 403)

    def test_unknown_equipment_is_not_found(self):
        self.assertEqual(self.client.get("/api/equipment/9999/availability").status_code, 404)

    def test_service_validates_before_deleting(self):
        replace_equipment_availability(
            self.db, self.equipment.id, [(future(1), future(2), "available")]
        )
        with self.assertRaises(BadRequestError):
            replace_equipment_availability(
                self.db,
                self.equipment.id,
                [(future(5), future(6), "available"), (future(3), future(1), "available")],
            )

        blocks = get_equipment_availability(self.db, self.equipment.id)
        self.assertEqual([(b.start_date, b.end_date) for b in blocks], [(future(1), future(2))])
        self.assertEqual(self.db.query(Availability).count(), 1)

    def test_single_day_block_is_accepted_and_blocks_that_day(self):
        day = future(7)
        response = self.client.put(
            self.url,
            json=self.blocks_payload((day, day, "unavailable")),
            headers=self.auth(self.owner),
        )
        self.assertEqual(response.status_code, 200)

        renter = self.create_user("renter@builder.io")
        self.assertEqual(
            self.request_rental(renter, self.equipment, future(5), day).status_code, 409
        )
        self.assertEqual(
            self.request_rental(renter, self.equipment, future(8), future(10)).status_code, 201
        )
