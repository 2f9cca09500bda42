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

from datetime import date, timedelta

from equiprent.models import Availability, Notification, RentalRequest, RentalStatus
from equiprent.services.rentals import check_rental_conflicts, compute_invoice

from tests.base import ApiTestCase, future


class RentalRequestTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.owner = self.create_user("owner@builder.io", role="PROFESSIONAL")
        self.renter = self.create_user("renter@builder.io")
        self.other = self.create_user("other@builder.io")
        self.equipment = self.create_equipment(self.owner, price=100.0, deposit_amount=50.0)
        self.owner_headers = self.auth(self.owner)
        self.renter_headers = self.auth(self.renter)

    def create_pending(self, start, end, user=None, headers=None):
        user = user or self.renter
        response = self.request_rental(user, self.equipment, start, end, headers=headers)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["rental"]

    def set_status(self, rental_id, new_status, headers):
        return self.client.put(
            f"/api/rentals/{rental_id}/status", json={"status": new_status}, headers=headers
        )

    # Creation
    def test_create_pending_request_notifies_owner(self):
        rental = self.create_pending(future(3), future(6))
        self.assertEqual(rental["status"], "PENDING")
        self.assertEqual(rental["equipment_owner_id"], self.owner.id)

        notifications = self.db.query(Notification).filter(Notification.user_id == self.owner.id).all()
        self.assertEqual(len(notifications), 1)
        self.assertEqual(notifications[0].reference_id, rental["id"])

    def test_overlapping_request_is_rejected_with_conflicts(self):
        first = self.create_pending(future(3), future(6))

        response = self.request_rental(self.other, self.equipment, future(5), future(8))
        self.assertEqual(response.status_code, 409)
        detail = response.json()["detail"]
        self.assertEqual([c["id"] for c in detail["conflicts"]], [first["id"]])
        self.assertEqual(self.db.query(RentalRequest).count(), 1)

    def test_overlap_is_inclusive_of_boundary_days(self):
        self.create_pending(future(3), future(6))
        response = self.request_rental(self.other, self.equipment, future(6), future(9))
        self.assertEqual(response.status_code, 409)

    def test_non_overlapping_requests_are_accepted(self):
        self.create_pending(future(3), future(6))
        self.create_pending(future(7), future(9), user=self.other, headers=self.auth(self.other))
        self.assertEqual(self.db.query(RentalRequest).count(), 2)

    def test_rejected_request_no_longer_blocks_dates(self):
        first = self.create_pending(future(3), future(6))
        self.assertEqual(self.set_status(first["id"], "REJECTED", self.owner_headers).status_code, 200)

        self.create_pending(future(3), future(6), user=self.other, headers=self.auth(self.other))

    def test_unavailable_equipment_cannot_be_requested(self):
        self.equipment.is_available = False
        self.db.commit()

        response = self.request_rental(self.renter, self.equipment, future(3), future(6))
        self.assertEqual(response.status_code, 409)

    def test_inactive_equipment_is_not_found(self):
        self.equipment.is_active = False
        self.db.commit()

        response = self.request_rental(self.renter, self.equipment, future(3), future(6))
        self.assertEqual(response.status_code, 404)

    def test_unavailable_block_prevents_request(self):
        self.db.add(
            Availability(
                equipment_id=self.equipment.id,
                start_date=future(5),
                end_date=future(10),
                status="unavailable",
            )
        )
        self.db.commit()

        response = self.request_rental(self.renter, self.equipment, future(2), future(5))
        self.assertEqual(response.status_code, 409)
        self.assertEqual(len(response.json()["detail"]["unavailable_blocks"]), 1)

    def test_schedule_day_marked_unavailable_prevents_request(self):
        self.equipment.availability_schedule = {future(4).isoformat(): False, future(5).isoformat(): True}
        self.db.commit()

        response = self.request_rental(self.renter, self.equipment, future(3), future(6))
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["detail"]["unavailable_days"], [future(4).isoformat()])

    def test_owner_cannot_rent_own_equipment(self):
        response = self.request_rental(self.owner, self.equipment, future(3), future(6), self.owner_headers)
        self.assertEqual(response.status_code, 400)

    def test_invalid_periods_are_rejected(self):
        same_day = self.request_rental(self.renter, self.equipment, future(3), future(3))
        self.assertEqual(same_day.status_code, 400)

        reversed_range = self.request_rental(self.renter, self.equipment, future(6), future(3))
        self.assertEqual(reversed_range.status_code, 400)

        past = self.request_rental(
            self.renter, self.equipment, date.today() - timedelta(days=3), future(2)
        )
        self.assertEqual(past.status_code, 400)

        too_long = self.request_rental(self.renter, self.equipment, future(1), future(400))
        self.assertEqual(too_long.status_code, 400)

    def test_minimum_rental_period(self):
        self.equipment.minimum_rental_period = 3
        self.db.commit()

        response = self.request_rental(self.renter, self.equipment, future(1), future(2))
        self.assertEqual(response.status_code, 400)

    # Status workflow
    def test_full_lifecycle_tracks_rented_flag(self):
        rental = self.create_pending(future(3), future(6))

        self.assertEqual(self.set_status(rental["id"], "APPROVED", self.owner_headers).status_code, 200)
        self.assertEqual(self.set_status(rental["id"], "ACTIVE", self.owner_headers).status_code, 200)
        self.assertTrue(self.refresh(self.equipment).is_rented)

        completed = self.set_status(rental["id"], "COMPLETED", self.renter_headers)
        self.assertEqual(completed.status_code, 200)
        self.assertEqual(completed.json()["rental"]["status"], "COMPLETED")
        self.assertFalse(self.refresh(self.equipment).is_rented)

        renter_notifications = (
            self.db.query(Notification).filter(Notification.user_id == self.renter.id).count()
        )
        self.assertEqual(renter_notifications, 3)

    def test_status_never_regresses_from_terminal_states(self):
        rental = self.create_pending(future(3), future(6))
        self.set_status(rental["id"], "APPROVED", self.owner_headers)
        self.set_status(rental["id"], "ACTIVE", self.owner_headers)
        self.set_status(rental["id"], "COMPLETED", self.owner_headers)

        for target in ("PENDING", "APPROVED", "ACTIVE", "REJECTED"):
            response = self.set_status(rental["id"], target, self.owner_headers)
            self.assertEqual(response.status_code, 409, target)

        rejected = self.create_pending(future(10), future(12))
        self.set_status(rejected["id"], "REJECTED", self.owner_headers)
        self.assertEqual(self.set_status(rejected["id"], "APPROVED", self.owner_headers).status_code, 409)

    def test_pending_cannot_skip_to_active(self):
        rental = self.create_pending(future(3), future(6))
        response = self.set_status(rental["id"], "ACTIVE", self.owner_headers)
        self.assertEqual(response.status_code, 409)

    def test_renter_cannot_approve_own_request(self):
        rental = self.create_pending(future(3), future(6))
        response = self.set_status(rental["id"], "APPROVED", self.renter_headers)
        self.assertEqual(response.status_code, 403)

    def test_unknown_status_is_rejected(self):
        rental = self.create_pending(future(3), future(6))
        response = self.set_status(rental["id"], "ARCHIVED", self.owner_headers)
        self.assertEqual(response.status_code, 422)

    # Cancel, listings, invoice
    def test_requester_cancels_pending_request(self):
        rental = self.create_pending(future(3), future(6))

        stranger = self.client.delete(f"/api/rentals/{rental['id']}", headers=self.auth(self.other))
        self.assertEqual(stranger.status_code, 403)

        response = self.client.delete(f"/api/rentals/{rental['id']}", headers=self.renter_headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.db.query(RentalRequest).count(), 0)
        self.assertEqual(
            self.db.query(Notification).filter(Notification.reference_id == rental["id"]).count(), 0
        )

    def test_approved_request_cannot_be_cancelled(self):
        rental = self.create_pending(future(3), future(6))
        self.set_status(rental["id"], "APPROVED", self.owner_headers)

        response = self.client.delete(f"/api/rentals/{rental['id']}", headers=self.renter_headers)
        self.assertEqual(response.status_code, 409)

    def test_listings_by_requester_owner_and_equipment(self):
        rental = self.create_pending(future(3), future(6))

        mine = self.client.get("/api/rentals", headers=self.renter_headers).json()
        self.assertEqual([r["id"] for r in mine["rentals"]], [rental["id"]])

        received = self.client.get("/api/rentals/received", headers=self.owner_headers).json()
        self.assertEqual([r["id"] for r in received["rentals"]], [rental["id"]])

        by_equipment = self.client.get(
            f"/api/equipment/{self.equipment.id}/rentals", headers=self.owner_headers
        )
        self.assertEqual(by_equipment.status_code, 200)
        self.assertEqual(
            self.client.get(
                f"/api/equipment/{self.equipment.id}/rentals", headers=self.renter_headers
            ).status_code,
            403,
        )

        approved_only = self.client.get(
            "/api/rentals", params={"status": "approved"}, headers=self.renter_headers
        ).json()
        self.assertEqual(approved_only["rentals"], [])

    def test_rental_visible_to_participants_only(self):
        rental = self.create_pending(future(3), future(6))
        url = f"/api/rentals/{rental['id']}"
        self.assertEqual(self.client.get(url, headers=self.renter_headers).status_code, 200)
        self.assertEqual(self.client.get(url, headers=self.owner_headers).status_code, 200)
        self.assertEqual(self.client.get(url, headers=self.auth(self.other)).status_code, 403)

    def test_invoice(self):
        rental = self.create_pending(future(3), future(6))
        invoice = self.client.get(
            f"/api/rentals/{rental['id']}/invoice", headers=self.renter_headers
        ).json()["invoice"]

        self.assertEqual(invoice["days"], 3)
        self.assertEqual(invoice["rental_cost"], 300.0)
        self.assertEqual(invoice["deposit_amount"], 50.0)
        self.assertEqual(invoice["total"], 350.0)

    def test_invoice_bills_at_least_one_day(self):
        rental = RentalRequest(
            equipment=self.equipment,
            user=self.renter,
            equipment_owner_id=self.owner.id,
            start_date=future(3),
            end_date=future(3),
        )
        self.assertEqual(compute_invoice(rental)["days"], 1)

    def test_conflict_check_ignores_finished_requests(self):
        for start, end, rental_status in (
            (future(1), future(4), RentalStatus.REJECTED.value),
            (future(2), future(5), RentalStatus.COMPLETED.value),
            (future(3), future(6), RentalStatus.ACTIVE.value),
        ):
            self.db.add(
                RentalRequest(
                    equipment_id=self.equipment.id,
                    user_id=self.renter.id,
                    equipment_owner_id=self.owner.id,
                    start_date=start,
                    end_date=end,
                    status=rental_status,
                )
            )
        self.db.commit()

        conflicts = check_rental_conflicts(self.db, self.equipment.id, future(2), future(3))
        self.assertEqual([c.status for c in conflicts], ["ACTIVE"])
