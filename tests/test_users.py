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

from equiprent.models import (
    Availability,
    AuthToken,
    Equipment,
    MaintenanceRecord,
    Notification,
    Rating,
    RentalRequest,
    User,
    VerificationDocument,
    VerificationHistory,
)
from equiprent.services.users import delete_user_and_related_data

from tests.base import ApiTestCase, future


class UserAdministrationTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.admin = self.create_user("admin@builder.io", role="ADMIN")
        self.admin_headers = self.auth(self.admin)

    def test_list_users_by_role(self):
        self.create_user("pro@builder.io", role="PROFESSIONAL")
        self.create_user("client@builder.io")

        everyone = self.client.get("/api/admin/users", headers=self.admin_headers).json()
        self.assertEqual(len(everyone["users"]), 3)

        pros = self.client.get(
            "/api/admin/users", params={"role": "professional"}, headers=self.admin_headers
        ).json()
        self.assertEqual([u["email"] for u in pros["users"]], ["pro@builder.io"])

    def test_admin_routes_require_admin(self):
        client = self.create_user("client@builder.io")
        response = self.client.get("/api/admin/users", headers=self.auth(client))
        self.assertEqual(response.status_code, 403)

    def test_update_user_normalizes_role(self):
        user = self.create_user("client@builder.io")
        response = self.client.put(
            f"/api/admin/users/{user.id}",
            json={"role": "business", "company_name": "Levage SA"},
            headers=self.admin_headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user"]["role"], "BUSINESS")
        self.assertEqual(response.json()["user"]["company_name"], "Levage SA")

    def test_update_user_rejects_unknown_role(self):
        user = self.create_user("client@builder.io")
        response = self.client.put(
            f"/api/admin/users/{user.id}", json={"role": "OWNER"}, headers=self.admin_headers
        )
        self.assertEqual(response.status_code, 400)

    def test_admin_cannot_change_or_delete_self(self):
        role = self.client.put(
            f"/api/admin/users/{self.admin.id}", json={"role": "CLIENT"}, headers=self.admin_headers
        )
        self.assertEqual(role.status_code, 400)

        deactivate = self.client.put(
            f"/api/admin/users/{self.admin.id}/status",
            json={"is_active": False},
            headers=self.admin_headers,
        )
        self.assertEqual(deactivate.status_code, 400)

        delete = self.client.delete(f"/api/admin/users/{self.admin.id}", headers=self.admin_headers)
        self.assertEqual(delete.status_code, 400)

    def test_deactivation_revokes_sessions(self):
        user = self.create_user("client@builder.io")
        headers = self.auth(user)

        response = self.client.put(
            f"/api/admin/users/{user.id}/status",
            json={"is_active": False},
            headers=self.admin_headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["user"]["is_active"])
        self.assertEqual(self.client.get("/api/auth/me", headers=headers).status_code, 401)

    def test_delete_unknown_user(self):
        response = self.client.delete("/api/admin/users/9999", headers=self.admin_headers)
        self.assertEqual(response.status_code, 404)

    def test_stats(self):
        owner = self.create_user("pro@builder.io", role="PROFESSIONAL")
        renter = self.create_user("client@builder.io")
        equipment = self.create_equipment(owner)
        self.create_equipment(owner, name="Dumper", is_rented=True)
        self.request_rental(renter, equipment, future(2), future(4))

        stats = self.client.get("/api/admin/stats", headers=self.admin_headers).json()["stats"]
        self.assertEqual(stats["users"]["total"], 3)
        self.assertEqual(stats["users"]["by_role"]["PROFESSIONAL"], 1)
        self.assertEqual(stats["equipment"]["total"], 2)
        self.assertEqual(stats["equipment"]["rented"], 1)
        self.assertEqual(stats["rental_requests"]["by_status"]["PENDING"], 1)
        self.assertEqual(stats["rental_requests"]["by_status"]["COMPLETED"], 0)


class CascadeDeleteTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.admin = self.create_user("admin@builder.io", role="ADMIN")
        self.doomed = self.create_user("doomed@builder.io", role="PROFESSIONAL")
        self.neighbor = self.create_user("neighbor@builder.io", role="PROFESSIONAL")
        self.renter = self.create_user("renter@builder.io")

        self.doomed_equipment = self.create_equipment(self.doomed, name="Loader")
        self.neighbor_equipment = self.create_equipment(self.neighbor, name="Compactor")

        # Others renting the doomed user's equipment
        self.assertEqual(
            self.request_rental(self.renter, self.doomed_equipment, future(2), future(4)).status_code,
            201,
        )
        # Doomed user renting someone else's equipment
        self.assertEqual(
            self.request_rental(self.doomed, self.neighbor_equipment, future(2), future(4)).status_code,
            201,
        )
        # A rental between two other users must survive
        self.assertEqual(
            self.request_rental(self.renter, self.neighbor_equipment, future(6), future(8)).status_code,
            201,
        )

        self.db.add_all(
            [
                Availability(
                    equipment_id=self.doomed_equipment.id,
                    start_date=future(10),
                    end_date=future(12),
                    status="unavailable",
                ),
                MaintenanceRecord(
                    equipment_id=self.doomed_equipment.id,
                    date=future(-30),
                    description="Tyres",
                    cost=400.0,
                ),
                Rating(equipment_id=self.doomed_equipment.id, user_id=self.renter.id, rating=2),
                Rating(equipment_id=self.neighbor_equipment.id, user_id=self.doomed.id, rating=1),
                Rating(equipment_id=self.neighbor_equipment.id, user_id=self.renter.id, rating=5),
            ]
        )
        document = VerificationDocument(
            user_id=self.doomed.id,
            name="kbis.pdf",
            document_type="KBIS",
            file_type="PDF",
            storage_path="verification/0/missing.pdf",
        )
        self.db.add(document)
        self.db.flush()
        self.db.add(
            VerificationHistory(
                user_id=self.doomed.id, document_id=document.id, action="UPLOAD", status="PENDING"
            )
        )
        self.db.commit()
        self.auth(self.doomed)

    def assert_nothing_references(self, user_id, equipment_id):
        self.db.expire_all()
        self.assertIsNone(self.db.query(User).filter(User.id == user_id).first())
        self.assertEqual(self.db.query(Equipment).filter(Equipment.owner_id == user_id).count(), 0)
        self.assertEqual(
            self.db.query(RentalRequest)
            .filter(
                (RentalRequest.user_id == user_id)
                | (RentalRequest.equipment_owner_id == user_id)
                | (RentalRequest.equipment_id == equipment_id)
            )
            .count(),
            0,
        )
        self.assertEqual(self.db.query(Notification).filter(Notification.user_id == user_id).count(), 0)
        self.assertEqual(
            self.db.query(Rating)
            .filter((Rating.user_id == user_id) | (Rating.equipment_id == equipment_id))
            .count(),
            0,
        )
        self.assertEqual(
            self.db.query(Availability).filter(Availability.equipment_id == equipment_id).count(), 0
        )
        self.assertEqual(
            self.db.query(MaintenanceRecord)
            .filter(MaintenanceRecord.equipment_id == equipment_id)
            .count(),
            0,
        )
        self.assertEqual(
            self.db.query(VerificationDocument).filter(VerificationDocument.user_id == user_id).count(),
            0,
        )
        self.assertEqual(
            self.db.query(VerificationHistory).filter(VerificationHistory.user_id == user_id).count(),
            0,
        )
        self.assertEqual(self.db.query(AuthToken).filter(AuthToken.user_id == user_id).count(), 0)

    def test_admin_delete_removes_everything_referencing_user(self):
        user_id = self.doomed.id
        equipment_id = self.doomed_equipment.id

        response = self.client.delete(
            f"/api/admin/users/{user_id}", headers=self.auth(self.admin)
        )
        self.assertEqual(response.status_code, 200)
        deleted = response.json()["deleted"]
        self.assertEqual(deleted["rental_requests"], 2)
        self.assertEqual(deleted["equipment"], 1)
        self.assertEqual(deleted["ratings"], 2)
        self.assertEqual(deleted["verification_documents"], 1)
        self.assertEqual(deleted["users"], 1)

        self.assert_nothing_references(user_id, equipment_id)

    def test_unrelated_data_survives_and_ratings_are_recomputed(self):
        delete_user_and_related_data(self.db, self.doomed.id)

        self.db.expire_all()
        self.assertEqual(self.db.query(RentalRequest).count(), 1)
        remaining = self.db.query(Equipment).one()
        self.assertEqual(remaining.name, "Compactor")
        self.assertEqual(remaining.total_ratings, 1)
        self.assertEqual(remaining.average_rating, 5.0)
        self.assertIsNotNone(self.db.query(User).filter(User.id == self.renter.id).first())

    def test_notifications_about_deleted_rentals_are_removed(self):
        surviving_rental = (
            self.db.query(RentalRequest).filter(RentalRequest.user_id == self.renter.id)
            .filter(RentalRequest.equipment_id == self.neighbor_equipment.id)
            .one()
        )

        counts = delete_user_and_related_data(self.db, self.doomed.id)
        self.assertEqual(counts["notifications"], 2)

        self.db.expire_all()
        remaining = self.db.query(Notification).all()
        self.assertEqual(len(remaining), 1)
        self.assertEqual(remaining[0].user_id, self.neighbor.id)
        self.assertEqual(remaining[0].reference_id, surviving_rental.id)
