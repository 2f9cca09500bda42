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

import shutil
import tempfile
import unittest
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError

from equiprent import database
from equiprent.config import SecurityConfig, Settings, update_settings
from equiprent.exceptions import ConflictError
from equiprent.models import Equipment, RentalRequest, RentalStatus, User
from equiprent.services.rentals import (
    _lock_equipment,
    check_rental_conflicts,
    create_rental_request,
    update_rental_status,
)

from tests.base import future


class ConcurrentRentalTests(unittest.TestCase):
    """Two sessions on one SQLite file, as two workers would use it."""

    def setUp(self):
        update_settings(Settings(security=SecurityConfig(password_hash_iterations=1000)))
        self.tmpdir = tempfile.mkdtemp(prefix="equiprent-db-")
        self.engine = create_engine(
            f"sqlite:///{Path(self.tmpdir) / 'equiprent.db'}",
            connect_args={"check_same_thread": False, "timeout": 0.1},
        )
        database.init_engine(self.engine)
        database.create_tables()
        self.Session = database.get_session_local()

        db = self.Session()
        users = [
            User(
                email=f"{name}@builder.io",
                password_hash="x",
                password_salt="x",
                first_name=name.title(),
                last_name="Tester",
                role=role,
            )
            for name, role in (("owner", "PROFESSIONAL"), ("alice", "CLIENT"), ("bob", "CLIENT"))
        ]
        db.add_all(users)
        db.flush()
        equipment = Equipment(
            owner_id=users[0].id,
            name="Telehandler",
            category="lifting",
            price=180.0,
            location="Nantes",
        )
        db.add(equipment)
        db.commit()
        self.owner_id, self.alice_id, self.bob_id = (u.id for u in users)
        self.equipment_id = equipment.id
        db.close()

        self.start, self.end = future(10), future(14)
        self.sessions = []

    def tearDown(self):
        for session in self.sessions:
            session.close()
        self.engine.dispose()
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def open_session(self):
        session = self.Session()
        self.sessions.append(session)
        return session

    def add_pending(self, session, user_id):
        session.add(
            RentalRequest(
                equipment_id=self.equipment_id,
                user_id=user_id,
                equipment_owner_id=self.owner_id,
                start_date=self.start,
                end_date=self.end,
                status=RentalStatus.PENDING.value,
            )
        )

    def test_second_request_waits_for_first_and_then_sees_conflict(self):
        first = self.open_session()
        self.assertIsNotNone(_lock_equipment(first, self.equipment_id))
        self.assertEqual(
            check_rental_conflicts(first, self.equipment_id, self.start, self.end), []
        )

        second = self.open_session()
        bob = second.get(User, self.bob_id)
        with self.assertRaises(OperationalError):
            create_rental_request(second, bob, self.equipment_id, self.start, self.end)

        self.add_pending(first, self.alice_id)
        first.commit()

        with self.assertRaises(ConflictError):
            create_rental_request(second, bob, self.equipment_id, self.start, self.end)

        check = self.open_session()
        self.assertEqual(
            check.query(RentalRequest)
            .filter(RentalRequest.equipment_id == self.equipment_id)
            .count(),
            1,
        )

    def test_approval_waits_for_locked_equipment(self):
        setup = self.open_session()
        self.add_pending(setup, self.alice_id)
        self.add_pending(setup, self.bob_id)
        setup.commit()
        alice_rental, bob_rental = (
            setup.query(RentalRequest).order_by(RentalRequest.id).all()
        )
        alice_rental_id, bob_rental_id = alice_rental.id, bob_rental.id
        setup.close()

        first = self.open_session()
        _lock_equipment(first, self.equipment_id)

        second = self.open_session()
        owner = second.get(User, self.owner_id)
        with self.assertRaises(OperationalError):
            update_rental_status(second, bob_rental_id, "APPROVED", owner)

        first.get(RentalRequest, alice_rental_id).status = RentalStatus.APPROVED.value
        first.commit()

        with self.assertRaises(ConflictError):
            update_rental_status(second, bob_rental_id, "APPROVED", owner)
