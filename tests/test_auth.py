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

from datetime import datetime, timedelta

from equiprent.exceptions import AuthenticationError, PermissionDeniedError
from equiprent.models import AuthToken, User
from equiprent.services.accounts import issue_token, validate_token

from tests.base import DEFAULT_PASSWORD, ApiTestCase


class AuthTests(ApiTestCase):
    def register(self, **overrides):
        payload = {
            "email": "jeanne@builder.io",
            "password": DEFAULT_PASSWORD,
            "first_name": "Jeanne",
            "last_name": "Martin",
        }
        payload.update(overrides)
        return self.client.post("/api/auth/register", json=payload)

    def test_register_returns_session_for_new_client(self):
        response = self.register()
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["user"]["role"], "CLIENT")
        self.assertEqual(body["user"]["verification_status"], "UNVERIFIED")

        me = self.client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"}
        )
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["user"]["email"], "jeanne@builder.io")

    def test_register_normalizes_role_to_upper_case(self):
        response = self.register(role="professional", company_name="Martin BTP")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["user"]["role"], "PROFESSIONAL")

    def test_register_cannot_self_assign_admin(self):
        response = self.register(role="admin")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.db.query(User).count(), 0)

    def test_register_rejects_duplicate_email(self):
        self.assertEqual(self.register().status_code, 201)
        response = self.register(email="JEANNE@builder.io")
        self.assertEqual(response.status_code, 400)

    def test_register_rejects_short_password(self):
        response = self.register(password="abc")
        self.assertEqual(response.status_code, 400)

    def test_register_rejects_unknown_role(self):
        response = self.register(role="SUPERVISOR")
        self.assertEqual(response.status_code, 400)

    def test_login_with_wrong_password_is_unauthorized(self):
        self.create_user("paul@builder.io")
        response = self.client.post(
            "/api/auth/login", json={"email": "paul@builder.io", "password": "wrong-one"}
        )
        self.assertEqual(response.status_code, 401)

    def test_login_deactivated_account_is_forbidden(self):
        self.create_user("paul@builder.io", is_active=False)
        response = self.client.post(
            "/api/auth/login", json={"email": "paul@builder.io", "password": DEFAULT_PASSWORD}
        )
        self.assertEqual(response.status_code, 403)

    def test_logout_revokes_token(self):
        self.create_user("paul@builder.io")
        login = self.client.post(
            "/api/auth/login", json={"email": "paul@builder.io", "password": DEFAULT_PASSWORD}
        )
        self.assertEqual(login.status_code, 200)
        headers = {"Authorization": f"Bearer {login.json()['token']}"}

        self.assertEqual(self.client.get("/api/auth/me", headers=headers).status_code, 200)
        self.assertEqual(self.client.post("/api/auth/logout", headers=headers).status_code, 200)
        self.assertEqual(self.client.get("/api/auth/me", headers=headers).status_code, 401)

    def test_token_limit_revokes_oldest(self):
        user = self.create_user("paul@builder.io")
        for _ in range(12):
            self.auth(user)

        active = (
            self.db.query(AuthToken)
            .filter(AuthToken.user_id == user.id, AuthToken.is_revoked == False)
            .count()
        )
        self.assertEqual(active, 10)

    def test_me_requires_authentication(self):
        self.assertEqual(self.client.get("/api/auth/me").status_code, 401)

    def test_update_profile(self):
        user = self.create_user("paul@builder.io")
        response = self.client.put(
            "/api/auth/me",
            json={"phone": "+33 6 12 34 56 78", "company_name": "Paul Location"},
            headers=self.auth(user),
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user"]["company_name"], "Paul Location")
        self.assertEqual(response.json()["user"]["first_name"], user.first_name)

    def test_delete_own_account(self):
        user = self.create_user("paul@builder.io")
        user_id = user.id
        response = self.client.delete("/api/auth/me", headers=self.auth(user))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["deleted"]["users"], 1)

        self.db.expire_all()
        self.assertIsNone(self.db.query(User).filter(User.id == user_id).first())

    def test_validate_session_reports_valid_token(self):
        user = self.create_user("paul@builder.io")
        response = self.client.get("/api/auth/validate", headers=self.auth(user))
        self.assertEqual(response.json(), {"valid": True, "user_id": user.id})

    def test_validate_session_without_token(self):
        self.assertEqual(self.client.get("/api/auth/validate").json(), {"valid": False})

    def test_validate_session_rejects_expired_token(self):
        user = self.create_user("paul@builder.io")
        token = issue_token(self.db, user)
        token.expires_at = datetime.utcnow() - timedelta(minutes=1)
        self.db.commit()

        response = self.client.get(
            "/api/auth/validate", headers={"Authorization": f"Bearer {token.token}"}
        )
        self.assertEqual(response.json(), {"valid": False})


class ValidateTokenTests(ApiTestCase):
    def test_returns_user_and_marks_token_used(self):
        user = self.create_user("paul@builder.io")
        token = issue_token(self.db, user)
        self.assertIsNone(token.last_used_at)

        self.assertEqual(validate_token(self.db, token.token).id, user.id)
        self.db.refresh(token)
        self.assertIsNotNone(token.last_used_at)

    def test_missing_or_unknown_token(self):
        with self.assertRaises(AuthenticationError):
            validate_token(self.db, None)
        with self.assertRaises(AuthenticationError):
            validate_token(self.db, "not-a-token")

    def test_revoked_token(self):
        user = self.create_user("paul@builder.io")
        token = issue_token(self.db, user)
        token.is_revoked = True
        self.db.commit()

        with self.assertRaises(AuthenticationError):
            validate_token(self.db, token.token)

    def test_deactivated_user(self):
        user = self.create_user("paul@builder.io")
        token = issue_token(self.db, user).token
        user.is_active = False
        self.db.commit()

        with self.assertRaises(PermissionDeniedError):
            validate_token(self.db, token)

        response = self.client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(response.status_code, 403)
