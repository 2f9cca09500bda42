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

import os
import tempfile
import unittest

from equiprent.config import load_config


class ConfigTests(unittest.TestCase):
    def test_yaml_sections_override_defaults(self):
        with tempfile.NamedTemporaryFile("w", suffix=".yaml", delete=False) as f:
            f.write(
                "app:\n"
                "  name: EquipRent Staging\n"
                "rental:\n"
                "  max_duration_days: 90\n"
                "storage:\n"
                "  allowed_extensions: ['.pdf']\n"
            )
            path = f.name
        try:
            settings = load_config(path)
        finally:
            os.unlink(path)

        self.assertEqual(settings.app.name, "EquipRent Staging")
        self.assertEqual(settings.rental.max_duration_days, 90)
        self.assertEqual(settings.storage.allowed_extensions, [".pdf"])
        self.assertEqual(settings.security.max_tokens_per_user, 10)

    def test_missing_explicit_config_file(self):
        with self.assertRaises(FileNotFoundError):
            load_config("/nonexistent/equiprent.yaml")
