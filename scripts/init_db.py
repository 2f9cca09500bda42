#!/usr/bin/env python3
# EquipRent - Construction Equipment Rental Marketplace
# Copyright (C) 2025 Oleg Tokmakov
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Database initialization script.

Creates the tables, the bootstrap admin account and the cron job rows.
Usage: init_db.py [path/to/config.yaml]
"""

import logging
import sys

from equiprent.config import configure_logging, init_settings
from equiprent.database import init_database

logger = logging.getLogger("equiprent.init_db")


def main():
    """Initialize the database."""
    config_path = sys.argv[1] if len(sys.argv) > 1 else None
    settings = init_settings(config_path)
    configure_logging(settings)

    logger.info("Initializing EquipRent database at %s", settings.database.path)
    init_database()
    logger.info("Database initialization complete")


if __name__ == "__main__":
    main()
