#!/usr/bin/env python
"""Database initialization script for the profile service.

Creates all database tables based on the SQLAlchemy models.
Run this once before starting the application for the first time.

Usage:
    python init_db.py
"""

import os
import sys
from profile_api import create_app, db


def init_database():
    """Initialize the database by creating all tables."""
    config_name = os.getenv('FLASK_ENV', 'development')
    app = create_app(config_name)

    print(f"\n{'='*60}")
    print(f"Database Initialization for {config_name.upper()} Environment")
    print(f"{'='*60}\n")

    with app.app_context():
        try:
            print(f"Database URI: {app.config['SQLALCHEMY_DATABASE_URI']}\n")
            db.create_all()

            tables_info = [
                ("users", "User accounts and profiles"),
                ("verification_challenges", "Issued phone/email/password/2FA challenges"),
                ("two_factor_settings", "TOTP secrets and enabled flags"),
            ]

            print("Created tables:")
            for table_name, description in tables_info:
                print(f"  - {table_name:<25} {description}")
            print()
            return True
        except Exception as e:
            print(f"Error creating database tables: {e}")
            return False


if __name__ == '__main__':
    sys.exit(0 if init_database() else 1)
