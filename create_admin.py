#!/usr/bin/env python3
"""
One-time script to create an admin user
Usage: python create_admin.py

Registration over HTTP always creates regular citizen accounts, so the
first administrator has to be created here.

Non-interactive mode (containers, CI):
  Provide these environment variables and run the script once:
    ADMIN_NAME
    ADMIN_EMAIL
    ADMIN_PASSWORD

If any of the environment variables are missing, the script will prompt
interactively (useful for local development).
"""
import os
import sys
from typing import Optional

from dotenv import load_dotenv

from cleancity.core.config import settings
from cleancity.core.credentials import create_admin
from cleancity.core.errors import Conflict
from cleancity.core.logger import configure_logging
from cleancity.db import SessionLocal, create_tables
from cleancity.models.user import User, UserRole


def mask(value: str) -> str:
    return "<set>" if value else "<missing>"


def create_admin_user(session_factory=SessionLocal) -> Optional[User]:
    """Create the initial admin user, or do nothing if one already exists"""
    load_dotenv()
    configure_logging(settings.log_level)

    db = session_factory()
    try:
        existing_admin = db.query(User).filter(User.role == UserRole.ADMIN).first()
        if existing_admin:
            print(f"Admin user already exists: {existing_admin.email}")
            return existing_admin

        # Try env vars first (non-interactive mode)
        name = os.getenv("ADMIN_NAME", "").strip()
        email = os.getenv("ADMIN_EMAIL", "").strip()
        password = os.getenv("ADMIN_PASSWORD", "").strip()

        # Missing values and nobody to ask: exit instead of prompting
        if not all([name, email, password]) and not sys.stdin.isatty():
            print("Admin seeding (non-interactive) - env var status:")
            print(f"  ADMIN_NAME: {mask(name)}")
            print(f"  ADMIN_EMAIL: {mask(email)}")
            print(f"  ADMIN_PASSWORD: {mask(password)}")
            print("One or more admin environment variables are missing. Aborting without prompts.")
            sys.exit(1)

        if not all([name, email, password]):
            print("Environment variables not fully provided; falling back to prompts...")
            name = name or input("Admin name: ").strip()
            email = email or input("Admin email: ").strip()
            password = password or input("Admin password: ").strip()

        if not all([name, email, password]):
            print("All fields are required!")
            return None

        try:
            admin_user = create_admin(db, name, email, password)
        except Conflict as e:
            print(f"Error creating admin user: {e.message}")
            return None

        print("Admin user created successfully!")
        print(f"ID: {admin_user.id}")
        print(f"Name: {admin_user.name}")
        print(f"Email: {admin_user.email}")
        print(f"Role: {admin_user.role.value}")
        return admin_user
    finally:
        db.close()


if __name__ == "__main__":
    create_tables()
    create_admin_user()
