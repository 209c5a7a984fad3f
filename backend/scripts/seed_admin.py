#!/usr/bin/env python3
"""
Admin User Seed Script
Creates (or promotes) an admin user and prints a bearer token for the
manual metrics refresh endpoint.

Usage:
    python -m scripts.seed_admin <email> <username>

Example:
    python -m scripts.seed_admin ops@example.gov.uk ops
"""
import sys
import os
from typing import Optional
from uuid import uuid4

# Add the parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.orm import Session
from app.database import SessionLocal, init_db
from app.models.db_models import UserDB
from app.auth import create_access_token


def seed_admin(db: Session, email: str, username: str) -> Optional[UserDB]:
    """Create an admin user, or promote an existing user with this email."""
    existing = db.query(UserDB).filter(
        (UserDB.email == email) | (UserDB.username == username)
    ).first()

    if existing:
        if existing.email != email:
            print(f"Error: Username '{username}' already exists.")
            return None
        if existing.role != "admin":
            existing.role = "admin"
            db.commit()
            print(f"Upgraded existing user '{email}' to admin role.")
        return existing

    admin_user = UserDB(id=str(uuid4()), email=email, username=username, role="admin")
    db.add(admin_user)
    db.commit()
    print(f"Admin user '{email}' created.")
    return admin_user


def main():
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(1)

    email, username = sys.argv[1], sys.argv[2]
    if "@" not in email:
        print("Error: Invalid email format.")
        sys.exit(1)

    init_db()
    db = SessionLocal()
    try:
        user = seed_admin(db, email, username)
        if user is None:
            sys.exit(1)
        print(f"Bearer token: {create_access_token(user.id, user.email, user.role)}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
