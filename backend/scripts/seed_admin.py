#!/usr/bin/env python3
"""
Admin User Seed Script
Creates an admin user who can resolve escalated complaints.

Usage:
    python -m scripts.seed_admin <email> <name> <password> [--super]

Example:
    python -m scripts.seed_admin support@example.com "Support Desk" securepassword123

Prints a bearer token for the admin routes on success.
"""
import sys
import os
from uuid import uuid4

# Add the parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.orm import Session
from complaint_engine.database import SessionLocal, init_db
from complaint_engine.models.db_models import UserDB, UserRole
from complaint_engine.auth import hash_password, issue_access_token


def create_admin_user(db: Session, email: str, name: str, password: str, role: UserRole = UserRole.ADMIN) -> bool:
    """Create an admin user, or promote an existing account. Returns False if nothing changed."""
    existing = db.query(UserDB).filter(UserDB.email == email).first()

    if existing:
        if existing.role == role:
            print(f"Error: '{email}' is already {role.value}.")
            return False
        existing.role = role
        db.commit()
        print(f"Upgraded existing user '{email}' to {role.value} role.")
        return True

    admin_user = UserDB(
        id=str(uuid4()),
        email=email,
        name=name,
        password_hash=hash_password(password),
        role=role,
    )
    db.add(admin_user)
    db.commit()

    print("Admin user created successfully!")
    print(f"  Email: {email}")
    print(f"  Name: {name}")
    print(f"  Role: {role.value}")
    return True


def main():
    args = [arg for arg in sys.argv[1:] if arg != "--super"]
    role = UserRole.SUPER_ADMIN if "--super" in sys.argv[1:] else UserRole.ADMIN

    if len(args) != 3:
        print(__doc__)
        sys.exit(1)

    email, name, password = args

    # Basic validation
    if len(password) < 8:
        print("Error: Password must be at least 8 characters.")
        sys.exit(1)

    if "@" not in email:
        print("Error: Invalid email format.")
        sys.exit(1)

    # Ensure tables exist
    init_db()

    db: Session = SessionLocal()
    try:
        success = create_admin_user(db, email, name, password, role)
        if success:
            admin = db.query(UserDB).filter(UserDB.email == email).one()
            print(f"  Token: {issue_access_token(admin)}")
    except Exception as e:
        db.rollback()
        print(f"Error creating admin user: {e}")
        success = False
    finally:
        db.close()

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
