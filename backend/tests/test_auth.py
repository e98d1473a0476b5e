"""
Tests for password hashing, tokens, and the admin seed script.
"""
import sys

import pytest
from sqlalchemy.orm import sessionmaker

from complaint_engine.auth import (
    decode_token, hash_password, issue_access_token, verify_password,
)
from complaint_engine.models.db_models import UserDB, UserRole

import scripts.seed_admin as seed_admin
from scripts.seed_admin import create_admin_user


class TestPasswords:

    def test_hash_round_trip(self):
        hashed = hash_password("correct horse battery")
        assert hashed != "correct horse battery"
        assert verify_password("correct horse battery", hashed)
        assert not verify_password("wrong password", hashed)


class TestTokens:

    def test_claims_come_from_the_user_row(self, make_user):
        admin = make_user(UserRole.SUPER_ADMIN)

        payload = decode_token(issue_access_token(admin))

        assert payload["sub"] == admin.id
        assert payload["email"] == admin.email
        assert payload["role"] == "super-admin"

    def test_garbage_token(self):
        assert decode_token("not-a-token") is None


class TestSeedAdmin:

    def test_creates_admin(self, db):
        assert create_admin_user(db, "desk@example.com", "Support Desk", "longpassword") is True

        user = db.query(UserDB).filter(UserDB.email == "desk@example.com").one()
        assert user.role == UserRole.ADMIN
        assert verify_password("longpassword", user.password_hash)

    def test_promotes_existing_user(self, db, make_user):
        client = make_user(UserRole.CLIENT)

        assert create_admin_user(db, client.email, client.name, "longpassword", UserRole.SUPER_ADMIN) is True
        db.expire_all()
        assert db.query(UserDB).filter(UserDB.id == client.id).one().role == UserRole.SUPER_ADMIN

    def test_existing_admin_unchanged(self, db, make_user):
        admin = make_user(UserRole.ADMIN)

        assert create_admin_user(db, admin.email, admin.name, "longpassword") is False

    def test_main_prints_usable_token(self, db, engine, monkeypatch, capsys):
        monkeypatch.setattr(seed_admin, "SessionLocal", sessionmaker(autocommit=False, autoflush=False, bind=engine))
        monkeypatch.setattr(seed_admin, "init_db", lambda: None)
        monkeypatch.setattr(sys, "argv", ["seed_admin", "ops@example.com", "Ops Lead", "longpassword", "--super"])

        with pytest.raises(SystemExit) as exc:
            seed_admin.main()

        assert exc.value.code == 0
        token_line = [line for line in capsys.readouterr().out.splitlines() if "Token:" in line][0]
        payload = decode_token(token_line.split("Token:", 1)[1].strip())
        user = db.query(UserDB).filter(UserDB.email == "ops@example.com").one()
        assert payload["sub"] == user.id
        assert payload["role"] == UserRole.SUPER_ADMIN.value
