"""
Tests for user validation, construction and password storage
"""

from datetime import datetime, timezone

from sandbox_banking.import_models import UserImport
from sandbox_banking.results import ErrorKind
from sandbox_banking.users import User, UserRepository

from conftest import user_data


def _users(*items):
    return [UserImport(**item) for item in items]


class TestCreateUsers:
    """Test the user stage"""

    def test_builds_unsaved_users(self, importer, storage):
        result = importer.create_users(_users(user_data("alice@example.com", display_name="Alice A")))

        assert result.ok
        user = result.value[0]
        assert user.email == "alice@example.com"
        assert user.display_name == "Alice A"
        assert user.password == "s3cret-pass"
        assert user.password_hash is None
        assert storage.count("users") == 0

    def test_existing_email_rejected(self, importer, storage):
        now = datetime.now(timezone.utc)
        UserRepository(storage).save(User(
            id="u-1", created_at=now, updated_at=now,
            email="alice@example.com", display_name="Someone else", password="pw"
        ))

        result = importer.create_users(_users(user_data("alice@example.com"), user_data("bob@example.com")))

        assert result.kind == ErrorKind.COLLISION
        assert "['alice@example.com']" in result.message

    def test_duplicate_emails_rejected(self, importer):
        result = importer.create_users(_users(
            user_data("bob@example.com"), user_data("alice@example.com"),
            user_data("alice@example.com"), user_data("bob@example.com")
        ))

        assert result.kind == ErrorKind.DUPLICATE
        assert result.message == (
            "Users must have unique emails: Duplicates found: ['bob@example.com', 'alice@example.com']"
        )

    def test_invalid_email_rejected(self, importer):
        result = importer.create_users(_users(user_data("not-an-email")))

        assert result.kind == ErrorKind.CONSTRAINT_VIOLATION
        assert "Invalid email format: not-an-email" in result.message

    def test_empty_password_rejected(self, importer):
        result = importer.create_users(_users(user_data("alice@example.com", password="")))

        assert result.kind == ErrorKind.CONSTRAINT_VIOLATION
        assert "password must not be empty" in result.message


class TestUserRepository:
    """Test password hashing on save"""

    def test_password_is_hashed_on_save(self, storage):
        now = datetime.now(timezone.utc)
        repository = UserRepository(storage)
        repository.save(User(
            id="u-1", created_at=now, updated_at=now,
            email="alice@example.com", display_name="Alice", password="correct horse"
        ))

        stored = storage.load("users", "u-1")
        assert "password" not in stored
        assert stored["password_hash"]
        assert "correct horse" not in stored["password_hash"]

        user = repository.find_by_email("alice@example.com")
        assert user.check_password("correct horse")
        assert not user.check_password("wrong")
