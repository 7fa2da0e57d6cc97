"""
User Module

Sandbox users. The plain password from the import document travels with the
unsaved user and is replaced by a salted scrypt hash when the user is saved.
"""

import hashlib
import re
import secrets
from dataclasses import dataclass, field
from typing import List, Optional

from .storage import StorageInterface, StorageRecord, USERS_TABLE, utc_now

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


@dataclass
class User(StorageRecord):
    """API user able to own accounts and be granted views"""
    email: str
    display_name: str
    password_hash: Optional[str] = None
    password_salt: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)

    def validate(self, max_email_length: int = 100, max_display_name_length: int = 100) -> List[str]:
        """Field-level validation errors, empty when the user is valid"""
        errors = []
        if not EMAIL_PATTERN.match(self.email):
            errors.append(f"Invalid email format: {self.email}")
        elif len(self.email) > max_email_length:
            errors.append(f"Email {self.email} is longer than {max_email_length} characters")
        if len(self.display_name) > max_display_name_length:
            errors.append(f"User {self.email}: display_name is longer than {max_display_name_length} characters")
        if not self.password and not self.password_hash:
            errors.append(f"User {self.email}: password must not be empty")
        return errors

    def check_password(self, password: str) -> bool:
        if not self.password_hash or not self.password_salt:
            return False
        return secrets.compare_digest(_hash_password(password, self.password_salt), self.password_hash)


def _hash_password(password: str, salt: str) -> str:
    return hashlib.scrypt(
        password.encode(),
        salt=salt.encode(),
        n=16384, r=8, p=1
    ).hex()


class UserRepository:
    """Looks up and persists users"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = USERS_TABLE

    def find_by_email(self, email: str) -> Optional[User]:
        data = self.storage.find_one(self.table_name, {"email": email})
        if data:
            return User.from_dict(data)
        return None

    def save(self, user: User) -> None:
        """Save user, hashing a pending plain password first"""
        if user.password:
            user.password_salt = secrets.token_hex(16)
            user.password_hash = _hash_password(user.password, user.password_salt)
            user.password = None
            user.updated_at = utc_now()

        data = user.to_dict()
        data.pop('password', None)
        self.storage.save(self.table_name, user.id, data)
