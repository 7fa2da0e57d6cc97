"""
Views and View Permissions

A view is an access grant scoped to one account. Every imported account gets
an owner view; a public view is added on request. Users see an account
through a view only after a permission links them to it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List
import uuid

from .storage import StorageInterface, StorageRecord, VIEWS_TABLE, VIEW_PERMISSIONS_TABLE, utc_now


class ViewKind(Enum):
    """Kinds of views created by the import"""
    OWNER = "owner"
    PUBLIC = "public"


@dataclass
class View(StorageRecord):
    kind: ViewKind
    bank_id: str
    account_id: str
    name: str
    description: str
    is_public: bool

    @property
    def view_id(self) -> str:
        return self.kind.value

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['kind'] = self.kind.value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'View':
        data = dict(data)
        data['kind'] = ViewKind(data['kind'])
        return super().from_dict(data)


def _new_view(kind: ViewKind, bank_id: str, account_id: str, name: str, is_public: bool) -> View:
    now = utc_now()
    return View(
        id=str(uuid.uuid4()),
        created_at=now,
        updated_at=now,
        kind=kind,
        bank_id=bank_id,
        account_id=account_id,
        name=name,
        description=f"{name} View",
        is_public=is_public
    )


def owner_view(bank_id: str, account_id: str) -> View:
    """Unsaved owner view for an account"""
    return _new_view(ViewKind.OWNER, bank_id, account_id, "Owner", is_public=False)


def public_view(bank_id: str, account_id: str) -> View:
    """Unsaved public view for an account"""
    return _new_view(ViewKind.PUBLIC, bank_id, account_id, "Public", is_public=True)


@dataclass
class ViewPermission(StorageRecord):
    """Grants one user access to one view"""
    view_record_id: str
    user_id: str
    bank_id: str
    account_id: str
    view_id: str


class ViewRepository:
    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = VIEWS_TABLE

    def save(self, view: View) -> None:
        self.storage.save(self.table_name, view.id, view.to_dict())

    def views_for_account(self, bank_id: str, account_id: str) -> List[View]:
        return [
            View.from_dict(data)
            for data in self.storage.find(self.table_name, {"bank_id": bank_id, "account_id": account_id})
        ]


class PermissionService:
    """Grants users access to saved views"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = VIEW_PERMISSIONS_TABLE

    def add_permission(self, view: View, user_id: str) -> ViewPermission:
        """Grant access; granting an existing permission returns it unchanged"""
        existing = self.storage.find_one(self.table_name, {"view_record_id": view.id, "user_id": user_id})
        if existing:
            return ViewPermission.from_dict(existing)

        now = utc_now()
        permission = ViewPermission(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            view_record_id=view.id,
            user_id=user_id,
            bank_id=view.bank_id,
            account_id=view.account_id,
            view_id=view.view_id
        )
        self.storage.save(self.table_name, permission.id, permission.to_dict())
        return permission

    def permissions_for_user(self, user_id: str) -> List[ViewPermission]:
        return [
            ViewPermission.from_dict(data)
            for data in self.storage.find(self.table_name, {"user_id": user_id})
        ]
