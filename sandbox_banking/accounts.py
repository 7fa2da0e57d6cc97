"""
Account Management Module

Sandbox bank accounts and the owner links between users and accounts.
Accounts are identified by the plain (bank id, account id) pair from the
import document; no lookup ever goes through a stored record's reference.
"""

from decimal import Decimal
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .storage import StorageInterface, StorageRecord, ACCOUNTS_TABLE, ACCOUNT_HOLDERS_TABLE


@dataclass
class Account(StorageRecord):
    """
    Bank account as imported. ``account_id`` is only unique per bank.
    """
    account_id: str
    bank_id: str
    label: str
    number: str
    kind: str
    currency: str
    balance: Decimal
    iban: str = ""

    @property
    def holder(self) -> str:
        """Name shown for this account on transactions"""
        return self.label

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Account':
        data = dict(data)
        data['balance'] = Decimal(data['balance'])
        return super().from_dict(data)


@dataclass
class AccountHolder(StorageRecord):
    """Ownership link between a saved user and a saved account"""
    user_id: str
    bank_id: str
    account_id: str


class AccountRepository:
    """Looks up accounts within a bank and persists them"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = ACCOUNTS_TABLE

    def find(self, bank_id: str, account_id: str) -> Optional[Account]:
        data = self.storage.find_one(self.table_name, {"bank_id": bank_id, "account_id": account_id})
        if data:
            return Account.from_dict(data)
        return None

    def save(self, account: Account) -> None:
        self.storage.save(self.table_name, account.id, account.to_dict())


class AccountHolderRepository:
    """Persists and queries account owner links"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = ACCOUNT_HOLDERS_TABLE

    def save(self, holder: AccountHolder) -> None:
        self.storage.save(self.table_name, holder.id, holder.to_dict())

    def holders_for_account(self, bank_id: str, account_id: str) -> List[AccountHolder]:
        return [
            AccountHolder.from_dict(data)
            for data in self.storage.find(self.table_name, {"bank_id": bank_id, "account_id": account_id})
        ]
