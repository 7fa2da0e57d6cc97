"""
Bank Module

Sandbox banks and their lookup/persistence service. A bank is stored under
its external id, which also serves as its national identifier.
"""

from dataclasses import dataclass
from typing import List

from .storage import StorageInterface, StorageRecord, BANKS_TABLE


@dataclass
class Bank(StorageRecord):
    """Bank hosted by the sandbox; ``id`` is the external bank id"""
    short_name: str
    full_name: str
    logo_url: str = ""
    website: str = ""
    national_identifier: str = ""

    def validate(self, max_field_length: int = 255) -> List[str]:
        """Field-level validation errors, empty when the bank is valid"""
        errors = []
        for name in ('id', 'short_name', 'full_name', 'logo_url', 'website'):
            value = getattr(self, name)
            if len(value) > max_field_length:
                errors.append(f"Bank {self.id}: {name} is longer than {max_field_length} characters")
        return errors


class BankRepository:
    """Looks up and persists banks"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = BANKS_TABLE

    def exists(self, bank_id: str) -> bool:
        return self.storage.exists(self.table_name, bank_id)

    def save(self, bank: Bank) -> None:
        self.storage.save(self.table_name, bank.id, bank.to_dict())

    def list_banks(self) -> List[Bank]:
        return [Bank.from_dict(data) for data in self.storage.load_all(self.table_name)]
