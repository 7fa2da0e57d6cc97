"""
Counterparty Metadata Module

Metadata records describe the other party of an account's transactions. One
record exists per (originating bank, originating account, counterparty holder)
and carries the public alias under which the counterparty is shown to users
without access to the real name.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Set
import secrets
import string
import uuid

from .storage import StorageInterface, StorageRecord, METADATA_TABLE, utc_now


@dataclass
class Metadata(StorageRecord):
    holder: str
    original_party_bank_id: str
    original_party_account_id: str
    public_alias: str
    counterparty_bank_id: Optional[str] = None
    counterparty_account_id: Optional[str] = None

    @property
    def key(self):
        return (self.original_party_bank_id, self.original_party_account_id, self.holder)


def new_metadata(holder: str, bank_id: str, account_id: str, public_alias: str,
                 counterparty_bank_id: Optional[str] = None,
                 counterparty_account_id: Optional[str] = None) -> Metadata:
    """Unsaved metadata record for an originating account"""
    now = utc_now()
    return Metadata(
        id=str(uuid.uuid4()),
        created_at=now,
        updated_at=now,
        holder=holder,
        original_party_bank_id=bank_id,
        original_party_account_id=account_id,
        public_alias=public_alias,
        counterparty_bank_id=counterparty_bank_id,
        counterparty_account_id=counterparty_account_id
    )


class MetadataRepository:
    """Looks up and persists counterparty metadata"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = METADATA_TABLE

    def find(self, bank_id: str, account_id: str, holder: str) -> Optional[Metadata]:
        data = self.storage.find_one(self.table_name, {
            "original_party_bank_id": bank_id,
            "original_party_account_id": account_id,
            "holder": holder
        })
        if data:
            return Metadata.from_dict(data)
        return None

    def aliases_for_account(self, bank_id: str, account_id: str) -> Set[str]:
        records = self.storage.find(self.table_name, {
            "original_party_bank_id": bank_id,
            "original_party_account_id": account_id
        })
        return {record['public_alias'] for record in records}

    def save(self, metadata: Metadata) -> None:
        self.storage.save(self.table_name, metadata.id, metadata.to_dict())


class AliasGenerator:
    """
    Generates public aliases such as ``ALIAS_K3X9QZ``.

    An alias is unique among the aliases already stored for the originating
    account and the ``reserved`` aliases handed out earlier in the same batch.
    """

    ALPHABET = string.ascii_uppercase + string.digits

    def __init__(self, metadata_repository: MetadataRepository,
                 prefix: str = "ALIAS_", length: int = 6):
        self.metadata_repository = metadata_repository
        self.prefix = prefix
        self.length = length

    def _candidate(self) -> str:
        suffix = ''.join(secrets.choice(self.ALPHABET) for _ in range(self.length))
        return f"{self.prefix}{suffix}"

    def new_public_alias(self, bank_id: str, account_id: str,
                         reserved: Iterable[str] = ()) -> str:
        taken = self.metadata_repository.aliases_for_account(bank_id, account_id)
        taken.update(reserved)
        alias = self._candidate()
        while alias in taken:
            alias = self._candidate()
        return alias
