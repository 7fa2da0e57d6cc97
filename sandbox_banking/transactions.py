"""
Transaction Envelope Module

A transaction is stored as an immutable envelope: a snapshot of both parties'
account and bank identity at import time plus the parsed transaction details.
Envelopes are never updated after they are saved.
"""

from datetime import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .currency import Money
from .formats import format_timestamp, parse_timestamp
from .storage import StorageInterface, ENVELOPES_TABLE


@dataclass(frozen=True)
class BankSnapshot:
    national_identifier: str = ""
    iban: str = ""


@dataclass(frozen=True)
class AccountSnapshot:
    holder: str = ""
    number: str = ""
    kind: str = ""
    bank: BankSnapshot = field(default_factory=BankSnapshot)


@dataclass(frozen=True)
class TransactionDetails:
    kind: str
    description: str
    posted: datetime
    completed: datetime
    new_balance: Money
    value: Money


@dataclass(frozen=True)
class TransactionEnvelope:
    """
    Immutable transaction record. ``bank_id``/``account_id`` are the plain
    identifiers of the originating account and are what envelopes are
    queried by.
    """
    id: str
    created_at: datetime
    transaction_id: str
    bank_id: str
    account_id: str
    this_account: AccountSnapshot
    other_account: AccountSnapshot
    details: TransactionDetails

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'created_at': self.created_at.isoformat(),
            'transaction_id': self.transaction_id,
            'bank_id': self.bank_id,
            'account_id': self.account_id,
            'this_account': _account_to_dict(self.this_account),
            'other_account': _account_to_dict(self.other_account),
            'details': {
                'kind': self.details.kind,
                'description': self.details.description,
                'posted': format_timestamp(self.details.posted),
                'completed': format_timestamp(self.details.completed),
                'new_balance': self.details.new_balance.to_dict(),
                'value': self.details.value.to_dict()
            }
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TransactionEnvelope':
        details = data['details']
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            transaction_id=data['transaction_id'],
            bank_id=data['bank_id'],
            account_id=data['account_id'],
            this_account=_account_from_dict(data['this_account']),
            other_account=_account_from_dict(data['other_account']),
            details=TransactionDetails(
                kind=details['kind'],
                description=details['description'],
                posted=parse_timestamp(details['posted']),
                completed=parse_timestamp(details['completed']),
                new_balance=Money.from_dict(details['new_balance']),
                value=Money.from_dict(details['value'])
            )
        )


def _account_to_dict(snapshot: AccountSnapshot) -> Dict[str, Any]:
    return {
        'holder': snapshot.holder,
        'number': snapshot.number,
        'kind': snapshot.kind,
        'bank': {
            'national_identifier': snapshot.bank.national_identifier,
            'iban': snapshot.bank.iban
        }
    }


def _account_from_dict(data: Dict[str, Any]) -> AccountSnapshot:
    return AccountSnapshot(
        holder=data['holder'],
        number=data['number'],
        kind=data['kind'],
        bank=BankSnapshot(**data['bank'])
    )


class EnvelopeRepository:
    """Persists envelopes and queries them per originating account"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = ENVELOPES_TABLE

    def save(self, envelope: TransactionEnvelope) -> None:
        self.storage.save(self.table_name, envelope.id, envelope.to_dict())

    def find(self, bank_id: str, account_id: str, transaction_id: str) -> Optional[TransactionEnvelope]:
        data = self.storage.find_one(self.table_name, {
            "bank_id": bank_id,
            "account_id": account_id,
            "transaction_id": transaction_id
        })
        if data:
            return TransactionEnvelope.from_dict(data)
        return None

    def envelopes_for_account(self, bank_id: str, account_id: str) -> List[TransactionEnvelope]:
        return [
            TransactionEnvelope.from_dict(data)
            for data in self.storage.find(self.table_name, {"bank_id": bank_id, "account_id": account_id})
        ]
