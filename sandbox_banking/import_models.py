"""
Pydantic models for the sandbox import document.

Field names follow the JSON document. Values that need parsing (amounts,
timestamps) stay strings here; the import stages parse them so that a bad
value is reported against the rule it breaks.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class BankImport(BaseModel):
    id: str
    short_name: str
    full_name: str
    logo: str = ""
    website: str = ""


class UserImport(BaseModel):
    email: str
    password: str
    display_name: str = ""


class BalanceImport(BaseModel):
    currency: str
    amount: str = Field(..., description="Decimal amount as string")


class AccountImport(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    bank: str = Field(..., description="Id of a bank in the same document")
    label: str = ""
    number: str
    type: str = ""
    balance: BalanceImport
    iban: str = Field("", alias="IBAN")
    owners: List[str] = Field(default_factory=list, description="Emails of users in the same document")
    generate_public_view: bool = False


class AccountIdImport(BaseModel):
    id: str
    bank: str


class TransactionDetailsImport(BaseModel):
    type: str = ""
    description: str = ""
    posted: str
    completed: str
    new_balance: str
    value: str


class TransactionImport(BaseModel):
    id: str
    this_account: AccountIdImport
    counterparty: Optional[AccountIdImport] = None
    details: TransactionDetailsImport


class SandboxDataImport(BaseModel):
    """The whole batch submitted to one import call"""
    banks: List[BankImport] = Field(default_factory=list)
    users: List[UserImport] = Field(default_factory=list)
    accounts: List[AccountImport] = Field(default_factory=list)
    transactions: List[TransactionImport] = Field(default_factory=list)

    @classmethod
    def from_json(cls, text: str) -> 'SandboxDataImport':
        return cls.model_validate_json(text)
