"""
Shared fixtures for the sandbox import tests
"""

import pytest

from sandbox_banking.config import SandboxConfig
from sandbox_banking.data_import import DataImporter
from sandbox_banking.storage import InMemoryStorage


POSTED = "2016-01-27T14:03:11.000Z"
COMPLETED = "2016-01-28T09:30:00.250Z"


def bank_data(bank_id="bank-one", **overrides):
    data = {
        "id": bank_id,
        "short_name": bank_id.upper(),
        "full_name": f"{bank_id} Sandbox Bank",
        "logo": "",
        "website": "https://example.com"
    }
    data.update(overrides)
    return data


def user_data(email="alice@example.com", **overrides):
    data = {
        "email": email,
        "password": "s3cret-pass",
        "display_name": email.split("@")[0].title()
    }
    data.update(overrides)
    return data


def account_data(account_id="acc-1", bank="bank-one", owners=("alice@example.com",), **overrides):
    data = {
        "id": account_id,
        "bank": bank,
        "label": f"Account {account_id}",
        "number": f"NUM-{account_id}",
        "type": "CURRENT",
        "balance": {"currency": "EUR", "amount": "1000.00"},
        "IBAN": f"DE00{account_id.upper()}",
        "owners": list(owners),
        "generate_public_view": False
    }
    data.update(overrides)
    return data


def transaction_data(transaction_id="tx-1", account="acc-1", bank="bank-one",
                     counterparty=None, **detail_overrides):
    details = {
        "type": "TRANSFER",
        "description": "Rent",
        "posted": POSTED,
        "completed": COMPLETED,
        "new_balance": "900.00",
        "value": "-100.00"
    }
    details.update(detail_overrides)
    data = {
        "id": transaction_id,
        "this_account": {"id": account, "bank": bank},
        "details": details
    }
    if counterparty is not None:
        data["counterparty"] = {"id": counterparty[0], "bank": counterparty[1]}
    return data


def sample_document():
    """Two banks, two users, two accounts and three transactions"""
    return {
        "banks": [bank_data("bank-one"), bank_data("bank-two")],
        "users": [user_data("alice@example.com"), user_data("bob@example.com")],
        "accounts": [
            account_data("acc-1", "bank-one", ["alice@example.com"], label="Alice Checking",
                         generate_public_view=True),
            account_data("acc-2", "bank-two", ["bob@example.com"], label="Bob Savings")
        ],
        "transactions": [
            transaction_data("tx-1", "acc-1", "bank-one", counterparty=("acc-2", "bank-two")),
            transaction_data("tx-2", "acc-1", "bank-one", counterparty=("acc-2", "bank-two"),
                             new_balance="850.00", value="-50.00"),
            transaction_data("tx-3", "acc-2", "bank-two", description="Cash deposit",
                             new_balance="1200.00", value="200.00")
        ]
    }


@pytest.fixture
def storage():
    storage = InMemoryStorage()
    yield storage
    storage.close()


@pytest.fixture
def config():
    return SandboxConfig(use_sqlite=False, data_import_enabled=True, data_import_secret="")


@pytest.fixture
def importer(storage, config):
    return DataImporter(storage, config=config)
