"""
Sandbox Data Import Module

Bulk-loads banks, users, accounts and transactions from one import document.
The import runs four validate-and-construct stages in order (banks, users,
accounts, transactions). Each stage only builds unsaved records; nothing is
written until every stage has succeeded, after which the commit step saves
everything in dependency order.

Every reference inside a document must point to an entity declared in the
same document. Records built by the stages refer to each other by plain
identifier values (bank id, account id, email), never by stored references,
because none of them exist in the store until the commit step.

The commit step is best-effort: if a save fails half way, records saved
before the failure stay in the store.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple, Union
import uuid

from pydantic import ValidationError

from .accounts import Account, AccountHolder, AccountRepository, AccountHolderRepository
from .audit import AuditTrail, AuditEventType
from .banks import Bank, BankRepository
from .config import SandboxConfig, get_config
from .counterparties import AliasGenerator, Metadata, MetadataRepository, new_metadata
from .currency import Money, parse_decimal
from .formats import DATE_PATTERN, parse_timestamp
from .import_models import (
    AccountImport, BankImport, SandboxDataImport, TransactionImport, UserImport
)
from .logging_config import get_logger, log_action
from .results import (
    ErrorKind, Failure, ImportResult, Result, Success, find_duplicates
)
from .storage import StorageInterface, utc_now
from .transactions import (
    AccountSnapshot, BankSnapshot, EnvelopeRepository, TransactionDetails, TransactionEnvelope
)
from .users import User, UserRepository
from .views import PermissionService, View, ViewRepository, owner_view, public_view

logger = get_logger("sandbox.data_import")

STAGE_DOCUMENT = "document"
STAGE_BANKS = "banks"
STAGE_USERS = "users"
STAGE_ACCOUNTS = "accounts"
STAGE_TRANSACTIONS = "transactions"

AccountKey = Tuple[str, str]  # (bank id, account id)


@dataclass
class AccountPlan:
    """Unsaved account with its views and the owner emails it declared"""
    account: Account
    views: List[View]
    owner_emails: List[str]


@dataclass
class TransactionPlan:
    envelope: TransactionEnvelope
    metadata: Metadata
    metadata_created: bool = True  # False when the metadata was already stored


@dataclass
class _CounterpartyContext:
    """Per-stage state for metadata reuse and alias uniqueness"""
    metadata: Dict[Tuple[str, str, str], Metadata] = field(default_factory=dict)
    aliases: Dict[AccountKey, Set[str]] = field(default_factory=dict)
    stored_ids: Set[str] = field(default_factory=set)  # metadata loaded from the store


def _unique(items) -> list:
    return list(dict.fromkeys(items))


def _describe_validation_error(error: ValidationError) -> str:
    problems = [
        f"{'.'.join(str(part) for part in detail['loc'])}: {detail['msg']}"
        for detail in error.errors()
    ]
    return f"Invalid import document: {problems}"


class DataImporter:
    """
    Validates an import document and, when it is consistent, persists it.

    The repositories are the importer's collaborators: bank lookup by id,
    user lookup by email, account lookup within a bank, envelope and metadata
    queries, alias generation and view permission grants.
    """

    def __init__(
        self,
        storage: StorageInterface,
        audit_trail: Optional[AuditTrail] = None,
        config: Optional[SandboxConfig] = None,
        alias_generator: Optional[AliasGenerator] = None,
        permission_service: Optional[PermissionService] = None
    ):
        self.storage = storage
        self.config = config or get_config()
        self.bank_repository = BankRepository(storage)
        self.user_repository = UserRepository(storage)
        self.account_repository = AccountRepository(storage)
        self.holder_repository = AccountHolderRepository(storage)
        self.view_repository = ViewRepository(storage)
        self.metadata_repository = MetadataRepository(storage)
        self.envelope_repository = EnvelopeRepository(storage)
        self.permission_service = permission_service or PermissionService(storage)
        self.alias_generator = alias_generator or AliasGenerator(
            self.metadata_repository,
            prefix=self.config.public_alias_prefix,
            length=self.config.public_alias_length
        )
        if audit_trail is None and self.config.enable_audit_logging:
            audit_trail = AuditTrail(storage)
        self.audit_trail = audit_trail

    # Entry point

    def import_data(self, data: Union[SandboxDataImport, dict]) -> ImportResult:
        """
        Import a whole document.

        A dict is coerced into ``SandboxDataImport`` first; a document that
        does not fit the model is rejected in the ``document`` stage.

        Returns:
            ImportResult whose ``failure`` describes the first violated rule,
            or which carries the commit warnings and record counts on success
        """
        correlation_id = str(uuid.uuid4())
        if isinstance(data, dict):
            try:
                data = SandboxDataImport.model_validate(data)
            except ValidationError as e:
                return self._reject(
                    Failure(ErrorKind.INVALID_VALUE, _describe_validation_error(e)),
                    STAGE_DOCUMENT, correlation_id
                )

        log_action(
            logger, "info", "Data import started",
            action="data_import", correlation_id=correlation_id,
            extra={
                "banks": len(data.banks), "users": len(data.users),
                "accounts": len(data.accounts), "transactions": len(data.transactions)
            }
        )

        banks = self.create_banks(data.banks)
        if not banks.ok:
            return self._reject(banks, STAGE_BANKS, correlation_id)

        users = self.create_users(data.users)
        if not users.ok:
            return self._reject(users, STAGE_USERS, correlation_id)

        account_plans = self.create_accounts(data.accounts, banks.value, users.value)
        if not account_plans.ok:
            return self._reject(account_plans, STAGE_ACCOUNTS, correlation_id)

        transaction_plans = self.create_transactions(
            data.transactions, banks.value, [plan.account for plan in account_plans.value]
        )
        if not transaction_plans.ok:
            return self._reject(transaction_plans, STAGE_TRANSACTIONS, correlation_id)

        return self.commit(
            banks.value, users.value, account_plans.value, transaction_plans.value,
            correlation_id=correlation_id
        )

    def _reject(self, failure: Failure, stage: str, correlation_id: str) -> ImportResult:
        failure = failure.in_stage(stage)
        log_action(
            logger, "warning", f"Data import rejected: {failure.message}",
            action="data_import", resource=stage, correlation_id=correlation_id,
            extra={"kind": failure.kind.value}
        )
        return ImportResult(failure=failure)

    # Bank stage

    def create_banks(self, bank_imports: List[BankImport]) -> Result:
        existing = _unique(b.id for b in bank_imports if b.id and self.bank_repository.exists(b.id))
        if existing:
            return Failure(
                ErrorKind.COLLISION,
                f"Bank(s) with id(s) {existing} already exist "
                f"(and may have different non-id [e.g. short_name] values)."
            )

        if any(not b.id for b in bank_imports):
            return Failure(ErrorKind.CONSTRAINT_VIOLATION, "Bank(s) with empty ids are not allowed")

        duplicates = find_duplicates(b.id for b in bank_imports)
        if duplicates:
            return Failure(ErrorKind.DUPLICATE, f"Banks must have unique ids. Duplicates found: {duplicates}")

        now = utc_now()
        banks = [
            Bank(
                id=b.id,
                created_at=now,
                updated_at=now,
                short_name=b.short_name,
                full_name=b.full_name,
                logo_url=b.logo,
                website=b.website,
                national_identifier=b.id
            )
            for b in bank_imports
        ]

        errors = [error for bank in banks for error in bank.validate(self.config.max_bank_field_length)]
        if errors:
            return Failure(ErrorKind.CONSTRAINT_VIOLATION, f"Errors: {errors}")

        logger.debug("Validated %d bank(s)", len(banks))
        return Success(banks)

    # User stage

    def create_users(self, user_imports: List[UserImport]) -> Result:
        existing = _unique(
            u.email for u in user_imports if self.user_repository.find_by_email(u.email)
        )
        if existing:
            return Failure(
                ErrorKind.COLLISION,
                f"User(s) with email(s) {existing} already exist "
                f"(and may be different (e.g. different display_name))"
            )

        duplicates = find_duplicates(u.email for u in user_imports)
        if duplicates:
            return Failure(ErrorKind.DUPLICATE, f"Users must have unique emails: Duplicates found: {duplicates}")

        now = utc_now()
        users = [
            User(
                id=str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                email=u.email,
                display_name=u.display_name,
                password=u.password
            )
            for u in user_imports
        ]

        errors = [
            error for user in users
            for error in user.validate(self.config.max_email_length, self.config.max_display_name_length)
        ]
        if errors:
            return Failure(ErrorKind.CONSTRAINT_VIOLATION, f"Errors: {errors}")

        logger.debug("Validated %d user(s)", len(users))
        return Success(users)

    # Account stage

    def create_accounts(self, account_imports: List[AccountImport],
                        banks: List[Bank], users: List[User]) -> Result:
        banks_by_id = {bank.id: bank for bank in banks}

        unknown_banks = _unique(acc.bank for acc in account_imports if acc.bank not in banks_by_id)
        if unknown_banks:
            return Failure(
                ErrorKind.MISSING_REFERENCE,
                f"Error: one or more accounts specified are for banks not specified "
                f"in the import data. Unspecified banks: {unknown_banks}"
            )

        if any(not acc.id for acc in account_imports):
            return Failure(ErrorKind.CONSTRAINT_VIOLATION, "Error: one or more accounts has an empty id")

        duplicate_ids = find_duplicates((acc.id, acc.bank) for acc in account_imports)
        if duplicate_ids:
            described = ", ".join(f"bank id {bank}, account id: {account}" for account, bank in duplicate_ids)
            return Failure(
                ErrorKind.DUPLICATE,
                f"Error: accounts at the same bank may not share an id: {described}"
            )

        duplicate_numbers = find_duplicates((acc.number, acc.bank) for acc in account_imports)
        if duplicate_numbers:
            described = ", ".join(f"bank id {bank}, account number: {number}" for number, bank in duplicate_numbers)
            return Failure(
                ErrorKind.DUPLICATE,
                f"Error: accounts at the same bank may not share account numbers: {described}"
            )

        # Banks are not saved yet, so the lookup uses each batch bank's plain id
        existing = [
            f"account id: {acc.id} bank id: {acc.bank}"
            for acc in account_imports
            if self.account_repository.find(banks_by_id[acc.bank].id, acc.id) is not None
        ]
        if existing:
            return Failure(ErrorKind.COLLISION, f"Account(s) to be imported already exist: {existing}")

        user_emails = {user.email for user in users}
        plans = []
        for acc in account_imports:
            result = self._build_account(acc, banks_by_id, user_emails)
            if not result.ok:
                return result
            plans.append(result.value)

        logger.debug("Validated %d account(s)", len(plans))
        return Success(plans)

    def _build_account(self, acc: AccountImport, banks_by_id: Dict[str, Bank],
                       user_emails: Set[str]) -> Result:
        bank = banks_by_id.get(acc.bank)
        if bank is None:
            return Failure(ErrorKind.MISSING_REFERENCE, f"Bank {acc.bank} of account {acc.id} not found in import data")

        try:
            balance = parse_decimal(acc.balance.amount)
        except ValueError:
            return Failure(ErrorKind.INVALID_VALUE, f"Invalid balance: {acc.balance.amount}")

        if not acc.owners:
            return Failure(
                ErrorKind.CONSTRAINT_VIOLATION,
                f"Accounts must have at least one owner. Violation: bank id {acc.bank}, account id {acc.id}"
            )

        missing_owners = [email for email in acc.owners if email not in user_emails]
        if missing_owners:
            return Failure(
                ErrorKind.MISSING_REFERENCE,
                f"Accounts must have owner(s) defined in data import. Violation: {','.join(missing_owners)}"
            )

        now = utc_now()
        account = Account(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            account_id=acc.id,
            bank_id=bank.id,
            label=acc.label,
            number=acc.number,
            kind=acc.type,
            currency=acc.balance.currency,
            balance=balance,
            iban=acc.iban
        )

        views = [owner_view(bank.id, acc.id)]
        if acc.generate_public_view:
            views.append(public_view(bank.id, acc.id))

        return Success(AccountPlan(account=account, views=views, owner_emails=list(acc.owners)))

    # Transaction stage

    def create_transactions(self, transaction_imports: List[TransactionImport],
                            banks: List[Bank], accounts: List[Account]) -> Result:
        banks_by_id = {bank.id: bank for bank in banks}
        accounts_by_key = {(account.bank_id, account.account_id): account for account in accounts}

        unresolved = [
            f"transaction id {t.id}, account id {t.this_account.id}, bank id {t.this_account.bank}"
            for t in transaction_imports
            if (t.this_account.bank, t.this_account.id) not in accounts_by_key
        ]
        if unresolved:
            return Failure(
                ErrorKind.MISSING_REFERENCE,
                f"Transaction(s) exist with accounts/banks not specified in import data: {unresolved}"
            )

        if any(not t.id for t in transaction_imports):
            return Failure(ErrorKind.CONSTRAINT_VIOLATION, "Transaction(s) exist with empty ids")

        duplicates = find_duplicates(
            (t.id, t.this_account.id, t.this_account.bank) for t in transaction_imports
        )
        if duplicates:
            described = ",".join(
                f"(transaction id : {tid}, account id: {account}, bank id: {bank})"
                for tid, account, bank in duplicates
            )
            return Failure(
                ErrorKind.DUPLICATE,
                f"Transactions for an account must have unique ids. Violations: {described}"
            )

        existing = [
            f"transaction id: {t.id} account id : {t.this_account.id} bank id : {t.this_account.bank}"
            for t in transaction_imports
            if self.envelope_repository.find(t.this_account.bank, t.this_account.id, t.id) is not None
        ]
        if existing:
            return Failure(ErrorKind.COLLISION, f"Some transactions already exist: {existing}")

        context = _CounterpartyContext()
        plans = []
        for t in transaction_imports:
            result = self._build_transaction(t, banks_by_id, accounts_by_key, context)
            if not result.ok:
                return result
            plans.append(result.value)

        logger.debug("Validated %d transaction(s)", len(plans))
        return Success(plans)

    def _new_alias(self, key: AccountKey, context: _CounterpartyContext) -> str:
        issued = context.aliases.setdefault(key, set())
        alias = self.alias_generator.new_public_alias(key[0], key[1], reserved=issued)
        issued.add(alias)
        return alias

    def _resolve_counterparty(self, t: TransactionImport, banks_by_id: Dict[str, Bank],
                              accounts_by_key: Dict[AccountKey, Account],
                              context: _CounterpartyContext) -> Result:
        """
        Success value is (metadata, counterparty account, counterparty bank);
        the last two are None for transactions without a counterparty.
        """
        this_key = (t.this_account.bank, t.this_account.id)

        if t.counterparty is None:
            metadata = new_metadata(
                holder=t.details.description,
                bank_id=t.this_account.bank,
                account_id=t.this_account.id,
                public_alias=self._new_alias(this_key, context)
            )
            return Success((metadata, None, None))

        counterparty = t.counterparty
        counterparty_bank = banks_by_id.get(counterparty.bank)
        counterparty_account = None
        if counterparty_bank is not None:
            counterparty_account = accounts_by_key.get((counterparty_bank.id, counterparty.id))
        if counterparty_account is None:
            return Failure(
                ErrorKind.MISSING_REFERENCE,
                f"transaction has counterparty not specified in data import: "
                f"account id {counterparty.id}, bank id {counterparty.bank}"
            )

        metadata_key = (t.this_account.bank, t.this_account.id, counterparty_account.holder)
        metadata = context.metadata.get(metadata_key)
        if metadata is None:
            metadata = self.metadata_repository.find(*metadata_key)
            if metadata is not None:
                context.stored_ids.add(metadata.id)
        if metadata is None:
            metadata = new_metadata(
                holder=counterparty_account.holder,
                bank_id=t.this_account.bank,
                account_id=t.this_account.id,
                public_alias=self._new_alias(this_key, context),
                counterparty_bank_id=counterparty_bank.id,
                counterparty_account_id=counterparty_account.account_id
            )
        context.metadata[metadata_key] = metadata

        return Success((metadata, counterparty_account, counterparty_bank))

    def _build_transaction(self, t: TransactionImport, banks_by_id: Dict[str, Bank],
                           accounts_by_key: Dict[AccountKey, Account],
                           context: _CounterpartyContext) -> Result:
        counterparty = self._resolve_counterparty(t, banks_by_id, accounts_by_key, context)
        if not counterparty.ok:
            return counterparty
        metadata, counterparty_account, counterparty_bank = counterparty.value

        this_bank = banks_by_id.get(t.this_account.bank)
        this_account = accounts_by_key.get((t.this_account.bank, t.this_account.id))
        if this_bank is None or this_account is None:
            return Failure(
                ErrorKind.MISSING_REFERENCE,
                f"Account id {t.this_account.id} at bank id {t.this_account.bank} not found in import data"
            )

        details = t.details
        try:
            new_balance = parse_decimal(details.new_balance)
        except ValueError:
            return Failure(ErrorKind.INVALID_VALUE, f"Invalid new balance: {details.new_balance}")
        try:
            value = parse_decimal(details.value)
        except ValueError:
            return Failure(ErrorKind.INVALID_VALUE, f"Invalid transaction value: {details.value}")
        try:
            posted = parse_timestamp(details.posted)
        except ValueError:
            return Failure(
                ErrorKind.INVALID_VALUE,
                f"Invalid date format: {details.posted}. Expected pattern {DATE_PATTERN}"
            )
        try:
            completed = parse_timestamp(details.completed)
        except ValueError:
            return Failure(
                ErrorKind.INVALID_VALUE,
                f"Invalid date format: {details.completed}. Expected pattern {DATE_PATTERN}"
            )

        # The other side's snapshot stays empty apart from the holder when there is no counterparty
        if counterparty_account is not None:
            other_account = AccountSnapshot(
                holder=metadata.holder,
                number=counterparty_account.number,
                kind=counterparty_account.kind,
                bank=BankSnapshot(
                    national_identifier=counterparty_bank.national_identifier,
                    iban=counterparty_account.iban
                )
            )
        else:
            other_account = AccountSnapshot(holder=metadata.holder)

        envelope = TransactionEnvelope(
            id=str(uuid.uuid4()),
            created_at=utc_now(),
            transaction_id=t.id,
            bank_id=this_bank.id,
            account_id=this_account.account_id,
            this_account=AccountSnapshot(
                holder=this_account.holder,
                number=this_account.number,
                kind=this_account.kind,
                bank=BankSnapshot(national_identifier=this_bank.national_identifier)
            ),
            other_account=other_account,
            details=TransactionDetails(
                kind=details.type,
                description=details.description,
                posted=posted,
                completed=completed,
                new_balance=Money(new_balance, this_account.currency),
                value=Money(value, this_account.currency)
            )
        )
        return Success(TransactionPlan(
            envelope=envelope,
            metadata=metadata,
            metadata_created=metadata.id not in context.stored_ids
        ))

    # Commit

    def commit(self, banks: List[Bank], users: List[User], account_plans: List[AccountPlan],
               transaction_plans: List[TransactionPlan],
               correlation_id: Optional[str] = None) -> ImportResult:
        """
        Save everything the stages built. Owner links can only be created
        here, once both the user and the account exist in the store.
        """
        warnings: List[str] = []
        counts = {
            "banks": 0, "users": 0, "accounts": 0, "account_holders": 0,
            "views": 0, "view_permissions": 0, "counterparty_metadata": 0, "transactions": 0
        }

        for bank in banks:
            self.bank_repository.save(bank)
            self._audit(AuditEventType.BANK_CREATED, "bank", bank.id,
                        {"short_name": bank.short_name}, correlation_id)
            counts["banks"] += 1

        for user in users:
            self.user_repository.save(user)
            self._audit(AuditEventType.USER_CREATED, "user", user.id,
                        {"email": user.email}, correlation_id)
            counts["users"] += 1

        for plan in account_plans:
            account = plan.account
            self.account_repository.save(account)
            self._audit(AuditEventType.ACCOUNT_CREATED, "account", account.id,
                        {"bank_id": account.bank_id, "account_id": account.account_id}, correlation_id)
            counts["accounts"] += 1

            owners = [user for user in users if user.email in plan.owner_emails]
            if len(owners) != len(plan.owner_emails):
                warning = (
                    f"Owner(s) of account id {account.account_id} at bank id {account.bank_id} not resolved. "
                    f"Expected: {plan.owner_emails}, got: {[owner.email for owner in owners]}"
                )
                warnings.append(warning)
                log_action(logger, "error", warning, action="data_import",
                           resource="account_holders", correlation_id=correlation_id)

            holders = []
            for owner in owners:
                now = utc_now()
                holder = AccountHolder(
                    id=str(uuid.uuid4()),
                    created_at=now,
                    updated_at=now,
                    user_id=owner.id,
                    bank_id=account.bank_id,
                    account_id=account.account_id
                )
                self.holder_repository.save(holder)
                self._audit(AuditEventType.ACCOUNT_HOLDER_CREATED, "account_holder", holder.id,
                            {"user_id": owner.id, "account_id": account.account_id}, correlation_id)
                holders.append(holder)
                counts["account_holders"] += 1

            for view in plan.views:
                self.view_repository.save(view)
                self._audit(AuditEventType.VIEW_CREATED, "view", view.id,
                            {"view_id": view.view_id, "account_id": account.account_id}, correlation_id)
                counts["views"] += 1
                for holder in holders:
                    permission = self.permission_service.add_permission(view, holder.user_id)
                    self._audit(AuditEventType.VIEW_PERMISSION_GRANTED, "view_permission", permission.id,
                                {"view_id": view.view_id, "user_id": holder.user_id}, correlation_id)
                    counts["view_permissions"] += 1

        saved_metadata = set()
        for plan in transaction_plans:
            # Metadata shared by several plans is saved once; stored metadata is left as is
            if plan.metadata_created and plan.metadata.id not in saved_metadata:
                self.metadata_repository.save(plan.metadata)
                self._audit(AuditEventType.COUNTERPARTY_METADATA_CREATED, "counterparty_metadata",
                            plan.metadata.id, {"public_alias": plan.metadata.public_alias}, correlation_id)
                saved_metadata.add(plan.metadata.id)
                counts["counterparty_metadata"] += 1
            self.envelope_repository.save(plan.envelope)
            self._audit(AuditEventType.TRANSACTION_CREATED, "transaction", plan.envelope.id,
                        {"transaction_id": plan.envelope.transaction_id,
                         "account_id": plan.envelope.account_id}, correlation_id)
            counts["transactions"] += 1

        self._audit(AuditEventType.DATA_IMPORT_COMPLETED, "data_import", correlation_id or "",
                    {"counts": counts, "warnings": len(warnings)}, correlation_id)

        if warnings:
            log_action(logger, "error", "Data import completed with errors.",
                       action="data_import", correlation_id=correlation_id,
                       extra={"warnings": warnings})
        log_action(logger, "info", "Data import committed", action="data_import",
                   correlation_id=correlation_id, extra=counts)

        return ImportResult(warnings=warnings, counts=counts)

    def _audit(self, event_type: AuditEventType, entity_type: str, entity_id: str,
               metadata: dict, correlation_id: Optional[str]) -> None:
        if self.audit_trail is not None:
            self.audit_trail.log_event(event_type, entity_type, entity_id, metadata,
                                       correlation_id=correlation_id)


def load_document(path: Union[str, Path]) -> SandboxDataImport:
    """Read an import document from a JSON file"""
    return SandboxDataImport.from_json(Path(path).read_text(encoding="utf-8"))


def import_data(storage: StorageInterface, data: Union[SandboxDataImport, dict],
                config: Optional[SandboxConfig] = None) -> ImportResult:
    """Import a document into ``storage`` with default collaborators"""
    return DataImporter(storage, config=config).import_data(data)
