"""
Sandbox system dependency
"""

from typing import Optional

from ..audit import AuditTrail
from ..config import SandboxConfig, get_config
from ..data_import import DataImporter
from ..storage import StorageInterface, create_storage


class SandboxSystem:
    """Storage, audit trail and importer wired together for the API"""

    def __init__(self, storage: Optional[StorageInterface] = None,
                 config: Optional[SandboxConfig] = None):
        self.config = config or get_config()
        if storage is None:
            storage = create_storage(self.config.use_sqlite, self.config.database_path)
        self.storage = storage

        self.audit_trail = None
        if self.config.enable_audit_logging:
            self.audit_trail = AuditTrail(self.storage)
        self.importer = DataImporter(self.storage, audit_trail=self.audit_trail, config=self.config)


# Created on first request so that importing the API does not open the database
sandbox_system: Optional[SandboxSystem] = None


def get_sandbox_system() -> SandboxSystem:
    global sandbox_system
    if sandbox_system is None:
        sandbox_system = SandboxSystem()
    return sandbox_system
