"""
Shared service wiring for the API
"""

from typing import Optional

from ..storage import create_storage
from ..audit import AuditTrail
from ..accounts import AccountManager
from ..transactions import TransactionStore
from ..statement import StatementService
from ..reporting import ReportingEngine
from ..config import ClubLedgerConfig, get_config


class LedgerSystem:
    """Storage, stores and services wired together"""

    def __init__(self, config: Optional[ClubLedgerConfig] = None, storage_backend: Optional[str] = None):
        self.config = config or get_config()
        backend = storage_backend or self.config.storage_backend
        self.storage = create_storage(backend, self.config.database_path)

        self.audit_trail = AuditTrail(self.storage)
        self.account_manager = AccountManager(self.storage, self.audit_trail)
        self.transaction_store = TransactionStore(self.storage, self.account_manager, self.audit_trail)
        self.statement_service = StatementService(
            self.account_manager, self.transaction_store, self.audit_trail, self.config
        )
        self.reporting_engine = ReportingEngine(self.account_manager, self.transaction_store)


_ledger_system: Optional[LedgerSystem] = None


def get_ledger_system() -> LedgerSystem:
    """FastAPI dependency; the system is built on first use"""
    global _ledger_system
    if _ledger_system is None:
        _ledger_system = LedgerSystem()
    return _ledger_system
