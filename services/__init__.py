"""
Services Package for HedgyBot

Each service handles a specific domain:
- DataManager: User record persistence
- KeyVault: Private key encryption at rest
- WalletManager: Wallet provisioning and lookup
- ContractService: Contract reads and signed writes over JSON-RPC
- TransactionGuard: Pre-checked faucet, buy, sell and transfer transactions
- BalanceService: Wallet balances and contract status
- HederaService: HashScan links and the testnet HBAR faucet
- PendingSendStore: Per-user send intents awaiting text input
"""

from .data_manager import DataManager, StorageError
from .key_vault import KeyVault, KeyVaultError
from .wallet_manager import WalletManager
from .contract_service import ContractService
from .transaction_guard import TransactionGuard, TxResult, FailureReason
from .balance_service import BalanceService
from .hedera_service import HederaService
from .session_store import PendingSendStore, SendKind

__all__ = [
    'DataManager',
    'StorageError',
    'KeyVault',
    'KeyVaultError',
    'WalletManager',
    'ContractService',
    'TransactionGuard',
    'TxResult',
    'FailureReason',
    'BalanceService',
    'HederaService',
    'PendingSendStore',
    'SendKind',
]
