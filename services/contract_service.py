"""
Contract Service
JSON-RPC gateway to the token, faucet, buy and sell contracts
"""

import logging
from typing import Dict, Any, Optional, Sequence
from eth_account import Account
from web3 import Web3

from contract_config import ABIS

logger = logging.getLogger(__name__)


class ContractService:
    """Read (view) calls and signed write transactions against the HedgyBot contracts"""

    def __init__(self, config: Dict[str, Any], w3: Optional[Web3] = None):
        """
        Initialize Contract Service

        Args:
            config: Bot configuration dictionary
            w3: Preconfigured Web3 instance (defaults to an HTTP provider on config['rpc_url'])
        """
        self.config = config
        self.addresses = {
            name: Web3.to_checksum_address(address)
            for name, address in config['contracts'].items()
        }
        self.chain_id = config['chain_id']
        self.receipt_timeout = config.get('settings', {}).get('receipt_timeout', 120)
        self.w3 = w3 or Web3(Web3.HTTPProvider(config['rpc_url']))
        self._contracts = {}

    def get_contract(self, name: str):
        """Get a contract instance by name ('token', 'faucet', 'buy', 'sell')"""
        if name not in self._contracts:
            if name not in self.addresses or name not in ABIS:
                raise KeyError(f"Contract {name} not found")
            self._contracts[name] = self.w3.eth.contract(address=self.addresses[name], abi=ABIS[name])
        return self._contracts[name]

    @staticmethod
    def get_account(private_key: str):
        return Account.from_key(private_key)

    # ============================================================
    # READS
    # ============================================================

    def call(self, contract_name: str, method: str, *args) -> Any:
        """
        Execute a view call

        Args:
            contract_name: Contract name
            method: Contract method name
            *args: Method arguments

        Returns:
            Decoded return value
        """
        function = getattr(self.get_contract(contract_name).functions, method)
        return function(*args).call()

    def get_native_balance(self, address: str) -> int:
        """Native HBAR balance in 18 decimal relay units"""
        return self.w3.eth.get_balance(Web3.to_checksum_address(address))

    def get_token_balance(self, address: str) -> int:
        """HEDGY balance in base units"""
        return self.call('token', 'balanceOf', Web3.to_checksum_address(address))

    def get_allowance(self, owner: str, spender: str) -> int:
        return self.call('token', 'allowance', Web3.to_checksum_address(owner), Web3.to_checksum_address(spender))

    def get_code(self, address: str) -> bytes:
        return self.w3.eth.get_code(Web3.to_checksum_address(address))

    # ============================================================
    # WRITES
    # ============================================================

    def _sign_and_wait(self, account, transaction: Dict[str, Any]):
        signed_tx = account.sign_transaction(transaction)
        tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        logger.info(f"Transaction sent: {Web3.to_hex(tx_hash)}")

        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        logger.info(f"Transaction {Web3.to_hex(tx_hash)} mined in block {receipt['blockNumber']}, status {receipt['status']}")
        return receipt

    def _base_transaction(self, account, gas: int, value: int = 0) -> Dict[str, Any]:
        return {
            'from': account.address,
            'nonce': self.w3.eth.get_transaction_count(account.address),
            'gas': gas,
            'gasPrice': self.w3.eth.gas_price,
            'chainId': self.chain_id,
            'value': value,
        }

    def send_contract_call(
        self,
        private_key: str,
        contract_name: str,
        method: str,
        args: Sequence[Any] = (),
        gas: int = 300000,
        value: int = 0
    ):
        """
        Sign, send and wait for a state-changing contract call

        Args:
            private_key: Sender's private key
            contract_name: Contract name
            method: Contract method name
            args: Method arguments
            gas: Gas limit
            value: Native value to attach (relay units)

        Returns:
            Transaction receipt
        """
        account = self.get_account(private_key)
        function = getattr(self.get_contract(contract_name).functions, method)(*args)
        transaction = function.build_transaction(self._base_transaction(account, gas, value))
        logger.info(f"Calling {contract_name}.{method} from {account.address}")
        return self._sign_and_wait(account, transaction)

    def send_native(self, private_key: str, to_address: str, value: int, gas: int = 21000):
        """
        Sign, send and wait for a plain HBAR transfer

        Returns:
            Transaction receipt
        """
        account = self.get_account(private_key)
        transaction = self._base_transaction(account, gas, value)
        transaction['to'] = Web3.to_checksum_address(to_address)
        logger.info(f"Sending {value} wei-units from {account.address} to {to_address}")
        return self._sign_and_wait(account, transaction)

    @staticmethod
    def receipt_hash(receipt) -> str:
        return Web3.to_hex(receipt['transactionHash'])
