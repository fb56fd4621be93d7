"""
Shared fixtures for HedgyBot tests
"""

import os
import sys
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

USER_ADDRESS = "0x742d35cc6634c0532925a3b844bc9e7595f0beb0"
SELL_ADDRESS = "0x2BC357F697dd5bDa0F47f6c8500Fe3a1D7df6C49"
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
TX_HASH = "0x" + "ab" * 32

ETHER = 10**18


@pytest.fixture
def config(tmp_path):
    """Configuration shaped like contract_config.load_config() with a temporary store"""
    return {
        'network': 'testnet',
        'chain_id': 296,
        'rpc_url': 'http://localhost:7546',
        'contracts': {
            'token': '0xaD1C4E8FeA4baf773507F3F2Ed4760B5CF600d12',
            'faucet': '0xc9a2e4b31312dA41A8E88A970f5C5425cBa5743d',
            'buy': '0x390035f16D46f05E5C036206F43B9d6CdAcfb792',
            'sell': SELL_ADDRESS,
        },
        'token': {'name': 'HedgyToken', 'symbol': 'HEDGY', 'decimals': 18},
        'faucet': {'drip_amount': 100 * ETHER, 'cooldown': 86400},
        'settings': {
            'db_path': tmp_path / 'data' / 'users.json',
            'encryption_key': None,
            'pending_send_ttl': 600,
            'key_message_ttl': 60,
            'receipt_timeout': 120,
        },
    }


@pytest.fixture
def contracts():
    """ContractService double: view calls are answered from `contracts.views`"""
    service = MagicMock()
    service.addresses = {'sell': SELL_ADDRESS}
    service.get_account.return_value.address = USER_ADDRESS
    service.receipt_hash.return_value = TX_HASH
    service.send_contract_call.return_value = {'status': 1, 'transactionHash': TX_HASH}
    service.send_native.return_value = {'status': 1, 'transactionHash': TX_HASH}
    service.views = {}
    service.call.side_effect = lambda name, method, *args: service.views[(name, method)]
    return service
