"""
Contract Configuration
Network settings, deployed contract addresses and minimal ABIs for HedgyBot
"""

import os
import logging
from pathlib import Path
from typing import Dict, Any
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

# Deployed testnet contracts
DEFAULT_CONTRACTS = {
    'token': '0xaD1C4E8FeA4baf773507F3F2Ed4760B5CF600d12',
    'faucet': '0xc9a2e4b31312dA41A8E88A970f5C5425cBa5743d',
    'buy': '0x390035f16D46f05E5C036206F43B9d6CdAcfb792',
    'sell': '0x2BC357F697dd5bDa0F47f6c8500Fe3a1D7df6C49',
}

DEFAULT_DRIP_AMOUNT = 100 * 10**18  # 100 HEDGY
DEFAULT_COOLDOWN = 86400  # 24 hours


def _int_env(key: str, default: int) -> int:
    """Read an integer environment variable, falling back to default"""
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning(f"Invalid value for {key}: {raw!r}, using default {default}")
        return default


def load_config() -> Dict[str, Any]:
    """Build bot configuration from environment variables"""
    return {
        'network': os.getenv('HEDERA_NETWORK', 'testnet'),
        'chain_id': _int_env('HEDERA_CHAIN_ID', 296),
        'rpc_url': os.getenv('HEDERA_RPC_URL', 'https://testnet.hashio.io/api'),
        'contracts': {
            name: os.getenv(f'{name.upper()}_CONTRACT') or address
            for name, address in DEFAULT_CONTRACTS.items()
        },
        'token': {
            'name': os.getenv('TOKEN_NAME', 'HedgyToken'),
            'symbol': os.getenv('TOKEN_SYMBOL', 'HEDGY'),
            'decimals': _int_env('TOKEN_DECIMALS', 18),
        },
        'faucet': {
            'drip_amount': _int_env('FAUCET_DRIP_AMOUNT', DEFAULT_DRIP_AMOUNT),
            'cooldown': _int_env('FAUCET_COOLDOWN', DEFAULT_COOLDOWN),
        },
        'settings': {
            'db_path': Path(os.getenv('DB_PATH', 'data/users.json')),
            'encryption_key': os.getenv('WALLET_ENCRYPTION_KEY') or None,
            'pending_send_ttl': _int_env('PENDING_SEND_TTL', 600),
            'key_message_ttl': _int_env('KEY_MESSAGE_TTL', 60),
            'receipt_timeout': _int_env('RECEIPT_TIMEOUT', 120),
        },
    }


def _view(name: str, inputs=(), output: str = 'uint256') -> Dict[str, Any]:
    return {
        'name': name,
        'type': 'function',
        'stateMutability': 'view',
        'inputs': [{'name': arg, 'type': typ} for arg, typ in inputs],
        'outputs': [{'name': '', 'type': output}],
    }


def _write(name: str, inputs=(), output: str = None, payable: bool = False) -> Dict[str, Any]:
    return {
        'name': name,
        'type': 'function',
        'stateMutability': 'payable' if payable else 'nonpayable',
        'inputs': [{'name': arg, 'type': typ} for arg, typ in inputs],
        'outputs': [{'name': '', 'type': output}] if output else [],
    }


# Minimal ABIs for the four contracts
ABIS = {
    'token': [
        _view('balanceOf', [('account', 'address')]),
        _write('transfer', [('to', 'address'), ('amount', 'uint256')], 'bool'),
        _write('approve', [('spender', 'address'), ('amount', 'uint256')], 'bool'),
        _view('allowance', [('owner', 'address'), ('spender', 'address')]),
        _view('decimals', output='uint8'),
        _view('symbol', output='string'),
        _view('name', output='string'),
    ],
    'faucet': [
        _write('requestTokens'),
        _view('canRequestTokens', [('account', 'address')], 'bool'),
        _view('timeUntilNextDrip', [('account', 'address')]),
        _view('dripAmount'),
        _view('cooldownTime'),
        _view('lastDripTime', [('user', 'address')]),
        _view('totalClaimed', [('user', 'address')]),
        _view('getFaucetBalance'),
        _view('token', output='address'),
    ],
    'buy': [
        _write('buyTokens', payable=True),
        _view('calculateTokenAmount', [('hbarAmount', 'uint256')]),
        _view('calculateHBARCost', [('tokenAmount', 'uint256')]),
        _view('tokenPrice'),
        _view('minPurchase'),
        _view('maxPurchase'),
        _view('getTokenBalance'),
        _view('getHBARBalance'),
        _view('totalSold'),
        _view('token', output='address'),
    ],
    'sell': [
        _write('sellTokens', [('amount', 'uint256')]),
        _view('calculateHBARAmount', [('tokenAmount', 'uint256')]),
        _view('calculateTokenAmount', [('hbarAmount', 'uint256')]),
        _view('tokenPrice'),
        _view('minSell'),
        _view('maxSell'),
        _view('getHBARBalance'),
        _view('getTokenBalance'),
        _view('totalBought'),
        _view('token', output='address'),
    ],
}
