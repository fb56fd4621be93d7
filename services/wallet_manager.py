"""
Wallet Manager Service
Handles per-user wallet provisioning and private key access
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional
from eth_account import Account
from bip_utils import (
    Bip39SeedGenerator,
    Bip39MnemonicGenerator,
    Bip39WordsNum,
    Bip44,
    Bip44Coins,
    Bip44Changes
)

from .data_manager import DataManager
from .key_vault import KeyVault

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WalletInfo:
    address: str
    private_key: str
    is_new: bool


class WalletManager:
    """Creates one EVM wallet per Telegram user and hands out its keys"""

    def __init__(self, data_manager: DataManager, key_vault: KeyVault):
        """
        Initialize Wallet Manager

        Args:
            data_manager: DataManager instance
            key_vault: KeyVault used to encrypt private keys at rest
        """
        self.data_manager = data_manager
        self.key_vault = key_vault

    def generate_seed_phrase(self, word_count: int = 12) -> str:
        """
        Generate a new BIP39 seed phrase

        Args:
            word_count: Number of words (12 or 24)

        Returns:
            Generated seed phrase
        """
        words_num = Bip39WordsNum.WORDS_NUM_12 if word_count == 12 else Bip39WordsNum.WORDS_NUM_24
        return str(Bip39MnemonicGenerator().FromWordsNumber(words_num))

    def derive_account(self, seed_phrase: str, index: int = 0) -> Dict[str, str]:
        """
        Derive an EVM account from a seed phrase
        Path: m/44'/60'/0'/0/index

        Returns:
            Dictionary with 'address', 'private_key' and 'derivation_path'
        """
        seed_bytes = Bip39SeedGenerator(seed_phrase.strip()).Generate()
        bip44_ctx = Bip44.FromSeed(seed_bytes, Bip44Coins.ETHEREUM)
        bip44_addr_ctx = (
            bip44_ctx.Purpose()
            .Coin()
            .Account(0)
            .Change(Bip44Changes.CHAIN_EXT)
            .AddressIndex(index)
        )

        private_key_hex = '0x' + bip44_addr_ctx.PrivateKey().Raw().ToHex()
        account = Account.from_key(private_key_hex)

        return {
            'address': account.address,
            'private_key': private_key_hex,
            'derivation_path': f"m/44'/60'/0'/0/{index}",
        }

    def get_or_create_wallet(self, user_id: int, username: Optional[str] = None) -> WalletInfo:
        """
        Return the user's wallet, creating it on first contact

        Args:
            user_id: Telegram user ID
            username: Telegram username (stored on creation only)

        Returns:
            WalletInfo with the address, decrypted private key and whether it was just created
        """
        record = self.data_manager.get_user(user_id)
        if record:
            return WalletInfo(
                address=record['wallet_address'],
                private_key=self._reveal(record),
                is_new=False
            )

        wallet = self.derive_account(self.generate_seed_phrase())
        stored = self.data_manager.create_user(
            user_id,
            wallet['address'],
            self.key_vault.encrypt(wallet['private_key']),
            username=username,
            encrypted=self.key_vault.enabled
        )

        # Another request may have created the record first; the store wins
        is_new = stored['wallet_address'] == wallet['address']
        if is_new:
            logger.info(f"Created wallet for user {user_id}: {wallet['address']}")

        return WalletInfo(
            address=stored['wallet_address'],
            private_key=self._reveal(stored),
            is_new=is_new
        )

    def _reveal(self, record: Dict) -> str:
        if record.get('encrypted'):
            return self.key_vault.decrypt(record['private_key'])
        return record['private_key']

    def get_wallet_address(self, user_id: int) -> Optional[str]:
        record = self.data_manager.get_user(user_id)
        return record['wallet_address'] if record else None

    def get_private_key(self, user_id: int) -> Optional[str]:
        """Get the decrypted private key for a user, or None if they have no wallet"""
        record = self.data_manager.get_user(user_id)
        return self._reveal(record) if record else None

    def get_last_faucet_claim(self, user_id: int) -> Optional[str]:
        record = self.data_manager.get_user(user_id)
        return record.get('last_faucet_claim') if record else None

    @staticmethod
    def format_address(address: Optional[str]) -> str:
        """Shorten an address for display"""
        if not address:
            return 'N/A'
        return f"{address[:6]}...{address[-4:]}"
