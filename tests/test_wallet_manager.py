"""
Tests for wallet provisioning
"""

from eth_account import Account
from web3 import Web3

import pytest

from services.data_manager import DataManager
from services.key_vault import KeyVault
from services.wallet_manager import WalletManager


@pytest.fixture
def manager(tmp_path):
    return WalletManager(DataManager(tmp_path / 'users.json'), KeyVault(None, tmp_path / 'users.salt'))


class TestProvisioning:

    def test_first_contact_creates_wallet(self, manager):
        wallet = manager.get_or_create_wallet(42, 'alice')

        assert wallet.is_new
        assert Web3.is_checksum_address(wallet.address)
        assert Account.from_key(wallet.private_key).address == wallet.address

    def test_provisioning_is_idempotent(self, manager):
        """Repeated /start never replaces the user's wallet"""
        first = manager.get_or_create_wallet(42)
        second = manager.get_or_create_wallet(42)

        assert not second.is_new
        assert second.address == first.address
        assert second.private_key == first.private_key
        assert manager.data_manager.all_user_ids() == ['42']

    def test_lost_race_returns_stored_wallet(self, manager):
        """If another request stored a wallet first, that wallet wins"""
        manager.data_manager.create_user(42, '0x' + '11' * 20, 'stored-key')

        original_get_user = manager.data_manager.get_user
        manager.data_manager.get_user = lambda user_id: None
        wallet = manager.get_or_create_wallet(42)
        manager.data_manager.get_user = original_get_user

        assert not wallet.is_new
        assert wallet.address == '0x' + '11' * 20
        assert wallet.private_key == 'stored-key'

    def test_encrypted_keys_round_trip(self, tmp_path):
        data_manager = DataManager(tmp_path / 'users.json')
        manager = WalletManager(data_manager, KeyVault('secret', tmp_path / 'users.salt'))

        wallet = manager.get_or_create_wallet(42)
        record = data_manager.get_user(42)

        assert record['encrypted']
        assert record['private_key'] != wallet.private_key
        assert manager.get_private_key(42) == wallet.private_key


class TestLookups:

    def test_unknown_user(self, manager):
        assert manager.get_wallet_address(1) is None
        assert manager.get_private_key(1) is None
        assert manager.get_last_faucet_claim(1) is None

    def test_derivation_is_deterministic(self, manager):
        seed = manager.generate_seed_phrase()
        assert len(seed.split()) == 12
        assert manager.derive_account(seed)['address'] == manager.derive_account(seed)['address']
        assert manager.derive_account(seed, 1)['address'] != manager.derive_account(seed, 0)['address']

    def test_format_address(self):
        assert WalletManager.format_address('0x1234567890abcdef1234') == '0x1234...1234'
        assert WalletManager.format_address(None) == 'N/A'
