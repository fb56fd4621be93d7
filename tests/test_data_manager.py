"""
Tests for the JSON user store
"""

import json
import threading
from unittest.mock import patch

import pytest

from services.data_manager import DataManager, StorageError


@pytest.fixture
def store(tmp_path):
    return DataManager(tmp_path / 'users.json')


class TestCreateUser:

    def test_creates_record_with_expected_fields(self, store):
        record = store.create_user(1, '0xabc', 'key', username='alice')

        assert record['telegram_id'] == 1
        assert record['username'] == 'alice'
        assert record['wallet_address'] == '0xabc'
        assert record['last_faucet_claim'] is None
        assert record['encrypted'] is False
        assert 'created_at' in record

    def test_second_create_returns_existing_record(self, store):
        first = store.create_user(1, '0xabc', 'key')
        second = store.create_user(1, '0xdef', 'other')

        assert second['wallet_address'] == first['wallet_address'] == '0xabc'
        assert store.all_user_ids() == ['1']

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / 'users.json'
        DataManager(path).create_user(7, '0xabc', 'key')

        reloaded = DataManager(path)
        assert reloaded.get_user(7)['wallet_address'] == '0xabc'

        on_disk = json.loads(path.read_text())
        assert '7' in on_disk['users']

    def test_failed_save_rolls_back(self, store):
        with patch.object(store, 'save', side_effect=StorageError('disk full')):
            with pytest.raises(StorageError):
                store.create_user(1, '0xabc', 'key')

        assert store.get_user(1) is None


class TestUpdateUser:

    def test_update_last_faucet_claim(self, store):
        store.create_user(1, '0xabc', 'key')
        store.update_last_faucet_claim(1, '2024-05-01T12:00:00+00:00')

        assert store.get_user(1)['last_faucet_claim'] == '2024-05-01T12:00:00+00:00'

    def test_update_missing_user_returns_none(self, store):
        assert store.update_last_faucet_claim(99) is None

    def test_get_user_returns_a_copy(self, store):
        store.create_user(1, '0xabc', 'key')
        store.get_user(1)['wallet_address'] = 'tampered'

        assert store.get_user(1)['wallet_address'] == '0xabc'

    def test_concurrent_updates_are_not_lost(self, store):
        """Parallel read-modify-write cycles on one record all land"""
        store.create_user(1, '0xabc', 'key')
        store.update_user(1, lambda record: record.update(counter=0))

        def bump():
            for _ in range(20):
                store.update_user(1, lambda record: record.update(counter=record['counter'] + 1))

        threads = [threading.Thread(target=bump) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert store.get_user(1)['counter'] == 100
        assert DataManager(store.db_path).get_user(1)['counter'] == 100


def test_corrupt_file_loads_empty(tmp_path):
    path = tmp_path / 'users.json'
    path.write_text('{not json')

    assert DataManager(path).data == {'users': {}}
