"""
Data Manager Service
Handles persistence of user wallet records and faucet claim times
"""

import os
import json
import logging
import datetime
import threading
from pathlib import Path
from typing import Dict, Any, Optional, Callable, List

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the user store cannot be written"""


def utc_now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


class DataManager:
    """
    Manages the JSON user store

    Layout: {"users": {"<telegram id>": {...record...}}}. All mutations take
    the store lock and the file is replaced atomically, so overlapping
    requests cannot lose each other's updates.
    """

    def __init__(self, db_path: Path):
        """
        Initialize Data Manager

        Args:
            db_path: Path of the JSON user store
        """
        self.db_path = Path(db_path)
        self._lock = threading.RLock()

        # Ensure data directory exists
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.data = self.load()

    def load(self) -> Dict[str, Any]:
        """Load the user store from file"""
        if self.db_path.exists():
            try:
                with open(self.db_path, 'r') as f:
                    data = json.load(f)
                data.setdefault('users', {})
                return data
            except Exception as e:
                logger.error(f"Error loading user store {self.db_path}: {e}")
        return {'users': {}}

    def save(self):
        """
        Write the user store atomically

        Raises:
            StorageError: If the file could not be written
        """
        tmp_path = self.db_path.with_suffix(self.db_path.suffix + '.tmp')
        try:
            with open(tmp_path, 'w') as f:
                json.dump(self.data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.db_path)
        except OSError as e:
            logger.error(f"Error saving user store: {e}")
            raise StorageError(f"Could not save user store: {e}") from e

    def get_user(self, user_id: int) -> Optional[Dict[str, Any]]:
        """
        Get a copy of a user record

        Args:
            user_id: Telegram user ID

        Returns:
            User record or None if the user has no wallet yet
        """
        with self._lock:
            record = self.data['users'].get(str(user_id))
            return dict(record) if record else None

    def create_user(
        self,
        user_id: int,
        wallet_address: str,
        private_key: str,
        username: Optional[str] = None,
        encrypted: bool = False
    ) -> Dict[str, Any]:
        """
        Create a user record unless one already exists

        Args:
            user_id: Telegram user ID
            wallet_address: EVM address
            private_key: Private key (ciphertext if encrypted)
            username: Telegram username
            encrypted: Whether private_key is encrypted

        Returns:
            The stored record (the existing one if the user was already present)
        """
        user_id_str = str(user_id)
        with self._lock:
            existing = self.data['users'].get(user_id_str)
            if existing:
                return dict(existing)

            record = {
                'telegram_id': user_id,
                'username': username,
                'wallet_address': wallet_address,
                'private_key': private_key,
                'encrypted': encrypted,
                'created_at': utc_now_iso(),
                'last_faucet_claim': None,
            }
            self.data['users'][user_id_str] = record
            try:
                self.save()
            except StorageError:
                del self.data['users'][user_id_str]
                raise

            logger.info(f"Created user record for {user_id}: {wallet_address}")
            return dict(record)

    def update_user(self, user_id: int, mutate: Callable[[Dict[str, Any]], None]) -> Optional[Dict[str, Any]]:
        """
        Atomically read-modify-write one user record

        Args:
            user_id: Telegram user ID
            mutate: Function applied to a copy of the record

        Returns:
            Updated record, or None if the user does not exist
        """
        user_id_str = str(user_id)
        with self._lock:
            current = self.data['users'].get(user_id_str)
            if current is None:
                return None

            updated = dict(current)
            mutate(updated)
            self.data['users'][user_id_str] = updated
            try:
                self.save()
            except StorageError:
                self.data['users'][user_id_str] = current
                raise
            return dict(updated)

    def update_last_faucet_claim(self, user_id: int, when: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Record a successful faucet claim"""
        claimed_at = when or utc_now_iso()
        return self.update_user(user_id, lambda record: record.update(last_faucet_claim=claimed_at))

    def all_user_ids(self) -> List[str]:
        with self._lock:
            return list(self.data['users'].keys())
