"""
Key Vault Service
Encrypts wallet private keys at rest using a master secret
"""

import os
import base64
import logging
from pathlib import Path
from typing import Optional
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 390_000
SALT_SIZE = 16


class KeyVaultError(Exception):
    """Raised when a stored secret cannot be decrypted"""


class KeyVault:
    """
    Fernet encryption keyed by PBKDF2(master secret, per-store salt)

    When no master secret is configured the vault is disabled and secrets
    pass through unchanged.
    """

    def __init__(self, master_secret: Optional[str], salt_file: Path):
        """
        Initialize Key Vault

        Args:
            master_secret: Secret used to derive the encryption key (None disables encryption)
            salt_file: Path of the salt file kept next to the user store
        """
        self.enabled = bool(master_secret)
        self.salt_file = salt_file
        self._fernet = None

        if self.enabled:
            salt = self._get_or_create_salt()
            self._fernet = Fernet(self._derive_key(master_secret, salt))
            logger.info("Key vault enabled: private keys are encrypted at rest")
        else:
            logger.warning("WALLET_ENCRYPTION_KEY not set - private keys are stored in plaintext")

    def _get_or_create_salt(self) -> bytes:
        if self.salt_file.exists():
            return self.salt_file.read_bytes()

        self.salt_file.parent.mkdir(parents=True, exist_ok=True)
        salt = os.urandom(SALT_SIZE)
        tmp = self.salt_file.with_suffix('.tmp')
        tmp.write_bytes(salt)
        os.replace(tmp, self.salt_file)
        logger.info(f"Created new key vault salt at {self.salt_file}")
        return salt

    @staticmethod
    def _derive_key(master_secret: str, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=PBKDF2_ITERATIONS,
        )
        return base64.urlsafe_b64encode(kdf.derive(master_secret.encode('utf-8')))

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a secret, returning a Fernet token (or the plaintext if disabled)"""
        if not self.enabled:
            return plaintext
        return self._fernet.encrypt(plaintext.encode('utf-8')).decode('ascii')

    def decrypt(self, token: str) -> str:
        """
        Decrypt a Fernet token

        Raises:
            KeyVaultError: If the vault is disabled or the token does not match the key
        """
        if not self.enabled:
            raise KeyVaultError("Cannot decrypt: WALLET_ENCRYPTION_KEY is not configured")
        try:
            return self._fernet.decrypt(token.encode('ascii')).decode('utf-8')
        except InvalidToken:
            raise KeyVaultError("Decryption failed: invalid token or master secret")
