"""
Encryption codec for task data stored locally and remotely

Payloads are encrypted with Fernet (AES-128-CBC + HMAC) using a key derived
from the application secret and, optionally, the user id. This keeps two
users' local caches apart but is obfuscation, not access control: anyone
with the application secret and a user id can derive the key.
"""

import base64
import hashlib
import json
from typing import Any, Dict, Optional
from cryptography.fernet import Fernet, InvalidToken
from worknotes.config.constants import ENCRYPTION_PREFIX
from worknotes.utils.logger import logger


class EncryptionCodec:
    """Symmetric encrypt/decrypt of JSON payloads keyed by an optional user id"""

    def __init__(self, secret: str):
        """
        Initialize codec

        Args:
            secret: Application secret combined with the user id to derive keys
        """
        if not secret:
            raise ValueError("Encryption secret is required")
        self.secret = secret
        self.logger = logger

    def generate_key(self, user_id: Optional[str] = None) -> str:
        """Key material for a user (or the anonymous key when no user id)"""
        return f"{self.secret}-{user_id}" if user_id else self.secret

    def _fernet(self, user_id: Optional[str] = None) -> Fernet:
        digest = hashlib.sha256(self.generate_key(user_id).encode("utf-8")).digest()
        return Fernet(base64.urlsafe_b64encode(digest))

    @staticmethod
    def is_encrypted(data: Any) -> bool:
        """Whether a value carries the encryption prefix"""
        return isinstance(data, str) and data.startswith(ENCRYPTION_PREFIX)

    def encrypt(self, payload: Any, user_id: Optional[str] = None) -> str:
        """
        Encrypt a payload

        Strings are encrypted as-is, anything else is serialized to JSON first.
        Already-encrypted strings are returned unchanged.

        Args:
            payload: Any JSON-serializable value
            user_id: Optional user id for user-specific keys

        Returns:
            Encrypted string with prefix
        """
        if self.is_encrypted(payload):
            return payload

        try:
            text = payload if isinstance(payload, str) else json.dumps(payload, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            self.logger.error(f"Error serializing payload for encryption: {e}")
            raise

        try:
            token = self._fernet(user_id).encrypt(text.encode("utf-8")).decode("ascii")
        except Exception as e:
            self.logger.error(f"Error encrypting data: {e}")
            return text

        return f"{ENCRYPTION_PREFIX}{token}"

    def decrypt_text(self, data: Any, user_id: Optional[str] = None) -> Any:
        """
        Decrypt a single field without JSON parsing

        Returns the decrypted text, or the input unchanged when it is not
        encrypted or cannot be decrypted.
        """
        if not self.is_encrypted(data):
            return data

        token = data[len(ENCRYPTION_PREFIX):]
        try:
            decrypted = self._fernet(user_id).decrypt(token.encode("ascii")).decode("utf-8")
        except (InvalidToken, ValueError, UnicodeError) as e:
            self.logger.warning(f"Error decrypting data: {type(e).__name__}")
            return data

        if not decrypted:
            self.logger.warning("Decryption resulted in empty string")
            return data

        return decrypted

    def decrypt(self, data: Any, user_id: Optional[str] = None) -> Any:
        """
        Decrypt a payload produced by encrypt()

        Data without the prefix is treated as the legacy plaintext format and
        parsed as JSON. Never raises: if every strategy fails the input is
        returned unchanged and callers validate the shape.

        Args:
            data: Possibly encrypted string
            user_id: Optional user id that was used for encryption

        Returns:
            Decrypted value or the original data
        """
        if not data or not isinstance(data, str):
            return data

        if not self.is_encrypted(data):
            try:
                return json.loads(data)
            except ValueError:
                self.logger.debug("Data is neither encrypted nor JSON, returning as is")
                return data

        decrypted = self.decrypt_text(data, user_id)
        if decrypted is data:
            return data

        if decrypted.startswith("{") or decrypted.startswith("["):
            try:
                return json.loads(decrypted)
            except ValueError:
                return decrypted

        return decrypted

    @staticmethod
    def flag_as_encrypted(row: Dict[str, Any]) -> Dict[str, Any]:
        """Add the is_encrypted flag to a database record"""
        return {**row, "is_encrypted": True}

    @classmethod
    def is_row_encrypted(cls, row: Dict[str, Any]) -> bool:
        """Check whether a database record holds encrypted content"""
        if row and isinstance(row.get("content"), str):
            return cls.is_encrypted(row["content"])
        return False
