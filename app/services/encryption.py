"""
Fernet encryption for PHI held at rest.

The only PHI this service persists is the raw NDJSON a user asks to have
remembered; it is encrypted before it reaches the database.
"""

import logging

from cryptography.fernet import Fernet, InvalidToken

from app.config import settings

logger = logging.getLogger(__name__)


class DecryptionError(ValueError):
    """Ciphertext could not be decrypted with the configured key."""


class EncryptionService:
    """Wraps Fernet symmetric encryption for stored NDJSON input."""

    def __init__(self, key: str | bytes | None = None):
        raw_key = key or settings.PHI_ENCRYPTION_KEY
        self.ephemeral = not raw_key
        if self.ephemeral:
            # Stored values will not survive a restart without a configured key
            logger.warning("PHI_ENCRYPTION_KEY not set; using an ephemeral key")
            raw_key = Fernet.generate_key()
        self._fernet = Fernet(raw_key.encode() if isinstance(raw_key, str) else raw_key)

    def encrypt(self, plaintext: str) -> str:
        if not plaintext:
            return ""
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        if not ciphertext:
            return ""
        try:
            return self._fernet.decrypt(ciphertext.encode("ascii")).decode("utf-8")
        except InvalidToken as exc:
            raise DecryptionError("Stored value could not be decrypted") from exc
