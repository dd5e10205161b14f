"""
Key/value store for the last submitted NDJSON input.

Mirrors a browser's "remember my last paste" behaviour on the server side:
values expire after a TTL, and expiry is evaluated when a value is read
rather than by a background sweep. Values are encrypted at rest and every
write is audited.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from app.models.stored_input import StoredInput
from app.services.audit import log_action
from app.services.encryption import DecryptionError, EncryptionService

logger = logging.getLogger(__name__)

RESOURCE_TYPE = "StoredInput"


def _as_utc(moment: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class InputStore:
    def __init__(self, db: Session, encryption: EncryptionService, actor: str = "api_user"):
        self.db = db
        self.encryption = encryption
        self.actor = actor

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(seconds=ttl_seconds) if ttl_seconds else None

        entry = self.db.get(StoredInput, key)
        if entry is None:
            entry = StoredInput(key=key)
            self.db.add(entry)
        entry.encrypted_value = self.encryption.encrypt(value)
        entry.stored_at = now
        entry.expires_at = expires_at

        log_action(
            self.db,
            actor=self.actor,
            action="store",
            resource_type=RESOURCE_TYPE,
            resource_id=key,
            detail={"length": len(value), "ttl_seconds": ttl_seconds},
        )
        self.db.commit()

    def get(self, key: str, default: str = "") -> str:
        entry = self.db.get(StoredInput, key)
        if entry is None:
            return default

        if entry.expires_at is not None and _as_utc(entry.expires_at) <= datetime.now(timezone.utc):
            logger.info("Stored input '%s' expired; removing", key)
            self.db.delete(entry)
            log_action(
                self.db,
                actor="system",
                action="expire",
                resource_type=RESOURCE_TYPE,
                resource_id=key,
            )
            self.db.commit()
            return default

        try:
            return self.encryption.decrypt(entry.encrypted_value)
        except DecryptionError:
            logger.warning("Stored input '%s' could not be decrypted; ignoring it", key)
            return default

    def clear(self, key: str) -> bool:
        """Remove a stored value. Returns True if something was removed."""
        entry = self.db.get(StoredInput, key)
        if entry is None:
            return False
        self.db.delete(entry)
        log_action(
            self.db,
            actor=self.actor,
            action="clear",
            resource_type=RESOURCE_TYPE,
            resource_id=key,
        )
        self.db.commit()
        return True
