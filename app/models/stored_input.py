"""
Persistence for the last submitted NDJSON input and its audit trail.

Raw NDJSON carries PHI, so the stored value is always ciphertext produced by
the encryption service. Derived analytics are never persisted.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Index, String, Text

from app.models.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Stored input – key/value entry with an expiry checked on read
# ---------------------------------------------------------------------------
class StoredInput(Base):
    __tablename__ = "stored_inputs"

    key = Column(String(128), primary_key=True)
    encrypted_value = Column(Text, nullable=False, comment="Fernet-encrypted NDJSON text")
    stored_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True, comment="NULL = never expires")


# ---------------------------------------------------------------------------
# Audit Log – immutable compliance trail for stored PHI
# ---------------------------------------------------------------------------
class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    actor = Column(String(128), nullable=False, comment="User or service identity")
    action = Column(String(64), nullable=False, comment="store | read | clear | expire")
    resource_type = Column(String(64), nullable=False)
    resource_id = Column(String(128), nullable=False)
    detail = Column(JSON, comment="Context for the action")
    timestamp = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (Index("ix_audit_timestamp", "timestamp"),)
