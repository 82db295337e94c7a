# models.py
"""
Database models for Miller Mitra.

All ledger data is kept as JSON strings in a single key-value table so that
the storage keys (``{username}_{kind}_{season}``) and the backup file format
stay a flat key to raw-string map.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class StorageEntry(Base):
    """One storage slot: a season collection or the global profile list."""
    __tablename__ = "storage_entries"

    id = Column(Integer, primary_key=True)
    storage_key = Column(String(255), nullable=False, unique=True, index=True)
    value = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<StorageEntry {self.storage_key} ({len(self.value or '')} chars)>"
