"""Database models for the drill engine."""
from sqlalchemy import Column, String, Text

from vocadrill.models.base import Base, TimestampMixin


class KeyValueEntry(Base, TimestampMixin):
    """A serialized record stored under a well-known key."""

    __tablename__ = "key_value_entries"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<KeyValueEntry key={self.key!r} size={len(self.value or '')}>"
