"""SQLAlchemy database models."""

from sqlalchemy import BigInteger, Column, Index, LargeBinary, String
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class CacheEntry(Base):
    """A cached binary artifact (one row per key)."""
    __tablename__ = "artifact_cache"

    key = Column(String, primary_key=True)
    version = Column(String, nullable=False)
    timestamp = Column(BigInteger, nullable=False)  # ms since epoch, write time
    size = Column(BigInteger, nullable=False)
    data = Column(LargeBinary, nullable=False)

    __table_args__ = (
        Index('idx_artifact_version', 'version'),
        Index('idx_artifact_timestamp', 'timestamp'),
    )
