"""SQLAlchemy ORM models."""

from sqlalchemy import Column, Integer, String, Text, Enum, TIMESTAMP
from sqlalchemy.sql import func
from .database import Base


SCAN_STATUSES = ("safe", "suspicious", "malicious", "error")


class ScannedLink(Base):
    """One row per scan request; written once, never updated."""
    __tablename__ = "scanned_links"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(128), nullable=False, index=True)
    url = Column(Text, nullable=False)
    status = Column(Enum(*SCAN_STATUSES, name="scan_status"), nullable=False)
    # JSON-encoded scanDetails (or {error, errorDetails})
    scan_details = Column(Text, nullable=True)
    scanned_at = Column(TIMESTAMP, server_default=func.now(), index=True)


class ThreatDomain(Base):
    __tablename__ = "threat_domains"
    id = Column(Integer, primary_key=True, index=True)
    domain = Column(String(255), unique=True, nullable=False, index=True)
    threat_type = Column(String(50), nullable=False, default="suspicious")
    confidence_level = Column(Integer, nullable=False, default=50)
    source = Column(String(100), nullable=True)
    created_at = Column(TIMESTAMP, server_default=func.now())
