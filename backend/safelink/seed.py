"""Seed default threat domains on startup."""

import logging

from sqlalchemy.exc import SQLAlchemyError

from .database import SessionLocal
from .models import ThreatDomain

logger = logging.getLogger("safelink.seed")

# (domain, threat_type, confidence_level)
# Short entries match as substrings of longer hostnames, so keep them specific
# (``t.co`` would flag ``microsoft.com``).
DEFAULT_THREAT_DOMAINS = (
    ("bit.ly", "suspicious", 20),
    ("tinyurl.com", "suspicious", 20),
    ("is.gd", "suspicious", 20),
    ("cutt.ly", "suspicious", 20),
    ("rb.gy", "suspicious", 20),
    ("shorturl.at", "suspicious", 20),
)


def seed_threat_domains(entries=DEFAULT_THREAT_DOMAINS) -> int:
    """Insert missing default entries. Returns the number added."""
    db = SessionLocal()
    added = 0
    try:
        for domain, threat_type, confidence in entries:
            exists = db.query(ThreatDomain).filter(ThreatDomain.domain == domain).first()
            if not exists:
                db.add(ThreatDomain(
                    domain=domain, threat_type=threat_type,
                    confidence_level=confidence, source="seed",
                ))
                added += 1
        db.commit()
        logger.info("Threat domains seeded (%d new).", added)
    except SQLAlchemyError as exc:
        logger.error("Seed error: %s", exc)
        db.rollback()
        added = 0
    finally:
        db.close()
    return added
