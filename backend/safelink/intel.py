"""
Threat Intelligence Layer
─────────────────────────
Known-bad / suspicious domains live in the ``threat_domains`` table,
maintained by an external ingestion process. Lookups match the hostname
exactly or catch a known domain embedded in a longer hostname
(``paypal.com.evil.tk``). Results are kept in an in-memory TTL cache.
"""

import os
import time
import threading
import logging
from pathlib import Path
from typing import Callable, Dict, NamedTuple, Optional

from dotenv import load_dotenv
from sqlalchemy import literal
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import ThreatLookupUnavailable
from .models import ThreatDomain

logger = logging.getLogger("safelink.intel")

env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

CACHE_TTL = int(os.getenv("INTEL_CACHE_TTL", "300"))
CACHE_MAX_ENTRIES = int(os.getenv("INTEL_CACHE_MAX_ENTRIES", "10000"))


class ThreatDomainRecord(NamedTuple):
    domain: str
    threat_type: str
    confidence_level: int


ThreatLookup = Callable[[str], Optional[ThreatDomainRecord]]

# ── In-memory TTL cache (bounded; oldest entries evicted first) ──
_cache: Dict[str, tuple] = {}
_cache_lock = threading.Lock()
_MISS = object()


def _cget(key: str):
    with _cache_lock:
        entry = _cache.get(key)
        if entry is None:
            return _MISS
        val, ts = entry
        if time.time() - ts < CACHE_TTL:
            return val
        _cache.pop(key, None)
    return _MISS


def _cset(key: str, val: Optional[ThreatDomainRecord]):
    if CACHE_TTL <= 0 or CACHE_MAX_ENTRIES <= 0:
        return
    now = time.time()
    with _cache_lock:
        _cache.pop(key, None)
        if len(_cache) >= CACHE_MAX_ENTRIES:
            # Sweep expired entries, then drop the oldest until there is room
            for k in [k for k, (_, ts) in _cache.items() if now - ts >= CACHE_TTL]:
                del _cache[k]
            while len(_cache) >= CACHE_MAX_ENTRIES:
                _cache.pop(next(iter(_cache)))
        _cache[key] = (val, now)


def cache_size() -> int:
    return len(_cache)


def clear_cache():
    with _cache_lock:
        _cache.clear()


def _to_record(row: ThreatDomain) -> ThreatDomainRecord:
    return ThreatDomainRecord(
        domain=row.domain,
        threat_type=row.threat_type,
        confidence_level=max(0, int(row.confidence_level or 0)),
    )


def lookup_threat_domain(db: Session, hostname: str) -> Optional[ThreatDomainRecord]:
    """Return the threat record for ``hostname`` or None when it is not listed."""
    hostname = (hostname or "").lower()
    if not hostname:
        return None

    cached = _cget(hostname)
    if cached is not _MISS:
        return cached

    try:
        row = db.query(ThreatDomain).filter(ThreatDomain.domain == hostname).first()
        if row is None:
            row = (
                db.query(ThreatDomain)
                .filter(literal(hostname).contains(ThreatDomain.domain))
                .order_by(ThreatDomain.confidence_level.desc(), ThreatDomain.id.asc())
                .first()
            )
    except SQLAlchemyError as exc:
        # Leave the session usable for the scan insert that follows
        db.rollback()
        raise ThreatLookupUnavailable(str(exc)[:200]) from exc

    record = _to_record(row) if row is not None else None
    _cset(hostname, record)
    if record:
        logger.info("Threat domain hit: %s -> %s (%s)", hostname, record.domain, record.threat_type)
    return record


def make_threat_lookup(db: Session) -> ThreatLookup:
    """Bind a session so the scorer can call ``lookup(hostname)``."""
    def _lookup(hostname: str) -> Optional[ThreatDomainRecord]:
        return lookup_threat_domain(db, hostname)
    return _lookup
