"""
Scan Record Store
─────────────────
Append-only per-user scan history on top of the ``scanned_links`` table.
The database assigns ``id`` and ``scanned_at``; rows are never updated.
"""

import json
import logging
from typing import List

from sqlalchemy import func as sqlfunc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import StorageError
from .models import ScannedLink

logger = logging.getLogger("safelink.store")

HISTORY_LIMIT = 50
STATS_LIMIT = 30


def append_scan(db: Session, user_id: str, url: str, status: str, scan_details_json: str) -> ScannedLink:
    """Insert one scan record and return it with its id and timestamp populated."""
    row = ScannedLink(user_id=user_id, url=url, status=status, scan_details=scan_details_json)
    try:
        db.add(row)
        db.commit()
        db.refresh(row)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError(f"Could not save scan: {str(exc)[:200]}") from exc
    logger.info("Saved scan %s for user %s (%s)", row.id, user_id, status)
    return row


def list_recent_scans(db: Session, user_id: str, limit: int = HISTORY_LIMIT) -> List[ScannedLink]:
    try:
        return (
            db.query(ScannedLink)
            .filter(ScannedLink.user_id == user_id)
            .order_by(ScannedLink.scanned_at.desc(), ScannedLink.id.desc())
            .limit(limit)
            .all()
        )
    except SQLAlchemyError as exc:
        raise StorageError(f"Could not read scan history: {str(exc)[:200]}") from exc


def scan_stats(db: Session, user_id: str, limit: int = STATS_LIMIT) -> List[dict]:
    """Scan counts grouped by status and calendar day, newest day first."""
    scan_date = sqlfunc.date(ScannedLink.scanned_at).label("scan_date")
    try:
        rows = (
            db.query(ScannedLink.status, sqlfunc.count(ScannedLink.id), scan_date)
            .filter(ScannedLink.user_id == user_id)
            .group_by(ScannedLink.status, scan_date)
            .order_by(scan_date.desc(), ScannedLink.status)
            .limit(limit)
            .all()
        )
    except SQLAlchemyError as exc:
        raise StorageError(f"Could not read scan stats: {str(exc)[:200]}") from exc
    return [
        {"status": status, "count": count, "scan_date": str(day) if day is not None else None}
        for status, count, day in rows
    ]


def decode_details(raw) -> dict:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}
