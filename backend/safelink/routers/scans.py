"""Scan endpoints: scan a link + per-user history + per-user stats."""

import json
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..database import get_db
from ..errors import StorageError
from ..intel import make_threat_lookup
from ..models import ScannedLink
from ..schemas import ScanLinkRequest, ScanLinkResponse, ScanStatRow
from ..scoring import score_url
from ..security import CurrentUser, get_current_user
from ..store import HISTORY_LIMIT, STATS_LIMIT, append_scan, decode_details, list_recent_scans, scan_stats
from ..validators import validate_url

logger = logging.getLogger("safelink.scans")

router = APIRouter(prefix="/api", tags=["scans"])


@router.post("/scan-link", response_model=ScanLinkResponse)
def scan_link(
    payload: ScanLinkRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    url = validate_url(payload.url)

    try:
        result = score_url(url, make_threat_lookup(db))
        details = result.details_dict()
        s = append_scan(db, user.id, url, result.status, json.dumps(details))
    except Exception as exc:
        logger.exception("Error scanning link %s", url)
        return _scan_failed_response(db, user.id, url, exc)

    return ScanLinkResponse(
        id=s.id, url=url, status=result.status,
        scan_details=details, scanned_at=_iso(s.scanned_at),
    )


@router.get("/scan-history", response_model=List[ScanLinkResponse])
def scan_history(db: Session = Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    rows = list_recent_scans(db, user.id, limit=HISTORY_LIMIT)
    return [_scan_to_response(s) for s in rows]


@router.get("/scan-stats", response_model=List[ScanStatRow])
def stats(db: Session = Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    return [ScanStatRow(**row) for row in scan_stats(db, user.id, limit=STATS_LIMIT)]


def _scan_failed_response(db: Session, user_id: str, url: str, exc: Exception) -> JSONResponse:
    details = {
        "error": "Failed to scan URL",
        "errorDetails": str(exc) or "Unknown error",
    }
    # Best effort: the error itself goes into the history when the store is reachable
    try:
        append_scan(db, user_id, url, "error", json.dumps(details))
    except StorageError as store_exc:
        logger.warning("Could not persist error record for %s: %s", url, store_exc)

    return JSONResponse(
        status_code=500,
        content={
            "url": url,
            "status": "error",
            "scanDetails": details,
            "scannedAt": _iso(datetime.now(timezone.utc)),
        },
    )


def _iso(ts) -> Optional[str]:
    if ts is None:
        return None
    if isinstance(ts, datetime):
        return ts.isoformat()
    return str(ts)


def _scan_to_response(s: ScannedLink) -> ScanLinkResponse:
    return ScanLinkResponse(
        id=s.id,
        url=s.url,
        status=s.status,
        scan_details=decode_details(s.scan_details),
        scanned_at=_iso(s.scanned_at),
    )
