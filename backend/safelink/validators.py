"""
Input Validation
────────────────
"""

import re
from fastapi import HTTPException

MAX_URL_LENGTH = 2048

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)


def validate_url(url: str) -> str:
    """Trim a submitted URL and prefix ``http://`` when no scheme is given.

    Raises HTTPException(400) on empty or oversized input. Whether the
    result actually parses is left to the scorer, which reports it as an
    ``error`` scan.
    """
    url = (url or "").strip()
    if not url:
        raise HTTPException(400, "URL cannot be empty")
    if len(url) > MAX_URL_LENGTH:
        raise HTTPException(400, f"URL too long (max {MAX_URL_LENGTH} characters)")
    if not _SCHEME_RE.match(url):
        url = "http://" + url
    return url
