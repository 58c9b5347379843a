"""
URL Risk Scoring Engine
───────────────────────
Combines: threat-domain lookup + pattern rules + structural heuristics.
Output: accumulated threat level, status safe/suspicious/malicious,
ordered list of human-readable findings.
"""

import logging
from datetime import datetime, timezone
from typing import NamedTuple, Optional
from urllib.parse import urlparse

from .detector import HTTP_PENALTY, match_patterns, structural_findings
from .errors import MalformedUrlError, ThreatLookupUnavailable
from .intel import ThreatDomainRecord, ThreatLookup
from .schemas import ScanChecks, ScanDetails, ScanErrorDetails, ScanResult

logger = logging.getLogger("safelink.scoring")

# Bump whenever PATTERN_RULES or the thresholds below change.
SCAN_VERSION = "2.0"

MALICIOUS_THRESHOLD = 70
SUSPICIOUS_THRESHOLD = 30


class ParsedUrl(NamedTuple):
    scheme: str
    hostname: str


def parse_url(url: str) -> ParsedUrl:
    """Parse an absolute URL. Raises MalformedUrlError."""
    try:
        p = urlparse(url)
        p.port  # raises ValueError on a non-numeric / out-of-range port
    except ValueError as exc:
        raise MalformedUrlError(str(exc)) from exc

    if not p.scheme:
        raise MalformedUrlError("URL has no scheme")
    hostname = p.hostname or ""
    if not hostname:
        raise MalformedUrlError("URL has no host")
    if any(ch.isspace() for ch in hostname):
        raise MalformedUrlError(f"Invalid host: {hostname!r}")
    return ParsedUrl(scheme=p.scheme.lower(), hostname=to_ascii_host(hostname))


def to_ascii_host(hostname: str) -> str:
    """IDNA (punycode) form of an internationalised host, as browsers report it."""
    if hostname.isascii():
        return hostname
    try:
        return hostname.encode("idna").decode("ascii")
    except UnicodeError:
        # Labels the codec refuses (too long, empty) are scored as typed
        return hostname


def bucket_status(threat_level: int) -> str:
    if threat_level >= MALICIOUS_THRESHOLD:
        return "malicious"
    if threat_level >= SUSPICIOUS_THRESHOLD:
        return "suspicious"
    return "safe"


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _safe_lookup(threat_lookup: Optional[ThreatLookup], hostname: str) -> Optional[ThreatDomainRecord]:
    if threat_lookup is None:
        return None
    try:
        return threat_lookup(hostname)
    except ThreatLookupUnavailable as exc:
        # Fail open: an intel outage must never block a scan
        logger.warning("Threat lookup unavailable for %s: %s", hostname, exc)
        return None


def score_url(url: str, threat_lookup: Optional[ThreatLookup] = None) -> ScanResult:
    """
    Score a single URL.

    ``threat_lookup`` maps a hostname to a ThreatDomainRecord or None.
    Never raises for bad input: a URL that does not parse comes back as
    ``status="error"`` with ``error`` / ``errorDetails``.
    """
    try:
        parsed = parse_url(url)
    except MalformedUrlError as exc:
        return ScanResult(
            status="error",
            scan_details=ScanErrorDetails(
                error="Invalid URL or scan failed",
                error_details=str(exc) or "Unknown error",
            ),
        )

    https_enabled = parsed.scheme == "https"
    threat_level = 0
    detected_patterns = []
    suspicious_characters = False
    shortener_service = False
    threat_intelligence = "clean"

    # 1. Threat intelligence
    record = _safe_lookup(threat_lookup, parsed.hostname)
    if record is not None:
        threat_level += record.confidence_level
        threat_intelligence = record.threat_type
        shortener_service = record.threat_type == "suspicious"

    # 2. Pattern rules (full URL string)
    for rule in match_patterns(url):
        detected_patterns.append(rule.reason)
        threat_level += rule.risk
        suspicious_characters = True

    # 3. Length + subdomain depth
    for reason, risk in structural_findings(url, parsed.hostname):
        detected_patterns.append(reason)
        threat_level += risk

    # 4. Plain HTTP counts toward the score but is not listed as a finding
    if not https_enabled:
        threat_level += HTTP_PENALTY

    checks = ScanChecks(
        https_enabled=https_enabled,
        suspicious_characters=suspicious_characters,
        shortener_service=shortener_service,
        threat_intelligence=threat_intelligence,
    )
    return ScanResult(
        status=bucket_status(threat_level),
        scan_details=ScanDetails(
            domain=parsed.hostname,
            protocol=parsed.scheme + ":",
            threat_level=threat_level,
            detected_patterns=tuple(detected_patterns),
            checks=checks,
            scan_timestamp=_utc_timestamp(),
            scan_version=SCAN_VERSION,
        ),
    )
