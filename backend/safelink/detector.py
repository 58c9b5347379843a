"""
Heuristic URL Detector – ordered pattern rules + structural checks.
────────────────────────────────────────────────────────────────────
Rules are evaluated against the full URL string in declaration order;
the order is part of the output (``detectedPatterns``), so append new
rules at the end and bump ``SCAN_VERSION`` in scoring.py.
"""

import re
from typing import List, NamedTuple, Pattern, Tuple

BRANDS = ("paypal", "amazon", "google", "microsoft", "apple")
FREE_TLDS = ("tk", "ml", "ga", "cf")
IMPERSONATION_TLDS = FREE_TLDS + ("info", "biz")

HTTP_PENALTY = 25
LONG_URL_LENGTH = 200
LONG_URL_RISK = 15
MAX_SUBDOMAINS = 3
SUBDOMAIN_RISK = 20

_BRAND_RE = "|".join(BRANDS)


class PatternRule(NamedTuple):
    pattern: Pattern
    reason: str
    risk: int


PATTERN_RULES: Tuple[PatternRule, ...] = (
    PatternRule(re.compile(r"[а-я]", re.IGNORECASE),
                "Cyrillic characters (possible homograph attack)", 40),
    PatternRule(re.compile(r"[αβγδεζηθικλμνξοπρστυφχψω]", re.IGNORECASE),
                "Greek characters (possible homograph attack)", 40),
    PatternRule(re.compile(r"xn--", re.IGNORECASE),
                "Punycode detected", 30),
    PatternRule(re.compile(r"[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}"),
                "IP address instead of domain", 35),
    PatternRule(re.compile(r"-{2,}"),
                "Multiple consecutive hyphens", 20),
    # TLD must close the host: end of string or start of port/path/query/fragment
    PatternRule(re.compile(r"\.(%s)(?=[:/?#]|$)" % "|".join(FREE_TLDS), re.IGNORECASE),
                "Free domain extension", 25),
    PatternRule(re.compile(r"(%s)\.(%s)(?![a-z0-9-])" % (_BRAND_RE, "|".join(IMPERSONATION_TLDS)),
                           re.IGNORECASE),
                "Brand impersonation with suspicious TLD", 70),
    PatternRule(re.compile(r"[0-9]+(%s)|(%s)[0-9]+" % (_BRAND_RE, _BRAND_RE), re.IGNORECASE),
                "Brand name with numbers (suspicious)", 50),
)


def match_patterns(url: str) -> List[PatternRule]:
    """Return every rule whose pattern occurs in ``url``, in table order."""
    return [rule for rule in PATTERN_RULES if rule.pattern.search(url)]


def subdomain_count(hostname: str) -> int:
    # Labels minus registrable domain + TLD; multi-part suffixes (.co.uk) are not special-cased.
    return len(hostname.split(".")) - 2


def structural_findings(url: str, hostname: str) -> List[Tuple[str, int]]:
    """Length and subdomain-depth heuristics as ``(reason, risk)`` pairs."""
    findings = []
    if len(url) > LONG_URL_LENGTH:
        findings.append(("Unusually long URL", LONG_URL_RISK))
    if subdomain_count(hostname) > MAX_SUBDOMAINS:
        findings.append(("Multiple suspicious subdomains", SUBDOMAIN_RISK))
    return findings
