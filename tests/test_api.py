"""
SafeLink – API Tests
────────────────────
"""

from fastapi.testclient import TestClient

from safelink.errors import StorageError
from safelink.main import app
from safelink.models import ScannedLink, ThreatDomain
from safelink.routers import scans as scans_router
from safelink.security import SESSION_COOKIE_NAME, create_access_token
from safelink.store import append_scan


# ── Health ──
def test_root(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_health_reports_db(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["db"] is True


# ── Auth ──
def test_requires_token(client):
    assert client.get("/api/scan-history").status_code == 401
    assert client.post("/api/scan-link", json={"url": "https://example.com"}).status_code == 401


def test_invalid_token(client):
    r = client.get("/api/scan-history", headers={"Authorization": "Bearer invalidtoken"})
    assert r.status_code == 401


def test_expired_token(client):
    token = create_access_token({"sub": "user-1"}, expires_minutes=-1)
    r = client.get("/api/scan-history", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_token_without_subject(client):
    token = create_access_token({"email": "a@example.com"})
    r = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_me(client, auth_headers):
    r = client.get("/api/users/me", headers=auth_headers("user-42", email="u@example.com", name="U"))
    assert r.status_code == 200
    assert r.json() == {"id": "user-42", "email": "u@example.com", "name": "U"}


def test_session_cookie_auth():
    c = TestClient(app)
    c.cookies.set(SESSION_COOKIE_NAME, create_access_token({"sub": "cookie-user"}))
    r = c.get("/api/users/me")
    assert r.status_code == 200
    assert r.json()["id"] == "cookie-user"


# ── Scanning ──
def test_scan_safe_url(client, auth_headers):
    r = client.post("/api/scan-link", json={"url": "https://www.example.com"}, headers=auth_headers())
    assert r.status_code == 200
    d = r.json()
    assert d["id"] > 0
    assert d["url"] == "https://www.example.com"
    assert d["status"] == "safe"
    assert d["scannedAt"]
    details = d["scanDetails"]
    assert details["threatLevel"] == 0
    assert details["domain"] == "www.example.com"
    assert details["protocol"] == "https:"
    assert details["checks"]["httpsEnabled"] is True
    assert details["scanVersion"] == "2.0"


def test_scan_prefixes_missing_scheme(client, auth_headers):
    r = client.post("/api/scan-link", json={"url": "  example.com  "}, headers=auth_headers())
    d = r.json()
    assert d["url"] == "http://example.com"
    assert d["scanDetails"]["threatLevel"] == 25


def test_scan_known_threat_domain(client, auth_headers, db):
    db.add(ThreatDomain(domain="evil-login.com", threat_type="phishing", confidence_level=80))
    db.commit()
    r = client.post("/api/scan-link", json={"url": "https://secure.evil-login.com/x"}, headers=auth_headers())
    d = r.json()
    assert d["status"] == "malicious"
    assert d["scanDetails"]["checks"]["threatIntelligence"] == "phishing"


def test_scan_malicious_patterns(client, auth_headers):
    r = client.post("/api/scan-link", json={"url": "https://xn--paypal123.tk"}, headers=auth_headers())
    d = r.json()
    assert d["status"] == "malicious"
    patterns = d["scanDetails"]["detectedPatterns"]
    assert patterns.index("Punycode detected") < patterns.index("Free domain extension")
    assert patterns.index("Free domain extension") < patterns.index("Brand name with numbers (suspicious)")


def test_scan_persists_record(client, auth_headers, db):
    r = client.post("/api/scan-link", json={"url": "http://192.168.1.20/login"}, headers=auth_headers("owner"))
    row = db.query(ScannedLink).filter(ScannedLink.id == r.json()["id"]).one()
    assert row.user_id == "owner"
    assert row.status == "suspicious"
    assert '"threatLevel": 60' in row.scan_details


def test_scan_malformed_url_is_error_and_persisted(client, auth_headers):
    h = auth_headers()
    r = client.post("/api/scan-link", json={"url": "not a url"}, headers=h)
    assert r.status_code == 200
    d = r.json()
    assert d["status"] == "error"
    assert d["scanDetails"]["error"]
    assert "threatLevel" not in d["scanDetails"]

    history = client.get("/api/scan-history", headers=h).json()
    assert history[0]["status"] == "error"


def test_scan_empty_url_rejected(client, auth_headers):
    r = client.post("/api/scan-link", json={"url": "   "}, headers=auth_headers())
    assert r.status_code == 400


def test_scan_storage_failure(client, auth_headers, monkeypatch):
    def broken_append(*args, **kwargs):
        raise StorageError("disk full")

    monkeypatch.setattr(scans_router, "append_scan", broken_append)
    r = client.post("/api/scan-link", json={"url": "https://example.com"}, headers=auth_headers())
    assert r.status_code == 500
    d = r.json()
    assert d["status"] == "error"
    assert d["url"] == "https://example.com"
    assert d["scanDetails"]["error"] == "Failed to scan URL"
    assert "disk full" in d["scanDetails"]["errorDetails"]


def test_scan_unexpected_failure_records_error(client, auth_headers, monkeypatch, db):
    def boom(url, lookup):
        raise RuntimeError("scorer crashed")

    monkeypatch.setattr(scans_router, "score_url", boom)
    r = client.post("/api/scan-link", json={"url": "https://example.com"}, headers=auth_headers("u9"))
    assert r.status_code == 500
    row = db.query(ScannedLink).filter(ScannedLink.user_id == "u9").one()
    assert row.status == "error"
    assert "scorer crashed" in row.scan_details


# ── History ──
def test_history_newest_first_and_isolated(client, auth_headers):
    alice, bob = auth_headers("alice"), auth_headers("bob")
    client.post("/api/scan-link", json={"url": "https://first.com"}, headers=alice)
    client.post("/api/scan-link", json={"url": "https://second.com"}, headers=alice)
    client.post("/api/scan-link", json={"url": "https://bob.com"}, headers=bob)

    r = client.get("/api/scan-history", headers=alice)
    assert r.status_code == 200
    urls = [e["url"] for e in r.json()]
    assert urls == ["https://second.com", "https://first.com"]
    entry = r.json()[0]
    assert set(entry) == {"id", "url", "status", "scanDetails", "scannedAt"}
    assert entry["scanDetails"]["domain"] == "second.com"

    assert [e["url"] for e in client.get("/api/scan-history", headers=bob).json()] == ["https://bob.com"]


def test_history_capped_at_50(client, auth_headers, db):
    for i in range(55):
        append_scan(db, "heavy", f"https://{i}.example.com", "safe", "{}")
    r = client.get("/api/scan-history", headers=auth_headers("heavy"))
    assert len(r.json()) == 50
    assert r.json()[0]["url"] == "https://54.example.com"


def test_history_tolerates_bad_details(client, auth_headers, db):
    append_scan(db, "u1", "https://a.com", "safe", "not-json")
    r = client.get("/api/scan-history", headers=auth_headers("u1"))
    assert r.json()[0]["scanDetails"] == {}


# ── Stats ──
def test_stats(client, auth_headers):
    h = auth_headers("stats-user")
    client.post("/api/scan-link", json={"url": "https://example.com"}, headers=h)
    client.post("/api/scan-link", json={"url": "https://example.org"}, headers=h)
    client.post("/api/scan-link", json={"url": "https://paypal.tk"}, headers=h)
    client.post("/api/scan-link", json={"url": "https://other.com"}, headers=auth_headers("someone-else"))

    r = client.get("/api/scan-stats", headers=h)
    assert r.status_code == 200
    rows = r.json()
    counts = {row["status"]: row["count"] for row in rows}
    assert counts == {"safe": 2, "malicious": 1}
    assert all(row["scanDate"] for row in rows)


def test_scan_trims_padded_url(client, auth_headers):
    url = "https://example.com/" + "a" * 2000
    r = client.post("/api/scan-link", json={"url": "   " + url + "   "}, headers=auth_headers())
    assert r.status_code == 200
    assert r.json()["url"] == url


def test_scan_oversized_url_rejected(client, auth_headers):
    r = client.post("/api/scan-link", json={"url": "https://e.com/" + "a" * 3000}, headers=auth_headers())
    assert r.status_code == 400
    assert "too long" in r.json()["detail"]


# ── Storage outages on reads ──
def test_history_storage_failure_is_json(client, auth_headers, monkeypatch):
    def broken(*args, **kwargs):
        raise StorageError("db down")

    monkeypatch.setattr(scans_router, "list_recent_scans", broken)
    r = client.get("/api/scan-history", headers=auth_headers())
    assert r.status_code == 500
    assert r.headers["content-type"].startswith("application/json")
    assert r.json()["status"] == "error"
    assert r.json()["detail"]


def test_stats_storage_failure_is_json(client, auth_headers, monkeypatch):
    def broken(*args, **kwargs):
        raise StorageError("db down")

    monkeypatch.setattr(scans_router, "scan_stats", broken)
    r = client.get("/api/scan-stats", headers=auth_headers())
    assert r.status_code == 500
    assert r.json()["status"] == "error"
