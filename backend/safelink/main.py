"""SafeLink Backend – FastAPI application entry point."""

import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from .database import Base, engine, SessionLocal
from .errors import StorageError
from .seed import seed_threat_domains
from .middleware import RateLimitMiddleware
from .routers import auth, scans

VERSION = "2.0.0"

logging.basicConfig(level=logging.INFO, format="%(asctime)s  %(name)-18s  %(levelname)-5s  %(message)s")
logger = logging.getLogger("safelink")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
RATE_LIMIT_GLOBAL = int(os.getenv("RATE_LIMIT_GLOBAL", "120"))
RATE_LIMIT_WINDOW = int(os.getenv("RATE_LIMIT_WINDOW", "60"))
RATE_LIMIT_SCAN = int(os.getenv("RATE_LIMIT_SCAN", "30"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: create tables, seed threat domains.

    Wrapped in try/except so the app starts even if the database is down.
    /health will report db=false until the database becomes available.
    """
    try:
        Base.metadata.create_all(bind=engine)
        seed_threat_domains()
        logger.info("[SafeLink] Database ready.")
    except Exception as exc:
        logger.error("[SafeLink] Database unavailable at startup: %s", exc)
        logger.warning("[SafeLink] App will start anyway. /health will report db=false.")

    yield


app = FastAPI(
    title="SafeLink Backend API",
    description="Link safety scanner with per-user scan history",
    version=VERSION,
    lifespan=lifespan,
)

# ── Middleware (order matters: first added = innermost) ──
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)
app.add_middleware(
    RateLimitMiddleware,
    global_limit=RATE_LIMIT_GLOBAL,
    window=RATE_LIMIT_WINDOW,
    endpoint_limits={"/api/scan-link": RATE_LIMIT_SCAN},
)

# ── Routers ──
app.include_router(auth.router)
app.include_router(scans.router)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content={"status": "error", "detail": "Scan history is temporarily unavailable"},
    )


@app.get("/", tags=["health"])
def root():
    return {"status": "ok", "version": VERSION, "service": "SafeLink Backend API"}


@app.get("/health", tags=["health"])
def health_check():
    """Unauthenticated health probe; never raises, reports db reachability."""
    db_ok = False
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except Exception as exc:
        logger.warning("Health check: database unreachable: %s", exc)
    finally:
        db.close()

    return {
        "ok": True,
        "time": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "version": VERSION,
        "db": db_ok,
    }
