# --------------------------------------------------------------------------------
# Settings and constants (environment based)
# --------------------------------------------------------------------------------
import os
from dotenv import load_dotenv

load_dotenv()

# Database (SQLite locally, Postgres in production via DATABASE_URL)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///escanix.db").strip()
# Some hosts still hand out postgres:// URLs, which SQLAlchemy 1.4+ rejects
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = "postgresql://" + DATABASE_URL[len("postgres://"):]

# Owner sessions
SESSION_SECRET = (os.getenv("SESSION_SECRET") or "").strip() or "escanix_dev_session_secret"
SESSION_LIFETIME_DAYS = int(os.getenv("SESSION_LIFETIME_DAYS", "7").strip() or "7")

# OIDC provider (owner login)
ISSUER_URL = os.getenv("ISSUER_URL", "https://replit.com/oidc").strip().rstrip("/")
OIDC_CLIENT_ID = (os.getenv("OIDC_CLIENT_ID") or os.getenv("REPL_ID") or "").strip()
OIDC_CLIENT_SECRET = os.getenv("OIDC_CLIENT_SECRET", "").strip()
OIDC_SCOPE = "openid email profile offline_access"
# Discovery document cache lifetime (seconds)
OIDC_DISCOVERY_TTL = 3600

# Public domains the client pages are served from. The first one goes into the QR code.
PUBLIC_DOMAINS = [
    d.strip()
    for d in (os.getenv("PUBLIC_DOMAINS") or os.getenv("REPLIT_DOMAINS") or "").split(",")
    if d.strip()
]

# File uploads (logo, menu)
UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", "uploads").strip() or "uploads"
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "5").strip() or "5")
ALLOWED_UPLOAD_EXTENSIONS = {"jpeg", "jpg", "png", "gif", "pdf"}

# QR code rendering
QR_DARK_COLOR = os.getenv("QR_DARK_COLOR", "#4338ca").strip()
QR_LIGHT_COLOR = os.getenv("QR_LIGHT_COLOR", "#ffffff").strip()
QR_SIZE = int(os.getenv("QR_SIZE", "400").strip() or "400")
QR_MARGIN = 2

# Analytics: issue the per-kind count queries in parallel (0 = one after another)
ANALYTICS_CONCURRENT_COUNTS = os.getenv("ANALYTICS_CONCURRENT_COUNTS", "1").strip().lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
