# azza_erp/extensions.py
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# ======================
# Database
# ======================
db = SQLAlchemy()
migrate = Migrate()

# ======================
# Rate Limiter
# ======================
# Storage comes from RATELIMIT_STORAGE_URI in app config (Redis in production,
# in-memory locally).
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],  # No global limits by default
)
