import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./pickleball.db")
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# Auth
JWT_SECRET = os.getenv("JWT_SECRET", "change-me-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "10080"))  # 7 days

# Per-event lock used by the membership ledger (seconds)
EVENT_LOCK_TIMEOUT = float(os.getenv("EVENT_LOCK_TIMEOUT", "10"))
EVENT_LOCK_BLOCKING_TIMEOUT = float(os.getenv("EVENT_LOCK_BLOCKING_TIMEOUT", "5"))

# Apply the event skill range to waitlist joins as well as direct joins
WAITLIST_SKILL_GATING = os.getenv("WAITLIST_SKILL_GATING", "true").lower() in {"1", "true", "yes"}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")
