import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./walkapp.db")

# Firebase Configuration
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")

# Cache: "memory" keeps entries in-process only, "redis" adds a shared Redis tier
CACHE_BACKEND = os.getenv("CACHE_BACKEND", "memory").lower()
CACHE_DEFAULT_TTL = int(os.getenv("CACHE_DEFAULT_TTL", "3600"))
# Availability shown to owners goes stale quickly, bookings re-check it anyway
AVAILABILITY_CACHE_TTL = int(os.getenv("AVAILABILITY_CACHE_TTL", "60"))

# Walk capacity: dogs a walker can take out together in one slot
WALKER_CAPACITY_PER_SLOT = int(os.getenv("WALKER_CAPACITY_PER_SLOT", "6"))

# Whether cancelling a walk that has already started gives the credit back.
# Default false: a started walk counts as consumed.
REFUND_ON_MID_WALK_CANCELLATION = (
    os.getenv("REFUND_ON_MID_WALK_CANCELLATION", "false").lower() == "true"
)

# ARQ notifications (booking confirmations etc). Off unless Redis is available.
BACKGROUND_JOBS_ENABLED = os.getenv("BACKGROUND_JOBS_ENABLED", "false").lower() == "true"

# Frontend base URL used in notification links
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# CORS
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173"
).split(",")
