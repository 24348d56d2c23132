import os
from dotenv import load_dotenv

load_dotenv()

# Remote store (the HTTP API's own database)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./goal_tracker.db")

# Client-side key-value store standing in for browser localStorage
LOCAL_STORAGE_URL = os.getenv("LOCAL_STORAGE_URL", "sqlite:///./goal_tracker_local.db")

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:3001/api")
REMOTE_SYNC_ENABLED = os.getenv("REMOTE_SYNC_ENABLED", "true").lower() in ("1", "true", "yes")
REMOTE_SYNC_TIMEOUT = float(os.getenv("REMOTE_SYNC_TIMEOUT", 30.0))

PORT = int(os.getenv("PORT", 3001))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "false").lower() in ("1", "true", "yes")
