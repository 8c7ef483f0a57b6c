"""Runtime configuration read from the environment.

A local .env file is loaded first so development and tests can run without
exporting variables by hand.
"""

import os
from pathlib import Path

from dotenv import load_dotenv


def _load_local_env():
    # backend/.env first, then project root .env
    pkg_dir = Path(__file__).resolve().parent
    candidates = [
        pkg_dir.parent / ".env",
        pkg_dir.parent.parent / ".env",
    ]
    for p in candidates:
        if p.exists():
            load_dotenv(dotenv_path=p, override=False)


_load_local_env()

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./thesis_tracker.db")
SQL_DEBUG = os.getenv("SQL_DEBUG", "false").lower() == "true"

# JWT
SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

# Workflow
SWEEP_INTERVAL_SECONDS = int(os.getenv("SWEEP_INTERVAL_SECONDS", "0"))  # 0 disables the scheduler
WORKFLOW_MAX_RETRIES = int(os.getenv("WORKFLOW_MAX_RETRIES", "3"))
NOTIFICATION_PAGE_SIZE = int(os.getenv("NOTIFICATION_PAGE_SIZE", "50"))

# HTTP
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
