"""Centralized configuration management."""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Base paths
BASE_DIR = Path(__file__).parent.parent
SRC_DIR = BASE_DIR / "src"
DATA_DIR = BASE_DIR / "data"
DATA_DIR.mkdir(parents=True, exist_ok=True)

# hh.ru API
HH_API_BASE_URL = os.getenv("HH_API_BASE_URL", "https://api.hh.ru")
HH_USER_AGENT = os.getenv("HH_USER_AGENT", "JobFlow/1.0 (contact@example.com)")
HH_API_LOCALE = os.getenv("HH_API_LOCALE", "EN")
HH_REQUEST_TIMEOUT = float(os.getenv("HH_REQUEST_TIMEOUT", "10"))

# Vacancy cache
VACANCY_CACHE_TTL_DAYS = int(os.getenv("VACANCY_CACHE_TTL_DAYS", "7"))

# Flask Settings
FLASK_PORT = int(os.getenv("FLASK_PORT", "8002"))
FLASK_DEBUG = os.getenv("FLASK_DEBUG", "false").lower() == "true"
CORS_ORIGIN = os.getenv("CORS_ORIGIN", "http://localhost:3001")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Database
DEFAULT_DB_PATH = DATA_DIR / "jobflow.db"
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DEFAULT_DB_PATH}")
