from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = BASE_DIR / "data"
DB_PATH = DATA_DIR / "eventhub.db"

load_dotenv()


class Config:
    SECRET_KEY = os.environ.get("EVENTHUB_SECRET", "dev-secret")
    DB_PATH = os.environ.get("EVENTHUB_DB", str(DB_PATH))
    ITEMS_PER_PAGE = int(os.environ.get("EVENTHUB_PAGE_SIZE", "10"))
    MAX_PAGE_SIZE = int(os.environ.get("EVENTHUB_MAX_PAGE_SIZE", "100"))
    MAX_SEATS_PER_BOOKING = int(os.environ.get("EVENTHUB_MAX_SEATS", "10"))
    TAX_RATE = os.environ.get("EVENTHUB_TAX_RATE", "0.08")
    CURRENCY = os.environ.get("EVENTHUB_CURRENCY", "USD")
    LOG_LEVEL = os.environ.get("EVENTHUB_LOG_LEVEL", "INFO")
