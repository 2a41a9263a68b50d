import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent
DATABASE_PATH = BASE_DIR / "data" / "reviews.db"
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATABASE_PATH}")

# Gutendex catalog
GUTENDEX_BASE_URL = os.getenv("GUTENDEX_BASE_URL", "https://gutendex.com/books")
GUTENDEX_SERVICE_NAME = "Gutendex"
GUTENDEX_SEARCH_PARAM = "search"
GUTENDEX_CONNECT_TIMEOUT = float(os.getenv("GUTENDEX_CONNECT_TIMEOUT", "5.0"))
GUTENDEX_READ_TIMEOUT = float(os.getenv("GUTENDEX_READ_TIMEOUT", "10.0"))

# Enrichment worker pool
ENRICHMENT_MAX_WORKERS = int(os.getenv("ENRICHMENT_MAX_WORKERS", "5"))
ENRICHMENT_QUEUE_CAPACITY = int(os.getenv("ENRICHMENT_QUEUE_CAPACITY", "100"))
ENRICHMENT_SHUTDOWN_TIMEOUT = float(os.getenv("ENRICHMENT_SHUTDOWN_TIMEOUT", "60"))
ENRICHMENT_THREAD_PREFIX = "ReviewProcessor"

# Request validation
BOOK_ID_PATTERN = r"^[0-9]+$"
REVIEW_MIN_LENGTH = 5
REVIEW_MAX_LENGTH = 2000
SCORE_MIN_VALUE = 1
SCORE_MAX_VALUE = 10

REVIEW_PROCESSING_MESSAGE = "Review still processing"

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173",
    ).split(",")
    if o.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(log_level: str = LOG_LEVEL):
    """Configure the root logger once for the whole service."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
