import os
import random


# Backend API
API_BASE_URL = os.environ.get("PROFILE_API_BASE_URL", "http://localhost:3000/api")
API_TIMEOUT_S = float(os.environ.get("PROFILE_API_TIMEOUT_S", "15"))

# Tab lifecycle and batch pacing
TAB_TIMEOUT_MS = int(os.environ.get("SCRAPER_TAB_TIMEOUT_MS", "45000"))
TAB_POLL_INTERVAL_MS = int(os.environ.get("SCRAPER_TAB_POLL_MS", "500"))
SETTLE_DELAY_MS = int(os.environ.get("SCRAPER_SETTLE_DELAY_MS", "5000"))
PROCESSING_DELAY_MS = int(os.environ.get("SCRAPER_PROCESSING_DELAY_MS", "3000"))
MAX_RETRIES = int(os.environ.get("SCRAPER_MAX_RETRIES", "2"))
RETRY_BACKOFF_MS = int(os.environ.get("SCRAPER_RETRY_BACKOFF_MS", "2000"))
MIN_BATCH_SIZE = 3
MAX_API_BATCH = 50

# Extraction sanity ceilings
CONNECTION_COUNT_CEILING = 100_000
FOLLOWER_COUNT_CEILING = 50_000_000
MAX_EXPERIENCE_ITEMS = 5
MAX_EDUCATION_ITEMS = 5
MAX_SKILLS = 15

# Storage
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///profiles.sqlite")
RUN_ENV = os.environ.get("RUN_ENV", "development")
STATISTICS_FILE = os.environ.get("SCRAPER_STATISTICS_FILE", "scraper_stats.json")

# Browser
COOKIES_FILE = os.environ.get("LINKEDIN_COOKIES_PATH", "cookies.json")
SLOW_MO_MS = int(os.environ.get("SCRAPER_SLOW_MO_MS", "0"))
BLOCK_IMAGES = os.environ.get("SCRAPER_BLOCK_IMAGES", "true").lower() != "false"
USE_CDP = os.environ.get("SCRAPER_USE_CDP", "false").lower() in ["1", "true", "yes"]
CDP_URL = os.environ.get("SCRAPER_CDP_URL", "http://127.0.0.1:9222")
HEADLESS = os.environ.get("SCRAPER_HEADLESS", "true").lower() in ["1", "true", "yes"]

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
API_VERSION = "1.0.0"


def user_agents():
    """Return a small pool of current desktop Chrome user agents."""
    return [
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    ]


def random_user_agent():
    return random.choice(user_agents())
