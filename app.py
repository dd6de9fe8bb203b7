"""Profile API server.

Run with `python app.py` or `uvicorn app:app --port 3000`.
"""
import os

import uvicorn

from profile_scraper_pkg import scraper_logging
from profile_scraper_pkg.api import create_app


scraper_logging.init_logging()

app = create_app()


if __name__ == "__main__":
    host = os.environ.get("API_HOST", "127.0.0.1")
    port = int(os.environ.get("API_PORT", "3000"))
    print(f"🚀 Profile API on http://{host}:{port}/api")
    uvicorn.run(app, host=host, port=port, log_level="info")
