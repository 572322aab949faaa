"""
main.py
========
Central entry point for the Levita live relay.

Run with:
    uvicorn main:app --host 0.0.0.0 --port 3001
or:
    python main.py
"""

import logging

from dotenv import load_dotenv

load_dotenv()  # Load .env before any module reads env vars

# Configure logging for the entire application
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

# SDK transport chatter drowns out the per-utterance relay logs.
for _sdk_logger_name in (
    "openai",
    "openai._base_client",
    "httpx",
    "httpcore",
    "deepgram",
    "websockets",
):
    logging.getLogger(_sdk_logger_name).setLevel(logging.WARNING)

from src.api.server import create_app  # noqa: E402
from src.config import load_settings  # noqa: E402

settings = load_settings()
app = create_app(settings)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
