# settings.py
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# .env beside the service, or wherever GEOSTAMP_ENV_FILE points; real env vars win
ENV_FILE = Path(os.environ.get("GEOSTAMP_ENV_FILE", Path(__file__).parent / ".env"))
if ENV_FILE.exists():
    load_dotenv(ENV_FILE)

# Stamped outputs, raw captures and their records live here
UPLOAD_DIR = Path(os.getenv("GEOSTAMP_UPLOAD_DIR", Path(__file__).parent / "uploads"))

# TrueType fonts; resolved through Pillow's font search path when not absolute
FONT_REGULAR = os.getenv("GEOSTAMP_FONT_REGULAR", "DejaVuSans.ttf")
FONT_BOLD = os.getenv("GEOSTAMP_FONT_BOLD", "DejaVuSans-Bold.ttf")

# Lossy export quality on a 0..1 scale
JPEG_QUALITY = float(os.getenv("GEOSTAMP_JPEG_QUALITY", "0.85"))

LOG_LEVEL = os.getenv("GEOSTAMP_LOG_LEVEL", "INFO").upper()


def configure_logging(level: str = LOG_LEVEL):
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    # keep third-party chatter out of the service log
    logging.getLogger("PIL").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)
