"""Runtime settings, read once from the environment."""

import os
import tempfile

PORT = int(os.environ.get("PORT", 5000))
DEBUG = os.environ.get("FLASK_DEBUG", "0") == "1"
LOG_LEVEL = os.environ.get("CARD_STUDIO_LOG_LEVEL", "INFO").upper()

# Raster output resolution; 300 DPI matches card printer stock.
RENDER_DPI = int(os.environ.get("CARD_STUDIO_RENDER_DPI", 300))

FETCH_TIMEOUT = float(os.environ.get("CARD_STUDIO_FETCH_TIMEOUT", 10))
FETCH_WORKERS = int(os.environ.get("CARD_STUDIO_FETCH_WORKERS", 4))

# Magnification of the interactive designer canvas (scene units per mm)
EDITOR_SCALE = float(os.environ.get("CARD_STUDIO_EDITOR_SCALE", 3.0))

EXPORT_DIR = os.environ.get(
    "CARD_STUDIO_EXPORT_DIR", os.path.join(tempfile.gettempdir(), "idcard_studio")
)

MAX_IMAGE_PIXELS = int(os.environ.get("CARD_STUDIO_MAX_IMAGE_PIXELS", 25_000_000))
MAX_CONTENT_LENGTH = 50 * 1024 * 1024  # 50 MB upload limit
