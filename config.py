"""
Configuration for the FaceSwap Lite server.
Values come from environment variables; a .env file next to this module is
loaded first for local development.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

PORT = int(os.getenv("PORT", "10000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Ephemeral storage, served under /uploads and /outputs
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
OUTPUT_DIR = os.getenv("OUTPUT_DIR", "outputs")

# Upload limits (50MB leaves headroom over the 10MB the web client enforces)
MAX_FILE_SIZE = int(os.getenv("MAX_FILE_SIZE", str(50 * 1024 * 1024)))
MAX_TARGET_IMAGES = int(os.getenv("MAX_TARGET_IMAGES", "20"))
ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}

# Output image
MAX_OUTPUT_SIZE = int(os.getenv("MAX_OUTPUT_SIZE", "1024"))
JPEG_QUALITY = int(os.getenv("JPEG_QUALITY", "85"))

# Concurrent compositions per batch
MAX_WORKERS = int(os.getenv("MAX_WORKERS", "4"))

# File lifecycle, in seconds
MAX_FILE_AGE_SECONDS = float(os.getenv("MAX_FILE_AGE_SECONDS", str(2 * 60 * 60)))
SWEEP_INTERVAL_SECONDS = float(os.getenv("SWEEP_INTERVAL_SECONDS", str(60 * 60)))
UPLOAD_CLEANUP_DELAY = float(os.getenv("UPLOAD_CLEANUP_DELAY", "5"))

# Origins allowed to call the API from a browser, comma separated
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
