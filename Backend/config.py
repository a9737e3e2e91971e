"""Environment configuration loaded from .env file."""

import logging
import os

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

SPOTIFY_CLIENT_ID: str = os.environ.get("SPOTIFY_CLIENT_ID", "")
SPOTIFY_CLIENT_SECRET: str = os.environ.get("SPOTIFY_CLIENT_SECRET", "")
SPOTIFY_REDIRECT_URI: str = os.environ.get(
    "SPOTIFY_REDIRECT_URI", "http://127.0.0.1:8888/auth/callback"
)
SPOTIFY_MARKET: str = os.environ.get("SPOTIFY_MARKET", "US")

# Without an id/secret pair every Spotify call is refused up front.
SPOTIFY_CONFIGURED: bool = bool(SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET)
if not SPOTIFY_CONFIGURED:
    logger.warning("Spotify credentials are not configured; integration disabled")

# PocketBase
POCKETBASE_URL: str = os.environ.get("POCKETBASE_URL", "http://127.0.0.1:8090")
POCKETBASE_ADMIN_EMAIL: str = os.environ.get("POCKETBASE_ADMIN_EMAIL", "admin@example.com")
POCKETBASE_ADMIN_PASSWORD: str = os.environ.get("POCKETBASE_ADMIN_PASSWORD", "admin12345678")

# JWT session secret – generate a strong random value for production
JWT_SECRET: str = os.environ.get("JWT_SECRET", "change-me-to-a-real-secret")

# Frontend URL for CORS & redirect after login
FRONTEND_URL: str = os.environ.get("FRONTEND_URL", "http://localhost:5173")
