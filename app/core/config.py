import os
import logging

# Simple Configuration
APP_NAME = "Registration Cards"

USER_AGENT = "RegistrationCards/1.0 (+https://github.com/registration-cards)"


def _env_flag(name: str, default: bool) -> bool:
    """Reads a boolean feature flag from the environment."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Remote registrations API (also serves uploaded images)
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")
API_TIMEOUT = float(os.getenv("API_TIMEOUT", "30"))

# Absolute origin used when building links that leave the browser (gallery QR codes).
# Falls back to the incoming request's base URL when unset.
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "")

# Auth token: browser cookie first, service token second
API_TOKEN = os.getenv("API_TOKEN", "")
AUTH_TOKEN_COOKIE = os.getenv("AUTH_TOKEN_COOKIE", "token")
AUTH_SCHEME = os.getenv("AUTH_SCHEME", "Token")

# Capability flags
ENABLE_BULK_UPLOAD = _env_flag("ENABLE_BULK_UPLOAD", True)
ENABLE_OTP_GATE = _env_flag("ENABLE_OTP_GATE", True)
OTP_TTL_SECONDS = int(os.getenv("OTP_TTL_SECONDS", "300"))

# Card export is always print quality, whatever the viewer's display scaling
CARD_PIXEL_RATIO = 2
DEFAULT_CARD_BACKGROUND = "#fdfdfd"
DEFAULT_FORM_BACKGROUND = "#ffffff"

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
TEMPLATES_DIR = os.path.join(BASE_DIR, "templates")
STATIC_DIR = os.path.join(BASE_DIR, "static")

# Logging Setup
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger("registration_cards")
