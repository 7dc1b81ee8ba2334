import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./localbookr.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Auto-assignment sweep
AUTO_ASSIGN_ENABLED = _flag("AUTO_ASSIGN_ENABLED", "true")
AUTO_ASSIGN_INTERVAL_SECONDS = float(os.getenv("AUTO_ASSIGN_INTERVAL_SECONDS", "30"))
# Bookings younger than this stay PENDING so a provider can still pick them up
AUTO_ASSIGN_THRESHOLD_SECONDS = float(os.getenv("AUTO_ASSIGN_THRESHOLD_SECONDS", "120"))
AUTO_ASSIGN_RETRY_WAITING = _flag("AUTO_ASSIGN_RETRY_WAITING", "true")

# Optional JSON file overriding the built-in area alias table
LOCATION_ALIASES_FILE = os.getenv("LOCATION_ALIASES_FILE") or None

# EmailJS (provider assignment e-mails)
EMAILJS_API_URL = os.getenv("EMAILJS_API_URL", "https://api.emailjs.com/api/v1.0/email/send")
EMAILJS_SERVICE_ID = os.getenv("EMAILJS_SERVICE_ID")
EMAILJS_TEMPLATE_ID = os.getenv("EMAILJS_TEMPLATE_ID")
EMAILJS_PUBLIC_KEY = os.getenv("EMAILJS_PUBLIC_KEY")

# OneSignal (web push)
ONESIGNAL_API_URL = os.getenv("ONESIGNAL_API_URL", "https://onesignal.com/api/v1/notifications")
ONESIGNAL_APP_ID = os.getenv("ONESIGNAL_APP_ID")
ONESIGNAL_REST_API_KEY = os.getenv("ONESIGNAL_REST_API_KEY")
PUSH_CLICK_URL = os.getenv("PUSH_CLICK_URL", "http://localhost:5173")

NOTIFY_HTTP_TIMEOUT_SECONDS = float(os.getenv("NOTIFY_HTTP_TIMEOUT_SECONDS", "10"))

# Seeded at startup when both are set
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")
ADMIN_NAME = os.getenv("ADMIN_NAME", "Admin")
