# config/settings.py
import os
from pathlib import Path

from django.core.exceptions import ImproperlyConfigured
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / ".env")


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ImproperlyConfigured(f"{name} must be an integer, got {raw!r}")


SECRET_KEY = os.getenv("DJANGO_SECRET_KEY")
if not SECRET_KEY:
    raise ImproperlyConfigured("DJANGO_SECRET_KEY environment variable must be set")

DEBUG = _env_bool("DJANGO_DEBUG")
ALLOWED_HOSTS = [h.strip() for h in os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h.strip()]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "reading",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.getenv("READTRACK_DB_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Stored timestamps are tz-aware UTC; reporting converts to READTRACK_TIME_ZONE.
USE_TZ = True
TIME_ZONE = "UTC"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": ["reading.identity.SignedTokenAuthentication"],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.IsAuthenticated"],
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "UNAUTHENTICATED_USER": None,
}

# --- readtrack ---
READTRACK_TIME_ZONE = os.getenv("READTRACK_TIME_ZONE", "UTC")
READTRACK_ADMIN_UID = os.getenv("READTRACK_ADMIN_UID", "")
READTRACK_DAILY_GOAL = _env_int("READTRACK_DAILY_GOAL", 60)
READTRACK_WEEKLY_GOAL = _env_int("READTRACK_WEEKLY_GOAL", 420)
READTRACK_TRANSACTION_ATTEMPTS = _env_int("READTRACK_TRANSACTION_ATTEMPTS", 5)
READTRACK_TOKEN_MAX_AGE = _env_int("READTRACK_TOKEN_MAX_AGE", 60 * 60 * 24 * 30)
READTRACK_SESSION_MAX_AGE = _env_int("READTRACK_SESSION_MAX_AGE", 60 * 60 * 24 * 7)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "loggers": {
        "reading": {
            "handlers": ["console"],
            "level": os.getenv("READTRACK_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}
