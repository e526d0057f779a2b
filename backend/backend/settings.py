"""
Django settings for the rescue dispatch backend.

Every deployment-specific value is read from the process environment.
A ``.env`` file next to ``manage.py`` is loaded first when present, so
local development needs no exported variables.

Project-specific settings are prefixed with ``RESCUE_``.
"""

from datetime import timedelta
from pathlib import Path
import os

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / ".env")


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str = "") -> list[str]:
    return [item.strip() for item in os.environ.get(name, default).split(",") if item.strip()]


# ── Core ─────────────────────────────────────────────────────────────

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "django-insecure-dev-only-change-me")

DEBUG = _env_bool("DJANGO_DEBUG", default=False)

ALLOWED_HOSTS = _env_list("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # Third party
    "rest_framework",
    "drf_spectacular",
    # Local apps
    "core.apps.CoreConfig",
    "accounts.apps.AccountsConfig",
    "cases.apps.CasesConfig",
    "notifications.apps.NotificationsConfig",
    "media.apps.MediaConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "backend.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "backend.wsgi.application"

AUTH_USER_MODEL = "accounts.UserProfile"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
MEDIA_URL = "/media/"
MEDIA_ROOT = BASE_DIR / "media_files"


# ── Database ─────────────────────────────────────────────────────────
# Claim / transition / idempotency writes run on the synchronous request
# path and are bounded by a server-side statement timeout on PostgreSQL.

RESCUE_SYNC_STATEMENT_TIMEOUT_MS = int(os.environ.get("RESCUE_SYNC_STATEMENT_TIMEOUT_MS", "5000"))

_DB_ENGINE = os.environ.get("DB_ENGINE", "django.db.backends.sqlite3")

if _DB_ENGINE == "django.db.backends.postgresql":
    DATABASES = {
        "default": {
            "ENGINE": _DB_ENGINE,
            "NAME": os.environ.get("DB_NAME", "rescue"),
            "USER": os.environ.get("DB_USER", "rescue"),
            "PASSWORD": os.environ.get("DB_PASSWORD", ""),
            "HOST": os.environ.get("DB_HOST", "localhost"),
            "PORT": os.environ.get("DB_PORT", "5432"),
            "CONN_MAX_AGE": int(os.environ.get("DB_CONN_MAX_AGE", "60")),
            "OPTIONS": {
                "options": f"-c statement_timeout={RESCUE_SYNC_STATEMENT_TIMEOUT_MS}",
            },
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": _DB_ENGINE,
            "NAME": os.environ.get("DB_NAME", str(BASE_DIR / "db.sqlite3")),
        }
    }


# ── Object storage ───────────────────────────────────────────────────
# Case media lives in an S3-compatible bucket.  Without a bucket name the
# local filesystem is used (development only).

AWS_STORAGE_BUCKET_NAME = os.environ.get("AWS_STORAGE_BUCKET_NAME", "")

if AWS_STORAGE_BUCKET_NAME:
    _DEFAULT_STORAGE = {
        "BACKEND": "storages.backends.s3.S3Storage",
        "OPTIONS": {
            "bucket_name": AWS_STORAGE_BUCKET_NAME,
            "endpoint_url": os.environ.get("AWS_S3_ENDPOINT_URL") or None,
            "region_name": os.environ.get("AWS_S3_REGION_NAME", "auto"),
            "access_key": os.environ.get("AWS_ACCESS_KEY_ID", ""),
            "secret_key": os.environ.get("AWS_SECRET_ACCESS_KEY", ""),
            "querystring_auth": True,
            "querystring_expire": 300,
            "file_overwrite": True,
            "default_acl": None,
        },
    }
else:
    _DEFAULT_STORAGE = {"BACKEND": "django.core.files.storage.FileSystemStorage"}

STORAGES = {
    "default": _DEFAULT_STORAGE,
    "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
}


# ── Django REST Framework ────────────────────────────────────────────

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "accounts.authentication.ProfileJWTAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.IsAuthenticated",
    ),
    "DEFAULT_RENDERER_CLASSES": (
        "rest_framework.renderers.JSONRenderer",
    ),
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "EXCEPTION_HANDLER": "core.domain.exception_handler.domain_exception_handler",
    "TEST_REQUEST_DEFAULT_FORMAT": "json",
}

# Tokens are issued by an external identity provider.  The ``sub`` claim
# is the actor identifier and maps onto ``UserProfile.username``.  With
# RS256 + ``JWT_JWK_URL`` the signing keys are fetched from the provider's
# JWKS endpoint once per process and refreshed on an unknown ``kid``.
SIMPLE_JWT = {
    "ALGORITHM": os.environ.get("JWT_ALGORITHM", "HS256"),
    "SIGNING_KEY": os.environ.get("JWT_SIGNING_KEY", SECRET_KEY),
    "VERIFYING_KEY": os.environ.get("JWT_VERIFYING_KEY", ""),
    "JWK_URL": os.environ.get("JWT_JWK_URL") or None,
    "AUDIENCE": os.environ.get("JWT_AUDIENCE") or None,
    "ISSUER": os.environ.get("JWT_ISSUER") or None,
    "LEEWAY": 30,
    "ACCESS_TOKEN_LIFETIME": timedelta(hours=1),
    "AUTH_HEADER_TYPES": ("Bearer",),
    "USER_ID_FIELD": "username",
    "USER_ID_CLAIM": "sub",
    "AUTH_TOKEN_CLASSES": ("accounts.authentication.ProviderAccessToken",),
    "UPDATE_LAST_LOGIN": False,
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Rescue Dispatch API",
    "DESCRIPTION": (
        "Case lifecycle and claim coordination for volunteer animal rescue. "
        "Every mutating request requires an `Idempotency-Key` header."
    ),
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
}


# ── Rescue domain ────────────────────────────────────────────────────

RESCUE_ALERT_RADII_M = (2000, 5000, 10000, 20000, 25000)
RESCUE_DEFAULT_ALERT_RADIUS_M = 5000

RESCUE_MEDIA_RETENTION_DAYS = int(os.environ.get("RESCUE_MEDIA_RETENTION_DAYS", "7"))
RESCUE_CLEANUP_BATCH_SIZE = int(os.environ.get("RESCUE_CLEANUP_BATCH_SIZE", "100"))
RESCUE_CLEANUP_INTERVAL_SECONDS = int(os.environ.get("RESCUE_CLEANUP_INTERVAL_SECONDS", "86400"))

RESCUE_UPLOAD_URL_TTL_SECONDS = 900
RESCUE_DOWNLOAD_URL_TTL_SECONDS = 300

RESCUE_PUSH_BACKEND = os.environ.get("RESCUE_PUSH_BACKEND", "notifications.push.FirebaseBackend")
RESCUE_PUSH_TIMEOUT_SECONDS = 10
FIREBASE_CREDENTIALS_FILE = os.environ.get("FIREBASE_CREDENTIALS_FILE", "")
FIREBASE_PROJECT_ID = os.environ.get("FIREBASE_PROJECT_ID", "")

RESCUE_TASKS_ALWAYS_EAGER = _env_bool("RESCUE_TASKS_ALWAYS_EAGER", default=False)
RESCUE_TASK_MAX_ATTEMPTS = 5
RESCUE_TASK_WORKERS = 4
RESCUE_TASK_RETRY_BASE_SECONDS = 30

GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "")
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.0-flash")


# ── Logging ──────────────────────────────────────────────────────────

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{asctime} {levelname} [{name}] {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": os.environ.get("DJANGO_LOG_LEVEL", "INFO"),
    },
    "loggers": {
        "django.db.backends": {
            "level": "WARNING",
        },
    },
}
