# config/settings/base.py
from pathlib import Path
import os
from dotenv import load_dotenv
from datetime import timedelta


BASE_DIR = Path(__file__).resolve().parent.parent.parent
load_dotenv(BASE_DIR / ".env")

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "unsafe-dev-key")
DEBUG = os.getenv("DJANGO_DEBUG", "0") == "1"
ALLOWED_HOSTS = ["*"]

INSTALLED_APPS = [
    # Django
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    # Third-party
    "corsheaders",
    "rest_framework",
    "rest_framework_simplejwt",
    "drf_spectacular",
    "django_filters",

    # Domain apps (modular monolith)
    "lg_core.common.apps.CommonConfig",
    "lg_core.clinics.apps.ClinicsConfig",
    "lg_core.iam.apps.IamConfig",
    "lg_core.links.apps.LinksConfig",
    "lg_core.leads.apps.LeadsConfig",
    "lg_core.webhooks.apps.WebhooksConfig",
    "lg_core.audit.apps.AuditConfig",
]

MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",

    "django.contrib.auth.middleware.AuthenticationMiddleware",

    # request_id on every request (error envelopes + log correlation)
    "lg_core.common.middleware.RequestIdMiddleware",

    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]


ROOT_URLCONF = "config.urls"

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
    }
]

WSGI_APPLICATION = "config.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": os.getenv("DB_NAME", "leadgen"),
        "USER": os.getenv("DB_USER", "leadgen"),
        "PASSWORD": os.getenv("DB_PASSWORD", "leadgen"),
        "HOST": os.getenv("DB_HOST", "127.0.0.1"),
        "PORT": os.getenv("DB_PORT", "5432"),
    }
}

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "lg_core.iam.auth.CookieOrHeaderJWTAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.IsAuthenticated",
    ),
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",

    # Standard error envelope
    "EXCEPTION_HANDLER": "lg_core.common.api.exceptions.api_exception_handler",

    "DEFAULT_FILTER_BACKENDS": [
        "django_filters.rest_framework.DjangoFilterBackend",
        "rest_framework.filters.OrderingFilter",
        "rest_framework.filters.SearchFilter",
    ],

    "DEFAULT_PAGINATION_CLASS": "lg_core.common.api.pagination.DefaultPagination",
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Lead Portal API",
    "DESCRIPTION": "Clinic access control, short links and lead intake",
    "VERSION": "0.1.0",

    "COMPONENT_SPLIT_REQUEST": True,
    "SORT_OPERATIONS": True,
    "SORT_OPERATION_PARAMETERS": True,

    "SECURITY": [
        {"BearerOrCookieJWT": []}
    ],
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=10),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=14),
    "ROTATE_REFRESH_TOKENS": True,
    "BLACKLIST_AFTER_ROTATION": False,
    "UPDATE_LAST_LOGIN": True,

    # Cookie settings
    "AUTH_COOKIE": "lg_access",
    "AUTH_COOKIE_REFRESH": "lg_refresh",
    "AUTH_COOKIE_SECURE": False,   # set True in production (HTTPS)
    "AUTH_COOKIE_HTTP_ONLY": True,
    "AUTH_COOKIE_SAMESITE": "Lax",
}

# CORS settings
# Development
CORS_ALLOW_ALL_ORIGINS = True  # Only for development!
CORS_ALLOW_CREDENTIALS = True

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "loggers": {
        "lg_core": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": True,
        },
    },
}

# -------------------------------------------------------------------
# Portal lists
# -------------------------------------------------------------------
PORTAL_PAGE_SIZE = int(os.getenv("PORTAL_PAGE_SIZE", "20"))
PORTAL_MAX_PAGE_SIZE = int(os.getenv("PORTAL_MAX_PAGE_SIZE", "200"))

# -------------------------------------------------------------------
# Access gate
# -------------------------------------------------------------------
ACCESS_RECHECK_INTERVAL_SECONDS = int(os.getenv("ACCESS_RECHECK_INTERVAL_SECONDS", "300"))

# -------------------------------------------------------------------
# Team invitations
# -------------------------------------------------------------------
INVITATION_TTL_DAYS = int(os.getenv("INVITATION_TTL_DAYS", "14"))

# -------------------------------------------------------------------
# Short links
# -------------------------------------------------------------------
SHORTLINK_DEFAULT_QUIZ = os.getenv("SHORTLINK_DEFAULT_QUIZ", "nose")
SHORTLINK_DEFAULT_SOURCE = os.getenv("SHORTLINK_DEFAULT_SOURCE", "shortlink")
SHORTLINK_NOT_FOUND_URL = os.getenv("SHORTLINK_NOT_FOUND_URL", "/404")
SHORTLINK_NOT_FOUND_DELAY_SECONDS = float(os.getenv("SHORTLINK_NOT_FOUND_DELAY_SECONDS", "1.5"))
SHORTLINK_CODE_LENGTH = int(os.getenv("SHORTLINK_CODE_LENGTH", "6"))
SHORTLINK_ASYNC_CLICKS = os.getenv("SHORTLINK_ASYNC_CLICKS", "1") == "1"

# -------------------------------------------------------------------
# Lead webhook (n8n or any automation endpoint)
# -------------------------------------------------------------------
LEAD_WEBHOOK_URL = os.getenv("LEAD_WEBHOOK_URL", "")
LEAD_WEBHOOK_SECRET = os.getenv("LEAD_WEBHOOK_SECRET", "")
LEAD_WEBHOOK_TIMEOUT_SECONDS = float(os.getenv("LEAD_WEBHOOK_TIMEOUT_SECONDS", "10"))
LEAD_WEBHOOK_STRATEGY = os.getenv("LEAD_WEBHOOK_STRATEGY", "direct")
LEAD_WEBHOOK_MAX_ATTEMPTS = int(os.getenv("LEAD_WEBHOOK_MAX_ATTEMPTS", "5"))
LEAD_WEBHOOK_INCLUDE_TELEPHONY_SECRETS = os.getenv("LEAD_WEBHOOK_INCLUDE_TELEPHONY_SECRETS", "0") == "1"
