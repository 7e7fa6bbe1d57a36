# config/settings/test.py
from .base import *  # noqa

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# deterministic: click increments run inline, no webhook configured by default
SHORTLINK_ASYNC_CLICKS = False
LEAD_WEBHOOK_URL = ""
LEAD_WEBHOOK_SECRET = ""
LEAD_WEBHOOK_STRATEGY = "direct"
