from .base import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
        "ATOMIC_REQUESTS": True,
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

STATICFILES_DIRS = []

GOOGLE_MAPS_API_KEY = "test-key"

LOGGING["loggers"]["freight"]["level"] = "WARNING"  # noqa: F405
# Let pytest's caplog see service warnings.
LOGGING["loggers"]["freight"]["propagate"] = True  # noqa: F405
