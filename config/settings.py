import os
from pathlib import Path
from datetime import timedelta
from django.core.exceptions import ImproperlyConfigured

# 📁 BASE DIR
BASE_DIR = Path(__file__).resolve().parent.parent

# 🔐 SÉCURITÉ
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-secret-key")
DEBUG = os.getenv("DJANGO_DEBUG", "true").lower() == "true"
allowed_hosts_env = os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1")
ALLOWED_HOSTS = [host.strip() for host in allowed_hosts_env.split(",") if host.strip()]

# 🧩 APPS
INSTALLED_APPS = [
    # Django
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    # 3rd Party
    "rest_framework",
    "rest_framework_simplejwt",
    "corsheaders",
    "drf_yasg",

    # Local apps
    "accounts",
    "webhooks",
]

# 🧱 MIDDLEWARE
MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

# 🔗 URL + WSGI
ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"


# 📦 TEMPLATES
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

# 🗄️ DATABASE (SQLite par défaut, Postgres via DATABASE_URL)
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

DATABASE_URL = os.getenv("DATABASE_URL")
if DATABASE_URL:
    from urllib.parse import urlparse

    parsed_db_url = urlparse(DATABASE_URL)
    if parsed_db_url.scheme not in ("postgres", "postgresql"):
        raise ImproperlyConfigured("Unsupported database scheme in DATABASE_URL")

    DATABASES["default"] = {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": parsed_db_url.path.lstrip("/"),
        "USER": parsed_db_url.username,
        "PASSWORD": parsed_db_url.password,
        "HOST": parsed_db_url.hostname,
        "PORT": parsed_db_url.port or "",
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# 👤 USER MODEL
AUTH_USER_MODEL = "accounts.User"

# 🔐 MOTS DE PASSE
AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
]

# 🌍 LOCALISATION
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# 📁 STATIC
STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# 🌐 CORS
CORS_ALLOW_ALL_ORIGINS = DEBUG
if not DEBUG:
    allowed_origins = os.getenv("CORS_ALLOWED_ORIGINS", "")
    CORS_ALLOWED_ORIGINS = [
        origin.strip() for origin in allowed_origins.split(",") if origin.strip()
    ]

# 🔑 JWT AUTH
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.IsAuthenticated",
    ),
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=60),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=7),
    "AUTH_HEADER_TYPES": ("Bearer",),
    "AUTH_TOKEN_CLASSES": ("rest_framework_simplejwt.tokens.AccessToken",),
}

# 📚 SWAGGER
SWAGGER_SETTINGS = {
    "USE_SESSION_AUTH": False,
    "SECURITY_DEFINITIONS": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
        }
    },
}

# 🔏 WORKOS VAULT
WORKOS_API_KEY = os.getenv("WORKOS_API_KEY", "")
WORKOS_API_BASE_URL = os.getenv("WORKOS_API_BASE_URL", "https://api.workos.com")
WORKOS_VAULT_TIMEOUT_SECONDS = float(os.getenv("WORKOS_VAULT_TIMEOUT_SECONDS", 10))

# 📡 WEBHOOKS SORTANTS
WEBHOOK_VAULT_BACKEND = os.getenv(
    "WEBHOOK_VAULT_BACKEND",
    "webhooks.vault.WorkOSVault" if WORKOS_API_KEY else "webhooks.vault.LocalMemoryVault",
)
WEBHOOK_MAX_ATTEMPTS = int(os.getenv("WEBHOOK_MAX_ATTEMPTS", 3))
WEBHOOK_BASE_BACKOFF_MS = int(os.getenv("WEBHOOK_BASE_BACKOFF_MS", 1000))  # 1s, 2s, 4s
WEBHOOK_REQUEST_TIMEOUT_SECONDS = float(os.getenv("WEBHOOK_REQUEST_TIMEOUT_SECONDS", 10))
WEBHOOK_RESPONSE_MAX_LENGTH = int(os.getenv("WEBHOOK_RESPONSE_MAX_LENGTH", 1000))
WEBHOOK_HEADER_PREFIX = os.getenv("WEBHOOK_HEADER_PREFIX", "X-Bio")
WEBHOOK_USER_AGENT = os.getenv("WEBHOOK_USER_AGENT", "biohasl.ink-Webhook/1.0")

if WEBHOOK_MAX_ATTEMPTS < 1:
    raise ImproperlyConfigured("WEBHOOK_MAX_ATTEMPTS must be at least 1.")
if not DEBUG and WEBHOOK_VAULT_BACKEND.endswith("LocalMemoryVault"):
    raise ImproperlyConfigured(
        "LocalMemoryVault cannot be used when DEBUG is off; set WORKOS_API_KEY or WEBHOOK_VAULT_BACKEND."
    )

# Celery
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", CELERY_BROKER_URL)
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_ALWAYS_EAGER = os.getenv("CELERY_TASK_ALWAYS_EAGER", "false").lower() == "true"

# ✅ LOGS
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "INFO",
    },
    "loggers": {
        "webhooks": {
            "level": os.getenv("WEBHOOK_LOG_LEVEL", "INFO"),
        },
    },
}

MIDDLEWARE.insert(1, "whitenoise.middleware.WhiteNoiseMiddleware")
