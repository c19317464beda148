import os
import sys

from pathlib import Path
from configparser import ConfigParser

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# ---- Loader with priority: ENV > .env > settings.ini ----
from dotenv import load_dotenv

# Load .env without overriding variables already set
load_dotenv(BASE_DIR / ".env", override=False)


def _read_ini():
    ini_path = BASE_DIR / "settings.ini"

    if not ini_path.exists():
        return {}

    parser = ConfigParser(interpolation=None)
    parser.read(ini_path)
    data = {}

    # One section per environment (dev/uat/prod)
    for section in parser.sections():
        for k, v in parser.items(section):
            data.setdefault(section, {})
            data[section][k.upper()] = v
    return data


INI_ALL = _read_ini()


def env_get(name: str, default=None):
    val = os.getenv(name)
    if val is not None:
        return val
    section = os.getenv("DJANGO_ENV", "dev")
    return (INI_ALL.get(section, {}) or {}).get(name.upper(), default)


def env_int(name: str, default: int) -> int:
    v = env_get(name, default)
    try:
        return int(str(v))
    except (TypeError, ValueError):
        return default


def env_str(name: str, default: str) -> str:
    return str(env_get(name, default))


def env_bool(name: str, default: str = "false") -> bool:
    return str(env_get(name, default)).lower() in {"1", "true", "yes", "on"}


# Which environment is running
ENV = os.getenv("DJANGO_ENV", "dev")  # dev, uat, prod

# Security / basics
SECRET_KEY = env_get("SECRET_KEY", "dev-secret-key-change-me")
DEBUG = env_bool("DEBUG")
ALLOWED_HOSTS = [
    h.strip()
    for h in str(env_get("ALLOWED_HOSTS", "localhost,127.0.0.1,0.0.0.0")).split(",")
    if h.strip()
]

if "test" in sys.argv or "pytest" in sys.modules:
    ALLOWED_HOSTS.append("testserver")

# Application definition

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "corsheaders",
    "rest_framework_simplejwt",
    "drf_spectacular",
    "drf_spectacular_sidecar",
    "django_prometheus",
    # APPS
    "bookit_backend",
    "users",
    "core.apps.CoreConfig",
    "payments",
]

MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "bookit_backend.middleware.RequestLoggingMiddleware",  # X-Request-ID logging
    "bookit_backend.middleware.SecurityHeadersMiddleware",
    "django_prometheus.middleware.PrometheusBeforeMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "core.middleware.BusinessMiddleware",  # request.business
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "django_prometheus.middleware.PrometheusAfterMiddleware",
]

CORS_ALLOW_ALL_ORIGINS = True

ROOT_URLCONF = "bookit_backend.urls"

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

WSGI_APPLICATION = "bookit_backend.wsgi.application"


# Database
# https://docs.djangoproject.com/en/5.2/ref/settings/#databases
import dj_database_url

DATABASE_URL = env_get("DATABASE_URL", f"sqlite:///{BASE_DIR/'db.sqlite3'}")
DATABASES = {"default": dj_database_url.parse(DATABASE_URL, conn_max_age=600)}

AUTH_PASSWORD_VALIDATORS = [
    {
        "NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.MinimumLengthValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.CommonPasswordValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.NumericPasswordValidator",
    },
]


# Internationalization
# https://docs.djangoproject.com/en/5.2/topics/i18n/

LANGUAGE_CODE = "en-us"

# Storage is UTC; every wall-clock value is interpreted in the business timezone
TIME_ZONE = "UTC"

USE_I18N = True

USE_TZ = True

DEFAULT_BUSINESS_TIMEZONE = env_str("DEFAULT_BUSINESS_TIMEZONE", "America/Puerto_Rico")


STATIC_URL = "static/"
STATIC_ROOT = os.path.join(BASE_DIR, "static")

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

AUTH_USER_MODEL = "users.CustomUser"

# --- Scheduling engine ---
BOOKING = {
    # Candidate start times are generated on this grid, from each window start
    "SLOT_STEP_MINUTES": env_int("BOOKING_SLOT_STEP_MINUTES", 30),
    # Starts closer than this to "now" are not offered
    "MIN_ADVANCE_MINUTES": env_int("BOOKING_MIN_ADVANCE_MINUTES", 0),
    # Largest date range accepted by slot and day-summary queries
    "MAX_RANGE_DAYS": env_int("BOOKING_MAX_RANGE_DAYS", 62),
    # How far ahead recurring series are materialized
    "RECURRING_HORIZON_DAYS": env_int("BOOKING_RECURRING_HORIZON_DAYS", 30),
}

# REST_FRAMEWORK config
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ],
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_THROTTLE_CLASSES": [
        "rest_framework.throttling.UserRateThrottle",
        "rest_framework.throttling.AnonRateThrottle",
        "rest_framework.throttling.ScopedRateThrottle",
    ],
    "DEFAULT_THROTTLE_RATES": {
        "user": "1000/day",
        "anon": env_get("THROTTLE_ANON", "2000/day"),
        "auth_login": env_get("THROTTLE_AUTH_LOGIN", "20/min"),
        # public booking submissions
        "public_booking": env_get("THROTTLE_PUBLIC_BOOKING", "30/min"),
    },
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "EXCEPTION_HANDLER": "bookit_backend.error_handling.custom_exception_handler",
}

from datetime import timedelta

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=env_int("JWT_ACCESS_MIN", 60)),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=env_int("JWT_REFRESH_DAYS", 7)),
    "AUTH_HEADER_TYPES": ("Bearer",),
}

# Stripe (deposits)
STRIPE_API_KEY = env_get("STRIPE_API_KEY", "")
STRIPE_API_VERSION = env_get("STRIPE_API_VERSION", "")
STRIPE_CURRENCY = env_str("STRIPE_CURRENCY", "usd")

# Front-end URLs used to build payment redirects
FRONTEND_BASE_URL = env_str("FRONTEND_BASE_URL", "http://localhost:3000")
STRIPE_DEPOSIT_SUCCESS_URL = env_get(
    "STRIPE_DEPOSIT_SUCCESS_URL",
    FRONTEND_BASE_URL + "/book/{slug}/confirm?id={appointment_id}&payment=stripe",
)
STRIPE_DEPOSIT_CANCEL_URL = env_get(
    "STRIPE_DEPOSIT_CANCEL_URL",
    FRONTEND_BASE_URL + "/book/{slug}?error=payment_cancelled",
)

# Password for the demo owner created by `manage.py seed_demo`
DEMO_OWNER_PASSWORD = env_get("DEMO_OWNER_PASSWORD", "demo-owner")

SPECTACULAR_SETTINGS = {
    "TITLE": "BookIt API",
    "DESCRIPTION": "Availability, slots, bookings and recurring appointments.",
    "VERSION": "1.0.0",
    "COMPONENT_SPLIT_REQUEST": True,
    "SCHEMA_PATH_PREFIX": r"/api/",
    # swagger/redoc assets served locally
    "SWAGGER_UI_DIST": "SIDECAR",
    "SWAGGER_UI_FAVICON_HREF": "SIDECAR",
    "REDOC_DIST": "SIDECAR",
}

# =====================================================
# LOGGING CONFIGURATION
# =====================================================

LOG_LEVEL = env_get("LOG_LEVEL", "INFO")

# json for production, dev for local work
LOG_FORMAT = env_get("LOG_FORMAT", "dev" if DEBUG else "json")

LOG_FILE = env_get("LOG_FILE", "")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "()": "bookit_backend.logging_utils.JSONFormatter",
        },
        "dev": {
            "()": "bookit_backend.logging_utils.DevelopmentFormatter",
        },
        "simple": {
            "format": "{asctime} {levelname} {name} {message}",
            "style": "{",
        },
    },
    "filters": {
        "request_context": {
            "()": "bookit_backend.logging_utils.RequestContextFilter",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": LOG_FORMAT,
            "filters": ["request_context"],
            "level": LOG_LEVEL,
        },
    },
    "loggers": {
        "bookit_backend": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "core": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "users": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "payments": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "django.request": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
        "django.db.backends": {
            "handlers": ["console"],
            "level": "WARNING" if not DEBUG else "DEBUG",
            "propagate": False,
        },
        "django.security": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "stripe": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
}

if LOG_FILE:
    LOGGING["handlers"]["file"] = {
        "class": "logging.handlers.RotatingFileHandler",
        "filename": LOG_FILE,
        "maxBytes": 10 * 1024 * 1024,  # 10MB
        "backupCount": 5,
        "formatter": "json",
        "filters": ["request_context"],
        "level": LOG_LEVEL,
    }

    for logger_name in LOGGING["loggers"]:
        LOGGING["loggers"][logger_name]["handlers"].append("file")
    LOGGING["root"]["handlers"].append("file")

# =====================================================
# CACHE CONFIGURATION
# =====================================================

CACHE_URL: str = env_str("CACHE_URL", "locmem://")

if CACHE_URL.startswith("redis://"):
    CACHES = {
        "default": {
            "BACKEND": "django_redis.cache.RedisCache",
            "LOCATION": CACHE_URL,
            "OPTIONS": {
                "CLIENT_CLASS": "django_redis.client.DefaultClient",
                "CONNECTION_POOL_KWARGS": {
                    "retry_on_timeout": True,
                    "socket_connect_timeout": 5,
                    "socket_timeout": 5,
                    "max_connections": 50,
                },
                "IGNORE_EXCEPTIONS": True,
            },
            "KEY_PREFIX": "bookit",
            "TIMEOUT": 300,
            "VERSION": 1,
        }
    }
else:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            "LOCATION": "bookit-cache",
            "TIMEOUT": 300,
            "OPTIONS": {
                "MAX_ENTRIES": 1000,
                "CULL_FREQUENCY": 3,
            },
        }
    }

# Public catalog responses (seconds); invalidated when a service or staff changes
PUBLIC_CATALOG_CACHE_TTL = env_int("PUBLIC_CATALOG_CACHE_TTL", 60)
