
from pathlib import Path
from datetime import timedelta
from decimal import Decimal
import os
BASE_DIR = Path(__file__).resolve().parent.parent


SECRET_KEY = os.getenv(
    "DJANGO_SECRET_KEY",
    "django-insecure-0v9c#k2r@handloom-dev-only-7w^x!b1q(zt4m8p=e6s3j",
)


DEBUG = os.getenv("DJANGO_DEBUG", "true").lower() in {"1", "true", "yes", "on"}

ALLOWED_HOSTS = [h for h in os.getenv("DJANGO_ALLOWED_HOSTS", "").split(",") if h]



INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    'rest_framework',
    #apps
    'account',
    'catalog',
    'inventory',
    'order',
    'payment',
    'custom_orders',
    'loyalty',
    'notifications',

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

ROOT_URLCONF = "core.urls"

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

WSGI_APPLICATION = "core.wsgi.application"


DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
        # writers queue on the database lock instead of failing with "database is locked"
        "OPTIONS": {"timeout": 20, "transaction_mode": "IMMEDIATE"},
        # on disk so threaded tests share one database
        "TEST": {"NAME": BASE_DIR / "test_db.sqlite3"},
    }
}


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



LANGUAGE_CODE = "en-us"

TIME_ZONE = "Asia/Kolkata"

USE_I18N = True

USE_TZ = True



STATIC_URL = "static/"


DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

AUTH_USER_MODEL = "account.User"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
        "rest_framework.authentication.SessionAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.IsAuthenticated",
    ),
}



SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=60),   # 1 hour
    "REFRESH_TOKEN_LIFETIME": timedelta(days=30),     # 30 days

    "ROTATE_REFRESH_TOKENS": True,
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        name: {"handlers": ["console"], "level": os.getenv("STORE_LOG_LEVEL", "INFO"), "propagate": False}
        for name in ("inventory", "order", "payment", "custom_orders", "loyalty", "notifications")
    },
}

# Storefront pricing rules
STORE_CURRENCY = os.getenv("STORE_CURRENCY", "INR")
STORE_TAX_RATE = Decimal(os.getenv("STORE_TAX_RATE", "0.18"))  # GST
STORE_FREE_SHIPPING_THRESHOLD = Decimal(os.getenv("STORE_FREE_SHIPPING_THRESHOLD", "2000"))
STORE_SHIPPING_FEE = Decimal(os.getenv("STORE_SHIPPING_FEE", "150"))
STORE_COD_SURCHARGE = Decimal(os.getenv("STORE_COD_SURCHARGE", "0"))

# Loyalty & wallet
LOYALTY_CURRENCY_PER_POINT = Decimal(os.getenv("LOYALTY_CURRENCY_PER_POINT", "10"))
LOYALTY_TIER_THRESHOLDS = {
    "silver": int(os.getenv("LOYALTY_SILVER_POINTS", "2000")),
    "gold": int(os.getenv("LOYALTY_GOLD_POINTS", "5000")),
    "platinum": int(os.getenv("LOYALTY_PLATINUM_POINTS", "10000")),
}
WALLET_MIN_TOPUP = Decimal(os.getenv("WALLET_MIN_TOPUP", "100"))

# Firebase Cloud Messaging (push is disabled when no credentials are set)
FCM_SERVICE_ACCOUNT_FILE = os.getenv("FCM_SERVICE_ACCOUNT_FILE", "")
FCM_SERVICE_ACCOUNT_JSON = os.getenv("FCM_SERVICE_ACCOUNT_JSON", "")
FCM_PROJECT_ID = os.getenv("FCM_PROJECT_ID", "")
