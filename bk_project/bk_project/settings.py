"""
Django settings for bk_project.

Everything environment-specific comes from environment variables:
DJANGO_SECRET_KEY, DJANGO_DEBUG, DJANGO_ALLOWED_HOSTS, DATABASE_URL,
LOG_LEVEL, LOG_FORMAT and the BOOKS_* application settings.
"""
import os
from pathlib import Path

import dj_database_url

from .logging_config import get_logging_config

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-insecure-change-me")

DEBUG = os.environ.get("DJANGO_DEBUG", "false").lower() in ("1", "true", "yes")

ALLOWED_HOSTS = [
    host for host in os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost").split(",")
    if host
]

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "books_core",
]

MIDDLEWARE = []

# Postgres in production (row locks are real there), SQLite for local runs
DATABASES = {
    "default": dj_database_url.config(
        default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}",
        conn_max_age=int(os.environ.get("DB_CONN_MAX_AGE", "0")),
    )
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.environ.get("TIME_ZONE", "UTC")
USE_I18N = False
USE_TZ = True

LOGGING = get_logging_config(DEBUG)

# ---------- Bookkeeping ----------
BOOKS_INVOICE_PREFIX = os.environ.get("BOOKS_INVOICE_PREFIX", "INV")
BOOKS_INVOICE_COUNTER_NAME = "invoice"
BOOKS_LOW_STOCK_THRESHOLD = int(os.environ.get("BOOKS_LOW_STOCK_THRESHOLD", "5"))
BOOKS_DASHBOARD_WINDOW_DAYS = int(os.environ.get("BOOKS_DASHBOARD_WINDOW_DAYS", "30"))
BOOKS_DEFAULT_PAYMENT_TERMS_DAYS = int(
    os.environ.get("BOOKS_DEFAULT_PAYMENT_TERMS_DAYS", "30"))
