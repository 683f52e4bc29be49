from django.conf import settings

# App-level defaults, overridable from Django settings
DEFAULTS = {
    "BOOKS_INVOICE_PREFIX": "INV",
    "BOOKS_INVOICE_COUNTER_NAME": "invoice",
    "BOOKS_LOW_STOCK_THRESHOLD": 5,
    "BOOKS_DASHBOARD_WINDOW_DAYS": 30,
    "BOOKS_DEFAULT_PAYMENT_TERMS_DAYS": 30,
}


def get_setting(name):
    # Read at call time so override_settings works in tests
    return getattr(settings, name, DEFAULTS[name])
