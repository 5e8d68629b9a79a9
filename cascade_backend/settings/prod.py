"""
Production settings for the event registration & payments backend.

Extends the base settings by disabling debug mode, enforcing secure
cookies, and enabling HTTP Strict Transport Security.  Internal payment
error detail is never echoed to clients here.
"""
from .base import *  # noqa

DEBUG = False
PAYMENTS_EXPOSE_ERROR_DETAIL = False

SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
SECURE_SSL_REDIRECT = True

SECURE_HSTS_SECONDS = 31536000
SECURE_HSTS_INCLUDE_SUBDOMAINS = True
SECURE_HSTS_PRELOAD = True
