"""Flask configuration for auth ticket applications."""

import os

TKT_AUTH_SECRET = os.environ.get('TKT_AUTH_SECRET')
"""Shared secret; must match every other tier that issues or reads tickets."""

TKT_AUTH_DIGEST_TYPE = os.environ.get('TKT_AUTH_DIGEST_TYPE', 'MD5')
TKT_AUTH_COOKIE_NAME = os.environ.get('TKT_AUTH_COOKIE_NAME', 'auth_tkt')
TKT_AUTH_COOKIE_DOMAIN = os.environ.get('TKT_AUTH_COOKIE_DOMAIN')
TKT_AUTH_COOKIE_SECURE = os.environ.get('TKT_AUTH_COOKIE_SECURE', 'off')

TKT_AUTH_TIMEOUT = os.environ.get('TKT_AUTH_TIMEOUT', '2h')
"""Ticket lifetime; ``0`` disables expiry."""

TKT_AUTH_IGNORE_IP = os.environ.get('TKT_AUTH_IGNORE_IP', 'on')
TKT_AUTH_TOKEN = os.environ.get('TKT_AUTH_TOKEN')
"""Comma separated tokens; a ticket must carry at least one."""

TKT_AUTH_LOGIN_URL = os.environ.get('TKT_AUTH_LOGIN_URL')
TKT_AUTH_TIMEOUT_URL = os.environ.get('TKT_AUTH_TIMEOUT_URL')
TKT_AUTH_POST_TIMEOUT_URL = os.environ.get('TKT_AUTH_POST_TIMEOUT_URL')
TKT_AUTH_UNAUTH_URL = os.environ.get('TKT_AUTH_UNAUTH_URL')
TKT_AUTH_GUEST_LOGIN = os.environ.get('TKT_AUTH_GUEST_LOGIN', 'off')
TKT_AUTH_GUEST_FALLBACK = os.environ.get('TKT_AUTH_GUEST_FALLBACK', 'off')
TKT_AUTH_GUEST_USER = os.environ.get('TKT_AUTH_GUEST_USER', 'guest')
TKT_AUTH_URL_PATTERN = os.environ.get('TKT_AUTH_URL_PATTERN')
"""Regular expression of paths guarded by the middleware."""

TKT_AUTH_LOGOUT_REDIRECT_URL = os.environ.get('TKT_AUTH_LOGOUT_REDIRECT_URL',
                                              '/')

TKT_AUTH_TRUSTED_PROXIES = os.environ.get('TKT_AUTH_TRUSTED_PROXIES', '0')
"""Proxies in front of the app whose forwarding headers are trusted."""
