"""
WSGI middleware that requires an auth ticket on requests.

The middleware authenticates each request against the ticket cookie. When
the ticket is acceptable, identity information is added to the WSGI environ
before the wrapped application is called:

- ``REMOTE_USER``: the ticket username.
- ``AUTH_TYPE``: ``AUTH_TKT``.
- ``TKT_AUTH_USER_DATA``: the ticket user data.
- ``TKT_AUTH_TOKENS``: a tuple of the ticket tokens.
- ``auth_tkt.ticket``: the verified :class:`.Ticket`.

When it is not, the client is redirected to a login (or timeout, or
unauthorized) URL carrying a ``back`` parameter with the original URL, or is
let through as a guest if guest access is enabled.
"""

from typing import Any, Callable, Iterable, Mapping, Optional, Pattern
from urllib.parse import quote, quote_plus, urlparse
import logging
import re

from werkzeug.wrappers import Request, Response
from werkzeug.utils import redirect

from .. import util
from ..authenticator import Authenticator
from ..domain import Ticket
from ..exceptions import (AuthTicketError, ConfigurationError, ExpiredTicket,
                          TokenMissing)
from ..policy import Policy

logger = logging.getLogger(__name__)

AUTH_TYPE = 'AUTH_TKT'
ENVIRON_KEY = 'auth_tkt.ticket'
DEFAULT_GUEST_USER = 'guest'

CONFIG_KEYS = {
    'login_url': ('TKT_AUTH_LOGIN_URL', 'TKTAuthLoginURL'),
    'timeout_url': ('TKT_AUTH_TIMEOUT_URL', 'TKTAuthTimeoutURL'),
    'post_timeout_url': ('TKT_AUTH_POST_TIMEOUT_URL',
                         'TKTAuthPostTimeoutURL'),
    'unauth_url': ('TKT_AUTH_UNAUTH_URL', 'TKTAuthUnauthURL'),
    'guest_login': ('TKT_AUTH_GUEST_LOGIN', 'TKTAuthGuestLogin'),
    'guest_fallback': ('TKT_AUTH_GUEST_FALLBACK', 'TKTAuthGuestFallback'),
    'guest_user': ('TKT_AUTH_GUEST_USER', 'TKTAuthGuestUser'),
    'url_pattern': ('TKT_AUTH_URL_PATTERN', 'TKTUrlPattern'),
}

WSGIApp = Callable[[dict, Callable], Iterable[bytes]]


def _check_url(url: Optional[str], name: str,
               required: bool = False) -> Optional[str]:
    if not url:
        if required:
            raise ConfigurationError(f'{name} is required')
        return None
    parsed = urlparse(url)
    if parsed.scheme not in ('http', 'https') or not parsed.netloc \
            or ' ' in url:
        raise ConfigurationError(f'{name} must be an absolute http(s) URL:'
                                 f' {url}')
    return url


def original_url(request: Request) -> str:
    """Reconstruct the URL the client requested, as seen by the client."""
    headers = request.headers
    scheme = headers.get('X-Forwarded-Proto', request.scheme)
    host = headers.get('X-Forwarded-Host') or headers.get('Host') \
        or request.host
    scheme = scheme.split(',')[0].strip()
    host = host.split(',')[0].strip()
    url = f'{scheme}://{host}{quote(request.script_root + request.path)}'
    if request.query_string:
        url += '?' + request.query_string.decode('latin-1')
    return url


def back_url(target: str, request: Request) -> str:
    """Append the ``back`` parameter for ``request`` to ``target``."""
    separator = '&' if urlparse(target).query else '?'
    return f'{target}{separator}back={quote_plus(original_url(request))}'


class AuthTicketMiddleware(object):
    """Guards a WSGI application with auth ticket authentication."""

    def __init__(self, app: WSGIApp, policy: Policy,
                 login_url: Optional[str] = None,
                 timeout_url: Optional[str] = None,
                 post_timeout_url: Optional[str] = None,
                 unauth_url: Optional[str] = None,
                 guest_login: bool = False,
                 guest_fallback: bool = False,
                 guest_user: str = DEFAULT_GUEST_USER,
                 url_pattern: Optional[str] = None) -> None:
        """
        Configure the middleware.

        Parameters
        ----------
        app : callable
            The WSGI application to protect.
        policy : :class:`.Policy`
            Ticket verification settings.
        login_url : str
            Where unauthenticated clients are sent. Required unless
            ``guest_login`` is enabled.
        timeout_url : str
            Where clients with an expired ticket are sent.
        post_timeout_url : str
            As ``timeout_url``, for POST requests.
        unauth_url : str
            Where clients lacking a required token are sent.
        guest_login : bool
            Let unauthenticated clients through as ``guest_user``.
        guest_fallback : bool
            With ``guest_login``, also treat expired tickets as guests.
        url_pattern : str
            Regular expression of paths that require a ticket. By default
            all paths do.

        Raises
        ------
        :class:`.ConfigurationError`

        """
        self.app = app
        self.policy = policy
        self.authenticator = Authenticator(policy)
        self.guest_login = guest_login
        self.guest_fallback = guest_fallback
        self.guest_user = guest_user
        self.login_url = _check_url(login_url, 'login_url',
                                    required=not guest_login)
        self.timeout_url = _check_url(timeout_url, 'timeout_url')
        self.post_timeout_url = _check_url(post_timeout_url,
                                           'post_timeout_url')
        self.unauth_url = _check_url(unauth_url, 'unauth_url')
        try:
            self.url_pattern: Optional[Pattern] = \
                re.compile(url_pattern) if url_pattern else None
        except re.error as e:
            raise ConfigurationError(f'Invalid url_pattern: {e}') from e

    @classmethod
    def from_config(cls, app: WSGIApp,
                    config: Mapping[str, Any]) -> 'AuthTicketMiddleware':
        """Configure the middleware from a Flask style config mapping."""
        params: dict = {}
        for name, keys in CONFIG_KEYS.items():
            for key in keys:
                if config.get(key) is not None:
                    params[name] = config[key]
                    break
        try:
            for flag in ('guest_login', 'guest_fallback'):
                params[flag] = util.parse_flag(params.get(flag))
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        return cls(app, Policy.from_config(config), **params)

    def protects(self, request: Request) -> bool:
        """Determine whether ``request`` requires a ticket."""
        if request.method == 'OPTIONS':
            return False
        if self.url_pattern is None:
            return True
        return self.url_pattern.match(request.path) is not None

    def __call__(self, environ: dict, start_response: Callable) \
            -> Iterable[bytes]:
        """Authenticate the request before handing it to the application."""
        request = Request(environ)
        if not self.protects(request):
            return self.app(environ, start_response)

        cookie = request.cookies.get(self.policy.cookie_name)
        remote_addr = util.remote_address(environ)
        response: Optional[Response] = None
        try:
            ticket = self.authenticator.authenticate(cookie, remote_addr)
        except ExpiredTicket as e:
            logger.debug('Expired ticket: %s', e)
            response = self._on_expired(request)
        except TokenMissing as e:
            logger.debug('Ticket not authorized: %s', e)
            if self.unauth_url is not None:
                response = redirect(back_url(self.unauth_url, request))
        except AuthTicketError as e:
            logger.debug('No valid ticket: %s', e)
        else:
            self._attach(environ, ticket)
            return self.app(environ, start_response)

        if response is None:
            # login_url is only optional when guests are let through.
            if self.guest_login or self.login_url is None:
                self._attach_guest(environ)
                return self.app(environ, start_response)
            response = redirect(back_url(self.login_url, request))
        return response(environ, start_response)

    def _on_expired(self, request: Request) -> Optional[Response]:
        if self.guest_login and self.guest_fallback:
            return None
        target = self.timeout_url
        if request.method == 'POST' and self.post_timeout_url is not None:
            target = self.post_timeout_url
        if target is None:
            return None
        return redirect(back_url(target, request))

    def _attach(self, environ: dict, ticket: Ticket) -> None:
        environ['REMOTE_USER'] = ticket.username
        environ['AUTH_TYPE'] = AUTH_TYPE
        environ['TKT_AUTH_USER_DATA'] = ticket.user_data
        environ['TKT_AUTH_TOKENS'] = ticket.tokens
        environ[ENVIRON_KEY] = ticket

    def _attach_guest(self, environ: dict) -> None:
        environ['REMOTE_USER'] = self.guest_user
        environ['AUTH_TYPE'] = AUTH_TYPE
        environ['TKT_AUTH_TOKENS'] = ()
        environ[ENVIRON_KEY] = None
