"""Provides tools for working with auth tickets in Flask applications."""

from typing import Optional, Union
import logging

from flask import Flask, Response, request

from . import decorators, middleware
from .. import codec, util
from ..authenticator import Authenticator
from ..domain import Ticket, MutableTicket
from ..exceptions import AuthTicketError
from ..policy import Policy, DEFAULT_COOKIE_NAME

logger = logging.getLogger(__name__)


class Auth(object):
    """
    Attaches the verified auth ticket to the request.

    Intended for use in a Flask application factory, for example:

    .. code-block:: python

       from flask import Flask
       from auth_tkt.auth import Auth
       from someapp import routes


       def create_web_app() -> Flask:
          app = Flask('someapp')
          app.config.from_pyfile('config.py')
          Auth(app)
          app.register_blueprint(routes.blueprint)
          return app


    The ticket is available as ``request.auth`` during request handling, or
    ``None`` if the request carries no acceptable ticket.
    """

    def __init__(self, app: Optional[Flask] = None) -> None:
        """
        Initialize ``app`` with auth ticket support.

        Parameters
        ----------
        app : :class:`Flask`

        """
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """
        Build the policy from ``app.config`` and attach :meth:`.load_ticket`.

        Parameters
        ----------
        app : :class:`Flask`

        Raises
        ------
        :class:`.ConfigurationError`
            If the configured policy is invalid.

        """
        self.app = app
        self.app.config.setdefault('TKT_AUTH_COOKIE_NAME', DEFAULT_COOKIE_NAME)
        self.app.config.setdefault('TKT_AUTH_COOKIE_DOMAIN', None)
        self.app.config.setdefault('TKT_AUTH_COOKIE_SECURE', False)
        self.authenticator = Authenticator(Policy.from_config(app.config))
        self.app.config['auth_tkt.Auth'] = self
        self.app.before_request(self.load_ticket)

    @property
    def policy(self) -> Policy:
        """The policy applied to this application."""
        return self.authenticator.policy

    def _get_ticket(self) -> Optional[Ticket]:
        cookie = request.cookies.get(self.policy.cookie_name)
        if not cookie:
            return None
        try:
            return self.authenticator.authenticate(
                cookie, util.remote_address(request.environ)
            )
        except AuthTicketError as e:
            logger.debug('No acceptable auth ticket: %s', e)
        return None

    def load_ticket(self) -> None:
        """
        Look for a verified ticket, and attach it to the request.

        If :class:`.middleware.AuthTicketMiddleware` already handled the
        request, its outcome is used as-is. Otherwise the ticket cookie is
        verified here.
        """
        if middleware.ENVIRON_KEY in request.environ:
            ticket = request.environ[middleware.ENVIRON_KEY]
        else:
            ticket = self._get_ticket()
        request.auth = ticket

    def set_ticket(self, response: Response,
                   ticket: Union[Ticket, MutableTicket],
                   remote_addr: Optional[str] = None) -> Ticket:
        """
        Sign ``ticket`` and set it as the auth cookie on ``response``.

        Returns
        -------
        :class:`.Ticket`
            The signed ticket.

        """
        signed = self.authenticator.encode(ticket, remote_addr)
        response.set_cookie(
            self.policy.cookie_name,
            codec.dumps(signed),
            path='/',
            domain=self.app.config['TKT_AUTH_COOKIE_DOMAIN'],
            secure=util.parse_flag(self.app.config['TKT_AUTH_COOKIE_SECURE']),
            httponly=True
        )
        return signed

    def clear_ticket(self, response: Response) -> None:
        """Expire the auth cookie on ``response``."""
        response.set_cookie(
            self.policy.cookie_name, '', max_age=0, expires=0, path='/',
            domain=self.app.config['TKT_AUTH_COOKIE_DOMAIN']
        )
