"""Provides an app factory for an auth ticket service."""

from typing import Any

from flask import Flask, jsonify
from werkzeug.exceptions import Forbidden, Unauthorized
from werkzeug.middleware.proxy_fix import ProxyFix

from . import routes, util
from .auth import Auth
from .auth.middleware import AuthTicketMiddleware
from .exceptions import ConfigurationError


def jsonify_exception(error):
    exc_resp = error.get_response()
    response = jsonify(reason=error.description)
    response.status_code = exc_resp.status_code
    return response


def create_web_app(**config: Any) -> Flask:
    """
    Initialize an instance of the auth ticket service.

    Configuration is read from :mod:`auth_tkt.config` and then updated with
    ``config``. If a login URL is configured, or guest access is enabled,
    the app is wrapped in :class:`.AuthTicketMiddleware`. If
    ``TKT_AUTH_TRUSTED_PROXIES`` is set, forwarding headers from that many
    proxies are applied to the request with :class:`.ProxyFix` before any
    ticket is checked.
    """
    app = Flask('auth_tkt')
    app.config.from_pyfile('config.py')
    app.config.update(config)

    Auth(app)
    app.register_blueprint(routes.blueprint)
    app.errorhandler(Unauthorized)(jsonify_exception)
    app.errorhandler(Forbidden)(jsonify_exception)

    if app.config.get('TKT_AUTH_LOGIN_URL') \
            or util.parse_flag(app.config.get('TKT_AUTH_GUEST_LOGIN')):
        app.wsgi_app = AuthTicketMiddleware.from_config(  # type: ignore
            app.wsgi_app, app.config
        )

    try:
        proxies = int(app.config.get('TKT_AUTH_TRUSTED_PROXIES') or 0)
    except ValueError as e:
        raise ConfigurationError(f'Invalid proxy count: {e}') from e
    if proxies > 0:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=proxies,  # type: ignore
                                x_proto=proxies, x_host=proxies)
    return app
