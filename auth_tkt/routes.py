"""Routes for checking and clearing auth tickets."""

from flask import Blueprint, current_app, jsonify, make_response, redirect, \
    request
from werkzeug.exceptions import Unauthorized

import logging

logger = logging.getLogger(__name__)

blueprint = Blueprint('auth_tkt', __name__, url_prefix='')


@blueprint.route('/auth', methods=['GET'])
def authenticate():
    """
    Authenticate the request.

    Intended as the target of an ingress auth subrequest: responds 200 with
    identity headers if the request carries a valid ticket, 401 otherwise.
    """
    ticket = request.auth
    if ticket is None:
        logger.debug('Auth ticket not found or not valid')
        raise Unauthorized('No valid auth ticket')
    headers = {
        'X-Remote-User': ticket.username,
        'X-Auth-Tokens': ticket.token_list,
        'X-Auth-User-Data': ticket.user_data
    }
    data = {
        'username': ticket.username,
        'tokens': list(ticket.tokens),
        'user_data': ticket.user_data
    }
    return jsonify(data), 200, headers


@blueprint.route('/logout', methods=['GET'])
def logout():
    """Expire the auth ticket cookie."""
    target = current_app.config['TKT_AUTH_LOGOUT_REDIRECT_URL']
    response = make_response(redirect(target))
    current_app.config['auth_tkt.Auth'].clear_ticket(response)
    return response
