"""
Token-based authorization of Flask routes.

This module provides :func:`scoped`, a decorator factory used to protect
routes that require an auth ticket, optionally carrying a particular token,
and optionally passing an application-specific authorizer.

.. code-block:: python

   from auth_tkt.auth.decorators import scoped


   def is_owner(ticket, username: str, **kwargs) -> bool:
       '''Check whether the ticket holder is the requested user.'''
       return ticket.username == username


   @blueprint.route('/<string:username>/profile', methods=['GET'])
   @scoped('profile', authorizer=is_owner)
   def edit_profile(username: str):
       ...

When the decorated route function is called...

- If no verified ticket is attached to the request, an :class:`Unauthorized`
  exception is raised.
- If a required token was provided and the ticket lacks it,
  :class:`Forbidden` is raised.
- If an authorizer was provided and returns ``False``, :class:`Forbidden` is
  raised.
- Otherwise the route is called with the original parameters.

"""

from typing import Any, Callable, Optional
from functools import wraps
import logging

from flask import request
from werkzeug.exceptions import Forbidden, Unauthorized

logger = logging.getLogger(__name__)


def scoped(required: Optional[str] = None,
           authorizer: Optional[Callable] = None) -> Callable:
    """
    Generate a decorator to enforce authorization requirements.

    Parameters
    ----------
    required : str
        A token that the ticket must carry. If not provided, any verified
        ticket is accepted.
    authorizer : function
        Called as ``authorizer(ticket, *args, **kwargs)`` with the route
        parameters; a false result denies the request.

    Returns
    -------
    function
        A decorator that enforces the requirements.

    """
    def protector(func: Callable) -> Callable:
        """Decorator that provides token enforcement."""
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            ticket = getattr(request, 'auth', None)
            if ticket is None:
                logger.debug('No verified ticket; aborting')
                raise Unauthorized('Not authenticated')

            if required and not ticket.contains(required):
                logger.debug('Ticket lacks token %s', required)
                raise Forbidden('Access denied')

            if authorizer and not authorizer(ticket, *args, **kwargs):
                logger.debug('Authorizer returned negative result')
                raise Forbidden('Access denied')

            logger.debug('Request is authorized, proceeding')
            return func(*args, **kwargs)
        return wrapper
    return protector
