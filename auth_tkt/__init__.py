"""
Issue and verify mod_auth_tkt single-sign-on tickets.

.. code-block:: python

   from auth_tkt import Authenticator, Policy

   authenticator = Authenticator(Policy(secret='...', tokens='editor'))
   ticket = authenticator.authenticate(request.cookies.get('auth_tkt'))

"""

from .authenticator import Authenticator
from .digest import DigestAlgorithm
from .domain import Ticket, MutableTicket
from .exceptions import (AuthTicketError, TicketNotFound, MalformedTicket,
                         ExpiredTicket, InvalidTicket, TokenMissing,
                         ConfigurationError)
from .policy import Policy
