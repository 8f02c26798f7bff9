"""
Signs and verifies auth tickets.

Verification follows mod_auth_tkt:

1. If no ticket is present, :class:`.TicketNotFound` is raised.
2. If the ticket cannot be decoded or parsed, :class:`.MalformedTicket` is
   raised.
3. If a timeout is configured and the ticket is at least that old,
   :class:`.ExpiredTicket` is raised.
4. The checksum is recomputed from the ticket fields, the secret and the
   client address stamp. On mismatch :class:`.InvalidTicket` is raised.
5. If the policy requires tokens and the ticket has none of them,
   :class:`.TokenMissing` is raised.
6. Otherwise the ticket is returned, giving access to the username, tokens
   and user data.
"""

from typing import Iterable, Optional, Union
import hmac
import logging

from . import codec, util
from .digest import compute_checksum
from .domain import Ticket, MutableTicket
from .exceptions import (AuthTicketError, TicketNotFound, ExpiredTicket,
                         InvalidTicket, TokenMissing)
from .policy import Policy

logger = logging.getLogger(__name__)


class Authenticator(object):
    """Applies a :class:`.Policy` to issue and verify tickets."""

    def __init__(self, policy: Union[Policy, str]) -> None:
        """
        Initialize with a policy, or just a secret for default settings.

        Parameters
        ----------
        policy : :class:`.Policy` or str

        """
        if isinstance(policy, str):
            policy = Policy(secret=policy)
        self.policy = policy

    def checksum(self, ticket: Union[Ticket, MutableTicket],
                 remote_addr: Optional[str] = None) -> bytes:
        """Compute the checksum ``ticket`` should carry under this policy."""
        stamp = util.address_stamp(remote_addr, ticket.timestamp,
                                   self.policy.check_ip)
        return compute_checksum(self.policy.digest, self.policy.secret, stamp,
                                ticket.username, ','.join(ticket.tokens),
                                ticket.user_data)

    def encode(self, ticket: Union[Ticket, MutableTicket],
               remote_addr: Optional[str] = None) -> Ticket:
        """
        Sign a ticket.

        Parameters
        ----------
        ticket : :class:`.Ticket` or :class:`.MutableTicket`
            The fields to sign. Any existing checksum is replaced.
        remote_addr : str
            Client address to bind the ticket to. If ``None``, the ticket is
            not bound to an address regardless of the policy.

        Returns
        -------
        :class:`.Ticket`
            An immutable ticket carrying the computed checksum.

        """
        if isinstance(ticket, MutableTicket):
            ticket = ticket.freeze()
        signed: Ticket = ticket.model_copy(
            update={'checksum': self.checksum(ticket, remote_addr)}
        )
        return signed

    def issue(self, username: str, tokens: Iterable[str] = (),
              user_data: str = '', remote_addr: Optional[str] = None) -> str:
        """Build and sign a new ticket, returning the cookie value."""
        ticket = MutableTicket(username, tokens=tokens, user_data=user_data)
        return codec.dumps(self.encode(ticket, remote_addr))

    def verify(self, ticket: Ticket, remote_addr: Optional[str] = None,
               now: Optional[int] = None) -> Ticket:
        """
        Check the expiry, checksum and tokens of a parsed ticket.

        Returns
        -------
        :class:`.Ticket`
            The same ticket, if it is acceptable.

        Raises
        ------
        :class:`.ExpiredTicket`
        :class:`.InvalidTicket`
        :class:`.TokenMissing`

        """
        if ticket.is_expired(self.policy.timeout, now=now):
            logger.debug('Ticket for %s has expired', ticket.username)
            raise ExpiredTicket('ticket has expired')

        if len(ticket.checksum) != self.policy.digest.digest_size:
            logger.debug('Ticket checksum is not a %s digest',
                         self.policy.digest.name)
            raise InvalidTicket('invalid checksum length')

        expected = self.checksum(ticket, remote_addr)
        if not hmac.compare_digest(expected, ticket.checksum):
            logger.debug('Checksum mismatch for ticket of %s', ticket.username)
            raise InvalidTicket('checksum does not match')

        if not ticket.contains_any(self.policy.tokens):
            logger.debug('Ticket for %s lacks required tokens',
                         ticket.username)
            raise TokenMissing('ticket lacks a required token')
        return ticket

    def is_valid(self, ticket: Ticket, remote_addr: Optional[str] = None,
                 now: Optional[int] = None) -> bool:
        """Check a parsed ticket without raising."""
        try:
            self.verify(ticket, remote_addr, now=now)
        except AuthTicketError:
            return False
        return True

    def authenticate(self, cookie_value: Optional[str],
                     remote_addr: Optional[str] = None,
                     now: Optional[int] = None) -> Ticket:
        """
        Decode, parse and verify a raw cookie value.

        Parameters
        ----------
        cookie_value : str
            The value of the auth ticket cookie, if any.
        remote_addr : str
            The client address, used only if the policy binds tickets to
            addresses.
        now : int
            Current epoch time; defaults to the system clock.

        Returns
        -------
        :class:`.Ticket`

        Raises
        ------
        :class:`.TicketNotFound`
            If there is no ticket, or (as :class:`.MalformedTicket` and
            :class:`.ExpiredTicket`) if it is unreadable or expired.
        :class:`.InvalidTicket`
            If the checksum does not match, or (as :class:`.TokenMissing`)
            if a required token is absent.

        """
        if not cookie_value:
            raise TicketNotFound('no auth ticket')
        ticket = codec.loads(cookie_value, self.policy.digest)
        return self.verify(ticket, remote_addr, now=now)
