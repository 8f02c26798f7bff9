"""
Conversion between the ticket wire string and :class:`.Ticket`.

The wire string is positionally delimited::

    hex(checksum) + hex8(timestamp) + username + '!' [+ tokens + '!'] + user_data

The width of ``hex(checksum)`` is fixed by the digest algorithm, so the
algorithm must be known in order to parse a ticket.
"""

from typing import Union
import re

from pydantic import ValidationError

from . import encoding
from .digest import DigestAlgorithm
from .domain import Ticket, MutableTicket, DELIMITER, split_tokens
from .exceptions import MalformedTicket

TIMESTAMP_WIDTH = 8
UNSIGNED_CHECKSUM = bytes(4)
HEX = re.compile(r'[0-9a-fA-F]+')

AnyTicket = Union[Ticket, MutableTicket]


def parse(wire: str,
          algorithm: DigestAlgorithm = DigestAlgorithm.MD5) -> Ticket:
    """
    Parse an unescaped ticket wire string.

    Parameters
    ----------
    wire : str
        The ticket, with any transport encoding already removed.
    algorithm : :class:`DigestAlgorithm`
        Determines the width of the checksum prefix.

    Returns
    -------
    :class:`Ticket`
        Holds the parsed fields and the checksum claimed by the ticket. The
        checksum has not been verified.

    Raises
    ------
    :class:`MalformedTicket`
        If the length, hex fields, or delimiters are invalid.

    """
    width = algorithm.checksum_width
    if len(wire) <= width + TIMESTAMP_WIDTH:
        raise MalformedTicket('invalid ticket length')

    checksum_hex = wire[:width]
    timestamp_hex = wire[width:width + TIMESTAMP_WIDTH]
    if not HEX.fullmatch(checksum_hex):
        raise MalformedTicket('invalid checksum encoding')
    if not HEX.fullmatch(timestamp_hex):
        raise MalformedTicket('invalid timestamp encoding')

    parts = wire[width + TIMESTAMP_WIDTH:].split(DELIMITER)
    if len(parts) == 3:
        username, token_list, user_data = parts
    elif len(parts) == 2:
        username, user_data = parts
        token_list = ''
    else:
        raise MalformedTicket('ticket missing user data')

    try:
        return Ticket(username=username,
                      timestamp=int(timestamp_hex, 16),
                      tokens=split_tokens(token_list),
                      user_data=user_data,
                      checksum=bytes.fromhex(checksum_hex))
    except ValidationError as e:
        raise MalformedTicket(f'invalid ticket fields: {e}') from e


def serialize(ticket: AnyTicket) -> str:
    """
    Get the unescaped wire string for a ticket.

    Unsigned tickets are written with a four byte zero checksum, which
    legacy consumers expect; they will never verify.
    """
    checksum = getattr(ticket, 'checksum', b'') or UNSIGNED_CHECKSUM
    parts = [checksum.hex(), f'{ticket.timestamp:08x}', ticket.username]
    if ticket.tokens:
        parts += [DELIMITER, ','.join(ticket.tokens)]
    parts += [DELIMITER, ticket.user_data or '']
    return ''.join(parts)


def loads(cookie_value: str,
          algorithm: DigestAlgorithm = DigestAlgorithm.MD5) -> Ticket:
    """Decode a raw cookie value and parse the ticket it contains."""
    return parse(encoding.decode(cookie_value), algorithm)


def dumps(ticket: AnyTicket) -> str:
    """Get the transport-safe cookie value for a ticket."""
    return encoding.encode(serialize(ticket))
