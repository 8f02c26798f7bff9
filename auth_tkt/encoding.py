"""
Transport encodings for auth ticket cookie values.

Producers of mod_auth_tkt cookies do not agree on how the ticket is placed in
the cookie. The value may be quoted, percent-encoded, or base64 encoded, and
some encodings only become visible once another has been removed. Every
valid ticket contains at least one ``!`` delimiter, so decoding proceeds
until one appears, or fails when no known encoding applies.
"""

from typing import Optional
from base64 import b64decode
from urllib.parse import quote_plus, unquote_plus
import logging

from .exceptions import MalformedTicket

logger = logging.getLogger(__name__)

DELIMITER = '!'
QUOTES = ('"', "'")
PERCENT_MARKERS = ('%21', '%3D')


def unquote(value: str) -> str:
    """Strip one layer of matching surrounding quotes."""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in QUOTES:
        return value[1:-1]
    return value


def _b64decode(value: str) -> str:
    try:
        decoded = b64decode(value, validate=True).decode('utf-8')
    except ValueError as e:
        raise MalformedTicket('unknown encoding') from e
    if not decoded:
        raise MalformedTicket('unknown encoding')
    return decoded


def decode(cookie_value: Optional[str]) -> str:
    """
    Recover the ticket wire string from a raw cookie value.

    Parameters
    ----------
    cookie_value : str
        The cookie value as presented by the client.

    Returns
    -------
    str
        The unescaped ticket, containing at least one ``!``.

    Raises
    ------
    :class:`MalformedTicket`
        If no sequence of known decodings yields a ticket.

    """
    if not cookie_value:
        raise MalformedTicket('unknown encoding')
    value = unquote(cookie_value)
    while DELIMITER not in value:
        upper = value.upper()
        if any(marker in upper for marker in PERCENT_MARKERS):
            logger.debug('Cookie value is percent-encoded')
            value = unquote_plus(value)
        else:
            logger.debug('Attempting base64 decode of cookie value')
            value = _b64decode(value)
    return value


def encode(wire: str) -> str:
    """Percent-encode a ticket wire string for use as a cookie value."""
    return quote_plus(wire, safe='')
