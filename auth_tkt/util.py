"""Helpers for time, address stamps, and configuration values."""

from typing import Optional, Mapping, Any, Union
from datetime import datetime
import ipaddress
import logging
import re
import struct

from pytz import UTC

logger = logging.getLogger(__name__)

MAX_TIMESTAMP = 0xFFFFFFFF
"""Tickets carry a 32-bit unsigned timestamp."""

DURATION = re.compile(r'^\s*(\d+)\s*([smhdwMy]?)\s*$')
DURATION_UNITS = {
    '': 1,
    's': 1,
    'm': 60,
    'h': 60 * 60,
    'd': 60 * 60 * 24,
    'w': 60 * 60 * 24 * 7,
    'M': 60 * 60 * 24 * 30,
    'y': 60 * 60 * 24 * 365,
}

TRUE_VALUES = ('1', 'on', 'yes', 'true')
FALSE_VALUES = ('0', 'off', 'no', 'false', '')

NO_ADDRESS = bytes(4)


def now() -> int:
    """Get the current epoch/unix time."""
    return epoch(datetime.now(tz=UTC))


def epoch(t: datetime) -> int:
    """Convert a :class:`.datetime` to UNIX time."""
    return int(t.timestamp())


def parse_duration(value: Union[str, int, None]) -> int:
    """
    Parse a mod_auth_tkt style duration expression into seconds.

    Plain integers are seconds. A numeric value may carry one unit suffix:
    ``s``, ``m`` (minutes), ``h``, ``d``, ``w``, ``M`` (30 day months) or
    ``y`` (365 day years).

    Raises
    ------
    :class:`ValueError`
        If ``value`` is not a valid duration expression.

    """
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ValueError(f'invalid time expression: {value}')
    if isinstance(value, int):
        return value
    match = DURATION.match(value)
    if match is None:
        raise ValueError(f'invalid time expression: {value}')
    amount, unit = match.groups()
    return int(amount) * DURATION_UNITS[unit]


def parse_flag(value: Union[str, bool, None], default: bool = False) -> bool:
    """Interpret an on/off style configuration flag."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ValueError(f'invalid flag value: {value}')


def ipv4_bytes(remote_addr: Optional[str]) -> bytes:
    """
    Get the packed IPv4 address for ``remote_addr``.

    Only the first entry of a comma separated forwarding chain is used. IPv6
    and unparseable addresses yield four zero bytes, since the ticket format
    has room for an IPv4 address only.
    """
    if not remote_addr:
        return NO_ADDRESS
    candidate = remote_addr.split(',')[0].strip()
    try:
        address = ipaddress.ip_address(candidate)
    except ValueError:
        logger.debug('Not an IP address: %s', candidate)
        return NO_ADDRESS
    if isinstance(address, ipaddress.IPv6Address):
        if address.ipv4_mapped is None:
            logger.debug('IPv6 address %s cannot be bound', address)
            return NO_ADDRESS
        address = address.ipv4_mapped
    return address.packed


def address_stamp(remote_addr: Optional[str], timestamp: int,
                  check_ip: bool = False) -> bytes:
    """
    Build the 8 byte address stamp that seeds the ticket MAC.

    Bytes 0-3 hold the client IPv4 address in network byte order when address
    binding is enabled, zeros otherwise. Bytes 4-7 hold the timestamp in
    network byte order.
    """
    address = ipv4_bytes(remote_addr) if check_ip else NO_ADDRESS
    return address + struct.pack('!I', timestamp & MAX_TIMESTAMP)


def remote_address(environ: Mapping[str, Any]) -> Optional[str]:
    """
    Get the client address of a WSGI request.

    Only the peer address is used. Forwarding headers are set by the client
    and are not trusted here; deployments behind proxies should rewrite
    ``REMOTE_ADDR`` with :class:`werkzeug.middleware.proxy_fix.ProxyFix`.
    """
    addr: Optional[str] = environ.get('REMOTE_ADDR')
    return addr
