"""
Defines the auth ticket and the builder used to assemble new tickets.

A :class:`Ticket` is immutable. Tickets parsed from a cookie carry the
checksum claimed by the client; tickets produced by
:meth:`.Authenticator.encode` carry a freshly computed checksum. Client code
that issues tickets assembles the fields on a :class:`MutableTicket` and
hands it to the authenticator for signing.
"""

from typing import Any, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from . import util

DELIMITER = '!'
TOKEN_SEPARATOR = ','
CHECKSUM_SIZES = (0, 16, 32, 64)


def _check_field(name: str, value: Optional[str]) -> None:
    if value is not None and DELIMITER in value:
        raise ValueError(f'{name} contains invalid character: {DELIMITER}')


def _check_token(token: str) -> None:
    if not isinstance(token, str):
        raise ValueError(f'token must be a string, not {type(token)}')
    _check_field('token', token)
    if TOKEN_SEPARATOR in token:
        raise ValueError(f'token contains invalid character: '
                         f'{TOKEN_SEPARATOR}')


def split_tokens(token_list: Optional[str]) -> List[str]:
    """Split a comma separated token list, trimming surrounding whitespace."""
    if not token_list:
        return []
    return [token.strip() for token in token_list.split(TOKEN_SEPARATOR)
            if token.strip()]


class Ticket(BaseModel):
    """An immutable auth ticket."""

    model_config = ConfigDict(frozen=True)

    username: str
    """The authenticated principal. Never empty, never contains ``!``."""

    timestamp: int = Field(ge=0, le=util.MAX_TIMESTAMP)
    """Creation time in seconds since the epoch (32-bit unsigned)."""

    tokens: Tuple[str, ...] = ()
    """Roles or scopes, in the order the producer listed them."""

    user_data: str = ''
    """Opaque application data; may be empty."""

    checksum: bytes = b''
    """Raw MAC bytes. Empty for a ticket that has not been signed."""

    @field_validator('username')
    @classmethod
    def _check_username(cls, value: str) -> str:
        if not value:
            raise ValueError('username must not be empty')
        _check_field('username', value)
        return value

    @field_validator('tokens', mode='before')
    @classmethod
    def _normalize_tokens(cls, value: Any) -> Tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            value = split_tokens(value)
        tokens: List[str] = []
        for token in value:
            _check_token(token)
            token = token.strip()
            if token and token not in tokens:
                tokens.append(token)
        return tuple(tokens)

    @field_validator('user_data', mode='before')
    @classmethod
    def _check_user_data(cls, value: Optional[str]) -> str:
        if value is None:
            return ''
        _check_field('user_data', value)
        return value

    @field_validator('checksum')
    @classmethod
    def _check_checksum(cls, value: bytes) -> bytes:
        if len(value) not in CHECKSUM_SIZES:
            raise ValueError(f'invalid checksum length: {len(value)}')
        return value

    @property
    def signed(self) -> bool:
        """Indicates whether the ticket carries a checksum."""
        return len(self.checksum) > 0

    @property
    def token_list(self) -> str:
        """The tokens as they appear on the wire."""
        return TOKEN_SEPARATOR.join(self.tokens)

    def contains(self, token: str) -> bool:
        """Check whether the ticket carries ``token``."""
        return token in self.tokens

    def contains_any(self, tokens: Iterable[str]) -> bool:
        """
        Check whether the ticket carries at least one of ``tokens``.

        An empty requirement is always satisfied.
        """
        required = set(tokens)
        return not required or not required.isdisjoint(self.tokens)

    def is_expired(self, timeout: int, now: Optional[int] = None) -> bool:
        """
        Check whether the ticket is older than ``timeout`` seconds.

        A ``timeout`` of zero or less never expires.
        """
        if timeout <= 0:
            return False
        current = util.now() if now is None else now
        return current - self.timestamp >= timeout


class MutableTicket(object):
    """
    Builder for a ticket that has not yet been signed.

    The timestamp is fixed when the builder is created.
    """

    def __init__(self, username: str, tokens: Iterable[str] = (),
                 user_data: str = '', timestamp: Optional[int] = None) -> None:
        if not username:
            raise ValueError('username must not be empty')
        _check_field('username', username)
        self.username = username
        self.timestamp = util.now() if timestamp is None else timestamp
        self._tokens: List[str] = []
        self._user_data = ''
        for token in tokens:
            self.add_token(token)
        self.user_data = user_data

    @property
    def tokens(self) -> Tuple[str, ...]:
        """Tokens in insertion order."""
        return tuple(self._tokens)

    @property
    def user_data(self) -> str:
        """Opaque application data."""
        return self._user_data

    @user_data.setter
    def user_data(self, value: Optional[str]) -> None:
        _check_field('user_data', value)
        self._user_data = value or ''

    def add_token(self, token: str) -> None:
        """Add a token; adding a token twice has no effect."""
        _check_token(token)
        token = token.strip()
        if token and token not in self._tokens:
            self._tokens.append(token)

    def remove_token(self, token: str) -> bool:
        """Remove a token, returning ``True`` if it was present."""
        if token in self._tokens:
            self._tokens.remove(token)
            return True
        return False

    def contains(self, token: str) -> bool:
        """Check whether the builder carries ``token``."""
        return token in self._tokens

    def freeze(self) -> Ticket:
        """Get an unsigned, immutable :class:`Ticket` with these fields."""
        return Ticket(username=self.username, timestamp=self.timestamp,
                      tokens=self.tokens, user_data=self.user_data)
