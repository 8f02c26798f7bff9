"""Verification policy: the secret and the rules a ticket must satisfy."""

from typing import Any, FrozenSet, Mapping, Optional
import logging

from pydantic import (BaseModel, ConfigDict, Field,
                      field_validator, model_validator)

from . import util
from .digest import DigestAlgorithm
from .domain import split_tokens
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_COOKIE_NAME = 'auth_tkt'
DEFAULT_TIMEOUT = 7200
"""mod_auth_tkt expires tickets after two hours unless told otherwise."""

CONFIG_KEYS = {
    'secret': ('TKT_AUTH_SECRET', 'TKTAuthSecret'),
    'digest': ('TKT_AUTH_DIGEST_TYPE', 'TKTAuthDigestType'),
    'cookie_name': ('TKT_AUTH_COOKIE_NAME', 'TKTAuthCookieName'),
    'timeout': ('TKT_AUTH_TIMEOUT', 'TKTAuthTimeout'),
    'ignore_ip': ('TKT_AUTH_IGNORE_IP', 'TKTAuthIgnoreIP'),
    'tokens': ('TKT_AUTH_TOKEN', 'TKTAuthToken'),
}


def _lookup(config: Mapping[str, Any], field: str) -> Optional[Any]:
    for key in CONFIG_KEYS[field]:
        value = config.get(key)
        if value is not None:
            return value
    return None


class Policy(BaseModel):
    """Settings shared by the ticket issuer and verifier."""

    model_config = ConfigDict(frozen=True)

    secret: str = Field(min_length=1, repr=False)
    """Shared secret used to compute ticket checksums."""

    digest: DigestAlgorithm = DigestAlgorithm.MD5
    """Hash primitive for the checksum."""

    cookie_name: str = DEFAULT_COOKIE_NAME
    """Name of the cookie carrying the ticket."""

    timeout: int = DEFAULT_TIMEOUT
    """
    Ticket lifetime in seconds.

    Zero or less disables expiry, which lets a captured ticket be replayed
    indefinitely.
    """

    check_ip: bool = False
    """Bind tickets to the client IPv4 address."""

    tokens: FrozenSet[str] = frozenset()
    """A ticket must carry at least one of these tokens, if any are set."""

    @field_validator('digest', mode='before')
    @classmethod
    def _lookup_digest(cls, value: Any) -> DigestAlgorithm:
        return DigestAlgorithm.lookup(value)

    @field_validator('timeout', mode='before')
    @classmethod
    def _parse_timeout(cls, value: Any) -> int:
        return util.parse_duration(value)

    @field_validator('check_ip', mode='before')
    @classmethod
    def _parse_check_ip(cls, value: Any) -> bool:
        return util.parse_flag(value)

    @field_validator('tokens', mode='before')
    @classmethod
    def _parse_tokens(cls, value: Any) -> FrozenSet[str]:
        if value is None:
            return frozenset()
        if isinstance(value, str):
            return frozenset(split_tokens(value))
        return frozenset(value)

    @model_validator(mode='after')
    def _warn_on_no_expiry(self) -> 'Policy':
        if self.timeout <= 0:
            logger.warning('Ticket expiry is disabled; tickets can be'
                           ' replayed for as long as the secret is valid')
        return self

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'Policy':
        """
        Build a policy from a configuration mapping.

        Both Flask style keys (``TKT_AUTH_SECRET``) and the mod_auth_tkt
        directive names (``TKTAuthSecret``) are recognized. Note that
        mod_auth_tkt expresses address binding negatively, as
        ``TKTAuthIgnoreIP``, and ignores the client address by default.

        Raises
        ------
        :class:`ConfigurationError`
            If the secret is missing or a value cannot be interpreted.

        """
        secret = _lookup(config, 'secret')
        if not secret:
            raise ConfigurationError('An auth ticket secret is required')
        params: dict = {'secret': secret}
        for field in ('digest', 'cookie_name', 'timeout', 'tokens'):
            value = _lookup(config, field)
            if value is not None:
                params[field] = value
        try:
            params['check_ip'] = not util.parse_flag(
                _lookup(config, 'ignore_ip'), default=True
            )
            return cls(**params)
        except ValueError as e:   # Includes pydantic's ValidationError.
            raise ConfigurationError(f'Invalid auth ticket policy: {e}') from e
