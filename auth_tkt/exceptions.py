"""Exceptions raised while decoding and verifying auth tickets."""


class AuthTicketError(RuntimeError):
    """Base class for auth ticket failures."""


class TicketNotFound(AuthTicketError):
    """No usable ticket was presented; treat the request as anonymous."""


class MalformedTicket(TicketNotFound):
    """The ticket could not be decoded or parsed."""


class ExpiredTicket(TicketNotFound):
    """The ticket is older than the configured timeout."""


class InvalidTicket(AuthTicketError):
    """The ticket checksum does not match its contents."""


class TokenMissing(InvalidTicket):
    """The ticket is authentic but lacks a token required for the resource."""


class ConfigurationError(RuntimeError):
    """The auth ticket policy or middleware is misconfigured."""
