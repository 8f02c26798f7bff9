"""
Digest algorithms and the auth ticket message authentication code.

The MAC is defined by the mod_auth_tkt cookie format as::

    digest0 := H(iptstamp + key + user_id + '\\0' + token_list + '\\0' + user_data)
    digest  := H(hex(digest0) + key)

where ``H`` is one of MD5, SHA-256 or SHA-512, ``iptstamp`` is the 8 byte
address stamp built by :func:`auth_tkt.util.address_stamp`, and
``hex(digest0)`` is the lower-case hexadecimal text of the first digest.
"""

from typing import Optional, Any
from enum import Enum
import hashlib


class DigestAlgorithm(Enum):
    """The hash primitives supported by the auth ticket format."""

    MD5 = ('md5', 16)
    SHA256 = ('sha256', 32)
    SHA512 = ('sha512', 64)

    def __init__(self, hash_name: str, digest_size: int) -> None:
        self.hash_name = hash_name
        self.digest_size = digest_size

    @property
    def checksum_width(self) -> int:
        """Number of hex characters the checksum occupies in a ticket."""
        return self.digest_size * 2

    def new(self) -> Any:
        """
        Get a fresh hashing context for this algorithm.

        Hash contexts are not safe to share while a computation is in
        progress, so every caller gets its own.
        """
        return hashlib.new(self.hash_name)

    @classmethod
    def lookup(cls, name: Any) -> 'DigestAlgorithm':
        """
        Get an algorithm by name.

        Accepts member names and common spellings such as ``md5``,
        ``SHA-256`` or ``sha512``, case-insensitively.

        Raises
        ------
        :class:`ValueError`
            If ``name`` does not identify a supported algorithm.

        """
        if isinstance(name, cls):
            return name
        normalized = str(name).strip().replace('-', '').replace('_', '')
        for algorithm in cls:
            if normalized.upper() == algorithm.name:
                return algorithm
        raise ValueError(f'unsupported digest algorithm: {name}')


def _to_bytes(value: Optional[str]) -> bytes:
    # mod_auth_tkt does not name a charset; UTF-8 is ASCII compatible.
    return value.encode('utf-8') if value else b''


def compute_checksum(algorithm: DigestAlgorithm, secret: str, stamp: bytes,
                     username: str, token_list: Optional[str],
                     user_data: Optional[str]) -> bytes:
    """
    Compute the MAC for a set of ticket fields.

    Parameters
    ----------
    algorithm : :class:`DigestAlgorithm`
        The hash primitive to use.
    secret : str
        Shared secret known to every issuing and verifying tier.
    stamp : bytes
        The 8 byte address stamp (client IPv4 address and timestamp).
    username : str
        Ticket principal.
    token_list : str
        Comma-joined tokens, or ``None``/empty when there are none.
    user_data : str
        Opaque application data, or ``None``/empty.

    Returns
    -------
    bytes
        The raw checksum, :attr:`DigestAlgorithm.digest_size` bytes long.

    """
    key = _to_bytes(secret)
    digest0 = algorithm.new()
    digest0.update(stamp)
    digest0.update(key)
    digest0.update(_to_bytes(username))
    digest0.update(b'\0')
    digest0.update(_to_bytes(token_list))
    digest0.update(b'\0')
    digest0.update(_to_bytes(user_data))
    return _rehash_hex(algorithm, digest0.digest(), key)


def _rehash_hex(algorithm: DigestAlgorithm, digest0: bytes,
                key: bytes) -> bytes:
    """
    Second MAC pass over the hex text of the first digest.

    mod_auth_tkt hashes the lower-case hexadecimal *string* of ``digest0``
    together with the secret, rather than the raw digest bytes. Changing the
    case or hashing the binary digest produces an incompatible checksum.
    """
    final = algorithm.new()
    final.update(digest0.hex().encode('ascii'))
    final.update(key)
    digest: bytes = final.digest()
    return digest
