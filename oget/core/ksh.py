"""
oget.core.ksh - Keyed salted hashing
=====================================

Digest function required by the Intrexx challenge login.

The construction resembles HMAC but is not HMAC: only the first
``len(H(password || salt))`` bytes of the two 64-byte pads are XORed with
the hashed password, the remaining bytes keep their fill value. The server
computes exactly this, so :mod:`hmac` must not be used here.
"""

from __future__ import annotations

import hashlib
from typing import Callable, Tuple, Union

BLOCK_SIZE = 64
IPAD_BYTE = 0x36
OPAD_BYTE = 0x5C

BytesLike = Union[bytes, bytearray, str]


def _to_bytes(value: BytesLike) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def make_pads(hashed_password: bytes) -> Tuple[bytes, bytes]:
    """
    Build the inner and outer pads for a hashed password.

    Only the prefix covered by ``hashed_password`` is XORed; a key longer
    than the block size is truncated to it.
    """
    ipad = bytearray([IPAD_BYTE] * BLOCK_SIZE)
    opad = bytearray([OPAD_BYTE] * BLOCK_SIZE)
    for i, b in enumerate(hashed_password[:BLOCK_SIZE]):
        ipad[i] ^= b
        opad[i] ^= b
    return bytes(ipad), bytes(opad)


class KeyedSaltedHasher:
    """
    Keyed salted digest over an injectable hash primitive.

    Parameters
    ----------
    hash_factory : callable
        Returns a fresh hash object following the :mod:`hashlib` protocol
        (``update()``/``digest()``). Defaults to SHA-1, which the Intrexx
        server expects.

    Examples
    --------
    >>> KeyedSaltedHasher().digest(b"secret", b"ab12", b"chal99").hex().upper()
    'EF89E386CB3D9493D04946592A460DFE43CD8C38'
    """

    def __init__(self, hash_factory: Callable = hashlib.sha1) -> None:
        self.hash_factory = hash_factory

    def _hash(self, *chunks: bytes) -> bytes:
        h = self.hash_factory()
        for chunk in chunks:
            h.update(chunk)
        return h.digest()

    def digest(self, password: BytesLike, salt: BytesLike, challenge: BytesLike) -> bytes:
        """
        Compute the proof-of-knowledge digest.

        Parameters
        ----------
        password : bytes or str
            Plain password
        salt : bytes or str
            Server-issued salt
        challenge : bytes or str
            Server-issued challenge

        Returns
        -------
        bytes
            ``H(opad || H(ipad || challenge))``; its length is the digest size
            of the hash primitive
        """
        hashed_password = self._hash(_to_bytes(password), _to_bytes(salt))
        ipad, opad = make_pads(hashed_password)
        inner = self._hash(ipad, _to_bytes(challenge))
        return self._hash(opad, inner)

    def proof(self, password: BytesLike, salt: BytesLike, challenge: BytesLike) -> str:
        """Uppercase hex digest, as sent in place of the password."""
        return self.digest(password, salt, challenge).hex().upper()


def make_digest(password: BytesLike, salt: BytesLike, challenge: BytesLike) -> bytes:
    """SHA-1 keyed salted digest."""
    return KeyedSaltedHasher().digest(password, salt, challenge)
