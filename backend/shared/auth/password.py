"""Password hashing: protocol, bcrypt (production), and salted SHA-256 (tests).

BcryptHasher is CPU-bound (~100ms per call) and runs off the event loop
using anyio.to_thread.run_sync() to avoid blocking under concurrent requests.
Passwords may be up to 128 characters, but bcrypt only reads the first
72 bytes, so longer inputs are truncated before hashing and verifying.

SimpleHasher stores "simple$<salt>$<sha256 hex>" for instant hashing.
It is intended for tests only.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import Protocol, runtime_checkable

import bcrypt
from anyio import to_thread

BCRYPT_MAX_BYTES = 72


@runtime_checkable
class PasswordHasher(Protocol):
    """Hash and verify passwords."""

    async def hash(self, plain: str) -> str: ...

    async def verify(self, plain: str, hashed: str) -> bool: ...


def _bcrypt_input(plain: str) -> bytes:
    return plain.encode("utf-8")[:BCRYPT_MAX_BYTES]


class BcryptHasher:
    """Production hasher using bcrypt (async, off-thread)."""

    def __init__(self, rounds: int = 12) -> None:
        self._rounds = rounds

    async def hash(self, plain: str) -> str:
        encoded = _bcrypt_input(plain)
        salt = bcrypt.gensalt(rounds=self._rounds)
        return await to_thread.run_sync(lambda: bcrypt.hashpw(encoded, salt).decode("utf-8"))

    async def verify(self, plain: str, hashed: str) -> bool:
        """Return False for malformed hashes rather than propagating a ValueError."""
        encoded_plain = _bcrypt_input(plain)
        encoded_hash = hashed.encode("utf-8")
        try:
            return await to_thread.run_sync(lambda: bcrypt.checkpw(encoded_plain, encoded_hash))
        except ValueError:
            return False


_SIMPLE_PREFIX = "simple"


def _simple_digest(salt: str, plain: str) -> str:
    return hashlib.sha256(f"{salt}:{plain}".encode()).hexdigest()


class SimpleHasher:
    """Fast salted SHA-256 hasher for tests. Not suitable for production use."""

    async def hash(self, plain: str) -> str:
        salt = secrets.token_hex(8)
        return f"{_SIMPLE_PREFIX}${salt}${_simple_digest(salt, plain)}"

    async def verify(self, plain: str, hashed: str) -> bool:
        prefix, _, rest = hashed.partition("$")
        salt, _, digest = rest.partition("$")
        if prefix != _SIMPLE_PREFIX or not salt or not digest:
            return False
        return hmac.compare_digest(digest, _simple_digest(salt, plain))


def get_hasher(name: str = "bcrypt") -> PasswordHasher:
    """Return a PasswordHasher by name ("bcrypt" or "simple")."""
    if name == "bcrypt":
        return BcryptHasher()
    if name == "simple":
        return SimpleHasher()
    raise ValueError(f"Unknown password hasher: {name!r}")
