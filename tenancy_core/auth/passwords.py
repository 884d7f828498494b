"""
One-way password hashing (bcrypt). Only hash() and verify() are exposed; digests are never decoded.
"""
from __future__ import annotations

import bcrypt

from ..errors import ValidationError

# bcrypt only looks at the first 72 bytes; longer input is rejected rather than silently truncated.
MAX_PASSWORD_BYTES = 72
DEFAULT_ROUNDS = 12


class PasswordHasher:
    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self._rounds = rounds

    def hash(self, plaintext: str) -> str:
        raw = (plaintext or "").encode("utf-8")
        if not raw:
            raise ValidationError("password required")
        if len(raw) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"password longer than {MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=self._rounds)).decode("utf-8")

    def verify(self, plaintext: str, digest: str) -> bool:
        raw = (plaintext or "").encode("utf-8")
        if not raw or not digest or len(raw) > MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(raw, digest.encode("utf-8"))
        except ValueError:
            # malformed stored digest
            return False
