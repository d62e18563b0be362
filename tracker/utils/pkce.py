"""PKCE (RFC 7636) verifier and challenge helpers."""

from __future__ import annotations

import base64
import secrets
from hashlib import sha256

CHALLENGE_METHOD = "s256"


def generate_code_verifier(num_bytes: int = 48) -> str:
    """Return a random URL-safe verifier between 43 and 128 characters long."""
    if not 32 <= num_bytes <= 96:
        raise ValueError("num_bytes must be between 32 and 96")
    return secrets.token_urlsafe(num_bytes)


def code_challenge(verifier: str) -> str:
    digest = sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


__all__ = ["CHALLENGE_METHOD", "code_challenge", "generate_code_verifier"]
