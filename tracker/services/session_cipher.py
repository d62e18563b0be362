"""Symmetric sealing of session payloads stored in browser cookies."""

from __future__ import annotations

import base64
import hashlib
import json
from typing import Any, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken


class SessionCipher:
    """Seal and unseal JSON payloads with a Fernet key derived from a secret."""

    def __init__(self, *, secret: str, max_age_seconds: Optional[int] = None) -> None:
        if not secret:
            raise ValueError("Session secret must be provided.")
        digest = hashlib.sha256(secret.encode("utf-8")).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(digest))
        self._max_age = max_age_seconds

    def seal(self, payload: Dict[str, Any]) -> str:
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        return self._fernet.encrypt(serialized.encode("utf-8")).decode("utf-8")

    def unseal(self, token: str) -> Dict[str, Any]:
        """
        Return the payload sealed in ``token``.

        Raises ``ValueError`` when the token was not produced with this secret,
        was tampered with, or is older than the configured max age.
        """
        try:
            serialized = self._fernet.decrypt(token.encode("utf-8"), ttl=self._max_age)
        except InvalidToken as exc:
            raise ValueError("Session cookie could not be decrypted.") from exc
        payload = json.loads(serialized)
        if not isinstance(payload, dict):
            raise ValueError("Session cookie does not contain an object.")
        return payload


__all__ = ["SessionCipher"]
