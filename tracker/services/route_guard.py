"""Page protection rules shared with the front-end."""

from __future__ import annotations

from tracker.core.config import RouteSettings


def _matches(path: str, prefix: str) -> bool:
    prefix = prefix.rstrip("/") or "/"
    if prefix == "/":
        return path == "/"
    return path == prefix or path.startswith(prefix + "/")


class RouteGuard:
    """Decide which pages require a signed-in user."""

    def __init__(self, settings: RouteSettings) -> None:
        self._settings = settings

    def is_public(self, path: str) -> bool:
        return any(_matches(path, prefix) for prefix in self._settings.public_prefixes)

    def is_protected(self, path: str) -> bool:
        if self.is_public(path):
            return False
        return any(_matches(path, prefix) for prefix in self._settings.protected_prefixes)

    def redirect_for(self, path: str, *, authenticated: bool) -> str | None:
        """Return where an anonymous visitor of ``path`` should be sent, if anywhere."""
        if authenticated or not self.is_protected(path):
            return None
        return self._settings.unauthenticated_redirect_path


__all__ = ["RouteGuard"]
