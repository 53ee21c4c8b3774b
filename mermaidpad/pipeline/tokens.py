"""Request tokens that keep superseded results away from visible state."""

from __future__ import annotations

from .models import RequestToken


class RequestSequencer:
    """Issues tokens for one site and answers whether a token is still current."""

    def __init__(self, site: str) -> None:
        self._site = site
        self._sequence = 0
        self._current: RequestToken | None = None

    @property
    def site(self) -> str:
        return self._site

    @property
    def current(self) -> RequestToken | None:
        """Token of the latest issued request, or None after invalidation."""

        return self._current

    def issue(self) -> RequestToken:
        """Tag a new request; every earlier token becomes stale."""

        self._sequence += 1
        self._current = RequestToken(site=self._site, sequence=self._sequence)
        return self._current

    def is_current(self, token: RequestToken) -> bool:
        return self._current is not None and token == self._current

    def invalidate(self) -> None:
        """Mark every outstanding token stale without issuing a new one."""

        self._current = None


__all__ = ["RequestSequencer"]
