"""Identity resolution and allow-list checks for the assistant API."""

from __future__ import annotations

from dataclasses import dataclass

IDENTITY_HEADER = "X-Forwarded-Email"


@dataclass(frozen=True, slots=True)
class AccessPolicy:
    """Allow-list of identities; an empty list admits every signed-in user."""

    allowed: frozenset[str] = frozenset()

    @classmethod
    def from_setting(cls, raw: str | None) -> AccessPolicy:
        """Parse a comma separated ALLOWED_EMAILS value ("" or "*" = everyone)."""

        value = (raw or "").strip()
        if not value or value == "*":
            return cls()
        emails = {entry.strip().lower() for entry in value.split(",")}
        return cls(allowed=frozenset(email for email in emails if email))

    @property
    def allow_all(self) -> bool:
        return not self.allowed

    def is_allowed(self, identity: str | None) -> bool:
        if not identity:
            return False
        if self.allow_all:
            return True
        return identity.strip().lower() in self.allowed


__all__ = ["AccessPolicy", "IDENTITY_HEADER"]
