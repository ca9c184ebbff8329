"""Blocklist of credentials a provider has rejected."""

from datetime import UTC, datetime

from loguru import logger


class CredentialBlocklist:
    """Owned set of rejected credentials, keyed by provider or credential id.

    Entries never expire; they stay until removed or cleared explicitly.
    """

    def __init__(self) -> None:
        self._entries: dict[str, tuple[datetime, str]] = {}

    def add(self, key: str, reason: str = "") -> None:
        if key not in self._entries:
            logger.warning(f"Blocking credential for {key}: {reason or 'rejected'}")
        self._entries[key] = (datetime.now(UTC), reason)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def remove(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        """Forget every entry; returns how many were removed."""
        count = len(self._entries)
        self._entries.clear()
        return count

    def snapshot(self) -> dict[str, str]:
        """Current entries mapped to their rejection reason."""
        return {key: reason for key, (_, reason) in self._entries.items()}
