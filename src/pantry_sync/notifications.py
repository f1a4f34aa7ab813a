"""Expiry notifier: pushes aggregate expiry counts to the notification channel."""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING

from pantry_sync.core.expiry import ExpirySummary, build_summary
from pantry_sync.errors import AuthError, RemoteError
from pantry_sync.utils.timeutils import today_utc

if TYPE_CHECKING:
    from pantry_sync.repository import PantryRepository
    from pantry_sync.sync.auth import IdentityProvider
    from pantry_sync.sync.remote import RemoteClient
    from pantry_sync.unified_config import NotificationSettings

logger = logging.getLogger(__name__)


class ExpiryNotifier:
    """Read-only consumer of the repository. Never changes sync state."""

    def __init__(
        self,
        repository: PantryRepository,
        remote: RemoteClient,
        identity: IdentityProvider,
        settings: NotificationSettings,
    ) -> None:
        self._repository = repository
        self._remote = remote
        self._identity = identity
        self._settings = settings

    async def run(self, today: date | None = None) -> ExpirySummary | None:
        """
        Build today's expiry summary and push it if anything needs attention.

        Returns:
            The summary, or None when notifications are disabled
        """
        if not self._settings.enabled:
            logger.debug("Expiry notifications disabled")
            return None

        records = await self._repository.list_all()
        summary = build_summary(records, today or today_utc(), self._settings.window_days)
        if not summary.has_alerts:
            logger.debug("No expiring records, nothing to notify")
            return summary

        try:
            token = await self._identity.get_token()
            await self._remote.send_expiry_summary(summary, token)
        except (AuthError, RemoteError) as e:
            logger.warning("Expiry notification push failed: %s", e)
        else:
            logger.info(
                "Expiry notification sent: %d expiring soon, %d expired",
                summary.counts.expiring_soon,
                summary.counts.expired,
            )
        return summary
