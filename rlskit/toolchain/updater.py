"""
Self-update of rustup at session start.

A failed update is only reported; it never blocks startup.
"""

import logging

from rlskit.config.settings import Settings
from rlskit.core.exceptions import CommandError
from rlskit.core.process import run_command
from rlskit.core.status import Notifier, StatusIndicator

logger = logging.getLogger(__name__)

UP_TO_DATE = "Up to date."
RESTART_REQUIRED = "Up to date. Restart extension for changes to take effect."
UPDATE_FAILED = "An error occurred whilst trying to update."


class UpdateScheduler:
    """Runs ``rustup update`` and reports the outcome on the status indicator."""

    def __init__(self, status: StatusIndicator, notifier: Notifier):
        self.status = status
        self.notifier = notifier

    async def update(self, rustup_path: str) -> bool:
        """
        Update rustup and its toolchains.

        Only checks for "unchanged" anywhere in the output; with several
        toolchains installed one may be updated while another is unchanged.

        Returns:
            True if the update command succeeded
        """
        self.status.start("RLS", "Updating…")
        try:
            result = await run_command([rustup_path, "update"])
        except CommandError as e:
            logger.warning(f"rustup update failed: {e}")
            self.notifier.warning(UPDATE_FAILED)
            self.status.stop(UPDATE_FAILED)
            return False

        if "unchanged" in result.stdout:
            self.status.stop(UP_TO_DATE)
        else:
            self.status.stop(RESTART_REQUIRED)
        return True

    async def auto_update(self, settings: Settings) -> bool:
        """
        Update at session start when enabled and rustup is in use.

        Returns:
            True if an update ran successfully
        """
        if not settings.update_on_startup or settings.rustup_disabled:
            logger.debug("Skipping rustup update on startup")
            return False
        return await self.update(settings.rustup_path)
