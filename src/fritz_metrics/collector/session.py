"""Failure policy around the page loader's session."""

from __future__ import annotations

import logging

from .base import PageLoader

logger = logging.getLogger(__name__)


class SessionReauthCoordinator:
    """Loads pages and drops the session credential when a load fails.

    Retrying is left to the scrape cadence: the next load after a failure
    simply starts with a fresh login.
    """

    def __init__(self, loader: PageLoader) -> None:
        self._loader = loader

    @property
    def loader(self) -> PageLoader:
        return self._loader

    def load(self, path: str, params: str) -> bytes:
        try:
            return self._loader.load(path, params)
        except Exception:
            self.invalidate()
            raise

    def invalidate(self) -> None:
        if self._loader.sid:
            logger.info("Clearing page session, next load will log in again")
        self._loader.sid = ""
