"""Service discovery lifecycle: retry until loaded, then keep forever."""

from __future__ import annotations

import enum
import logging
import threading

from .base import Discovery, ServiceTable

logger = logging.getLogger(__name__)

DEFAULT_RETRY_SECONDS = 60.0


class BootstrapState(enum.Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"


class BootstrapGuard:
    """Holds the discovered service table.

    The table is installed once by :meth:`try_load` (directly, or from the
    background thread started by :meth:`start`) and never replaced. Readers
    take the lock only to fetch the reference.
    """

    def __init__(self, discovery: Discovery, retry_seconds: float = DEFAULT_RETRY_SECONDS) -> None:
        self._discovery = discovery
        self._retry_seconds = retry_seconds
        self._lock = threading.Lock()
        self._services: ServiceTable | None = None
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    @property
    def state(self) -> BootstrapState:
        with self._lock:
            return BootstrapState.UNLOADED if self._services is None else BootstrapState.LOADED

    @property
    def services(self) -> ServiceTable | None:
        """The service table, or None while discovery has not succeeded."""
        with self._lock:
            return self._services

    def try_load(self) -> bool:
        """Attempt discovery once. Returns True once the table is loaded."""
        if self.services is not None:
            return True
        try:
            services = self._discovery()
        except Exception as exc:
            logger.warning("Cannot load services: %s", exc)
            return False

        with self._lock:
            if self._services is None:
                self._services = services
        logger.info("Services loaded (%d services)", len(services))
        return True

    def load_blocking(self) -> ServiceTable:
        """Retry discovery until it succeeds or :meth:`stop` is called."""
        self._run()
        services = self.services
        if services is None:
            raise RuntimeError("service discovery stopped before completing")
        return services

    def _run(self) -> None:
        while not self.try_load():
            if self._stop_event.wait(self._retry_seconds):
                return

    def start(self) -> None:
        """Run discovery in a background thread."""
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="service-discovery", daemon=True)
        self._thread.start()
        logger.info("Service discovery started (retry every %.0fs)", self._retry_seconds)

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
