"""
Signal-driven shutdown.

The handler only sets ``requested``. Waking a reader that is blocked on
idle input is left to ``signal.set_wakeup_fd``: the interpreter writes the
signal number to a socket the reader also waits on.
"""

from __future__ import annotations

import logging
import signal
import socket
from typing import Dict, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownController:
    """
    Traps termination signals for the lifetime of the main loop.

    Must be installed from the main thread. Use as a context manager::

        with ShutdownController() as shutdown:
            while not shutdown.requested:
                ...
    """

    def __init__(self, signals: Sequence[int] = DEFAULT_SIGNALS) -> None:
        self.signals = tuple(signals)
        self.requested = False
        self._previous_handlers: Dict[int, object] = {}
        self._previous_wakeup_fd = -1
        self._wakeup_reader: Optional[socket.socket] = None
        self._wakeup_writer: Optional[socket.socket] = None

    @property
    def wakeup_fd(self) -> Optional[int]:
        """Descriptor that becomes readable when a signal arrives."""
        if self._wakeup_reader is None:
            return None
        return self._wakeup_reader.fileno()

    def _handle(self, signum, frame) -> None:
        self.requested = True

    def install(self) -> 'ShutdownController':
        self._wakeup_reader, self._wakeup_writer = socket.socketpair()
        self._wakeup_reader.setblocking(False)
        self._wakeup_writer.setblocking(False)
        self._previous_wakeup_fd = signal.set_wakeup_fd(self._wakeup_writer.fileno())
        for signum in self.signals:
            self._previous_handlers[signum] = signal.signal(signum, self._handle)
        return self

    def drain(self) -> None:
        """Discard pending wakeup bytes."""
        if self._wakeup_reader is None:
            return
        try:
            while self._wakeup_reader.recv(512):
                pass
        except (BlockingIOError, InterruptedError):
            pass

    def restore(self) -> None:
        """Reinstate the handlers and wakeup descriptor found at install time."""
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)
        self._previous_handlers.clear()
        if self._wakeup_writer is not None:
            signal.set_wakeup_fd(self._previous_wakeup_fd)
            self._wakeup_writer.close()
            self._wakeup_writer = None
        if self._wakeup_reader is not None:
            self._wakeup_reader.close()
            self._wakeup_reader = None
        if self.requested:
            logger.info('Shutdown requested by signal')

    def __enter__(self) -> 'ShutdownController':
        return self.install()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.restore()
