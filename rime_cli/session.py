"""Single-session bookkeeping with transparent recovery."""

from __future__ import annotations

import logging

from rime_cli.engine import Engine

logger = logging.getLogger(__name__)


class SessionError(Exception):
    """Raised when the engine refuses to create a session."""


class SessionManager:
    """
    Owns the one session the bridge feeds keys into.

    The engine may drop a session on its own (for example when it cleans
    up stale sessions); that is only noticed when the session is next used,
    and a fresh session then replaces it.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self.session_id = self._create()

    def _create(self) -> int:
        session_id = self._engine.create_session()
        if not session_id:
            raise SessionError('Engine failed to create a session')
        logger.debug('Created session %#x', session_id)
        return session_id

    def ensure_live(self) -> int:
        """Return a live session id, replacing the current one if it is gone."""
        if not self._engine.find_session(self.session_id):
            logger.info('Session %#x is no longer live; creating a new one', self.session_id)
            self.session_id = self._create()
        return self.session_id

    def destroy(self) -> None:
        """Destroy the current session; failures are logged, not raised."""
        session_id, self.session_id = self.session_id, 0
        if not session_id:
            return
        try:
            if not self._engine.destroy_session(session_id):
                logger.debug('Session %#x was already gone at shutdown', session_id)
        except Exception:
            logger.warning('Failed to destroy session %#x', session_id, exc_info=True)
