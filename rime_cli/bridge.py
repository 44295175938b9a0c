"""
Dispatch loop and process lifecycle.

One request line in, one response line out: either ``null`` for a key the
engine did not handle, or the full ``{"commit","composition","menu"}``
envelope. Each line is flushed as soon as it is written.
"""

from __future__ import annotations

import logging
from typing import BinaryIO, Callable, Optional

from rime_cli.config import BridgeConfig, DEFAULT_SELECT_KEYS
from rime_cli.engine import Engine, EngineError
from rime_cli.projector import project_response
from rime_cli.protocol import KeyEvent, Response
from rime_cli.reader import RequestReader
from rime_cli.safe_codec import SafeCodec
from rime_cli.session import SessionError, SessionManager
from rime_cli.shutdown import ShutdownController

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


class Bridge:
    """Feeds key events into the current session and writes responses."""

    def __init__(
        self,
        engine: Engine,
        sessions: SessionManager,
        output: BinaryIO,
        select_keys: str = DEFAULT_SELECT_KEYS,
        codec: Optional[SafeCodec] = None,
    ) -> None:
        self.engine = engine
        self.sessions = sessions
        self.output = output
        self.select_keys = select_keys
        # A response is never refused for size; a long menu is still one line.
        self.codec = codec or SafeCodec(max_payload_bytes=None)

    def handle_event(self, event: KeyEvent) -> Optional[Response]:
        """Dispatch one key; ``None`` means the engine did not handle it."""
        session_id = self.sessions.ensure_live()
        if not self.engine.process_key(session_id, event.keycode, event.modifiers):
            return None
        return project_response(self.engine, session_id, self.select_keys)

    def write(self, response: Optional[Response]) -> None:
        line = self.codec.encode(response) + '\n'
        self.output.write(line.encode('utf-8'))
        self.output.flush()

    def serve(self, reader: RequestReader, shutdown: Optional[ShutdownController] = None) -> None:
        """Process requests until end of input or a shutdown request."""
        while shutdown is None or not shutdown.requested:
            event = reader.next_event()
            if event is None:
                break
            self.write(self.handle_event(event))


def open_engine(config: BridgeConfig) -> Engine:
    from rime_cli.librime import RimeEngine

    return RimeEngine.load(config.library)


def run(
    config: BridgeConfig,
    input_stream,
    output: BinaryIO,
    engine_factory: Callable[[BridgeConfig], Engine] = open_engine,
) -> int:
    """
    Run the bridge from engine startup to engine finalization.

    Returns:
        The process exit status.
    """
    try:
        engine = engine_factory(config)
    except EngineError as exc:
        logger.error('%s', exc)
        return EXIT_FAILURE

    with ShutdownController() as shutdown:
        engine.initialize(config.traits())
        engine.start_maintenance(False)
        engine.join_maintenance()
        sessions = None
        reader = RequestReader(input_stream, shutdown, max_line_bytes=config.max_line_bytes)
        try:
            sessions = SessionManager(engine)
            bridge = Bridge(engine, sessions, output, config.select_keys)
            bridge.serve(reader, shutdown)
        except SessionError as exc:
            logger.error('%s', exc)
            return EXIT_FAILURE
        except BrokenPipeError:
            logger.info('Output closed by consumer')
        finally:
            reader.close()
            if sessions is not None:
                sessions.destroy()
            engine.finalize()
    return EXIT_OK
