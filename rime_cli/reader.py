"""
Request framing and key-event decoding.

Lines are framed from raw ``os.read`` chunks rather than a buffered text
stream so that the same ``selectors`` wait can cover both the input
descriptor and the shutdown wakeup descriptor.
"""

from __future__ import annotations

import logging
import os
import selectors
from typing import Optional, Tuple

from pydantic import ValidationError

from rime_cli.config import DEFAULT_MAX_LINE_BYTES
from rime_cli.protocol import NEUTRAL_KEY, KeyEvent
from rime_cli.safe_codec import CodecError, SafeCodec
from rime_cli.shutdown import ShutdownController

logger = logging.getLogger(__name__)

_INPUT = 'input'
_WAKEUP = 'wakeup'


def decode_key_event(line: bytes, codec: SafeCodec) -> KeyEvent:
    """
    Decode one request line into a key event.

    Anything other than a JSON object with integer ``keycode`` and
    ``modifiers`` is logged and replaced by the neutral key (0, 0).
    """
    try:
        return KeyEvent.model_validate(codec.decode(line))
    except (CodecError, ValidationError) as exc:
        logger.warning('Invalid json input: %s', _reason(exc))
        return NEUTRAL_KEY


def _reason(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        return '; '.join(
            '{}: {}'.format('.'.join(str(part) for part in error['loc']) or 'line', error['msg'])
            for error in exc.errors()
        )
    return str(exc)


class RequestReader:
    """
    Reads newline-terminated requests from a file descriptor.

    Args:
        stream: A file descriptor or an object with ``fileno()``.
        shutdown: When given, its wakeup descriptor interrupts an idle
            wait and ``read_line`` returns ``None`` once shutdown is
            requested.
        max_line_bytes: Longest accepted line, excluding the newline.
            Longer lines are dropped up to their newline and reported as
            oversized without being buffered.
        chunk_size: Bytes requested per ``os.read``.
    """

    def __init__(
        self,
        stream,
        shutdown: Optional[ShutdownController] = None,
        max_line_bytes: int = DEFAULT_MAX_LINE_BYTES,
        chunk_size: int = 4096,
        codec: Optional[SafeCodec] = None,
    ) -> None:
        self._fd = stream if isinstance(stream, int) else stream.fileno()
        self._shutdown = shutdown
        self.max_line_bytes = max_line_bytes
        self._chunk_size = chunk_size
        self._codec = codec or SafeCodec(max_payload_bytes=max_line_bytes)
        self._buffer = bytearray()
        self._discarding = False
        self._eof = False
        self._selector = selectors.DefaultSelector()
        self._selector.register(self._fd, selectors.EVENT_READ, _INPUT)
        if shutdown is not None and shutdown.wakeup_fd is not None:
            self._selector.register(shutdown.wakeup_fd, selectors.EVENT_READ, _WAKEUP)

    def close(self) -> None:
        self._selector.close()

    def _take_line(self) -> Optional[Tuple[bytes, bool]]:
        newline = self._buffer.find(b'\n')
        if newline < 0:
            if len(self._buffer) > self.max_line_bytes:
                self._buffer.clear()
                self._discarding = True
            return None
        line = bytes(self._buffer[:newline])
        del self._buffer[: newline + 1]
        if self._discarding:
            self._discarding = False
            return b'', True
        if len(line) > self.max_line_bytes:
            return b'', True
        return line, False

    def read_line(self) -> Optional[Tuple[bytes, bool]]:
        """
        Return the next line as ``(payload, oversized)``.

        Returns ``None`` at end of input or once shutdown is requested. An
        unterminated final line is returned before end of input.
        """
        while True:
            taken = self._take_line()
            if taken is not None:
                return taken
            if self._eof:
                if self._discarding:
                    self._discarding = False
                    self._buffer.clear()
                    return b'', True
                if self._buffer:
                    line = bytes(self._buffer)
                    self._buffer.clear()
                    return line, False
                return None
            if self._shutdown is not None and self._shutdown.requested:
                return None
            for key, _ in self._selector.select():
                if key.data == _WAKEUP:
                    self._shutdown.drain()
                    continue
                chunk = os.read(self._fd, self._chunk_size)
                if chunk:
                    self._buffer += chunk
                else:
                    self._eof = True

    def next_event(self) -> Optional[KeyEvent]:
        """Read and decode one request; ``None`` means stop."""
        taken = self.read_line()
        if taken is None:
            return None
        line, oversized = taken
        if oversized:
            logger.warning('Invalid json input: line exceeds %d bytes', self.max_line_bytes)
            return NEUTRAL_KEY
        return decode_key_event(line, self._codec)
