"""
Shutdown tests: the signal flag, waking an idle reader, and a real
subprocess receiving SIGTERM while it waits for input.
"""

from __future__ import annotations

import json
import os
import signal
import subprocess
import sys
import threading
import time
from pathlib import Path

import pytest

from rime_cli.reader import RequestReader
from rime_cli.shutdown import ShutdownController

pytestmark = pytest.mark.skipif(sys.platform == 'win32', reason='POSIX signals only')

IDLE_BRIDGE = Path(__file__).resolve().parent.parent / 'fixtures' / 'idle_bridge.py'


class TestShutdownController:
    def test_signal_sets_flag(self) -> None:
        with ShutdownController() as shutdown:
            assert not shutdown.requested
            os.kill(os.getpid(), signal.SIGTERM)
            assert shutdown.requested

    def test_handlers_restored(self) -> None:
        before = signal.getsignal(signal.SIGINT)
        with ShutdownController() as shutdown:
            assert signal.getsignal(signal.SIGINT) == shutdown._handle
        assert signal.getsignal(signal.SIGINT) is before

    def test_wakeup_fd_only_while_installed(self) -> None:
        shutdown = ShutdownController()
        assert shutdown.wakeup_fd is None
        with shutdown:
            assert shutdown.wakeup_fd is not None
        assert shutdown.wakeup_fd is None

    def test_idle_reader_returns_after_signal(self) -> None:
        read_fd, write_fd = os.pipe()
        timer = threading.Timer(0.05, os.kill, (os.getpid(), signal.SIGTERM))
        try:
            with ShutdownController() as shutdown:
                reader = RequestReader(read_fd, shutdown)
                started = time.monotonic()
                timer.start()
                try:
                    assert reader.next_event() is None
                finally:
                    reader.close()
                assert time.monotonic() - started < 5
                assert shutdown.requested
        finally:
            timer.cancel()
            os.close(read_fd)
            os.close(write_fd)

    def test_pending_input_not_read_after_shutdown(self) -> None:
        read_fd, write_fd = os.pipe()
        try:
            with ShutdownController() as shutdown:
                reader = RequestReader(read_fd, shutdown)
                shutdown.requested = True
                os.write(write_fd, b'{"keycode": 1, "modifiers": 0}\n')
                assert reader.read_line() is None
                reader.close()
        finally:
            os.close(read_fd)
            os.close(write_fd)


class TestIdleProcess:
    """SIGTERM delivered while the bridge waits on stdin."""

    def test_sigterm_while_idle(self) -> None:
        proc = subprocess.Popen(
            [sys.executable, str(IDLE_BRIDGE)],
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
        try:
            proc.stdin.write(b'{"keycode": 97, "modifiers": 0}\n')
            proc.stdin.flush()
            first = proc.stdout.readline()
            assert json.loads(first)['composition'] == {'preedit': 'a'}

            # stdin stays open: only the signal can end the loop
            proc.send_signal(signal.SIGTERM)
            proc.wait(timeout=10)
            rest = proc.stdout.read()
            stderr = proc.stderr.read().decode('utf-8')
        finally:
            if proc.poll() is None:
                proc.kill()
                proc.wait()
            proc.stdin.close()
            proc.stdout.close()
            proc.stderr.close()

        assert proc.returncode == 0
        assert rest == b''
        lifecycle_line = stderr.strip().splitlines()[-1]
        assert lifecycle_line.startswith('LIFECYCLE ')
        lifecycle = json.loads(lifecycle_line[len('LIFECYCLE '):])
        assert lifecycle[-2:] == ['destroy_session', 'finalize']
