#!/usr/bin/env python3
"""
rime-cli entry point.

Running:
    rime-cli
    python -m rime_cli

Request lines on stdin, response lines on stdout::

    $ echo '{"keycode": 97, "modifiers": 0}' | rime-cli
    {"commit":null,"composition":{"preedit":"a"},"menu":{"candidates":[...]}}
"""

from __future__ import annotations

import logging
import sys

from rime_cli.bridge import EXIT_FAILURE, run
from rime_cli.config import BridgeConfig, ConfigError
from rime_cli.log import configure_logging

logger = logging.getLogger('rime_cli')


def main() -> int:
    configure_logging()
    try:
        config = BridgeConfig.from_env()
    except ConfigError as exc:
        logger.error('%s', exc)
        return EXIT_FAILURE
    logging.getLogger().setLevel(config.log_level)
    return run(config, sys.stdin, sys.stdout.buffer)


if __name__ == '__main__':
    sys.exit(main())
