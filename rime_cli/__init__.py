"""
rime-cli: librime exposed as a newline-delimited JSON service on stdio.

Modules:
    engine     Engine interface, snapshots and engine errors
    librime    ctypes binding over librime's RimeApi table
    session    the single live session and its recovery
    protocol   pydantic models for requests and responses
    reader     line framing and key-event decoding
    projector  engine state to response envelope
    shutdown   signal flag and idle wakeup
    bridge     dispatch loop and process lifecycle
"""

PROJECT_NAME = 'rime-cli'
__version__ = '0.1.0'
