"""
Engine interface used by the bridge.

The bridge never talks to librime directly; it goes through ``Engine``,
whose concrete provider (``rime_cli.librime.RimeEngine``) validates the
engine's capability table when it is constructed. Commit and context
queries hand back plain Python snapshots inside a context manager that
releases the engine-owned structures on exit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ContextManager, Optional, Protocol, Sequence, Tuple

# Capabilities the bridge cannot run without.
REQUIRED_CAPABILITIES: Tuple[str, ...] = (
    'setup',
    'initialize',
    'finalize',
    'start_maintenance',
    'create_session',
    'find_session',
    'destroy_session',
    'process_key',
    'get_commit',
    'free_commit',
    'get_context',
    'free_context',
)

# Used when present; older engines only deploy in the background.
OPTIONAL_CAPABILITIES: Tuple[str, ...] = ('join_maintenance_thread',)


class EngineError(Exception):
    """Base class for engine failures."""


class EngineUnavailableError(EngineError):
    """Raised when the engine library cannot be located or loaded."""


class EngineIncompatibleError(EngineError):
    """Raised when the engine's capability table lacks required operations."""

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = tuple(missing)
        super().__init__(
            'Engine is missing required capabilities: ' + ', '.join(self.missing)
        )


@dataclass(frozen=True)
class Traits:
    """Static engine configuration passed to setup/initialize."""

    shared_data_dir: str
    user_data_dir: str
    distribution_name: str
    distribution_code_name: str
    distribution_version: str
    app_name: str


@dataclass(frozen=True)
class CommitSnapshot:
    text: Optional[str]


@dataclass(frozen=True)
class CandidateSnapshot:
    text: str
    comment: Optional[str] = None


@dataclass(frozen=True)
class ContextSnapshot:
    """Composition and menu state of a session at one point in time."""

    preedit: Optional[str] = None
    candidates: Tuple[CandidateSnapshot, ...] = ()
    select_keys: Optional[str] = None


class Engine(Protocol):
    """Operations the bridge needs from an input-method engine."""

    def initialize(self, traits: Traits) -> None: ...

    def start_maintenance(self, full_check: bool) -> bool: ...

    def join_maintenance(self) -> None: ...

    def finalize(self) -> None: ...

    def create_session(self) -> int: ...

    def find_session(self, session_id: int) -> bool: ...

    def destroy_session(self, session_id: int) -> bool: ...

    def process_key(self, session_id: int, keycode: int, modifiers: int) -> bool: ...

    def commit(self, session_id: int) -> ContextManager[Optional[CommitSnapshot]]:
        """Yield the pending commit, or ``None`` when there is none."""
        ...

    def context(self, session_id: int) -> ContextManager[Optional[ContextSnapshot]]:
        """Yield the current context, or ``None`` when the engine has none."""
        ...
