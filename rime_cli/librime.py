"""
librime binding over ctypes.

librime exposes its operations through a versioned function table,
``RimeApi``, returned by ``rime_get_api()``. Each versioned struct starts
with ``data_size``; a member is only present when its offset falls inside
``data_size + sizeof(int)``. ``RimeEngine`` checks every required member
for presence and for a non-NULL pointer before anything else runs.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

from rime_cli.engine import (
    OPTIONAL_CAPABILITIES,
    REQUIRED_CAPABILITIES,
    CandidateSnapshot,
    CommitSnapshot,
    ContextSnapshot,
    EngineIncompatibleError,
    EngineUnavailableError,
    Traits,
)

logger = logging.getLogger(__name__)

RimeSessionId = ctypes.c_size_t  # uintptr_t
Bool = ctypes.c_int


class RimeTraits(ctypes.Structure):
    _fields_ = [
        ('data_size', ctypes.c_int),
        ('shared_data_dir', ctypes.c_char_p),
        ('user_data_dir', ctypes.c_char_p),
        ('distribution_name', ctypes.c_char_p),
        ('distribution_code_name', ctypes.c_char_p),
        ('distribution_version', ctypes.c_char_p),
        ('app_name', ctypes.c_char_p),
        ('modules', ctypes.POINTER(ctypes.c_char_p)),
        ('min_log_level', ctypes.c_int),
        ('log_dir', ctypes.c_char_p),
        ('prebuilt_data_dir', ctypes.c_char_p),
        ('staging_dir', ctypes.c_char_p),
    ]


class RimeCommit(ctypes.Structure):
    _fields_ = [
        ('data_size', ctypes.c_int),
        ('text', ctypes.c_char_p),
    ]


class RimeComposition(ctypes.Structure):
    _fields_ = [
        ('length', ctypes.c_int),
        ('cursor_pos', ctypes.c_int),
        ('sel_start', ctypes.c_int),
        ('sel_end', ctypes.c_int),
        ('preedit', ctypes.c_char_p),
    ]


class RimeCandidate(ctypes.Structure):
    _fields_ = [
        ('text', ctypes.c_char_p),
        ('comment', ctypes.c_char_p),
        ('reserved', ctypes.c_void_p),
    ]


class RimeMenu(ctypes.Structure):
    _fields_ = [
        ('page_size', ctypes.c_int),
        ('page_no', ctypes.c_int),
        ('is_last_page', Bool),
        ('highlighted_candidate_index', ctypes.c_int),
        ('num_candidates', ctypes.c_int),
        ('candidates', ctypes.POINTER(RimeCandidate)),
        ('select_keys', ctypes.c_char_p),
    ]


class RimeContext(ctypes.Structure):
    _fields_ = [
        ('data_size', ctypes.c_int),
        ('composition', RimeComposition),
        ('menu', RimeMenu),
        ('commit_text_preview', ctypes.c_char_p),
        ('select_labels', ctypes.POINTER(ctypes.c_char_p)),
    ]


SetupFunc = ctypes.CFUNCTYPE(None, ctypes.POINTER(RimeTraits))
VoidFunc = ctypes.CFUNCTYPE(None)
StartMaintenanceFunc = ctypes.CFUNCTYPE(Bool, Bool)
CreateSessionFunc = ctypes.CFUNCTYPE(RimeSessionId)
SessionFunc = ctypes.CFUNCTYPE(Bool, RimeSessionId)
ProcessKeyFunc = ctypes.CFUNCTYPE(Bool, RimeSessionId, ctypes.c_int, ctypes.c_int)
GetCommitFunc = ctypes.CFUNCTYPE(Bool, RimeSessionId, ctypes.POINTER(RimeCommit))
FreeCommitFunc = ctypes.CFUNCTYPE(Bool, ctypes.POINTER(RimeCommit))
GetContextFunc = ctypes.CFUNCTYPE(Bool, RimeSessionId, ctypes.POINTER(RimeContext))
FreeContextFunc = ctypes.CFUNCTYPE(Bool, ctypes.POINTER(RimeContext))


class RimeApi(ctypes.Structure):
    # Declared up to free_status; later members are never read.
    _fields_ = [
        ('data_size', ctypes.c_int),
        ('setup', SetupFunc),
        ('set_notification_handler', ctypes.c_void_p),
        ('initialize', SetupFunc),
        ('finalize', VoidFunc),
        ('start_maintenance', StartMaintenanceFunc),
        ('is_maintenance_mode', ctypes.c_void_p),
        ('join_maintenance_thread', VoidFunc),
        ('deployer_initialize', ctypes.c_void_p),
        ('prebuild', ctypes.c_void_p),
        ('deploy', ctypes.c_void_p),
        ('deploy_schema', ctypes.c_void_p),
        ('deploy_config_file', ctypes.c_void_p),
        ('sync_user_data', ctypes.c_void_p),
        ('create_session', CreateSessionFunc),
        ('find_session', SessionFunc),
        ('destroy_session', SessionFunc),
        ('cleanup_stale_sessions', ctypes.c_void_p),
        ('cleanup_all_sessions', ctypes.c_void_p),
        ('process_key', ProcessKeyFunc),
        ('commit_composition', ctypes.c_void_p),
        ('clear_composition', ctypes.c_void_p),
        ('get_commit', GetCommitFunc),
        ('free_commit', FreeCommitFunc),
        ('get_context', GetContextFunc),
        ('free_context', FreeContextFunc),
        ('get_status', ctypes.c_void_p),
        ('free_status', ctypes.c_void_p),
    ]


def struct_init(struct: ctypes.Structure) -> ctypes.Structure:
    """Set ``data_size`` the way librime's RIME_STRUCT_INIT does."""
    struct.data_size = ctypes.sizeof(type(struct)) - ctypes.sizeof(ctypes.c_int)
    return struct


def has_capability(api: RimeApi, name: str) -> bool:
    """Return True if ``name`` lies inside the table and is not NULL."""
    declared = api.data_size + ctypes.sizeof(ctypes.c_int)
    if getattr(RimeApi, name).offset >= declared:
        return False
    return bool(getattr(api, name))


def missing_capabilities(api: RimeApi) -> List[str]:
    return [name for name in REQUIRED_CAPABILITIES if not has_capability(api, name)]


def _text(value: Optional[bytes]) -> Optional[str]:
    if value is None:
        return None
    return value.decode('utf-8', errors='replace')


def _context_snapshot(context: RimeContext) -> ContextSnapshot:
    menu = context.menu
    candidates = []
    if menu.candidates:
        for index in range(menu.num_candidates):
            candidate = menu.candidates[index]
            candidates.append(
                CandidateSnapshot(
                    text=_text(candidate.text) or '',
                    comment=_text(candidate.comment),
                )
            )
    return ContextSnapshot(
        preedit=_text(context.composition.preedit),
        candidates=tuple(candidates),
        select_keys=_text(menu.select_keys),
    )


class RimeEngine:
    """
    ``Engine`` implementation backed by a librime ``RimeApi`` table.

    Construction fails with EngineIncompatibleError when any required
    capability is absent, so a constructed engine can call every operation
    without further checks.

    Args:
        api: The engine's function table.
        library: The loaded shared object, kept referenced so the table
            stays mapped for the engine's lifetime.
    """

    def __init__(self, api: RimeApi, library: Optional[ctypes.CDLL] = None) -> None:
        missing = missing_capabilities(api)
        if missing:
            raise EngineIncompatibleError(missing)
        self._api = api
        self._library = library
        self._traits: Optional[RimeTraits] = None
        self._optional = {
            name: has_capability(api, name) for name in OPTIONAL_CAPABILITIES
        }

    @classmethod
    def load(cls, library: Optional[str] = None) -> 'RimeEngine':
        """
        Load librime and bind its function table.

        Args:
            library: File name or path of the shared library. Defaults to
                whatever ``ctypes.util.find_library('rime')`` resolves.

        Raises:
            EngineUnavailableError: If the library cannot be found or loaded.
            EngineIncompatibleError: If the function table is unusable.
        """
        name = library or ctypes.util.find_library('rime')
        if not name:
            raise EngineUnavailableError(
                'librime not found; set RIME_CLI_LIBRARY to its path'
            )
        try:
            handle = ctypes.CDLL(name)
        except OSError as exc:
            raise EngineUnavailableError(f'Cannot load {name}: {exc}') from exc

        try:
            get_api = handle.rime_get_api
        except AttributeError as exc:
            raise EngineIncompatibleError(['rime_get_api']) from exc
        get_api.argtypes = []
        get_api.restype = ctypes.POINTER(RimeApi)

        api = get_api()
        if not api:
            raise EngineIncompatibleError(REQUIRED_CAPABILITIES)
        logger.debug('Loaded %s (api data_size=%d)', name, api.contents.data_size)
        return cls(api.contents, handle)

    def initialize(self, traits: Traits) -> None:
        rime_traits = struct_init(RimeTraits())
        rime_traits.shared_data_dir = traits.shared_data_dir.encode('utf-8')
        rime_traits.user_data_dir = traits.user_data_dir.encode('utf-8')
        rime_traits.distribution_name = traits.distribution_name.encode('utf-8')
        rime_traits.distribution_code_name = traits.distribution_code_name.encode('utf-8')
        rime_traits.distribution_version = traits.distribution_version.encode('utf-8')
        rime_traits.app_name = traits.app_name.encode('utf-8')
        # librime may keep pointers into the traits after setup
        self._traits = rime_traits
        self._api.setup(ctypes.byref(rime_traits))
        self._api.initialize(ctypes.byref(rime_traits))

    def start_maintenance(self, full_check: bool) -> bool:
        return bool(self._api.start_maintenance(1 if full_check else 0))

    def join_maintenance(self) -> None:
        if self._optional.get('join_maintenance_thread'):
            self._api.join_maintenance_thread()

    def finalize(self) -> None:
        self._api.finalize()
        self._traits = None

    def create_session(self) -> int:
        return int(self._api.create_session())

    def find_session(self, session_id: int) -> bool:
        return bool(self._api.find_session(session_id))

    def destroy_session(self, session_id: int) -> bool:
        return bool(self._api.destroy_session(session_id))

    def process_key(self, session_id: int, keycode: int, modifiers: int) -> bool:
        return bool(self._api.process_key(session_id, keycode, modifiers))

    @contextmanager
    def commit(self, session_id: int) -> Iterator[Optional[CommitSnapshot]]:
        commit = struct_init(RimeCommit())
        if not self._api.get_commit(session_id, ctypes.byref(commit)):
            yield None
            return
        try:
            yield CommitSnapshot(text=_text(commit.text))
        finally:
            self._api.free_commit(ctypes.byref(commit))

    @contextmanager
    def context(self, session_id: int) -> Iterator[Optional[ContextSnapshot]]:
        context = struct_init(RimeContext())
        if not self._api.get_context(session_id, ctypes.byref(context)):
            yield None
            return
        try:
            yield _context_snapshot(context)
        finally:
            self._api.free_context(ctypes.byref(context))
