"""
Projection of engine state into the response envelope.

Commit and context are read as two separate scoped snapshots; each is
released by the engine as soon as its block ends.
"""

from __future__ import annotations

from typing import Optional, Sequence

from rime_cli.config import DEFAULT_SELECT_KEYS
from rime_cli.engine import CandidateSnapshot, CommitSnapshot, ContextSnapshot, Engine
from rime_cli.protocol import (
    CandidatePayload,
    CommitPayload,
    CompositionPayload,
    MenuPayload,
    Response,
)


def candidate_label(index: int, select_keys: str) -> Optional[str]:
    """Label for the candidate at ``index``: its select key, or None past the end."""
    if 0 <= index < len(select_keys):
        return select_keys[index]
    return None


def project_commit(commit: Optional[CommitSnapshot]) -> Optional[CommitPayload]:
    if commit is None:
        return None
    return CommitPayload(text=commit.text)


def project_composition(context: Optional[ContextSnapshot]) -> Optional[CompositionPayload]:
    if context is None or not context.preedit:
        return None
    return CompositionPayload(preedit=context.preedit)


def project_menu(
    context: Optional[ContextSnapshot],
    default_select_keys: str = DEFAULT_SELECT_KEYS,
) -> Optional[MenuPayload]:
    """
    Build the candidate menu in engine order.

    An engine-supplied select-key string replaces the default even when it
    is empty, in which case no candidate gets a label.
    """
    if context is None or not context.candidates:
        return None
    select_keys = context.select_keys
    if select_keys is None:
        select_keys = default_select_keys
    return MenuPayload(candidates=_candidates(context.candidates, select_keys))


def _candidates(candidates: Sequence[CandidateSnapshot], select_keys: str):
    return [
        CandidatePayload(
            text=candidate.text,
            comment=candidate.comment,
            label=candidate_label(index, select_keys),
        )
        for index, candidate in enumerate(candidates)
    ]


def project_response(
    engine: Engine,
    session_id: int,
    default_select_keys: str = DEFAULT_SELECT_KEYS,
) -> Response:
    """Read the session's commit and context and build the full envelope."""
    with engine.commit(session_id) as commit:
        commit_payload = project_commit(commit)
    with engine.context(session_id) as context:
        composition = project_composition(context)
        menu = project_menu(context, default_select_keys)
    return Response(commit=commit_payload, composition=composition, menu=menu)
