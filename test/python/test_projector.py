"""Tests for projecting engine snapshots into response envelopes."""

from __future__ import annotations

import pytest

from fake_engine import FakeEngine, KeyOutcome

from rime_cli.engine import CandidateSnapshot, CommitSnapshot, ContextSnapshot
from rime_cli.projector import (
    candidate_label,
    project_commit,
    project_composition,
    project_menu,
    project_response,
)


def candidates(count: int) -> tuple:
    return tuple(CandidateSnapshot(f'c{i}') for i in range(count))


class TestCandidateLabel:
    def test_positional(self) -> None:
        assert [candidate_label(i, 'asdf') for i in range(4)] == ['a', 's', 'd', 'f']

    def test_past_end_is_none(self) -> None:
        assert candidate_label(4, 'asdf') is None
        assert candidate_label(0, '') is None


class TestProjectMenu:
    def test_no_context(self) -> None:
        assert project_menu(None) is None

    def test_no_candidates(self) -> None:
        assert project_menu(ContextSnapshot(preedit='a')) is None

    def test_default_select_keys(self) -> None:
        menu = project_menu(ContextSnapshot(candidates=candidates(3)))
        assert [c.label for c in menu.candidates] == ['1', '2', '3']

    @pytest.mark.parametrize('count,keys', [(12, '1234567890'), (5, 'abc'), (3, 'abcdef')])
    def test_labels_cover_min_of_candidates_and_keys(self, count: int, keys: str) -> None:
        menu = project_menu(ContextSnapshot(candidates=candidates(count), select_keys=keys))
        labels = [c.label for c in menu.candidates]
        shown = min(count, len(keys))
        assert labels[:shown] == list(keys[:shown])
        assert labels[shown:] == [None] * (count - shown)

    def test_engine_select_keys_override_default(self) -> None:
        menu = project_menu(ContextSnapshot(candidates=candidates(2), select_keys='jk'), '12')
        assert [c.label for c in menu.candidates] == ['j', 'k']

    def test_empty_engine_select_keys_give_no_labels(self) -> None:
        menu = project_menu(ContextSnapshot(candidates=candidates(2), select_keys=''))
        assert [c.label for c in menu.candidates] == [None, None]

    def test_label_ignores_candidate_content(self) -> None:
        context = ContextSnapshot(
            candidates=(CandidateSnapshot('2'), CandidateSnapshot('1')),
        )
        menu = project_menu(context)
        assert [(c.text, c.label) for c in menu.candidates] == [('2', '1'), ('1', '2')]

    def test_comment_passthrough(self) -> None:
        context = ContextSnapshot(
            candidates=(CandidateSnapshot('阿'), CandidateSnapshot('啊', 'interjection')),
        )
        menu = project_menu(context)
        assert [c.comment for c in menu.candidates] == [None, 'interjection']


class TestProjectCompositionAndCommit:
    def test_empty_preedit_is_no_composition(self) -> None:
        assert project_composition(ContextSnapshot(preedit='')) is None
        assert project_composition(ContextSnapshot(preedit=None)) is None
        assert project_composition(None) is None

    def test_preedit(self) -> None:
        assert project_composition(ContextSnapshot(preedit='ni hao')).preedit == 'ni hao'

    def test_commit_absent(self) -> None:
        assert project_commit(None) is None

    def test_commit_without_text(self) -> None:
        payload = project_commit(CommitSnapshot(text=None))
        assert payload is not None
        assert payload.model_dump() == {'text': None}

    def test_commit_empty_text(self) -> None:
        assert project_commit(CommitSnapshot(text='')).text == ''


class TestProjectResponse:
    def test_snapshots_released(self) -> None:
        engine = FakeEngine(
            script={
                (1, 0): KeyOutcome(
                    commit=CommitSnapshot('x'),
                    context=ContextSnapshot(preedit='y', candidates=candidates(1)),
                )
            }
        )
        session_id = engine.create_session()
        assert engine.process_key(session_id, 1, 0)
        response = project_response(engine, session_id)
        assert engine.open_snapshots == 0
        names = [call[0] for call in engine.calls]
        assert names[-4:] == ['get_commit', 'free_commit', 'get_context', 'free_context']
        assert response.model_dump(mode='json') == {
            'commit': {'text': 'x'},
            'composition': {'preedit': 'y'},
            'menu': {'candidates': [{'text': 'c0', 'comment': None, 'label': '1'}]},
        }

    def test_everything_empty(self) -> None:
        engine = FakeEngine(script={(1, 0): KeyOutcome()})
        session_id = engine.create_session()
        engine.process_key(session_id, 1, 0)
        response = project_response(engine, session_id)
        assert response.model_dump(mode='json') == {
            'commit': None,
            'composition': None,
            'menu': None,
        }
