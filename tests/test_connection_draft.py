"""Tests for the connection-drawing state machine."""
from __future__ import annotations

import pytest

from pipeline_designer.editor.connection_draft import ConnectionDraft, ConnectionKind, DraftState


class TestConnectionDraft:
    """Test idle/drawing transitions."""

    def test_starts_idle(self):
        draft = ConnectionDraft()
        assert draft.state == DraftState()
        assert draft.is_drawing is False

    def test_start(self):
        draft = ConnectionDraft()
        draft.start("n1", "start")

        assert draft.is_drawing is True
        assert draft.state.source_node_id == "n1"
        assert draft.state.kind == ConnectionKind.START

    def test_start_overwrites_active_draft(self):
        draft = ConnectionDraft()
        draft.start("n1")
        draft.start("n2", ConnectionKind.END)

        assert draft.state.source_node_id == "n2"
        assert draft.state.kind == ConnectionKind.END

    def test_finish_returns_pair_and_resets(self):
        draft = ConnectionDraft()
        draft.start("n1")

        assert draft.finish("n2") == ("n1", "n2")
        assert draft.is_drawing is False
        assert draft.state == DraftState()

    def test_finish_when_idle(self):
        assert ConnectionDraft().finish("n2") is None

    def test_cancel(self):
        draft = ConnectionDraft()
        draft.start("n1")
        draft.cancel()
        assert draft.is_drawing is False
        assert draft.finish("n2") is None

    def test_move_tail(self):
        draft = ConnectionDraft()
        draft.move_tail(1, 1)
        assert draft.state.tail is None

        draft.start("n1")
        draft.move_tail(10, 20)
        assert draft.state.tail == (10, 20)
        assert draft.state.source_node_id == "n1"

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            ConnectionDraft().start("n1", "sideways")
