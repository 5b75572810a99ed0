import pytest

from app.models.records import DocumentAction, DocumentStatus
from app.services.derivation_errors import InvalidTransition
from app.services.document_status import (
    TRANSITIONS,
    allowed_actions,
    is_terminal,
    next_status,
)

S = DocumentStatus
A = DocumentAction


class TestTransitionTable:
    @pytest.mark.parametrize(
        "status,action,expected",
        [
            (S.received, A.derive_request, S.pending_derivation),
            (S.pending_derivation, A.confirm_derivation, S.in_process),
            (S.in_process, A.derive_request, S.pending_derivation),
            (S.in_process, A.complete, S.completed),
            (S.in_process, A.reject, S.rejected),
            (S.completed, A.archive, S.archived),
            (S.rejected, A.archive, S.archived),
        ],
    )
    def test_legal_transitions(self, status, action, expected) -> None:
        assert next_status(status, action) == expected

    def test_table_has_seven_rows(self) -> None:
        assert len(TRANSITIONS) == 7

    def test_every_other_pair_is_illegal(self) -> None:
        for status in S:
            for action in A:
                if (status, action) in TRANSITIONS:
                    continue
                with pytest.raises(InvalidTransition):
                    next_status(status, action)

    def test_error_names_current_status(self) -> None:
        with pytest.raises(InvalidTransition) as exc:
            next_status(S.completed, A.derive_request)
        assert "completed" in exc.value.message
        assert exc.value.details["current_status"] == "completed"
        assert exc.value.code == "invalid_transition"
        assert exc.value.details["allowed_actions"] == ["archive"]
        assert "(closed)" in exc.value.message

    def test_receive_is_never_a_transition(self) -> None:
        for status in S:
            with pytest.raises(InvalidTransition):
                next_status(status, A.receive)


class TestHelpers:
    def test_allowed_actions(self) -> None:
        assert set(allowed_actions(S.in_process)) == {
            A.derive_request,
            A.complete,
            A.reject,
        }
        assert allowed_actions(S.archived) == []

    def test_terminal(self) -> None:
        assert is_terminal(S.completed)
        assert is_terminal(S.rejected)
        assert is_terminal(S.archived)
        assert not is_terminal(S.in_process)
