"""
Tests for the visitor request state machine.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from casalink_backend.core.exceptions import InvalidTransitionError, ValidationError
from casalink_backend.modules.visitor_access import lifecycle
from casalink_backend.modules.visitor_access.lifecycle import VisitorAction
from casalink_backend.modules.visitor_access.models import VisitorState
from casalink_backend.modules.visitor_access.schemas import VisitorRequestRecord

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_record(state: VisitorState, valid_until: datetime = T0 + timedelta(hours=1)):
    return VisitorRequestRecord(
        id=uuid.uuid4(),
        tenant_id=uuid.uuid4(),
        host_user_id=uuid.uuid4(),
        visitor_name="Ada",
        purpose="Delivery",
        valid_from=T0,
        valid_until=valid_until,
        qr_token="token",
        state=state,
    )


class TestEffectiveState:
    @pytest.mark.parametrize("state", [VisitorState.PENDING, VisitorState.APPROVED])
    def test_lapses_at_valid_until(self, state):
        valid_until = T0 + timedelta(hours=1)

        assert lifecycle.effective_state(state, valid_until, valid_until - timedelta(seconds=1)) == state
        assert lifecycle.effective_state(state, valid_until, valid_until) == VisitorState.EXPIRED

    @pytest.mark.parametrize(
        "state", [VisitorState.DENIED, VisitorState.COMPLETED, VisitorState.EXPIRED]
    )
    def test_terminal_states_unchanged(self, state):
        assert lifecycle.effective_state(state, T0, T0 + timedelta(days=1)) == state

    def test_project_does_not_touch_original(self):
        record = make_record(VisitorState.APPROVED)

        projected = lifecycle.project(record, T0 + timedelta(hours=2))

        assert projected.state == VisitorState.EXPIRED
        assert record.state == VisitorState.APPROVED


class TestValidateWindow:
    def test_accepts_future_window(self):
        lifecycle.validate_window(T0, T0 + timedelta(minutes=1), T0)

    def test_rejects_past_start(self):
        with pytest.raises(ValidationError):
            lifecycle.validate_window(T0 - timedelta(seconds=1), T0 + timedelta(hours=1), T0)

    @pytest.mark.parametrize("length", [timedelta(0), timedelta(seconds=-5)])
    def test_rejects_empty_window(self, length):
        with pytest.raises(ValidationError):
            lifecycle.validate_window(T0, T0 + length, T0)


class TestPlanTransition:
    @pytest.mark.parametrize(
        "state,action,target",
        [
            (VisitorState.PENDING, VisitorAction.APPROVE, VisitorState.APPROVED),
            (VisitorState.PENDING, VisitorAction.DENY, VisitorState.DENIED),
            (VisitorState.APPROVED, VisitorAction.COMPLETE, VisitorState.COMPLETED),
        ],
    )
    def test_allowed(self, state, action, target):
        assert lifecycle.plan_transition(make_record(state), action, T0) == target

    @pytest.mark.parametrize(
        "state,action",
        [
            (VisitorState.DENIED, VisitorAction.APPROVE),
            (VisitorState.APPROVED, VisitorAction.DENY),
            (VisitorState.PENDING, VisitorAction.COMPLETE),
            (VisitorState.COMPLETED, VisitorAction.APPROVE),
            (VisitorState.EXPIRED, VisitorAction.DENY),
        ],
    )
    def test_rejected(self, state, action):
        with pytest.raises(InvalidTransitionError):
            lifecycle.plan_transition(make_record(state), action, T0)

    @pytest.mark.parametrize(
        "state,action",
        [
            (VisitorState.APPROVED, VisitorAction.APPROVE),
            (VisitorState.DENIED, VisitorAction.DENY),
            (VisitorState.COMPLETED, VisitorAction.COMPLETE),
        ],
    )
    def test_repeat_is_noop(self, state, action):
        assert lifecycle.plan_transition(make_record(state), action, T0) is None

    def test_lapsed_pending_cannot_be_approved(self):
        record = make_record(VisitorState.PENDING)

        with pytest.raises(InvalidTransitionError) as exc_info:
            lifecycle.plan_transition(record, VisitorAction.APPROVE, T0 + timedelta(hours=1))

        assert exc_info.value.current_state == VisitorState.EXPIRED.value

    def test_lapsed_approved_cannot_be_completed(self):
        record = make_record(VisitorState.APPROVED)

        with pytest.raises(InvalidTransitionError):
            lifecycle.plan_transition(record, VisitorAction.COMPLETE, T0 + timedelta(hours=2))


class TestTruncate:
    def test_drops_microseconds(self):
        value = T0.replace(microsecond=999_999)

        assert lifecycle.truncate_to_seconds(value) == T0
