"""Tests for the process-wide rate gate."""

import pytest

from insights.app.services.rate_gate import (
    DAY_SECONDS,
    REASON_COOLDOWN,
    REASON_DAILY_LIMIT,
    REASON_IN_PROGRESS,
    REASON_TOO_FREQUENT,
    RateGate,
    get_rate_gate,
    reset_rate_gate,
)


def _complete_call(gate: RateGate) -> None:
    admission = gate.try_admit()
    assert admission.admitted
    gate.record_start()
    gate.record_finish()


class TestAdmissionRules:
    """Test each admission rule in isolation."""

    def test_first_call_is_admitted(self, gate):
        admission = gate.try_admit()

        assert admission.admitted
        assert admission.reason is None
        assert admission.retry_after is None

    def test_in_flight_call_rejects_second(self, gate):
        gate.try_admit()
        gate.record_start()

        admission = gate.try_admit()

        assert not admission.admitted
        assert admission.reason == REASON_IN_PROGRESS
        assert admission.retry_after == 2

    def test_record_finish_clears_in_flight(self, gate, clock):
        gate.try_admit()
        gate.record_start()
        gate.record_finish()
        clock.advance(8)

        assert gate.try_admit().admitted

    def test_too_frequent_reports_remaining_interval(self, gate, clock):
        _complete_call(gate)
        clock.advance(2.5)

        admission = gate.try_admit()

        assert not admission.admitted
        assert admission.reason == REASON_TOO_FREQUENT
        # ceil(8 - 2.5)
        assert admission.retry_after == 6

    def test_admitted_once_interval_elapsed(self, gate, clock):
        _complete_call(gate)
        clock.advance(8)

        assert gate.try_admit().admitted

    def test_abuse_signal_opens_cooldown(self, gate, clock):
        gate.try_admit()
        gate.record_start()
        gate.record_abuse_signal()
        clock.advance(10)

        admission = gate.try_admit()

        assert not admission.admitted
        assert admission.reason == REASON_COOLDOWN
        assert admission.retry_after == 20

    def test_abuse_signal_clears_in_flight(self, gate, clock):
        gate.try_admit()
        gate.record_start()
        gate.record_abuse_signal()

        state = gate.snapshot()
        assert state.in_flight is False
        assert state.cooldown_until == clock() + 30

    def test_cooldown_ends(self, gate, clock):
        _complete_call(gate)
        gate.record_abuse_signal()
        clock.advance(30)

        assert gate.try_admit().admitted


class TestDailyCeiling:
    """Test the rolling daily ceiling."""

    def test_fourth_call_rejected_until_reset(self, clock):
        gate = RateGate(min_interval_seconds=8, requests_per_day=3, clock=clock)
        for _ in range(3):
            _complete_call(gate)
            clock.advance(8)

        admission = gate.try_admit()

        assert not admission.admitted
        assert admission.reason == REASON_DAILY_LIMIT
        assert admission.retry_after > 0
        assert admission.quota_exhausted

        clock.advance(DAY_SECONDS)
        assert gate.try_admit().admitted
        assert gate.snapshot().daily_count == 0

    def test_daily_limit_retry_after_points_at_reset(self, clock):
        gate = RateGate(requests_per_day=1, clock=clock)
        start = clock()
        _complete_call(gate)
        clock.advance(100)

        admission = gate.try_admit()

        assert admission.retry_after == int(start + DAY_SECONDS - clock())

    def test_record_start_counts_calls(self, gate, clock):
        _complete_call(gate)
        clock.advance(8)
        _complete_call(gate)

        state = gate.snapshot()
        assert state.daily_count == 2
        assert state.last_request_at == clock()


class TestRuleOrder:
    """Test that the first matching rule wins."""

    def test_in_flight_wins_over_cooldown(self, gate):
        gate.try_admit()
        gate.record_start()
        gate.record_abuse_signal()
        gate.record_start()

        assert gate.try_admit().reason == REASON_IN_PROGRESS

    def test_cooldown_wins_over_daily_limit(self, clock):
        gate = RateGate(requests_per_day=1, cooldown_seconds=30, clock=clock)
        _complete_call(gate)
        gate.record_abuse_signal()

        assert gate.try_admit().reason == REASON_COOLDOWN

    def test_daily_limit_wins_over_interval(self, clock):
        gate = RateGate(min_interval_seconds=8, requests_per_day=1, clock=clock)
        _complete_call(gate)

        assert gate.try_admit().reason == REASON_DAILY_LIMIT


class TestSnapshot:
    """Test that state is only exposed as a copy."""

    def test_snapshot_is_a_copy(self, gate):
        state = gate.snapshot()
        state.in_flight = True
        state.daily_count = 99

        assert gate.snapshot().in_flight is False
        assert gate.snapshot().daily_count == 0
        assert gate.try_admit().admitted


class TestGlobalGate:
    """Test the process-wide accessor."""

    def test_get_rate_gate_returns_singleton(self):
        assert get_rate_gate() is get_rate_gate()

    def test_reset_rate_gate(self):
        first = get_rate_gate()
        reset_rate_gate()
        assert get_rate_gate() is not first

    @pytest.mark.parametrize("attr, expected", [
        ("min_interval_seconds", 8.0),
        ("requests_per_day", 30),
        ("cooldown_seconds", 30.0),
    ])
    def test_defaults_from_settings(self, attr, expected):
        assert getattr(get_rate_gate(), attr) == expected
