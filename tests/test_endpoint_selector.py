"""Tests for primary/alternate endpoint selection."""

import pytest

from rtlink.connection import EndpointSelector, FailoverAction

PRIMARY = "wss://app.test/ws"
ALTERNATE = "wss://app.test/ws-alt"


class TestEndpointSelector:
    """Tests for failover decisions."""

    def test_starts_on_primary(self):
        selector = EndpointSelector(PRIMARY, ALTERNATE)

        assert selector.current == PRIMARY
        assert selector.has_alternate

    def test_switches_after_threshold(self):
        selector = EndpointSelector(PRIMARY, ALTERNATE, max_fails_before_switch=3)

        assert selector.record_failure() is FailoverAction.NONE
        assert selector.record_failure() is FailoverAction.NONE
        assert selector.record_failure() is FailoverAction.SWITCH_TO_ALTERNATE

        assert selector.current == ALTERNATE
        assert selector.consecutive_failures == 0

    def test_alternate_exhaustion_resets_to_primary(self):
        """The selector never stays on a failing alternate."""
        selector = EndpointSelector(PRIMARY, ALTERNATE, max_fails_before_switch=2)
        selector.record_failure()
        selector.record_failure()

        assert selector.record_failure() is FailoverAction.NONE
        assert selector.record_failure() is FailoverAction.RESET_TO_PRIMARY

        assert selector.current == PRIMARY
        assert selector.alternate_failed
        assert selector.consecutive_failures == 0

    def test_failed_alternate_is_not_retried(self):
        selector = EndpointSelector(PRIMARY, ALTERNATE, max_fails_before_switch=1)
        selector.record_failure()
        selector.record_failure()
        assert selector.alternate_failed

        for _ in range(5):
            assert selector.record_failure() is FailoverAction.NONE
            assert selector.current == PRIMARY

    def test_success_clears_failure_state(self):
        selector = EndpointSelector(PRIMARY, ALTERNATE, max_fails_before_switch=1)
        selector.record_failure()
        selector.record_failure()

        selector.record_success()

        assert not selector.alternate_failed
        assert selector.record_failure() is FailoverAction.SWITCH_TO_ALTERNATE

    def test_without_alternate(self):
        selector = EndpointSelector(PRIMARY, max_fails_before_switch=2)

        for _ in range(6):
            assert selector.record_failure() is FailoverAction.NONE
        assert selector.current == PRIMARY
        assert not selector.has_alternate

    def test_snapshot(self):
        selector = EndpointSelector(PRIMARY, ALTERNATE)
        selector.record_failure()

        assert selector.snapshot() == {
            "url": PRIMARY,
            "is_alternate": False,
            "alternate_failed": False,
            "consecutive_failures": 1,
            "max_fails_before_switch": 3,
        }

    def test_invalid_threshold(self):
        with pytest.raises(ValueError):
            EndpointSelector(PRIMARY, ALTERNATE, max_fails_before_switch=0)
