"""
Unit tests for monitoring/alerts.py
"""

from decimal import Decimal

from monitoring.alerts import AlertDeduplicator
from tests.stubs import FakeClock

PAIR = "WETH/USDC"


class TestAlertDeduplicator:
    """Suppression needs both: within cooldown and a small move."""

    def make(self):
        clock = FakeClock()
        return AlertDeduplicator(cooldown_s=10, min_delta_pct=Decimal("0.03"), clock=clock), clock

    def test_first_alert_emits(self):
        dedup, _ = self.make()
        assert dedup.should_alert(PAIR, "A→B", Decimal("0.50"))
        assert dedup.emitted == 1

    def test_small_move_within_cooldown_suppressed(self):
        dedup, clock = self.make()
        dedup.should_alert(PAIR, "A→B", Decimal("0.50"))
        clock.advance(5)

        assert not dedup.should_alert(PAIR, "A→B", Decimal("0.51"))
        assert dedup.suppressed == 1

    def test_large_move_within_cooldown_emits(self):
        dedup, clock = self.make()
        dedup.should_alert(PAIR, "A→B", Decimal("0.50"))
        clock.advance(5)

        assert dedup.should_alert(PAIR, "A→B", Decimal("0.60"))

    def test_after_cooldown_emits(self):
        dedup, clock = self.make()
        dedup.should_alert(PAIR, "A→B", Decimal("0.50"))
        clock.advance(11)

        assert dedup.should_alert(PAIR, "A→B", Decimal("0.50"))

    def test_direction_change_emits(self):
        dedup, clock = self.make()
        dedup.should_alert(PAIR, "A→B", Decimal("0.50"))
        clock.advance(1)

        assert dedup.should_alert(PAIR, "B→A", Decimal("0.50"))
        assert dedup.last[PAIR].direction == "B→A"

    def test_suppressed_alert_does_not_reset_reference(self):
        """The reference is the last emitted alert, not the last observation."""
        dedup, clock = self.make()
        dedup.should_alert(PAIR, "A→B", Decimal("0.50"))
        clock.advance(2)
        dedup.should_alert(PAIR, "A→B", Decimal("0.52"))
        clock.advance(2)

        assert dedup.should_alert(PAIR, "A→B", Decimal("0.54"))

    def test_pairs_are_independent(self):
        dedup, _ = self.make()
        dedup.should_alert(PAIR, "A→B", Decimal("0.50"))

        assert dedup.should_alert("WETH/ARB", "A→B", Decimal("0.50"))
