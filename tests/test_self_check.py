"""
Tests for the scripted self-check scenario.
"""

import pytest
from decimal import Decimal

from bookkeeping.ledger import run_system_audit


@pytest.fixture
def report(clock):
    return run_system_audit(clock=clock)


class TestSystemAudit:
    """The end-to-end week of business."""

    def test_passes(self, report):
        """Test that the identity holds before and after the reversal."""
        assert report.passed
        assert report.before_reversal.balanced
        assert report.after_reversal.balanced

    def test_balances_before_reversal(self, report):
        """Test the expected position after the ten scripted steps."""
        before = report.before_reversal
        assert before.total_assets == Decimal("148500")
        assert before.equity == Decimal("150000")
        # 5,900 revenue - 2,400 counted shrinkage - 5,000 expenses
        assert before.net_income == Decimal("-1500")
        assert before.difference == Decimal("0")

    def test_reversal_removes_last_sale(self, report):
        """Test that voiding the 400 cash sale lowers assets and revenue together."""
        after = report.after_reversal
        assert after.total_assets == Decimal("148100")
        assert after.net_income == Decimal("-1900")
        assert report.reverted_tx_id is not None

    def test_steps_are_logged(self, report):
        """Test that every step leaves a log line and verdicts are reported."""
        assert report.steps[0].startswith("Starting")
        assert any(line.startswith("10.") for line in report.steps)
        assert sum(1 for line in report.steps if line.startswith("PASS")) == 2

    def test_amounts_use_currency_symbol(self, report):
        """Test that balances are formatted with the configured currency."""
        balances = next(line for line in report.steps if line.startswith("Balances:"))
        assert "₡" in balances
        assert "28,400.00" in balances

    def test_runs_on_its_own_state(self, engine):
        """Test that the audit never touches another engine's books."""
        before = engine.state
        run_system_audit()
        assert engine.state == before


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
