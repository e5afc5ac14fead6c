"""Tests for risk classification."""

import pytest

from ada.processing.risk import can_auto_execute, classify_risk


class TestClassifyRisk:
    def test_none(self):
        assert classify_risk("none") == "none"

    def test_sensitive(self):
        assert classify_risk("sensitive") == "sensitive"

    def test_needs_confirm(self):
        assert classify_risk("needs_confirm") == "needsConfirm"

    @pytest.mark.parametrize("value", ["", "None", "NONE", " none", "low", "safe", "unknown"])
    def test_anything_else_needs_confirmation(self, value):
        assert classify_risk(value) == "needsConfirm"


class TestAutoExecute:
    def test_only_none_runs_unattended(self):
        assert can_auto_execute("none") is True
        assert can_auto_execute("needsConfirm") is False
        assert can_auto_execute("sensitive") is False
