"""Unit tests for the level ladder rules."""

import pytest

from sharpstack.engines.criteria import build_registry
from sharpstack.engines.criteria.catalog import DEFAULT_CATALOG
from sharpstack.engines.training import LevelOutcome, evaluate_level
from sharpstack.engines.training.levels import effective_max_level, exchanges_to_next_level


@pytest.fixture
def registry():
    return build_registry(DEFAULT_CATALOG)


class TestEvaluateLevel:
    def test_below_threshold(self, registry):
        decision = evaluate_level(registry.levels, registry.plan("pro"), 1, 9)
        assert decision.outcome is LevelOutcome.NONE
        assert decision.level == 1

    def test_level_up_with_message(self, registry):
        decision = evaluate_level(registry.levels, registry.plan("pro"), 1, 10)
        assert decision.outcome is LevelOutcome.LEVEL_UP
        assert decision.level == 2
        assert "competing priorities" in decision.message

    def test_cap_on_free_plan(self, registry):
        decision = evaluate_level(registry.levels, registry.plan("free"), 2, 15)
        assert decision.outcome is LevelOutcome.LEVEL_CAP
        assert decision.level == 2
        assert decision.message == registry.levels.cap_message

    def test_cap_notice_only_once_per_level(self, registry):
        decision = evaluate_level(registry.levels, registry.plan("free"), 2, 40, cap_notified_level=2)
        assert decision.outcome is LevelOutcome.NONE

    def test_top_of_ladder(self, registry):
        decision = evaluate_level(registry.levels, registry.plan("unlimited"), 5, 500)
        assert decision.outcome is LevelOutcome.NONE

    def test_mode_thresholds_override(self, registry):
        decision = evaluate_level(registry.levels, registry.plan("pro"), 1, 3, mode_thresholds={"1": 3})
        assert decision.outcome is LevelOutcome.LEVEL_UP


class TestLadderHelpers:
    def test_effective_max_level(self, registry):
        assert effective_max_level(registry.levels, registry.plan("free")) == 2
        assert effective_max_level(registry.levels, registry.plan("unlimited")) == 5

    def test_exchanges_to_next_level(self, registry):
        assert exchanges_to_next_level(registry.levels, 1, 4) == 6
        assert exchanges_to_next_level(registry.levels, 1, 40) == 0
        assert exchanges_to_next_level(registry.levels, 5, 0) is None
